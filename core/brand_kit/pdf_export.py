"""
PDF export of brand usage guidelines (reportlab)
"""

import base64
import io
import logging

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from core.brand_kit.models import BrandKit
from core.brand_kit.service import COLOR_USAGE

logger = logging.getLogger(__name__)

MARGIN = 20 * mm
LINE_HEIGHT = 6 * mm


class _GuidelinesCanvas:
    """Canvas with a top-down cursor and automatic page breaks"""

    def __init__(self, buffer: io.BytesIO):
        self.canvas = canvas.Canvas(buffer, pagesize=A4)
        self.width, self.height = A4
        self.max_width = self.width - 2 * MARGIN
        self.y = self.height - MARGIN

    def ensure_space(self, needed: float) -> None:
        if self.y - needed < MARGIN:
            self.canvas.showPage()
            self.y = self.height - MARGIN

    def heading(self, text: str, size: int = 14) -> None:
        self.ensure_space(size + LINE_HEIGHT)
        self.y -= 4 * mm
        self.canvas.setFont("Helvetica-Bold", size)
        self.canvas.drawString(MARGIN, self.y, text)
        self.y -= size * 0.6 + 2 * mm

    def paragraph(self, text: str, indent: float = 0, size: int = 10) -> None:
        self.canvas.setFont("Helvetica", size)
        for line in simpleSplit(text, "Helvetica", size, self.max_width - indent):
            self.ensure_space(LINE_HEIGHT)
            self.canvas.setFont("Helvetica", size)
            self.canvas.drawString(MARGIN + indent, self.y, line)
            self.y -= LINE_HEIGHT

    def swatch(self, red: float, green: float, blue: float, label: str) -> None:
        self.ensure_space(LINE_HEIGHT + 2 * mm)
        self.canvas.setFillColorRGB(red, green, blue)
        self.canvas.rect(MARGIN, self.y - 1.5 * mm, 15 * mm, 5 * mm, fill=1, stroke=1)
        self.canvas.setFillColorRGB(0, 0, 0)
        self.canvas.setFont("Helvetica", 10)
        self.canvas.drawString(MARGIN + 18 * mm, self.y, label)
        self.y -= LINE_HEIGHT + 2 * mm

    def image(self, data: bytes, max_height: float = 25 * mm) -> None:
        reader = ImageReader(io.BytesIO(data))
        img_width, img_height = reader.getSize()
        scale = min(max_height / img_height, self.max_width / img_width)
        draw_width, draw_height = img_width * scale, img_height * scale

        self.ensure_space(draw_height + 2 * mm)
        self.canvas.drawImage(reader, MARGIN, self.y - draw_height, draw_width, draw_height,
                              mask='auto')
        self.y -= draw_height + 4 * mm

    def save(self) -> None:
        self.canvas.save()


def render_guidelines_pdf(brand_kit: BrandKit, title: str = "Brand Usage Guidelines") -> bytes:
    """
    Render the brand kit guidelines as PDF

    Returns:
        PDF document bytes
    """
    buffer = io.BytesIO()
    doc = _GuidelinesCanvas(buffer)
    doc.canvas.setTitle(title)

    doc.heading(title, size=24)

    if brand_kit.tone:
        doc.heading("Brand Tone")
        doc.paragraph(brand_kit.tone, size=11)

    doc.heading("Color Palette")
    for role in ("primary", "secondary", "accent", "neutral"):
        colors = getattr(brand_kit.colors, role)
        if not colors:
            continue
        doc.heading(f"{role.capitalize()} Colors", size=12)
        for color in colors:
            doc.swatch(color.rgb.red, color.rgb.green, color.rgb.blue,
                       f"{color.hex} - {COLOR_USAGE[role]}")

    if brand_kit.typography:
        doc.heading("Typography")
        for type_style in brand_kit.typography:
            doc.heading(type_style.role.capitalize(), size=12)
            doc.paragraph(f"Font Family: {type_style.font_family}", indent=5 * mm)
            doc.paragraph(f"Weight: {type_style.font_weight}", indent=5 * mm)
            if type_style.font_size:
                doc.paragraph(f"Size: {type_style.font_size:g}pt", indent=5 * mm)

    spacing = brand_kit.spacing
    doc.heading("Spacing System")
    doc.paragraph(f"Base Unit: {spacing.base_unit:g}px", indent=5 * mm)
    doc.paragraph(f"Section Gap: {spacing.section_gap:g}px", indent=5 * mm)
    doc.paragraph(f"Paragraph Gap: {spacing.paragraph_gap:g}px", indent=5 * mm)
    doc.paragraph(f"Element Padding: {spacing.element_padding:g}px", indent=5 * mm)
    doc.paragraph("Use multiples of the base unit for consistent spacing throughout designs.")

    if brand_kit.logos.all_logos or brand_kit.logos.styles:
        doc.heading("Logo Usage")
        for logo in brand_kit.logos.all_logos:
            try:
                doc.image(base64.b64decode(logo.image_base64))
            except Exception as e:
                logger.warning(f"Could not embed logo {logo.name}: {e}")
            doc.paragraph(f"{logo.name} (confidence {logo.confidence:.2f})", indent=5 * mm)
        doc.paragraph("• Always maintain minimum clear space around logos", indent=5 * mm)
        styles = brand_kit.logos.styles
        if styles is not None:
            if styles.clear_space:
                doc.paragraph(f"• Clear space: {styles.clear_space}", indent=5 * mm)
            if styles.min_size:
                doc.paragraph(f"• Minimum size: {styles.min_size}", indent=5 * mm)
            for rule in styles.usage:
                doc.paragraph(f"• {rule}", indent=5 * mm)
            for rule in styles.donts:
                doc.paragraph(f"• Don't: {rule}", indent=5 * mm)

    if brand_kit.contrast_rules:
        doc.heading("Contrast Rules")
        for rule in brand_kit.contrast_rules:
            level = f" {rule.level}" if rule.level else ""
            ratio = f" ({rule.ratio:g}:1{level})" if rule.ratio else ""
            doc.paragraph(f"• {rule.foreground} on {rule.background}{ratio}", indent=5 * mm)

    doc.save()
    pdf_bytes = buffer.getvalue()
    logger.info(f"Rendered guidelines PDF ({len(pdf_bytes)} bytes)")
    return pdf_bytes
