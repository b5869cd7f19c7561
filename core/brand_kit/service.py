"""
Brand Kit Service - transforms raw extraction results into usable brand kits
"""

import logging
import re
from typing import List, Optional

from core.brand_kit.models import (
    BrandColor,
    BrandColors,
    BrandKit,
    BrandKitExtraction,
    BrandLogoImage,
    BrandLogos,
    BrandSpacing,
    BrandTypography,
    RGBColor,
)
from core.vlm.data_models import ConfirmedLogo

logger = logging.getLogger(__name__)

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]{6}$')

TYPOGRAPHY_ROLES = ("heading", "subheading", "body", "caption")

COLOR_USAGE = {
    "primary": "Use for primary brand elements, headlines, and key CTAs",
    "secondary": "Use for supporting elements and secondary information",
    "accent": "Use sparingly for highlights and emphasis",
    "neutral": "Use for backgrounds, borders, and subtle elements",
}


def hex_to_rgb(hex_color: str) -> Optional[RGBColor]:
    """
    Convert `#abc` / `#aabbcc` to 0..1 channels

    Returns:
        RGBColor or None for anything that is not a 3 or 6 digit hex code
    """
    value = (hex_color or "").strip().lstrip('#')
    if len(value) == 3:
        value = "".join(c + c for c in value)
    if not _HEX_PATTERN.match(value):
        return None

    return RGBColor(
        red=int(value[0:2], 16) / 255,
        green=int(value[2:4], 16) / 255,
        blue=int(value[4:6], 16) / 255,
    )


def _colors_for_role(hex_values: List[str], role: str) -> List[BrandColor]:
    colors = []
    for hex_value in hex_values:
        rgb = hex_to_rgb(hex_value)
        if rgb is None:
            logger.warning(f"Invalid {role} color {hex_value!r}, substituting black")
            rgb = RGBColor(red=0, green=0, blue=0)
        colors.append(BrandColor(hex=hex_value, rgb=rgb, role=role))
    return colors


def transform_to_brand_kit(extraction: BrandKitExtraction,
                           logos: Optional[List[ConfirmedLogo]] = None) -> BrandKit:
    """Transform a raw extraction (plus confirmed logos) into a structured BrandKit"""
    raw_colors = extraction.colors
    colors = BrandColors(
        primary=_colors_for_role(raw_colors.primary if raw_colors else [], "primary"),
        secondary=_colors_for_role(raw_colors.secondary if raw_colors else [], "secondary"),
        accent=_colors_for_role(raw_colors.accent if raw_colors else [], "accent"),
        neutral=_colors_for_role(raw_colors.neutral if raw_colors else [], "neutral"),
    )

    typography = []
    if extraction.typography is not None:
        for role in TYPOGRAPHY_ROLES:
            font = getattr(extraction.typography, role)
            if font is None:
                continue
            typography.append(BrandTypography(
                role=role,
                font_family=font.font,
                font_weight=font.weight,
                font_size=font.size,
            ))

    raw_spacing = extraction.spacing
    defaults = BrandSpacing()
    spacing = BrandSpacing(
        base_unit=(raw_spacing and raw_spacing.base_unit) or defaults.base_unit,
        section_gap=(raw_spacing and raw_spacing.section_gap) or defaults.section_gap,
        paragraph_gap=(raw_spacing and raw_spacing.paragraph_gap) or defaults.paragraph_gap,
        element_padding=(raw_spacing and raw_spacing.element_padding) or defaults.element_padding,
    )

    logo_images = [
        BrandLogoImage(
            name=logo.name,
            image_base64=logo.image.to_base64(),
            mime_type=logo.image.mime_type,
            confidence=logo.confidence,
            description=logo.description,
            source_region=logo.image.source_region.to_dict(),
        )
        for logo in (logos or [])
    ]
    brand_logos = BrandLogos(
        # First confirmed logo doubles as the main logo
        full=logo_images[0].image_base64 if logo_images else None,
        all_logos=logo_images,
        styles=extraction.logos.styles if extraction.logos else None,
    )

    return BrandKit(
        colors=colors,
        typography=typography,
        logos=brand_logos,
        spacing=spacing,
        graphics=extraction.graphics,
        contrast_rules=extraction.contrast_rules,
        communication_style=extraction.communication_style,
        tone=extraction.tone,
    )


def generate_guidelines(brand_kit: BrandKit) -> str:
    """Generate markdown brand usage guidelines"""
    lines = ["# Brand Usage Guidelines", ""]

    if brand_kit.tone:
        lines += ["## Brand Tone", brand_kit.tone, ""]

    lines += ["## Color Palette", ""]
    for role in ("primary", "secondary", "accent", "neutral"):
        colors = getattr(brand_kit.colors, role)
        if not colors:
            continue
        lines.append(f"### {role.capitalize()} Colors")
        lines += [f"- {color.hex} - {COLOR_USAGE[role]}" for color in colors]
        lines.append("")

    if brand_kit.typography:
        lines += ["## Typography", ""]
        for type_style in brand_kit.typography:
            lines.append(f"### {type_style.role.capitalize()}")
            lines.append(f"- Font Family: {type_style.font_family}")
            lines.append(f"- Weight: {type_style.font_weight}")
            if type_style.font_size:
                lines.append(f"- Size: {type_style.font_size:g}pt")
            lines.append("")

    spacing = brand_kit.spacing
    lines += [
        "## Spacing System",
        "",
        f"- Base Unit: {spacing.base_unit:g}px",
        f"- Section Gap: {spacing.section_gap:g}px",
        f"- Paragraph Gap: {spacing.paragraph_gap:g}px",
        f"- Element Padding: {spacing.element_padding:g}px",
        "",
        "Use multiples of the base unit for consistent spacing throughout designs.",
    ]

    if brand_kit.logos.all_logos or brand_kit.logos.styles:
        lines += ["", "## Logo Usage", ""]
        for logo in brand_kit.logos.all_logos:
            lines.append(f"- {logo.name} (confidence {logo.confidence:.2f})")
        lines.append("- Always maintain minimum clear space around logos")
        styles = brand_kit.logos.styles
        if styles is not None:
            if styles.clear_space:
                lines.append(f"- Clear space: {styles.clear_space}")
            if styles.min_size:
                lines.append(f"- Minimum size: {styles.min_size}")
            lines += [f"- {rule}" for rule in styles.usage]
            lines += [f"- Don't: {rule}" for rule in styles.donts]

    if brand_kit.contrast_rules:
        lines += ["", "## Contrast Rules", ""]
        for rule in brand_kit.contrast_rules:
            detail = ""
            if rule.ratio:
                level = f" {rule.level}" if rule.level else ""
                detail = f" ({rule.ratio:g}:1{level})"
            lines.append(f"- {rule.foreground} on {rule.background}{detail}")

    return "\n".join(lines) + "\n"
