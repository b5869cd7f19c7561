#!/usr/bin/env python3
"""
Multi-Platform Design Converter

Converts one design into platform-optimized variants:
1. Layout analysis of the design (vision query)
2. Brand kit styling: colors, typography and spacing mapped onto the layout
   (vision query for the styling instructions, the mapping itself is local)
3. Per platform: headline and caption (text queries) plus layout adapted to
   the platform canvas and safe zones
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ValidationError, root_validator, validator

from core.brand_kit.models import BrandKit, BrandTypography
from core.clients.base import BaseVisionClient, ImagePayload
from core.clients.exceptions import MalformedResponseError
from core.vlm.data_models import SourceImage
from core.vlm.fallback_orchestrator import ModelFallbackOrchestrator
from core.vlm.response_parser import ResponseParser

logger = logging.getLogger(__name__)

DEFAULT_PLATFORMS = ("linkedin", "instagram", "youtube_thumbnail")

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


class UnknownPlatformError(ValueError):
    """Platform key not in PLATFORM_SPECS"""


class SnakeCaseModel(BaseModel):
    """Accepts camelCase keys from model answers (colorScheme -> color_scheme)"""

    @root_validator(pre=True)
    def _snake_case_keys(cls, values):
        if not isinstance(values, dict):
            return values
        return {_CAMEL_BOUNDARY.sub(r'_\1', key).lower(): value for key, value in values.items()}


# Platform specifications

class SafeZone(BaseModel):
    """Margins in pixels of the platform canvas"""
    top: int
    right: int
    bottom: int
    left: int


class PlatformSpec(BaseModel):
    key: str
    name: str
    width: int
    height: int
    safe_zone: SafeZone
    cta_zone: str
    color_psychology: str
    headline_style: str
    max_text_length: int
    caption_guidelines: str = "Engaging and platform-appropriate"

    @property
    def aspect_ratio(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


PLATFORM_SPECS: Dict[str, PlatformSpec] = {
    spec.key: spec for spec in [
        PlatformSpec(
            key="instagram", name="Instagram Post", width=1080, height=1080,
            safe_zone=SafeZone(top=50, right=50, bottom=200, left=50),
            cta_zone="bottom", color_psychology="vibrant", headline_style="short", max_text_length=125,
            caption_guidelines="Use emojis, hashtags (3-5), engaging and visual language",
        ),
        PlatformSpec(
            key="instagram_story", name="Instagram Story", width=1080, height=1920,
            safe_zone=SafeZone(top=200, right=50, bottom=300, left=50),
            cta_zone="center", color_psychology="bold", headline_style="short", max_text_length=50,
        ),
        PlatformSpec(
            key="linkedin", name="LinkedIn Post", width=1200, height=627,
            safe_zone=SafeZone(top=40, right=40, bottom=150, left=40),
            cta_zone="bottom", color_psychology="formal", headline_style="medium", max_text_length=150,
            caption_guidelines="Professional tone, value-driven, no emojis, industry-focused",
        ),
        PlatformSpec(
            key="pinterest", name="Pinterest Pin", width=1000, height=1500,
            safe_zone=SafeZone(top=50, right=50, bottom=200, left=50),
            cta_zone="top", color_psychology="vibrant", headline_style="long", max_text_length=200,
            caption_guidelines="Descriptive, keyword-rich, actionable, DIY-friendly",
        ),
        PlatformSpec(
            key="youtube_thumbnail", name="YouTube Thumbnail", width=1280, height=720,
            safe_zone=SafeZone(top=40, right=40, bottom=120, left=40),
            cta_zone="top", color_psychology="bold", headline_style="short", max_text_length=60,
            caption_guidelines="Click-worthy, question-based, curiosity-driven",
        ),
        PlatformSpec(
            key="tiktok", name="TikTok", width=1080, height=1920,
            safe_zone=SafeZone(top=200, right=50, bottom=300, left=50),
            cta_zone="center", color_psychology="vibrant", headline_style="short", max_text_length=100,
            caption_guidelines="Trendy, short, punchy, use trending sounds context",
        ),
        PlatformSpec(
            key="twitter", name="Twitter/X Post", width=1200, height=675,
            safe_zone=SafeZone(top=40, right=40, bottom=120, left=40),
            cta_zone="center", color_psychology="bold", headline_style="short", max_text_length=100,
            caption_guidelines="Concise, witty, news-worthy, engagement-focused",
        ),
    ]
}


def get_platform_spec(platform: str) -> PlatformSpec:
    try:
        return PLATFORM_SPECS[platform]
    except KeyError:
        raise UnknownPlatformError(
            f"Unknown platform: {platform}. Available: {', '.join(PLATFORM_SPECS)}"
        ) from None


# Layout models

class ElementPosition(BaseModel):
    """Position in percent (0-100) of the canvas"""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class BrandFont(BaseModel):
    family: str
    weight: str
    size: Optional[float] = None


class ElementSpacing(BaseModel):
    margin: float
    padding: float


class LayoutElement(SnakeCaseModel):
    type: str = "image"
    position: Optional[ElementPosition] = None
    content: Optional[str] = None
    importance: str = "medium"
    brand_color: Optional[str] = None
    brand_font: Optional[BrandFont] = None
    spacing: Optional[ElementSpacing] = None


class DesignLayout(SnakeCaseModel):
    """Answer of the layout analysis query"""
    elements: List[LayoutElement] = []
    color_scheme: List[str] = []
    layout_type: str = "centered"
    primary_message: str = ""

    @validator("elements", pre=True)
    def _drop_broken_elements(cls, value):
        if not isinstance(value, list):
            return value
        elements = []
        for index, item in enumerate(value, start=1):
            if isinstance(item, LayoutElement):
                elements.append(item)
                continue
            try:
                elements.append(LayoutElement.parse_obj(item))
            except (ValidationError, TypeError) as e:
                logger.warning(f"Layout element {index} skipped: {e}")
        return elements


class ColorMapping(SnakeCaseModel):
    original: str
    brand: str
    reason: Optional[str] = None


class TypographyMapping(SnakeCaseModel):
    element: str = "body"
    brand_font: str
    weight: Optional[str] = None
    reason: Optional[str] = None


class SpacingAdjustment(SnakeCaseModel):
    element: str
    spacing: float
    reason: Optional[str] = None


class StylingInstructions(SnakeCaseModel):
    """Answer of the styling query"""
    color_mapping: List[ColorMapping] = []
    typography_mapping: List[TypographyMapping] = []
    spacing_adjustments: List[SpacingAdjustment] = []


class StyledDesign(BaseModel):
    layout: DesignLayout
    instructions: StylingInstructions


class AdaptedElement(LayoutElement):
    adjusted_position: Optional[ElementPosition] = None


class AdaptedLayout(BaseModel):
    """Layout instructions for one platform canvas"""
    canvas_size: Dict[str, int]
    safe_zone: SafeZone
    elements: List[AdaptedElement] = []
    color_adjustments: List[str] = []
    typography_scaling: Dict[str, float] = {}


class PlatformConversion(BaseModel):
    platform: str
    name: str
    aspect_ratio: Dict[str, int]
    styled_layout: DesignLayout
    styling_instructions: StylingInstructions
    adapted_layout: AdaptedLayout
    headline: str
    caption: str
    brand_colors: List[str] = []


# Prompts

LAYOUT_ANALYSIS_PROMPT = """Analyze this design layout and return a JSON object describing its structure:

{
  "elements": [
    {
      "type": "text|image|logo|cta|background",
      "position": { "x": number, "y": number, "width": number, "height": number },
      "content": "text content if type is text",
      "importance": "high|medium|low"
    }
  ],
  "colorScheme": ["#hex1", "#hex2"],
  "layoutType": "centered|grid|asymmetric|minimal",
  "primaryMessage": "main message or headline"
}

Identify all visual elements, their positions (as percentages 0-100), and importance. Return ONLY valid JSON."""


def build_styling_prompt(layout: DesignLayout, brand_kit: BrandKit) -> str:
    typography = ", ".join(f"{t.role}: {t.font_family} {t.font_weight}" for t in brand_kit.typography)
    return f"""Analyze this raw design and the brand kit, then provide styling instructions.

Raw Design Analysis:
- Colors found: {', '.join(layout.color_scheme)}
- Layout type: {layout.layout_type}
- Primary message: "{layout.primary_message}"

Brand Kit:
- Primary colors: {', '.join(c.hex for c in brand_kit.colors.primary)}
- Secondary colors: {', '.join(c.hex for c in brand_kit.colors.secondary)}
- Typography: {typography}
- Spacing base unit: {brand_kit.spacing.base_unit:g}px

Return a JSON object with styling instructions:
{{
  "colorMapping": [
    {{ "original": "#hex", "brand": "#hex", "reason": "why this mapping" }}
  ],
  "typographyMapping": [
    {{ "element": "headline|body|cta", "brandFont": "font family name", "weight": "bold|regular", "reason": "why" }}
  ],
  "spacingAdjustments": [
    {{ "element": "element description", "spacing": number_in_pixels, "reason": "why" }}
  ]
}}

Map original colors to brand colors intelligently (e.g., bright colors -> brand primary, neutrals -> brand neutrals).
Apply brand typography to text elements based on their role.
Adjust spacing to match brand spacing system.
Return ONLY valid JSON."""


def _communication_style(brand_kit: BrandKit, with_approach: bool) -> str:
    style = brand_kit.communication_style
    if style is None:
        return ""
    parts = [style.formality, style.language_style]
    if with_approach:
        parts.append(style.communication_approach)
    return "Brand communication style: " + ", ".join(p for p in parts if p)


def build_headline_prompt(message: str, spec: PlatformSpec, brand_kit: BrandKit) -> str:
    return f"""Generate a platform-specific headline for {spec.name}.

Original message: "{message}"

Platform requirements:
- Max length: {spec.max_text_length} characters
- Style: {spec.headline_style}
- Color psychology: {spec.color_psychology}
- CTA zone: {spec.cta_zone}
{_communication_style(brand_kit, with_approach=True)}

Generate a catchy, platform-optimized headline that:
1. Fits the platform's audience and style
2. Maintains the original message intent
3. Uses appropriate tone for the platform
4. Is engaging and shareable

Return ONLY the headline text, no quotes or explanations."""


def build_caption_prompt(message: str, spec: PlatformSpec, brand_kit: BrandKit) -> str:
    return f"""Generate a {spec.key} caption for this content:

Original: "{message}"
{_communication_style(brand_kit, with_approach=False)}

Platform guidelines: {spec.caption_guidelines}

Generate a caption that:
1. Matches {spec.key} style and audience
2. Includes appropriate hashtags/formatting for {spec.key}
3. Maintains brand voice
4. Is optimized for engagement

Return ONLY the caption text."""


# Local layout logic

def _pick_typography(brand_kit: BrandKit, family_hint: Optional[str] = None) -> Optional[BrandTypography]:
    """Brand font matching `family_hint`, else the body font, else the first one"""
    if family_hint:
        hint = family_hint.lower()
        for typography in brand_kit.typography:
            family = typography.font_family.lower()
            if hint in family or family in hint:
                return typography
    for typography in brand_kit.typography:
        if typography.role == "body":
            return typography
    return brand_kit.typography[0] if brand_kit.typography else None


def style_layout(layout: DesignLayout, instructions: StylingInstructions, brand_kit: BrandKit) -> DesignLayout:
    """Apply brand colors, fonts and spacing to every layout element"""
    scheme = {color.lower() for color in layout.color_scheme}
    color_map = next((m for m in instructions.color_mapping if m.original.lower() in scheme), None)
    primary_hex = brand_kit.colors.primary[0].hex if brand_kit.colors.primary else None

    styled = []
    for element in layout.elements:
        element = element.copy()

        if element.type in ("text", "cta", "background"):
            element.brand_color = color_map.brand if color_map else primary_hex

        if element.type in ("text", "cta"):
            role = "cta" if element.type == "cta" else ("headline" if element.importance == "high" else "body")
            mapping = next((m for m in instructions.typography_mapping if m.element == role), None)
            if mapping is None and instructions.typography_mapping:
                mapping = instructions.typography_mapping[0]

            typography = _pick_typography(brand_kit, mapping.brand_font if mapping else None)
            if typography is not None:
                element.brand_font = BrandFont(
                    family=typography.font_family,
                    weight=(mapping.weight if mapping and mapping.weight else typography.font_weight),
                    size=typography.font_size,
                )

        adjustment = next(
            (s for s in instructions.spacing_adjustments
             if s.element and element.content and s.element in element.content),
            None,
        )
        element.spacing = ElementSpacing(
            margin=adjustment.spacing if adjustment else brand_kit.spacing.section_gap,
            padding=brand_kit.spacing.element_padding,
        )
        styled.append(element)

    return DesignLayout(
        elements=styled,
        color_scheme=[c.hex for c in brand_kit.colors.primary] or layout.color_scheme,
        layout_type=layout.layout_type,
        primary_message=layout.primary_message,
    )


def calculate_adjusted_position(position: ElementPosition, spec: PlatformSpec) -> ElementPosition:
    """Map a 0-100 position into the platform's safe zone (result in percent of the canvas)"""
    left = spec.safe_zone.left / spec.width * 100
    right = spec.safe_zone.right / spec.width * 100
    top = spec.safe_zone.top / spec.height * 100
    bottom = spec.safe_zone.bottom / spec.height * 100

    safe_width = 100 - left - right
    safe_height = 100 - top - bottom

    return ElementPosition(
        x=left + position.x * safe_width / 100,
        y=top + position.y * safe_height / 100,
        width=position.width * safe_width / 100,
        height=position.height * safe_height / 100,
    )


def adapt_colors_for_platform(brand_kit: BrandKit, spec: PlatformSpec) -> List[str]:
    # TODO: tune intensity per spec.color_psychology once there are reference designs to compare against
    colors = brand_kit.colors.primary + brand_kit.colors.secondary + brand_kit.colors.accent
    return [color.hex for color in colors][:3]


def adapt_layout_for_platform(layout: DesignLayout, spec: PlatformSpec, brand_kit: BrandKit) -> AdaptedLayout:
    elements = [
        AdaptedElement(
            **element.dict(),
            adjusted_position=(
                calculate_adjusted_position(element.position, spec) if element.position else None
            ),
        )
        for element in layout.elements
    ]

    return AdaptedLayout(
        canvas_size=spec.aspect_ratio,
        safe_zone=spec.safe_zone,
        elements=elements,
        color_adjustments=adapt_colors_for_platform(brand_kit, spec),
        typography_scaling={
            "headline": 0.9 if spec.headline_style == "short" else 1.0,
            "body": 0.85 if spec.max_text_length < 100 else 1.0,
        },
    )


def clean_headline(raw: str, max_length: int) -> str:
    """Strip surrounding quotes and cut at a word boundary if too long"""
    text = raw.strip().strip('"\'').strip()
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:-")


class PlatformDesignConverter:
    """Converts one design to platform-optimized versions"""

    def __init__(self,
                 client: BaseVisionClient,
                 orchestrator: Optional[ModelFallbackOrchestrator] = None,
                 parser: Optional[ResponseParser] = None):
        self.client = client
        self.orchestrator = orchestrator or ModelFallbackOrchestrator(client.provider)
        self.parser = parser or ResponseParser()

    async def _query_text(self, prompt: str, image: Optional[ImagePayload], operation_name: str) -> str:
        async def query_with(model: str) -> str:
            raw = await self.client.query(prompt, image, model)
            text = self.parser.strip_code_fences(raw or "")
            if not text:
                raise MalformedResponseError("Empty response", raw_response=raw)
            return text

        return await self.orchestrator.run(self.client.candidate_models, query_with, operation_name=operation_name)

    async def analyze_layout(self, image: SourceImage) -> DesignLayout:
        payload = ImagePayload(data=image.data, mime_type=image.mime_type)

        async def analyze_with(model: str) -> DesignLayout:
            raw = await self.client.query(LAYOUT_ANALYSIS_PROMPT, payload, model)
            return self.parser.parse(raw, DesignLayout)

        return await self.orchestrator.run(
            self.client.candidate_models, analyze_with, operation_name="layout analysis"
        )

    async def apply_brand_kit(self, image: SourceImage, brand_kit: BrandKit) -> StyledDesign:
        """Analyze the raw design and map the brand kit onto its elements"""
        layout = await self.analyze_layout(image)
        logger.info(f"Layout: {len(layout.elements)} element(s), type {layout.layout_type}")

        payload = ImagePayload(data=image.data, mime_type=image.mime_type)
        prompt = build_styling_prompt(layout, brand_kit)

        async def style_with(model: str) -> StylingInstructions:
            raw = await self.client.query(prompt, payload, model)
            return self.parser.parse(raw, StylingInstructions)

        instructions = await self.orchestrator.run(
            self.client.candidate_models, style_with, operation_name="brand styling"
        )

        return StyledDesign(layout=style_layout(layout, instructions, brand_kit), instructions=instructions)

    async def generate_headline(self, message: str, spec: PlatformSpec, brand_kit: BrandKit) -> str:
        raw = await self._query_text(
            build_headline_prompt(message, spec, brand_kit), None, f"{spec.key} headline"
        )
        return clean_headline(raw, spec.max_text_length)

    async def generate_caption(self, message: str, spec: PlatformSpec, brand_kit: BrandKit) -> str:
        return await self._query_text(
            build_caption_prompt(message, spec, brand_kit), None, f"{spec.key} caption"
        )

    async def convert(self, image: SourceImage, platform: str, brand_kit: BrandKit) -> PlatformConversion:
        conversions = await self.convert_all(image, brand_kit, platforms=[platform])
        return conversions[0]

    async def convert_all(self,
                          image: SourceImage,
                          brand_kit: BrandKit,
                          platforms: Sequence[str] = DEFAULT_PLATFORMS) -> List[PlatformConversion]:
        """
        Style the design once, then adapt it for every platform

        Platforms are processed one after another so a rate limit stops the
        whole conversion instead of racing parallel queries.

        Raises:
            UnknownPlatformError: before any query is sent
            VisionQueryError: a query failed (rate limit, auth, exhausted candidates)
        """
        specs = [get_platform_spec(platform) for platform in platforms]
        if not specs:
            raise UnknownPlatformError("No platforms requested")

        styled = await self.apply_brand_kit(image, brand_kit)
        message = styled.layout.primary_message
        brand_colors = [c.hex for c in brand_kit.colors.primary]

        conversions = []
        for spec in specs:
            logger.info(f"🔄 Converting design for {spec.name}")
            headline = await self.generate_headline(message, spec, brand_kit)
            caption = await self.generate_caption(message, spec, brand_kit)

            conversions.append(PlatformConversion(
                platform=spec.key,
                name=spec.name,
                aspect_ratio=spec.aspect_ratio,
                styled_layout=styled.layout,
                styling_instructions=styled.instructions,
                adapted_layout=adapt_layout_for_platform(styled.layout, spec, brand_kit),
                headline=headline,
                caption=caption,
                brand_colors=brand_colors,
            ))

        logger.info(f"✅ Converted design for {len(conversions)} platform(s)")
        return conversions
