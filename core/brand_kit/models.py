"""
Brand kit data models

Two layers:
- BrandKitExtraction: raw model answer (snake_case, everything optional)
- BrandKit: structured brand kit handed to storage, guidelines and PDF export
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


# Raw extraction (as returned by the vision model)

class ExtractedColors(BaseModel):
    primary: List[str] = []
    secondary: List[str] = []
    accent: List[str] = []
    neutral: List[str] = []


class ExtractedFont(BaseModel):
    font: str = "Sans-serif"
    weight: str = "regular"
    size: Optional[float] = None


class ExtractedTypography(BaseModel):
    heading: Optional[ExtractedFont] = None
    subheading: Optional[ExtractedFont] = None
    body: Optional[ExtractedFont] = None
    caption: Optional[ExtractedFont] = None


class ExtractedSpacing(BaseModel):
    base_unit: Optional[float] = None
    section_gap: Optional[float] = None
    paragraph_gap: Optional[float] = None
    element_padding: Optional[float] = None


class LogoStyles(BaseModel):
    clear_space: Optional[str] = None
    min_size: Optional[str] = None
    usage: List[str] = []
    donts: List[str] = []


class ExtractedLogos(BaseModel):
    styles: Optional[LogoStyles] = None


class BrandIcon(BaseModel):
    name: str = ""
    description: Optional[str] = None
    usage: Optional[str] = None
    category: Optional[str] = None


class BrandGraphics(BaseModel):
    patterns: List[str] = []
    illustrations: Optional[str] = None
    icons: List[BrandIcon] = []


class ContrastRule(BaseModel):
    foreground: str
    background: str
    ratio: Optional[float] = None
    level: Optional[str] = None
    usage: Optional[str] = None


class CommunicationStyle(BaseModel):
    formality: Optional[str] = None
    language_style: Optional[str] = None
    audience_type: Optional[str] = None
    cta_style: Optional[str] = None
    communication_approach: Optional[str] = None


class BrandKitExtraction(BaseModel):
    """Shape of the brand-kit query answer"""
    colors: Optional[ExtractedColors] = None
    typography: Optional[ExtractedTypography] = None
    spacing: Optional[ExtractedSpacing] = None
    logos: Optional[ExtractedLogos] = None
    graphics: Optional[BrandGraphics] = None
    contrast_rules: List[ContrastRule] = []
    communication_style: Optional[CommunicationStyle] = None
    tone: Optional[str] = None


# Structured brand kit

class RGBColor(BaseModel):
    """Color channels in the 0..1 range"""
    red: float
    green: float
    blue: float


class BrandColor(BaseModel):
    hex: str
    rgb: RGBColor
    role: str
    usage: Optional[str] = None


class BrandColors(BaseModel):
    primary: List[BrandColor] = []
    secondary: List[BrandColor] = []
    accent: List[BrandColor] = []
    neutral: List[BrandColor] = []

    def all_colors(self) -> List[BrandColor]:
        return self.primary + self.secondary + self.accent + self.neutral


class BrandTypography(BaseModel):
    role: str
    font_family: str
    font_weight: str
    font_size: Optional[float] = None


class BrandSpacing(BaseModel):
    base_unit: float = 8
    section_gap: float = 32
    paragraph_gap: float = 16
    element_padding: float = 16


class BrandLogoImage(BaseModel):
    """Confirmed logo crop attached to a brand kit"""
    name: str
    image_base64: str
    mime_type: str = "image/png"
    confidence: float
    description: Optional[str] = None
    source_region: Optional[Dict[str, float]] = None


class BrandLogos(BaseModel):
    full: Optional[str] = None
    all_logos: List[BrandLogoImage] = []
    styles: Optional[LogoStyles] = None


class BrandKit(BaseModel):
    colors: BrandColors = BrandColors()
    typography: List[BrandTypography] = []
    logos: BrandLogos = BrandLogos()
    spacing: BrandSpacing = BrandSpacing()
    graphics: Optional[BrandGraphics] = None
    contrast_rules: List[ContrastRule] = []
    communication_style: Optional[CommunicationStyle] = None
    tone: Optional[str] = None
    guidelines: Optional[str] = None


class SavedBrandKit(BaseModel):
    """Persisted brand kit record"""
    id: str
    name: str
    created_at: datetime
    brand_kit: BrandKit
    source_file_name: Optional[str] = None
