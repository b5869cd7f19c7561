"""
Brand kit assembly: extraction, transformation, guidelines, storage, PDF export,
multi-platform design conversion
"""

from .models import BrandKit, BrandKitExtraction, SavedBrandKit, RGBColor
from .service import hex_to_rgb, transform_to_brand_kit, generate_guidelines
from .extractor import BrandKitExtractor
from .storage import BrandKitStore, StorageLimitExceeded
from .pdf_export import render_guidelines_pdf
from .platforms import (
    PLATFORM_SPECS,
    PlatformDesignConverter,
    PlatformConversion,
    UnknownPlatformError,
    get_platform_spec,
)

__all__ = [
    "BrandKit",
    "BrandKitExtraction",
    "SavedBrandKit",
    "RGBColor",
    "hex_to_rgb",
    "transform_to_brand_kit",
    "generate_guidelines",
    "BrandKitExtractor",
    "BrandKitStore",
    "StorageLimitExceeded",
    "render_guidelines_pdf",
    "PLATFORM_SPECS",
    "PlatformDesignConverter",
    "PlatformConversion",
    "UnknownPlatformError",
    "get_platform_spec",
]
