"""Brand Kit Extraction Service - Core Module"""

__version__ = "0.1.0"

# Lazy imports to avoid circular dependencies
def get_logo_pipeline():
    from .vlm.logo_pipeline import ExtractionPipelineOrchestrator
    return ExtractionPipelineOrchestrator

def get_brand_kit_extractor():
    from .brand_kit.extractor import BrandKitExtractor
    return BrandKitExtractor

__all__ = [
    "get_logo_pipeline",
    "get_brand_kit_extractor",
    "__version__"
]
