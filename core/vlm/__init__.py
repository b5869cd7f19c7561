"""
VLM (Visual Language Model) Logo Pipeline Components

This module provides:
- Model fallback orchestration across candidate models
- Response parsing (code fences, JSON, shape validation)
- Two-stage logo funnel: region detection + crop confirmation
- Image handling (PDF rendering, cropping)
"""

from .data_models import (
    ImageDimensions,
    BoundingBox,
    SourceImage,
    DetectedRegion,
    CroppedImage,
    ConfirmationVerdict,
    ConfirmedLogo,
    RegionState,
    PipelineStage,
    ProgressEvent
)
from .fallback_orchestrator import ModelFallbackOrchestrator, ProbeResult
from .response_parser import ResponseParser, DetectionResponse, ConfirmationResponse
from .region_detector import LogoRegionDetector
from .confirmation_filter import LogoConfirmationFilter

from .image_extraction import (
    ImageDecodeError,
    ImageSurface,
    PillowImageSurface,
    RegionCropper,
    load_source_image
)
from .logo_pipeline import ExtractionPipelineOrchestrator, LogoExtractionError

__all__ = [
    "ImageDimensions",
    "BoundingBox",
    "SourceImage",
    "DetectedRegion",
    "CroppedImage",
    "ConfirmationVerdict",
    "ConfirmedLogo",
    "RegionState",
    "PipelineStage",
    "ProgressEvent",
    "ModelFallbackOrchestrator",
    "ProbeResult",
    "ResponseParser",
    "DetectionResponse",
    "ConfirmationResponse",
    "LogoRegionDetector",
    "LogoConfirmationFilter",
    "ImageDecodeError",
    "ImageSurface",
    "PillowImageSurface",
    "RegionCropper",
    "load_source_image",
    "ExtractionPipelineOrchestrator",
    "LogoExtractionError"
]
