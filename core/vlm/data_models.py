"""
Data models for the logo extraction pipeline
"""

import base64
import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ImageDimensions:
    """Pixel size of an image"""
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixel coordinates (top-left origin)"""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def fits_within(self, dims: ImageDimensions) -> bool:
        """Non-negative origin, positive size, fully inside the image"""
        return (
            self.x >= 0 and self.y >= 0
            and self.width > 0 and self.height > 0
            and self.x + self.width <= dims.width
            and self.y + self.height <= dims.height
        )

    def padded(self, fraction: float) -> "BoundingBox":
        """Grow the box by `fraction` of its own size on every side (may leave the image)"""
        pad_x = self.width * fraction
        pad_y = self.height * fraction
        return BoundingBox(
            x=self.x - pad_x,
            y=self.y - pad_y,
            width=self.width + 2 * pad_x,
            height=self.height + 2 * pad_y,
        )

    def clamped(self, dims: ImageDimensions) -> "BoundingBox":
        """Intersect with the image area, integer pixel edges"""
        x0 = min(max(0, int(round(self.x))), dims.width)
        y0 = min(max(0, int(round(self.y))), dims.height)
        x1 = min(max(0, int(round(self.x + self.width))), dims.width)
        y1 = min(max(0, int(round(self.y + self.height))), dims.height)
        return BoundingBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class SourceImage:
    """Image bytes entering the pipeline"""
    data: bytes
    mime_type: str = "image/png"
    filename: Optional[str] = None

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.data).hexdigest()[:16]


@dataclass(frozen=True)
class DetectedRegion:
    """Candidate logo region produced by the detector"""
    name: str
    box: BoundingBox
    confidence: float


@dataclass(frozen=True)
class CroppedImage:
    """Encoded crop of a region of the source image"""
    data: bytes
    mime_type: str
    source_region: BoundingBox

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode('utf-8')


@dataclass(frozen=True)
class ConfirmationVerdict:
    """Answer of the confirmation query on a single crop"""
    confirmed: bool
    name: str
    confidence: float
    description: Optional[str] = None

    @classmethod
    def rejected(cls) -> "ConfirmationVerdict":
        return cls(confirmed=False, name="Unknown Logo", confidence=0.0)


@dataclass(frozen=True)
class ConfirmedLogo:
    """Terminal artifact of the pipeline"""
    name: str
    image: CroppedImage
    confidence: float
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-friendly dictionary (image as base64)"""
        return {
            "name": self.name,
            "confidence": self.confidence,
            "description": self.description,
            "mime_type": self.image.mime_type,
            "image_base64": self.image.to_base64(),
            "source_region": self.image.source_region.to_dict(),
        }


class RegionState(Enum):
    """Lifecycle of a detected region inside the pipeline"""
    DETECTED = "detected"
    CROPPED = "cropped"
    ACCEPTED = "confirmed_accepted"
    REJECTED = "confirmed_rejected"
    FAILED = "failed"


class PipelineStage(Enum):
    """Progress stages reported to observers"""
    DIMENSIONS = "dimensions"
    DETECTION = "detection"
    REGION = "region"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass
class ProgressEvent:
    """Progress notification emitted by the pipeline (informational only)"""
    stage: PipelineStage
    message: str
    region_index: Optional[int] = None
    region_total: Optional[int] = None
    region_state: Optional[RegionState] = None
    details: Dict[str, Any] = field(default_factory=dict)
