"""
Logo Region Detector

First stage of the two-stage funnel: ask the model for logo bounding boxes
and keep only geometrically sound, confident, plausibly sized regions.
"""

import logging
import math
from typing import Any, List, Optional

from core.clients.base import BaseVisionClient, ImagePayload
from core.config.unified_manager import LogoPipelineConfig
from core.vlm.data_models import BoundingBox, DetectedRegion, ImageDimensions, SourceImage
from core.vlm.fallback_orchestrator import ModelFallbackOrchestrator
from core.vlm.prompts import build_detection_prompt
from core.vlm.response_parser import DetectionResponse, RawRegion, ResponseParser

logger = logging.getLogger(__name__)


class LogoRegionDetector:
    """Detects candidate logo regions and validates them against the image size"""

    def __init__(self,
                 client: BaseVisionClient,
                 config: Optional[LogoPipelineConfig] = None,
                 orchestrator: Optional[ModelFallbackOrchestrator] = None,
                 parser: Optional[ResponseParser] = None):
        self.client = client
        self.config = config or LogoPipelineConfig()
        self.orchestrator = orchestrator or ModelFallbackOrchestrator(client.provider)
        self.parser = parser or ResponseParser()

    async def detect(self, image: SourceImage, dims: ImageDimensions) -> List[DetectedRegion]:
        """
        Run the detection query and return validated regions in model order

        Raises:
            VisionQueryError: rate limit, auth failure or exhausted candidates
        """
        prompt = build_detection_prompt(dims)
        payload = ImagePayload(data=image.data, mime_type=image.mime_type)

        async def detect_with(model: str) -> DetectionResponse:
            raw = await self.client.query(prompt, payload, model)
            return self.parser.parse(raw, DetectionResponse)

        response = await self.orchestrator.run(
            self.client.candidate_models, detect_with, operation_name="logo detection"
        )

        if not response.logos:
            logger.info("No logos detected in image")
            return []

        logger.info(f"Model reported {len(response.logos)} logo candidate(s)")

        regions = []
        for index, raw_region in enumerate(response.logos, start=1):
            region = self._validate(index, raw_region, dims)
            if region is not None:
                regions.append(region)

        logger.info(f"{len(regions)} of {len(response.logos)} region(s) passed validation")
        return regions

    def _validate(self, index: int, raw: RawRegion, dims: ImageDimensions) -> Optional[DetectedRegion]:
        """Return a DetectedRegion or None if the region must be discarded"""
        if raw.box is None:
            logger.warning(f"Region {index}: no bounding box, skipping")
            return None

        box = self._to_box(raw.box)
        if box is None:
            logger.warning(f"Region {index}: unusable bounding box {raw.box!r}, skipping")
            return None

        if not box.fits_within(dims):
            logger.warning(f"Region {index}: invalid coordinates {box.to_dict()} "
                           f"for {dims.width}x{dims.height} image, skipping")
            return None

        # no confidence reported: keep the region, the confirmation stage decides
        confidence = 0.0
        if raw.confidence is not None:
            confidence = _as_number(raw.confidence)
            if confidence is None or not 0.0 <= confidence <= 1.0:
                logger.warning(f"Region {index}: confidence {raw.confidence!r} outside [0, 1], skipping")
                return None

            if confidence < self.config.detection_confidence_threshold:
                logger.warning(f"Region {index}: low confidence ({confidence}), skipping")
                return None

        if box.area > dims.area * self.config.max_region_area_fraction:
            logger.warning(f"Region {index}: too large ({box.width}x{box.height}, "
                           f"{box.area / dims.area:.0%} of image), skipping")
            return None

        min_dim = self.config.min_region_dimension
        if box.width < min_dim or box.height < min_dim:
            logger.warning(f"Region {index}: too small ({box.width}x{box.height}), skipping")
            return None

        name = raw.name if isinstance(raw.name, str) and raw.name.strip() else "Unknown Logo"
        return DetectedRegion(name=name, box=box, confidence=confidence)

    @staticmethod
    def _to_box(raw_box: Any) -> Optional[BoundingBox]:
        """All four coordinates must be present and numeric"""
        if not isinstance(raw_box, dict):
            return None

        values = [_as_number(raw_box.get(key)) for key in ("x", "y", "width", "height")]
        if any(value is None for value in values):
            return None

        x, y, width, height = values
        return BoundingBox(x=x, y=y, width=width, height=height)


def _as_number(value: Any) -> Optional[float]:
    """Finite float from an int, float or numeric string; None otherwise"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)
