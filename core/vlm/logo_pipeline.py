#!/usr/bin/env python3
"""
Logo Extraction Pipeline

Detect -> Crop -> Confirm -> Filter, one region after the other.

Regions are processed sequentially in detection order so that a rate limit
seen by one confirmation query cannot race with other in-flight queries.
"""

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable, List, Optional, Union

from core.clients.base import BaseVisionClient
from core.clients.exceptions import QueryErrorKind, VisionQueryError
from core.config.unified_manager import LogoPipelineConfig
from core.vlm.confirmation_filter import LogoConfirmationFilter
from core.vlm.data_models import (
    ConfirmedLogo,
    DetectedRegion,
    PipelineStage,
    ProgressEvent,
    RegionState,
    SourceImage,
)
from core.vlm.fallback_orchestrator import ModelFallbackOrchestrator
from core.vlm.image_extraction import ImageSurface, PillowImageSurface, RegionCropper
from core.vlm.region_detector import LogoRegionDetector

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]
SurfaceFactory = Callable[[SourceImage], ImageSurface]


class LogoExtractionError(Exception):
    """Fatal failure of an extraction request (detection could not run)"""

    def __init__(self, message: str, kind: QueryErrorKind, cause: Optional[VisionQueryError] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.cause = cause


class ExtractionPipelineOrchestrator:
    """
    Composes detector, cropper and confirmation filter

    Failures while processing a single region are logged and only drop that
    region. Only a fatal detection error aborts the request.
    """

    def __init__(self,
                 client: BaseVisionClient,
                 config: Optional[LogoPipelineConfig] = None,
                 detector: Optional[LogoRegionDetector] = None,
                 cropper: Optional[RegionCropper] = None,
                 confirmation_filter: Optional[LogoConfirmationFilter] = None,
                 surface_factory: Optional[SurfaceFactory] = None,
                 on_progress: Optional[ProgressCallback] = None):
        self.client = client
        self.config = config or LogoPipelineConfig()

        orchestrator = ModelFallbackOrchestrator(client.provider)
        self.detector = detector or LogoRegionDetector(client, self.config, orchestrator)
        self.cropper = cropper or RegionCropper(self.config.region_padding_fraction)
        self.confirmation_filter = confirmation_filter or LogoConfirmationFilter(
            client, self.config, orchestrator
        )
        self.surface_factory = surface_factory or (
            lambda source: PillowImageSurface.from_source(source, self.config.crop_format)
        )
        self.on_progress = on_progress

    async def extract(self,
                      image: SourceImage,
                      cancel_event: Optional[asyncio.Event] = None) -> List[ConfirmedLogo]:
        """
        Run the full pipeline on one image

        Args:
            image: Normalised source image
            cancel_event: Optional cooperative cancellation, checked between regions

        Returns:
            Confirmed logos in detection order (possibly empty)

        Raises:
            ImageDecodeError: source image is unreadable
            LogoExtractionError: detection failed fatally (rate limit, auth,
                all candidate models exhausted)
        """
        start_time = time.time()

        # Step 1: dimensions
        surface = self.surface_factory(image)
        dims = surface.dimensions
        await self._emit(ProgressEvent(
            stage=PipelineStage.DIMENSIONS,
            message=f"Image is {dims.width}x{dims.height}px",
            details={"width": dims.width, "height": dims.height},
        ))

        # Step 2: detection
        await self._emit(ProgressEvent(stage=PipelineStage.DETECTION, message="Detecting logo regions"))
        try:
            regions = await self.detector.detect(image, dims)
        except VisionQueryError as e:
            logger.error(f"❌ Logo detection failed: {e}")
            raise LogoExtractionError(f"Logo detection failed: {e}", kind=e.kind, cause=e) from e

        logger.info(f"Step 1 (Detection): {len(regions)} candidate region(s)")
        await self._emit(ProgressEvent(
            stage=PipelineStage.DETECTION,
            message=f"Found {len(regions)} candidate region(s)",
            region_total=len(regions),
        ))

        # Step 3: crop + confirm each region
        results: List[ConfirmedLogo] = []
        outcomes = {state: 0 for state in RegionState}

        for index, region in enumerate(regions, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Extraction cancelled before region {index}/{len(regions)}")
                await self._emit(ProgressEvent(
                    stage=PipelineStage.CANCELLED,
                    message=f"Cancelled after {index - 1} of {len(regions)} region(s)",
                    region_index=index,
                    region_total=len(regions),
                ))
                return results

            state, logo = await self._process_region(surface, region, index, len(regions))
            outcomes[state] += 1
            if logo is not None:
                results.append(logo)

        elapsed = time.time() - start_time
        logger.info(f"✅ Pipeline complete: {len(results)} logo(s) extracted and confirmed in {elapsed:.2f}s")
        await self._emit(ProgressEvent(
            stage=PipelineStage.COMPLETE,
            message=f"{len(results)} logo(s) confirmed",
            region_total=len(regions),
            details={
                "accepted": outcomes[RegionState.ACCEPTED],
                "rejected": outcomes[RegionState.REJECTED],
                "failed": outcomes[RegionState.FAILED],
                "processing_time_seconds": elapsed,
            },
        ))
        return results

    async def _process_region(self,
                              surface: ImageSurface,
                              region: DetectedRegion,
                              index: int,
                              total: int):
        """Detected -> Cropped -> Accepted | Rejected | Failed"""
        state = RegionState.DETECTED
        try:
            crop = self.cropper.crop(surface, region.box)
            state = RegionState.CROPPED
            await self._emit_region(index, total, state, f"Cropped region {index}: {region.name}")

            verdict = await self.confirmation_filter.confirm(crop)
        except Exception as e:
            logger.warning(f"Region {index} ({region.name}) failed in state {state.value}: {e}")
            await self._emit_region(index, total, RegionState.FAILED, f"Region {index} failed: {e}")
            return RegionState.FAILED, None

        if not self.confirmation_filter.accepts(verdict):
            logger.info(f"❌ Logo {index} rejected: confirmed={verdict.confirmed}, confidence={verdict.confidence}")
            await self._emit_region(index, total, RegionState.REJECTED, f"Region {index} rejected")
            return RegionState.REJECTED, None

        logger.info(f"✅ Logo {index} confirmed: {verdict.name} (confidence: {verdict.confidence})")
        await self._emit_region(index, total, RegionState.ACCEPTED, f"Logo {index} confirmed: {verdict.name}")
        return RegionState.ACCEPTED, ConfirmedLogo(
            name=verdict.name,
            image=crop,
            confidence=verdict.confidence,
            description=verdict.description,
        )

    async def _emit_region(self, index: int, total: int, state: RegionState, message: str) -> None:
        await self._emit(ProgressEvent(
            stage=PipelineStage.REGION,
            message=message,
            region_index=index,
            region_total=total,
            region_state=state,
        ))

    async def _emit(self, event: ProgressEvent) -> None:
        """Notify the observer; observer errors never affect the pipeline"""
        if self.on_progress is None:
            return
        try:
            result = self.on_progress(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Progress callback error: {e}")
