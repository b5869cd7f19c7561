"""Tests for the Detect -> Crop -> Confirm -> Filter pipeline"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.clients.exceptions import AuthFailedError, QueryErrorKind, RateLimitedError
from core.vlm.data_models import BoundingBox, PipelineStage, RegionState, SourceImage
from core.vlm.image_extraction import ImageDecodeError, RegionCropper
from core.vlm.logo_pipeline import ExtractionPipelineOrchestrator, LogoExtractionError
from core.vlm.prompts import CONFIRMATION_PROMPT
from tests.conftest import confirmation_json, detection_json, region

THREE_REGIONS = detection_json(
    region("Acme", 100, 100, 200, 100, 0.9),
    region("Globex", 400, 100, 200, 100, 0.8),
    region("Initech", 100, 500, 200, 100, 0.7),
)


class FlakyCropper(RegionCropper):
    """Fails for boxes starting at x=400"""

    def crop(self, surface, box):
        if box.x == 400:
            raise ValueError("simulated crop failure")
        return super().crop(surface, box)


class TestExtract:

    @pytest.mark.asyncio
    async def test_single_logo_end_to_end(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(
            detection=detection_json(region("Acme", 100, 100, 200, 100, 0.9)),
            confirmation=confirmation_json(name="Acme", confidence=0.75),
        )

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert len(logos) == 1
        logo = logos[0]
        assert logo.name == "Acme"
        assert logo.confidence == 0.75
        assert logo.image.mime_type == "image/png"
        assert logo.image.source_region == BoundingBox(80, 90, 240, 120)
        assert logo.to_dict()["image_base64"]

    @pytest.mark.asyncio
    async def test_broken_region_keeps_valid_logo(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(
            detection=detection_json(
                region("Acme", 100, 100, 200, 100, 0.9),
                {"name": "Ghost", "boundingBox": {"x": None, "y": 10, "width": 50, "height": 50},
                 "confidence": 0.9},
            ),
            confirmation=confirmation_json(name="Acme", confidence=0.75),
        )

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert [logo.name for logo in logos] == ["Acme"]
        detection_models = [model for prompt, model in client.calls if prompt != CONFIRMATION_PROMPT]
        assert detection_models == ["model-a"]

    @pytest.mark.asyncio
    async def test_low_confirmation_confidence_is_dropped(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(
            detection=detection_json(region("Acme", 100, 100, 200, 100, 0.9)),
            confirmation=confirmation_json(name="Acme", confidence=0.59),
        )

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert logos == []

    @pytest.mark.asyncio
    async def test_no_regions_skips_confirmation(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection='{"logos": []}')

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert logos == []
        assert client.calls_for(CONFIRMATION_PROMPT) == []

    @pytest.mark.asyncio
    async def test_crop_failure_only_drops_that_region(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=THREE_REGIONS)
        events = []

        pipeline = ExtractionPipelineOrchestrator(
            client, pipeline_config, cropper=FlakyCropper(0.1), on_progress=events.append
        )
        logos = await pipeline.extract(sample_image)

        assert len(logos) == 2
        assert len(client.calls_for(CONFIRMATION_PROMPT)) == 2
        failed = [e for e in events if e.region_state == RegionState.FAILED]
        assert [e.region_index for e in failed] == [2]
        complete = events[-1]
        assert complete.stage == PipelineStage.COMPLETE
        assert complete.details["accepted"] == 2
        assert complete.details["failed"] == 1

    @pytest.mark.asyncio
    async def test_confirmation_failure_rejects_region_and_continues(self, scripted_client, sample_image,
                                                                     pipeline_config):
        answers = iter([
            RateLimitedError("429"),
            confirmation_json(name="Globex", confidence=0.9),
            confirmation_json(name="Initech", confidence=0.9),
        ])
        client = scripted_client(detection=THREE_REGIONS, confirmation=lambda model: next(answers))

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert [logo.name for logo in logos] == ["Globex", "Initech"]

    @pytest.mark.asyncio
    async def test_results_follow_detection_order(self, scripted_client, sample_image, pipeline_config):
        names = iter(["Acme", "Globex", "Initech"])
        client = scripted_client(
            detection=THREE_REGIONS,
            confirmation=lambda model: confirmation_json(name=next(names), confidence=0.8),
        )

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert [logo.name for logo in logos] == ["Acme", "Globex", "Initech"]

    @pytest.mark.asyncio
    async def test_auth_failure_during_detection(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=AuthFailedError("401", provider="mistral"))
        cropper = MagicMock(spec=RegionCropper)

        pipeline = ExtractionPipelineOrchestrator(client, pipeline_config, cropper=cropper)
        with pytest.raises(LogoExtractionError) as exc_info:
            await pipeline.extract(sample_image)

        assert exc_info.value.kind == QueryErrorKind.AUTH_FAILED
        assert isinstance(exc_info.value.cause, AuthFailedError)
        assert len(client.calls) == 1
        cropper.crop.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit_during_detection(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=RateLimitedError("429"))

        with pytest.raises(LogoExtractionError) as exc_info:
            await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert exc_info.value.kind == QueryErrorKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_exhausted_detection(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection="no json here")

        with pytest.raises(LogoExtractionError) as exc_info:
            await ExtractionPipelineOrchestrator(client, pipeline_config).extract(sample_image)

        assert exc_info.value.kind == QueryErrorKind.MALFORMED
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_unreadable_image(self, scripted_client, pipeline_config):
        client = scripted_client()

        with pytest.raises(ImageDecodeError):
            await ExtractionPipelineOrchestrator(client, pipeline_config).extract(
                SourceImage(data=b"not an image")
            )

        assert client.calls == []


class TestProgress:

    @pytest.mark.asyncio
    async def test_stage_sequence(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=detection_json(region("Acme", 100, 100, 200, 100)))
        callback = AsyncMock()

        await ExtractionPipelineOrchestrator(client, pipeline_config, on_progress=callback).extract(sample_image)

        events = [call.args[0] for call in callback.await_args_list]
        assert events[0].stage == PipelineStage.DIMENSIONS
        assert events[0].details == {"width": 1000, "height": 800}
        assert [e.region_state for e in events if e.stage == PipelineStage.REGION] == [
            RegionState.CROPPED, RegionState.ACCEPTED
        ]
        assert events[-1].stage == PipelineStage.COMPLETE

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_affect_results(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=detection_json(region("Acme", 100, 100, 200, 100)))

        def broken_callback(event):
            raise RuntimeError("observer crashed")

        logos = await ExtractionPipelineOrchestrator(
            client, pipeline_config, on_progress=broken_callback
        ).extract(sample_image)

        assert len(logos) == 1


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_between_regions(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=THREE_REGIONS)
        cancel_event = asyncio.Event()
        events = []

        def on_progress(event):
            events.append(event)
            if event.region_state == RegionState.ACCEPTED and event.region_index == 1:
                cancel_event.set()

        pipeline = ExtractionPipelineOrchestrator(client, pipeline_config, on_progress=on_progress)
        logos = await pipeline.extract(sample_image, cancel_event=cancel_event)

        assert len(logos) == 1
        assert len(client.calls_for(CONFIRMATION_PROMPT)) == 1
        assert events[-1].stage == PipelineStage.CANCELLED
        assert events[-1].region_index == 2

    @pytest.mark.asyncio
    async def test_cancelled_before_first_region(self, scripted_client, sample_image, pipeline_config):
        client = scripted_client(detection=THREE_REGIONS)
        cancel_event = asyncio.Event()
        cancel_event.set()

        logos = await ExtractionPipelineOrchestrator(client, pipeline_config).extract(
            sample_image, cancel_event=cancel_event
        )

        assert logos == []
        assert client.calls_for(CONFIRMATION_PROMPT) == []
