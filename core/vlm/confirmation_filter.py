"""
Logo Confirmation Filter

Second stage: the isolated crop is shown to the model again and must be
confirmed with a confidence above the (stricter) confirmation threshold.
"""

import logging
from typing import Optional

from core.clients.base import BaseVisionClient, ImagePayload
from core.clients.exceptions import VisionQueryError
from core.config.unified_manager import LogoPipelineConfig
from core.vlm.data_models import ConfirmationVerdict, CroppedImage
from core.vlm.fallback_orchestrator import ModelFallbackOrchestrator
from core.vlm.prompts import CONFIRMATION_PROMPT
from core.vlm.response_parser import ConfirmationResponse, ResponseParser

logger = logging.getLogger(__name__)


class LogoConfirmationFilter:
    """Confirms or rejects single crops"""

    def __init__(self,
                 client: BaseVisionClient,
                 config: Optional[LogoPipelineConfig] = None,
                 orchestrator: Optional[ModelFallbackOrchestrator] = None,
                 parser: Optional[ResponseParser] = None):
        self.client = client
        self.config = config or LogoPipelineConfig()
        self.orchestrator = orchestrator or ModelFallbackOrchestrator(client.provider)
        self.parser = parser or ResponseParser()

    async def confirm(self, crop: CroppedImage) -> ConfirmationVerdict:
        """
        Ask the model whether the crop is a real logo

        Never raises for query failures: any fatal outcome (exhausted
        candidates, rate limit, auth) yields the default rejected verdict.
        """
        payload = ImagePayload(data=crop.data, mime_type=crop.mime_type)

        async def confirm_with(model: str) -> ConfirmationResponse:
            raw = await self.client.query(CONFIRMATION_PROMPT, payload, model)
            return self.parser.parse(raw, ConfirmationResponse)

        try:
            response = await self.orchestrator.run(
                self.client.candidate_models, confirm_with, operation_name="logo confirmation"
            )
        except VisionQueryError as e:
            logger.warning(f"Confirmation failed, defaulting to unconfirmed: {e}")
            return ConfirmationVerdict.rejected()

        if response.confidence is not None and not 0.0 <= response.confidence <= 1.0:
            logger.warning(f"Confirmation confidence {response.confidence} outside [0, 1], rejecting crop")
            return ConfirmationVerdict.rejected()

        if response.confirmed:
            return ConfirmationVerdict(
                confirmed=True,
                name=response.name or "Unknown Logo",
                confidence=response.confidence if response.confidence is not None else 0.5,
                description=response.description,
            )

        return ConfirmationVerdict(
            confirmed=False,
            name="Unknown Logo",
            confidence=response.confidence if response.confidence is not None else 0.0,
        )

    def accepts(self, verdict: ConfirmationVerdict) -> bool:
        """Acceptance rule: confirmed and confident enough"""
        return verdict.confirmed and verdict.confidence >= self.config.confirmation_confidence_threshold
