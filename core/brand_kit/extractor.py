#!/usr/bin/env python3
"""
Brand Kit Extractor

1. Brand-kit query (colors, typography, spacing, ...) via model fallback
2. Logo pipeline on the same image; logos are optional for a brand kit
3. Transform + guidelines
"""

import logging
import time
from typing import Optional

from core.brand_kit.models import BrandKit, BrandKitExtraction
from core.brand_kit.service import generate_guidelines, transform_to_brand_kit
from core.clients.base import BaseVisionClient, ImagePayload
from core.config.unified_manager import LogoPipelineConfig
from core.vlm.data_models import SourceImage
from core.vlm.fallback_orchestrator import ModelFallbackOrchestrator
from core.vlm.logo_pipeline import ExtractionPipelineOrchestrator, LogoExtractionError
from core.vlm.prompts import BRAND_KIT_PROMPT
from core.vlm.response_parser import ResponseParser

logger = logging.getLogger(__name__)


class BrandKitExtractor:
    """Extracts a complete brand kit from one image"""

    def __init__(self,
                 client: BaseVisionClient,
                 config: Optional[LogoPipelineConfig] = None,
                 logo_pipeline: Optional[ExtractionPipelineOrchestrator] = None,
                 orchestrator: Optional[ModelFallbackOrchestrator] = None,
                 parser: Optional[ResponseParser] = None):
        self.client = client
        self.config = config or LogoPipelineConfig()
        self.logo_pipeline = logo_pipeline or ExtractionPipelineOrchestrator(client, self.config)
        self.orchestrator = orchestrator or ModelFallbackOrchestrator(client.provider)
        self.parser = parser or ResponseParser()

    async def extract_raw(self, image: SourceImage) -> BrandKitExtraction:
        """Run the brand-kit query only"""
        payload = ImagePayload(data=image.data, mime_type=image.mime_type)

        async def extract_with(model: str) -> BrandKitExtraction:
            raw = await self.client.query(BRAND_KIT_PROMPT, payload, model)
            return self.parser.parse(raw, BrandKitExtraction)

        return await self.orchestrator.run(
            self.client.candidate_models, extract_with, operation_name="brand kit extraction"
        )

    async def extract(self, image: SourceImage, include_logos: bool = True) -> BrandKit:
        """
        Extract brand kit including confirmed logo crops

        Raises:
            VisionQueryError: the brand-kit query itself failed
        """
        start_time = time.time()
        logger.info(f"Extracting brand kit from {image.filename or image.content_hash}")

        extraction = await self.extract_raw(image)

        logos = []
        if include_logos:
            try:
                logos = await self.logo_pipeline.extract(image)
            except LogoExtractionError as e:
                logger.warning(f"Logo extraction failed, continuing without logo images: {e}")

            if logos:
                logger.info(f"✅ Stored {len(logos)} confirmed logo(s) in brand kit")
            else:
                logger.info("ℹ️ No logos confirmed by logo pipeline")

        brand_kit = transform_to_brand_kit(extraction, logos)
        brand_kit.guidelines = generate_guidelines(brand_kit)

        logger.info(f"Brand kit extracted in {time.time() - start_time:.2f}s")
        return brand_kit
