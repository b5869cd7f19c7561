"""Shared FastAPI dependencies"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, UploadFile

from core.brand_kit.storage import BrandKitStore
from core.clients.base import BaseVisionClient
from core.clients.factory import create_vision_client
from core.config.unified_manager import UnifiedConfig, get_config
from core.vlm.data_models import SourceImage
from core.vlm.image_extraction import load_source_image

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], BaseVisionClient]


def get_app_config() -> UnifiedConfig:
    return get_config()


def get_client_factory(config: UnifiedConfig = Depends(get_app_config)) -> ClientFactory:
    """Provider name -> fresh vision client (overridden in tests)"""
    return lambda provider_name: create_vision_client(provider_name, config.providers)


def get_brand_kit_store(config: UnifiedConfig = Depends(get_app_config)) -> BrandKitStore:
    return BrandKitStore(config.storage)


def open_client(factory: ClientFactory, provider: Optional[str], config: UnifiedConfig) -> BaseVisionClient:
    """Create the client for `provider` (or the default one), 400 for unusable providers"""
    provider_name = provider or config.providers.default_provider
    try:
        return factory(provider_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def read_upload(file: UploadFile, config: UnifiedConfig) -> SourceImage:
    """Read an uploaded image/PDF into a SourceImage (PDFs are rendered)"""
    content = await file.read()
    if len(content) > config.api.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {len(content)} bytes (max {config.api.max_upload_bytes})"
        )

    logger.info(f"Upload received: {file.filename} ({len(content)} bytes, {file.content_type})")
    return load_source_image(
        content,
        mime_type=file.content_type,
        filename=file.filename,
        pdf_render_dpi=config.logo_pipeline.pdf_render_dpi,
    )
