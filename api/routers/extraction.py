"""Logo and brand-kit extraction endpoints"""

import logging
import time
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from api.dependencies import (
    ClientFactory,
    get_app_config,
    get_brand_kit_store,
    get_client_factory,
    open_client,
    read_upload,
)
from core.brand_kit.extractor import BrandKitExtractor
from core.brand_kit.models import BrandKit
from core.brand_kit.platforms import (
    DEFAULT_PLATFORMS,
    PLATFORM_SPECS,
    PlatformConversion,
    PlatformDesignConverter,
    PlatformSpec,
    UnknownPlatformError,
    get_platform_spec,
)
from core.brand_kit.storage import BrandKitStore
from core.config.unified_manager import UnifiedConfig
from core.vlm.logo_pipeline import ExtractionPipelineOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


class LogoResponse(BaseModel):
    """Confirmed logo response model"""
    name: str
    confidence: float
    description: Optional[str] = None
    mime_type: str
    image_base64: str
    source_region: Dict[str, float]


class LogoExtractionResponse(BaseModel):
    """Logo extraction response model"""
    provider: str
    filename: Optional[str] = None
    count: int
    logos: List[LogoResponse]
    processing_time_seconds: float


class BrandKitResponse(BaseModel):
    """Brand kit extraction response model"""
    provider: str
    filename: Optional[str] = None
    brand_kit: BrandKit
    saved_id: Optional[str] = None
    processing_time_seconds: float


@router.post("/logos", response_model=LogoExtractionResponse)
async def extract_logos(
    file: UploadFile = File(...),
    provider: Optional[str] = Form(None),
    config: UnifiedConfig = Depends(get_app_config),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """
    Extract confirmed logos from an image or PDF (first page)

    Detect -> Crop -> Confirm -> Filter
    """
    start_time = time.time()
    image = await read_upload(file, config)

    async with open_client(client_factory, provider, config) as client:
        pipeline = ExtractionPipelineOrchestrator(client, config.logo_pipeline)
        logos = await pipeline.extract(image)

    return LogoExtractionResponse(
        provider=client.provider,
        filename=file.filename,
        count=len(logos),
        logos=[LogoResponse(**logo.to_dict()) for logo in logos],
        processing_time_seconds=time.time() - start_time,
    )


@router.post("/brand-kit", response_model=BrandKitResponse)
async def extract_brand_kit(
    file: UploadFile = File(...),
    provider: Optional[str] = Form(None),
    include_logos: bool = Form(True),
    save: bool = Form(False),
    name: Optional[str] = Form(None),
    config: UnifiedConfig = Depends(get_app_config),
    client_factory: ClientFactory = Depends(get_client_factory),
    store: BrandKitStore = Depends(get_brand_kit_store),
):
    """Extract a complete brand kit (colors, typography, spacing, logos, guidelines)"""
    start_time = time.time()
    image = await read_upload(file, config)

    async with open_client(client_factory, provider, config) as client:
        extractor = BrandKitExtractor(client, config.logo_pipeline)
        brand_kit = await extractor.extract(image, include_logos=include_logos)

    saved_id = None
    if save:
        saved_id = store.save(brand_kit, name=name, source_file_name=file.filename).id

    return BrandKitResponse(
        provider=client.provider,
        filename=file.filename,
        brand_kit=brand_kit,
        saved_id=saved_id,
        processing_time_seconds=time.time() - start_time,
    )


class PlatformConversionResponse(BaseModel):
    """Multi-platform conversion response model"""
    provider: str
    filename: Optional[str] = None
    brand_kit_source: str
    conversions: List[PlatformConversion]
    processing_time_seconds: float


@router.get("/platforms", response_model=List[PlatformSpec])
async def list_platforms():
    """List supported target platforms"""
    return list(PLATFORM_SPECS.values())


@router.post("/platforms", response_model=PlatformConversionResponse)
async def convert_to_platforms(
    file: UploadFile = File(...),
    platforms: str = Form(",".join(DEFAULT_PLATFORMS)),
    brand_kit_id: Optional[str] = Form(None),
    provider: Optional[str] = Form(None),
    config: UnifiedConfig = Depends(get_app_config),
    client_factory: ClientFactory = Depends(get_client_factory),
    store: BrandKitStore = Depends(get_brand_kit_store),
):
    """
    Convert one design to platform-optimized versions

    Uses the saved brand kit `brand_kit_id`, or extracts one from the design itself.
    """
    start_time = time.time()

    requested = [p.strip() for p in platforms.split(",") if p.strip()]
    if not requested:
        raise HTTPException(status_code=400, detail="No platforms requested")
    try:
        for platform in requested:
            get_platform_spec(platform)
    except UnknownPlatformError as e:
        raise HTTPException(status_code=400, detail=str(e))

    saved = None
    if brand_kit_id:
        saved = store.get(brand_kit_id)
        if saved is None:
            raise HTTPException(status_code=404, detail=f"Brand kit {brand_kit_id} not found")

    image = await read_upload(file, config)

    async with open_client(client_factory, provider, config) as client:
        if saved is not None:
            brand_kit = saved.brand_kit
        else:
            extractor = BrandKitExtractor(client, config.logo_pipeline)
            brand_kit = await extractor.extract(image, include_logos=False)

        converter = PlatformDesignConverter(client)
        conversions = await converter.convert_all(image, brand_kit, platforms=requested)

    return PlatformConversionResponse(
        provider=client.provider,
        filename=file.filename,
        brand_kit_source=brand_kit_id or "extracted",
        conversions=conversions,
        processing_time_seconds=time.time() - start_time,
    )
