"""FastAPI main application for the Brand Kit Extraction Service"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.routers import brand_kits, config as config_router, extraction, health
from core.brand_kit.storage import StorageLimitExceeded
from core.clients.exceptions import QueryErrorKind, VisionQueryError
from core.config.unified_manager import KNOWN_PROVIDERS, get_config, get_config_manager
from core.vlm.image_extraction import ImageDecodeError
from core.vlm.logo_pipeline import LogoExtractionError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ["image/png", "image/jpeg", "image/webp", "image/gif", "application/pdf"]

_KIND_STATUS = {
    QueryErrorKind.RATE_LIMITED: 429,
    QueryErrorKind.AUTH_FAILED: 401,
}


class SystemInfo(BaseModel):
    """System information response model"""
    name: str
    version: str
    description: str
    default_provider: str
    providers: List[str]
    supported_formats: List[str]
    pipeline: Dict[str, float]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    config = get_config()
    logging.getLogger().setLevel(config.general.log_level.upper())
    logger.info(f"Starting {config.general.name} v{config.general.version}")

    # Configuration is automatically validated by Pydantic
    logger.info("Configuration loaded successfully")
    logger.info(f"Profile: {config.profile}")
    logger.info(f"Default provider: {config.providers.default_provider}")

    issues = get_config_manager().validate()
    for error in issues['errors']:
        logger.error(f"Config error: {error}")
    for warning in issues['warnings']:
        logger.warning(f"Config warning: {warning}")

    yield

    # Shutdown
    logger.info(f"Shutting down {config.general.name}")


# Create FastAPI application
app = FastAPI(
    title="Brand Kit Extraction Service",
    description="""
    Extracts brand kits (colors, typography, spacing, logos) from images and PDFs
    using vision-capable language models.

    ## Logo Pipeline
    Detect -> Crop -> Confirm -> Filter, with model fallback per provider.

    ## Providers
    - Mistral (Pixtral)
    - Google Gemini
    - OpenAI (GPT-4o)
    - HuggingFace router (OpenAI-compatible)
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(extraction.router, prefix="/extract", tags=["Extraction"])
app.include_router(brand_kits.router, prefix="/brand-kits", tags=["Brand Kits"])
app.include_router(config_router.router, prefix="/config", tags=["Configuration"])


@app.get("/", response_model=SystemInfo)
async def root():
    """Get system information"""
    config = get_config()
    pipeline = config.logo_pipeline

    return SystemInfo(
        name=config.general.name,
        version=config.general.version,
        description="Brand kit and logo extraction with vision language models",
        default_provider=config.providers.default_provider,
        providers=[name for name in KNOWN_PROVIDERS if config.providers.get(name).enabled],
        supported_formats=SUPPORTED_FORMATS,
        pipeline={
            "detection_confidence_threshold": pipeline.detection_confidence_threshold,
            "confirmation_confidence_threshold": pipeline.confirmation_confidence_threshold,
            "max_region_area_fraction": pipeline.max_region_area_fraction,
            "min_region_dimension": pipeline.min_region_dimension,
            "region_padding_fraction": pipeline.region_padding_fraction,
        },
    )


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "status_code": status_code, **extra}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Custom HTTP exception handler"""
    logger.error(f"HTTP {exc.status_code}: {exc.detail}")
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(LogoExtractionError)
async def logo_extraction_error_handler(request: Request, exc: LogoExtractionError):
    """Fatal detection errors: rate limit, auth, exhausted candidates"""
    status_code = _KIND_STATUS.get(exc.kind, 502)
    logger.error(f"Logo extraction failed ({exc.kind.value}): {exc.message}")
    return _error_response(status_code, exc.message, kind=exc.kind.value)


@app.exception_handler(VisionQueryError)
async def vision_query_error_handler(request: Request, exc: VisionQueryError):
    """Provider errors that reached the edge"""
    status_code = _KIND_STATUS.get(exc.kind, 502)
    logger.error(f"Vision query failed ({exc.kind.value}): {exc}")
    return _error_response(status_code, str(exc), kind=exc.kind.value)


@app.exception_handler(ImageDecodeError)
async def image_decode_error_handler(request: Request, exc: ImageDecodeError):
    logger.error(f"Unreadable upload: {exc}")
    return _error_response(400, str(exc))


@app.exception_handler(StorageLimitExceeded)
async def storage_limit_handler(request: Request, exc: StorageLimitExceeded):
    logger.error(f"Storage limit: {exc}")
    return _error_response(507, str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "Internal server error")


def main():
    """Main entry point for the application"""
    config = get_config()

    uvicorn.run(
        "api.main:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.general.debug,
        log_level=config.general.log_level.lower()
    )


if __name__ == "__main__":
    main()
