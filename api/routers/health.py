"""Health check endpoints"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.dependencies import ClientFactory, get_app_config, get_client_factory
from core.clients.base import BaseVisionClient
from core.config.unified_manager import KNOWN_PROVIDERS, UnifiedConfig
from core.vlm.fallback_orchestrator import ModelFallbackOrchestrator, ProbeResult

logger = logging.getLogger(__name__)

router = APIRouter()


class ProviderStatus(BaseModel):
    """Per-provider status"""
    status: str  # available, unavailable, no_api_key, disabled, configured
    default: bool = False
    models: List[str] = []
    probe: Optional[ProbeResult] = None


class HealthStatus(BaseModel):
    """Health status response model"""
    status: str
    timestamp: datetime
    version: str
    providers: Dict[str, ProviderStatus]


class ProviderProbeResponse(BaseModel):
    provider: str
    timestamp: datetime
    result: ProbeResult


async def probe_provider(client: BaseVisionClient) -> ProbeResult:
    """Send a minimal text query to each probe model, stop after three successes"""
    orchestrator = ModelFallbackOrchestrator(client.provider)
    return await orchestrator.probe(
        client.probe_models,
        lambda model: client.query("test", None, model),
        max_successes=3,
    )


@router.get("/", response_model=HealthStatus)
async def health_check(
    probe: bool = False,
    config: UnifiedConfig = Depends(get_app_config),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """
    Basic health check endpoint

    With `probe=true` every enabled provider with an API key is probed
    (real requests against the provider).
    """
    providers = {}

    for name in KNOWN_PROVIDERS:
        provider_config = config.providers.get(name)
        is_default = name == config.providers.default_provider

        if not provider_config.enabled:
            providers[name] = ProviderStatus(status="disabled", default=is_default)
            continue
        if not provider_config.has_api_key:
            providers[name] = ProviderStatus(status="no_api_key", default=is_default,
                                             models=provider_config.models)
            continue
        if not probe:
            providers[name] = ProviderStatus(status="configured", default=is_default,
                                             models=provider_config.models)
            continue

        async with client_factory(name) as client:
            result = await probe_provider(client)
        providers[name] = ProviderStatus(
            status="available" if result.success else "unavailable",
            default=is_default,
            models=provider_config.models,
            probe=result,
        )

    default_entry = providers.get(config.providers.default_provider)
    default_status = default_entry.status if default_entry else "unknown"
    overall = "healthy" if default_status in ("configured", "available") else "degraded"

    return HealthStatus(
        status=overall,
        timestamp=datetime.now(),
        version=config.general.version,
        providers=providers,
    )


@router.get("/providers/{name}", response_model=ProviderProbeResponse)
async def provider_health(
    name: str,
    config: UnifiedConfig = Depends(get_app_config),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Probe one provider: up to three working models or the aborting error"""
    if name not in KNOWN_PROVIDERS:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {name}")

    try:
        client = client_factory(name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    async with client:
        result = await probe_provider(client)

    if result.success:
        logger.info(f"✅ {name}: available models {', '.join(result.available_models)}")
    else:
        logger.warning(f"❌ {name}: probe failed - {result.error}")

    return ProviderProbeResponse(provider=name, timestamp=datetime.now(), result=result)
