"""
Configuration Management API Endpoints
Read-only: Werte (ohne API Keys), Schema und Validierung
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from core.config.unified_manager import KNOWN_PROVIDERS, get_config_manager

logger = logging.getLogger(__name__)


router = APIRouter()


class ConfigResponse(BaseModel):
    """Response model für Config-Anfragen"""
    success: bool
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class ValidationResponse(BaseModel):
    """Ergebnis der Konfigurationsprüfung"""
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []
    info: List[str] = []


def _mask_secrets(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Kopie der Rohkonfiguration mit maskierten API Keys"""
    masked = dict(raw)
    providers = dict(masked.get("providers") or {})
    for name in KNOWN_PROVIDERS:
        if isinstance(providers.get(name), dict):
            provider = dict(providers[name])
            if provider.get("api_key"):
                provider["api_key"] = "***"
            providers[name] = provider
    masked["providers"] = providers
    return masked


@router.get("/", response_model=ConfigResponse)
async def get_configuration():
    """
    Hole aktuelle Konfiguration

    Returns:
        Aktuelle Konfigurationswerte (API Keys maskiert)
    """
    manager = get_config_manager()
    return ConfigResponse(success=True, data=_mask_secrets(manager._raw_config))


@router.get("/schema", response_model=ConfigResponse)
async def get_configuration_schema():
    """
    Hole Konfigurations-Schema

    Returns:
        JSON Schema der Konfiguration
    """
    return ConfigResponse(success=True, data=get_config_manager().export_schema())


@router.get("/validate", response_model=ValidationResponse)
async def validate_configuration():
    """
    Validiere aktuelle Konfiguration

    Returns:
        Fehler, Warnungen und Hinweise
    """
    issues = get_config_manager().validate()
    for warning in issues['warnings']:
        logger.warning(f"Config: {warning}")
    return ValidationResponse(valid=not issues['errors'], **issues)
