"""Factory for provider-specific vision clients"""

import logging
from typing import Dict, Type

from core.clients.base import BaseVisionClient
from core.clients.gemini import GeminiVisionClient
from core.clients.openai_compatible import (
    HuggingFaceVisionClient,
    MistralVisionClient,
    OpenAIVisionClient,
)
from core.config.unified_manager import ProvidersConfig

logger = logging.getLogger(__name__)


CLIENT_REGISTRY: Dict[str, Type[BaseVisionClient]] = {
    "mistral": MistralVisionClient,
    "gemini": GeminiVisionClient,
    "openai": OpenAIVisionClient,
    "huggingface": HuggingFaceVisionClient,
}


def create_vision_client(provider_name: str, providers: ProvidersConfig) -> BaseVisionClient:
    """
    Create the vision client for a configured provider

    Args:
        provider_name: One of the registered provider names
        providers: Providers section of the configuration

    Returns:
        Ready-to-use vision client (caller closes it)

    Raises:
        ValueError: unknown or disabled provider
    """
    provider_config = providers.get(provider_name)
    if not provider_config.enabled:
        raise ValueError(f"Provider {provider_name} is disabled in the configuration")

    client_class = CLIENT_REGISTRY[provider_name]
    if not provider_config.api_key:
        logger.warning(f"⚠️ API key for {provider_name} is not set - queries will fail with an auth error")

    return client_class(provider_config)
