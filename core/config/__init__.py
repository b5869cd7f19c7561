"""
Configuration management module
"""
from .unified_manager import (
    ConfigManager,
    UnifiedConfig,
    ProviderConfig,
    ProvidersConfig,
    LogoPipelineConfig,
    StorageConfig,
    KNOWN_PROVIDERS,
    get_config,
    get_config_manager
)

__all__ = [
    'ConfigManager',
    'UnifiedConfig',
    'ProviderConfig',
    'ProvidersConfig',
    'LogoPipelineConfig',
    'StorageConfig',
    'KNOWN_PROVIDERS',
    'get_config',
    'get_config_manager'
]
