"""
Unified Configuration Manager for the Brand Kit Extraction Service
Eine einzige YAML-Datei, validiert durch Pydantic
"""
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml
from pydantic import BaseModel, validator
from datetime import datetime


KNOWN_PROVIDERS = ("mistral", "gemini", "openai", "huggingface")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config.yaml"


class ConfigManager:
    """
    Zentraler Konfigurations-Manager mit folgenden Features:
    - Eine einzige Konfigurationsdatei
    - Environment-Variablen-Substitution
    - Validierung durch Pydantic
    - Schema-Export
    """

    def __init__(self, config_path: Union[str, Path] = "config.yaml"):
        self.config_path = Path(config_path)
        self._raw_config: Dict[str, Any] = {}
        self._config: Optional['UnifiedConfig'] = None
        self.load()

    def load(self) -> None:
        """Lade und parse Konfiguration"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        # 1. Lade YAML
        with open(self.config_path, 'r') as f:
            raw = yaml.safe_load(f) or {}

        # 2. Ersetze Environment-Variablen
        self._raw_config = self._substitute_env_vars(raw)

        # 3. Validiere und erstelle Config-Objekt
        self._config = UnifiedConfig(**self._raw_config)

    def _substitute_env_vars(self, obj: Any) -> Any:
        """
        Rekursiv Environment-Variablen ersetzen
        Format: ${VAR_NAME:default_value}
        """
        if isinstance(obj, str):
            pattern = r'\$\{([^:}]+)(?::([^}]*))?\}'

            def replacer(match):
                var_name = match.group(1)
                default = match.group(2)
                value = os.environ.get(var_name, default if default is not None else '')

                # Konvertiere Strings zu korrekten Typen
                if value.lower() in ('true', 'false'):
                    return value.lower() == 'true'
                elif value.isdigit():
                    return int(value)
                elif '.' in value and all(part.isdigit() for part in value.split('.', 1)):
                    return float(value)
                return value

            def safe_replacer(match):
                return str(replacer(match))

            # Spezialfall: Wenn der ganze String eine Variable ist
            if obj.startswith('${') and obj.endswith('}'):
                match = re.fullmatch(pattern, obj)
                if match:
                    return replacer(match)
                return obj
            return re.sub(pattern, safe_replacer, obj)

        elif isinstance(obj, dict):
            return {k: self._substitute_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._substitute_env_vars(item) for item in obj]
        return obj

    def get(self, path: str, default: Any = None) -> Any:
        """
        Hole Wert mit Punkt-Notation
        Beispiel: config.get('providers.mistral.models')
        """
        value = self._raw_config

        for key in path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Setze Wert mit Punkt-Notation (für Runtime-Updates)
        """
        keys = path.split('.')
        target = self._raw_config

        for key in keys[:-1]:
            if key not in target:
                target[key] = {}
            target = target[key]

        target[keys[-1]] = value

        # Re-validiere
        self._config = UnifiedConfig(**self._raw_config)

    @property
    def config(self) -> 'UnifiedConfig':
        """Validiertes Config-Objekt"""
        if self._config is None:
            self.load()
        return self._config

    def export_schema(self) -> Dict[str, Any]:
        """Exportiere Schema"""
        schema = UnifiedConfig.schema()
        schema['_metadata'] = {
            'version': self.config.general.version,
            'generated_at': datetime.now().isoformat(),
            'config_file': str(self.config_path)
        }
        return schema

    def validate(self) -> Dict[str, Any]:
        """Validiere Konfiguration und gebe Probleme zurück"""
        issues = {
            'errors': [],
            'warnings': [],
            'info': []
        }

        providers = self.config.providers
        if providers.default_provider not in KNOWN_PROVIDERS:
            issues['errors'].append(
                f"Unknown default provider: {providers.default_provider}"
            )

        for name in KNOWN_PROVIDERS:
            provider = providers.get(name)
            if not provider.enabled:
                issues['info'].append(f"Provider {name} is disabled")
            elif not provider.api_key:
                issues['warnings'].append(
                    f"Provider {name} is enabled but has no API key - queries will fail with an auth error"
                )
            elif not provider.models:
                issues['warnings'].append(f"Provider {name} has no candidate models")

        pipeline = self.config.logo_pipeline
        if pipeline.confirmation_confidence_threshold < pipeline.detection_confidence_threshold:
            issues['errors'].append(
                "Confirmation threshold must not be lower than detection threshold "
                f"({pipeline.confirmation_confidence_threshold} < {pipeline.detection_confidence_threshold})"
            )

        return issues


# Basis-Konfigurationsmodelle
class GeneralConfig(BaseModel):
    name: str = "Brand Kit Extraction Service"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"


class ProviderConfig(BaseModel):
    """Settings for one vision provider backend"""
    name: str
    enabled: bool = True
    api_key: str = ""
    base_url: str
    models: List[str] = []
    probe_models: List[str] = []
    timeout: float = 60.0
    temperature: float = 0.3
    max_tokens: int = 4000

    @validator('base_url')
    def validate_url(cls, v):
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @validator('timeout')
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError('timeout must be positive')
        return v

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


class ProvidersConfig(BaseModel):
    default_provider: str = "mistral"
    mistral: ProviderConfig = ProviderConfig(
        name="mistral",
        base_url="https://api.mistral.ai/v1",
        models=["pixtral-large-latest", "pixtral-12b"],
        probe_models=["pixtral-large-latest", "pixtral-12b", "mistral-large-latest",
                      "mistral-small-latest", "mistral-tiny"],
    )
    gemini: ProviderConfig = ProviderConfig(
        name="gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        models=["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash"],
        probe_models=["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash", "gemini-1.5-pro"],
    )
    openai: ProviderConfig = ProviderConfig(
        name="openai",
        base_url="https://api.openai.com/v1",
        models=["gpt-4o", "gpt-4o-mini"],
        probe_models=["gpt-4o", "gpt-4o-mini"],
    )
    huggingface: ProviderConfig = ProviderConfig(
        name="huggingface",
        base_url="https://router.huggingface.co/v1",
        models=["Qwen/Qwen2.5-VL-7B-Instruct"],
        probe_models=["Qwen/Qwen2.5-VL-7B-Instruct"],
    )

    def get(self, name: str) -> ProviderConfig:
        """Provider-Konfiguration per Name"""
        if name not in KNOWN_PROVIDERS:
            raise ValueError(f"Unknown provider: {name}. Supported: {', '.join(KNOWN_PROVIDERS)}")
        return getattr(self, name)


class LogoPipelineConfig(BaseModel):
    detection_confidence_threshold: float = 0.5
    confirmation_confidence_threshold: float = 0.6
    max_region_area_fraction: float = 0.3
    min_region_dimension: int = 20
    region_padding_fraction: float = 0.1
    crop_format: str = "PNG"
    pdf_render_dpi: int = 150

    @validator('detection_confidence_threshold', 'confirmation_confidence_threshold',
               'max_region_area_fraction')
    def validate_unit_interval(cls, v):
        if not 0 <= v <= 1:
            raise ValueError('value must be between 0 and 1')
        return v

    @validator('region_padding_fraction')
    def validate_padding(cls, v):
        if not 0 <= v < 1:
            raise ValueError('padding fraction must be in [0, 1)')
        return v

    @validator('min_region_dimension', 'pdf_render_dpi')
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError('value must be positive')
        return v


class StorageConfig(BaseModel):
    brand_kit_dir: str = "data/brand_kits"
    max_storage_bytes: int = 5 * 1024 * 1024


class APIConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["*"]
    max_upload_bytes: int = 20 * 1024 * 1024


class UnifiedConfig(BaseModel):
    """Hauptkonfigurationsmodell"""
    profile: str = "dev"
    general: GeneralConfig = GeneralConfig()
    providers: ProvidersConfig = ProvidersConfig()
    logo_pipeline: LogoPipelineConfig = LogoPipelineConfig()
    storage: StorageConfig = StorageConfig()
    api: APIConfig = APIConfig()

    class Config:
        extra = "forbid"
        validate_assignment = True


# Globale Instanz (nur für die HTTP-Schicht)
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[str] = None) -> ConfigManager:
    """Hole Config Manager Singleton"""
    global _config_manager
    if _config_manager is None or config_path:
        _config_manager = ConfigManager(
            config_path or os.environ.get("BRANDKIT_CONFIG", DEFAULT_CONFIG_PATH)
        )
    return _config_manager


def get_config() -> UnifiedConfig:
    """Hole validierte Konfiguration"""
    return get_config_manager().config
