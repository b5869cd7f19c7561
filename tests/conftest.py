"""
Shared pytest fixtures for all tests
"""
import io
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from PIL import Image

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.brand_kit.platforms import LAYOUT_ANALYSIS_PROMPT
from core.clients.base import BaseVisionClient, ImagePayload
from core.config.unified_manager import (
    LogoPipelineConfig,
    ProviderConfig,
    ProvidersConfig,
    StorageConfig,
    UnifiedConfig,
)
from core.vlm.data_models import SourceImage
from core.vlm.prompts import BRAND_KIT_PROMPT, CONFIRMATION_PROMPT

Answer = Union[str, Exception, Callable[[str], Union[str, Exception]]]


def make_png(width: int = 1000, height: int = 800, color=(255, 255, 255), mode: str = "RGB") -> bytes:
    """Solid color test image"""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def detection_json(*regions: Dict[str, Any]) -> str:
    return json.dumps({"logos": list(regions)})


def region(name: str, x: float, y: float, width: float, height: float,
           confidence: Optional[float] = 0.9) -> Dict[str, Any]:
    entry = {"name": name, "boundingBox": {"x": x, "y": y, "width": width, "height": height}}
    if confidence is not None:
        entry["confidence"] = confidence
    return entry


def confirmation_json(confirmed: bool = True, name: Optional[str] = "Acme",
                      confidence: Optional[float] = 0.75, description: Optional[str] = None) -> str:
    payload: Dict[str, Any] = {"confirmed": confirmed}
    if name is not None:
        payload["name"] = name
    if confidence is not None:
        payload["confidence"] = confidence
    if description is not None:
        payload["description"] = description
    return json.dumps(payload)


class ScriptedVisionClient(BaseVisionClient):
    """BaseVisionClient answering from a handler instead of the network"""

    def __init__(self, config: ProviderConfig, handler: Callable[[str, Optional[ImagePayload], str], Any]):
        super().__init__(config)
        self.handler = handler
        self.calls: List[tuple] = []
        self.closed = False

    async def _query_internal(self, prompt: str, image: Optional[ImagePayload], model: str) -> str:
        self.calls.append((prompt, model))
        answer = self.handler(prompt, image, model)
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def close(self):
        self.closed = True

    def calls_for(self, prompt: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == prompt]


LAYOUT_ANSWER = json.dumps({
    "elements": [
        {"type": "text", "position": {"x": 10, "y": 10, "width": 80, "height": 20},
         "content": "Summer Sale", "importance": "high"},
        {"type": "cta", "position": {"x": 30, "y": 80, "width": 40, "height": 10},
         "content": "Shop now", "importance": "medium"},
        {"type": "logo", "position": {"x": 0, "y": 0, "width": 10, "height": 10}, "importance": "low"},
    ],
    "colorScheme": ["#FF0000", "#FFFFFF"],
    "layoutType": "centered",
    "primaryMessage": "Summer Sale",
})

STYLING_ANSWER = json.dumps({
    "colorMapping": [{"original": "#ff0000", "brand": "#0055A4", "reason": "bright to primary"}],
    "typographyMapping": [{"element": "headline", "brandFont": "Inter", "weight": "bold"}],
    "spacingAdjustments": [{"element": "Shop", "spacing": 24}],
})


def make_handler(detection: Answer = '{"logos": []}',
                 confirmation: Answer = None,
                 brand_kit: Answer = "{}",
                 probe: Answer = "OK",
                 layout: Answer = LAYOUT_ANSWER,
                 styling: Answer = STYLING_ANSWER,
                 headline: Answer = '"Summer Sale is here"',
                 caption: Answer = "Sun's out, deals out #summer"):
    """Dispatch scripted answers by prompt; callables receive the model name"""
    def resolve(answer: Answer, model: str):
        return answer(model) if callable(answer) else answer

    def handler(prompt: str, image: Optional[ImagePayload], model: str):
        if prompt == CONFIRMATION_PROMPT:
            return resolve(confirmation if confirmation is not None else confirmation_json(), model)
        if prompt == BRAND_KIT_PROMPT:
            return resolve(brand_kit, model)
        if prompt == LAYOUT_ANALYSIS_PROMPT:
            return resolve(layout, model)
        if prompt.startswith("Analyze this raw design"):
            return resolve(styling, model)
        if prompt.startswith("Generate a platform-specific headline"):
            return resolve(headline, model)
        if "caption for this content" in prompt:
            return resolve(caption, model)
        if prompt == "test":
            return resolve(probe, model)
        return resolve(detection, model)

    return handler


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Provider with two candidate models and a test key"""
    return ProviderConfig(
        name="mistral",
        api_key="test-key",
        base_url="https://api.mistral.ai/v1",
        models=["model-a", "model-b"],
        probe_models=["model-a", "model-b", "model-c", "model-d", "model-e"],
        timeout=5,
    )


@pytest.fixture
def pipeline_config() -> LogoPipelineConfig:
    return LogoPipelineConfig()


@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(brand_kit_dir=str(tmp_path / "brand_kits"), max_storage_bytes=5 * 1024 * 1024)


@pytest.fixture
def sample_png() -> bytes:
    """1000x800 white PNG"""
    return make_png()


@pytest.fixture
def sample_image(sample_png) -> SourceImage:
    return SourceImage(data=sample_png, mime_type="image/png", filename="sample.png")


@pytest.fixture
def scripted_client(provider_config):
    """Factory for ScriptedVisionClient instances bound to provider_config"""
    def _make(**answers) -> ScriptedVisionClient:
        return ScriptedVisionClient(provider_config, make_handler(**answers))
    return _make


@pytest.fixture
def test_config(tmp_path) -> UnifiedConfig:
    """Complete configuration: mistral usable, gemini without key, huggingface disabled"""
    return UnifiedConfig(
        providers=ProvidersConfig(
            default_provider="mistral",
            mistral=ProviderConfig(
                name="mistral",
                api_key="test-key",
                base_url="https://api.mistral.ai/v1",
                models=["model-a", "model-b"],
                probe_models=["model-a", "model-b"],
            ),
            gemini=ProviderConfig(
                name="gemini",
                api_key="",
                base_url="https://generativelanguage.googleapis.com/v1beta",
                models=["gemini-2.0-flash"],
            ),
            huggingface=ProviderConfig(
                name="huggingface",
                enabled=False,
                base_url="https://router.huggingface.co/v1",
                models=["Qwen/Qwen2.5-VL-7B-Instruct"],
            ),
        ),
        storage=StorageConfig(brand_kit_dir=str(tmp_path / "api_kits")),
    )


@pytest.fixture
def configured_logger():
    """Configured logger for tests"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger("test")


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "requires_api_key: marks tests that call a real provider")
