"""Tests for the provider vision clients"""

import asyncio
import base64
import json
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from core.clients.base import BaseVisionClient, ClientStatus, ImagePayload
from core.clients.exceptions import (
    AuthFailedError,
    MalformedResponseError,
    ModelUnavailableError,
    RateLimitedError,
    TransientQueryError,
)
from core.clients.factory import create_vision_client
from core.clients.gemini import GeminiVisionClient
from core.clients.openai_compatible import MistralVisionClient, OpenAICompatibleVisionClient
from core.config.unified_manager import ProviderConfig, ProvidersConfig


@pytest.fixture
def gemini_config():
    return ProviderConfig(
        name="gemini",
        api_key="gemini-key",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        models=["gemini-2.0-flash"],
    )


def gemini_client(config, handler) -> GeminiVisionClient:
    return GeminiVisionClient(config, transport=httpx.MockTransport(handler))


def gemini_answer(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class SlowClient(BaseVisionClient):

    async def _query_internal(self, prompt: str, image: Optional[ImagePayload], model: str) -> str:
        await asyncio.sleep(1)
        return "too late"


class EchoClient(BaseVisionClient):

    async def _query_internal(self, prompt: str, image: Optional[ImagePayload], model: str) -> str:
        return f"{model}: {prompt}"


class TestBaseVisionClient:

    @pytest.mark.asyncio
    async def test_missing_api_key(self, provider_config):
        client = EchoClient(provider_config.copy(update={"api_key": ""}))

        with pytest.raises(AuthFailedError):
            await client.query("hello")

        assert client.metrics.total_requests == 0

    @pytest.mark.asyncio
    async def test_default_model_is_first_candidate(self, provider_config):
        client = EchoClient(provider_config)

        assert await client.query("hello") == "model-a: hello"
        assert await client.query("hello", model="model-b") == "model-b: hello"
        assert client.get_metrics().successful_requests == 2

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, provider_config):
        client = SlowClient(provider_config.copy(update={"timeout": 0.05}))

        with pytest.raises(TransientQueryError) as exc_info:
            await client.query("hello")

        assert "timed out" in exc_info.value.message
        assert client.metrics.failed_requests == 1

    @pytest.mark.asyncio
    async def test_health_check(self, provider_config):
        health = await EchoClient(provider_config).health_check()

        assert health.status == ClientStatus.HEALTHY
        assert health.details["model"] == "model-a"

    def test_candidate_lists(self, provider_config):
        client = EchoClient(provider_config)

        assert client.candidate_models == ["model-a", "model-b"]
        assert client.probe_models[:2] == ["model-a", "model-b"]
        assert len(client.probe_models) == 5


class TestGeminiVisionClient:

    @pytest.mark.asyncio
    async def test_successful_query(self, gemini_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_answer('{"logos": []}'))

        async with gemini_client(gemini_config, handler) as client:
            text = await client.query("find logos", ImagePayload(b"\x89PNG", "image/png"), "gemini-2.0-flash")

        assert text == '{"logos": []}'
        assert "models/gemini-2.0-flash:generateContent" in seen["url"]
        assert "key=gemini-key" in seen["url"]
        parts = seen["body"]["contents"][0]["parts"]
        assert parts[0] == {"text": "find logos"}
        assert parts[1]["inline_data"]["mime_type"] == "image/png"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"\x89PNG"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,expected", [
        (404, "models/gemini-9 is not found", ModelUnavailableError),
        (429, "Resource has been exhausted", RateLimitedError),
        (400, '{"error": {"message": "API key not valid. Please pass a valid API key."}}', AuthFailedError),
        (500, "internal error", TransientQueryError),
    ])
    async def test_error_classification(self, gemini_config, status, body, expected):
        client = gemini_client(gemini_config, lambda request: httpx.Response(status, text=body))

        with pytest.raises(expected):
            await client.query("hi", model="gemini-2.0-flash")

        await client.close()

    @pytest.mark.asyncio
    async def test_unexpected_payload(self, gemini_config):
        client = gemini_client(gemini_config, lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(MalformedResponseError):
            await client.query("hi")

        await client.close()

    @pytest.mark.asyncio
    async def test_network_error(self, gemini_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = gemini_client(gemini_config, handler)

        with pytest.raises(TransientQueryError):
            await client.query("hi")

        await client.close()


def completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def mock_openai():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


class TestOpenAICompatibleVisionClient:

    @pytest.mark.asyncio
    async def test_message_with_image(self, provider_config, mock_openai):
        mock_openai.chat.completions.create.return_value = completion('{"confirmed": true}')
        client = MistralVisionClient(provider_config, client=mock_openai)

        text = await client.query("is this a logo?", ImagePayload(b"abc", "image/jpeg"), "pixtral-12b")

        assert text == '{"confirmed": true}'
        kwargs = mock_openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "pixtral-12b"
        content = kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "is this a logo?"}
        assert content[1]["image_url"]["url"] == "data:image/jpeg;base64," + base64.b64encode(b"abc").decode()

    @pytest.mark.asyncio
    async def test_text_only_query(self, provider_config, mock_openai):
        mock_openai.chat.completions.create.return_value = completion("OK")
        client = OpenAICompatibleVisionClient(provider_config, client=mock_openai)

        await client.query("test")

        content = mock_openai.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert len(content) == 1

    @pytest.mark.asyncio
    async def test_status_error_is_classified(self, provider_config, mock_openai):
        request = httpx.Request("POST", "https://api.mistral.ai/v1/chat/completions")
        mock_openai.chat.completions.create.side_effect = openai.NotFoundError(
            "Invalid model", response=httpx.Response(404, request=request), body=None
        )
        client = OpenAICompatibleVisionClient(provider_config, client=mock_openai)

        with pytest.raises(ModelUnavailableError) as exc_info:
            await client.query("hi", model="pixtral-99b")

        assert exc_info.value.status_code == 404
        assert exc_info.value.model == "pixtral-99b"

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, provider_config, mock_openai):
        request = httpx.Request("POST", "https://api.mistral.ai/v1/chat/completions")
        mock_openai.chat.completions.create.side_effect = openai.APIConnectionError(request=request)
        client = OpenAICompatibleVisionClient(provider_config, client=mock_openai)

        with pytest.raises(TransientQueryError):
            await client.query("hi")

    @pytest.mark.asyncio
    async def test_empty_content_is_malformed(self, provider_config, mock_openai):
        mock_openai.chat.completions.create.return_value = completion("")
        client = OpenAICompatibleVisionClient(provider_config, client=mock_openai)

        with pytest.raises(MalformedResponseError):
            await client.query("hi")

    @pytest.mark.asyncio
    async def test_close(self, provider_config, mock_openai):
        async with OpenAICompatibleVisionClient(provider_config, client=mock_openai):
            pass

        mock_openai.close.assert_awaited_once()


class TestFactory:

    def test_creates_registered_client(self):
        providers = ProvidersConfig()
        assert isinstance(create_vision_client("mistral", providers), MistralVisionClient)

    def test_disabled_provider(self):
        providers = ProvidersConfig()
        providers.huggingface = providers.huggingface.copy(update={"enabled": False})

        with pytest.raises(ValueError, match="disabled"):
            create_vision_client("huggingface", providers)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_vision_client("anthropic", ProvidersConfig())
