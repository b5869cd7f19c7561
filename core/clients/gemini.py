"""
Gemini Vision Client

Talks to the Generative Language REST API directly via httpx
(models/{model}:generateContent, image as inline_data).
"""

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from core.clients.base import BaseVisionClient, ImagePayload
from core.clients.exceptions import (
    MalformedResponseError,
    TransientQueryError,
    classify_http_error,
)
from core.config.unified_manager import ProviderConfig

logger = logging.getLogger(__name__)


class GeminiVisionClient(BaseVisionClient):
    """Vision client for Google Gemini models"""

    def __init__(self, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)

        # HTTP Client mit Timeout
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=transport
        )

    async def close(self):
        """Schließe Client-Verbindungen"""
        if self.client is not None:
            await self.client.aclose()

    def _build_payload(self, prompt: str, image: Optional[ImagePayload]) -> Dict[str, Any]:
        parts: list = [{"text": prompt}]
        if image is not None:
            parts.append({
                "inline_data": {
                    "mime_type": image.mime_type,
                    "data": base64.b64encode(image.data).decode('utf-8')
                }
            })

        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            }
        }

    async def _query_internal(self,
                              prompt: str,
                              image: Optional[ImagePayload],
                              model: str) -> str:
        url = f"{self.endpoint}/models/{model}:generateContent"

        try:
            response = await self.client.post(
                url,
                params={"key": self.config.api_key},
                json=self._build_payload(prompt, image),
            )
        except httpx.HTTPError as e:
            raise TransientQueryError(
                f"Request failed: {e}", provider=self.provider, model=model
            ) from e

        if response.status_code != 200:
            raise classify_http_error(
                response.status_code, response.text, provider=self.provider, model=model
            )

        try:
            data = response.json()
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                "Invalid response format from Gemini API",
                raw_response=response.text[:500],
                provider=self.provider,
                model=model,
            ) from e

        if not text.strip():
            raise MalformedResponseError(
                "Empty response from Gemini API", provider=self.provider, model=model
            )
        return text
