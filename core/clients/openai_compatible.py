"""
OpenAI-compatible Vision Client

Chat-completions backends (OpenAI, Mistral, HuggingFace router) share the
same request shape, so they share this client. Subclasses only differ in
name and defaults.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from core.clients.base import BaseVisionClient, ImagePayload
from core.clients.exceptions import (
    MalformedResponseError,
    TransientQueryError,
    classify_http_error,
)
from core.config.unified_manager import ProviderConfig

logger = logging.getLogger(__name__)


class OpenAICompatibleVisionClient(BaseVisionClient):
    """
    Vision client for OpenAI-style /chat/completions endpoints

    Uses the openai SDK with max_retries=0 - retries and model fallback
    are handled by the orchestrator.
    """

    def __init__(self, config: ProviderConfig, client: Optional[AsyncOpenAI] = None):
        super().__init__(config)
        self._openai_client = client

    def _initialize_openai_client(self) -> AsyncOpenAI:
        """Initialize OpenAI client if not already done"""
        if self._openai_client is None:
            self._openai_client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.endpoint,
                timeout=self.timeout,
                max_retries=0
            )
        return self._openai_client

    async def close(self):
        """Close connections"""
        if self._openai_client is not None:
            await self._openai_client.close()
            self._openai_client = None

    def _build_messages(self, prompt: str, image: Optional[ImagePayload]) -> List[Dict[str, Any]]:
        """Build chat messages for the API request"""
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]

        if image is not None:
            image_base64 = base64.b64encode(image.data).decode('utf-8')
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{image.mime_type};base64,{image_base64}"}
            })

        return [{"role": "user", "content": content}]

    async def _query_internal(self,
                              prompt: str,
                              image: Optional[ImagePayload],
                              model: str) -> str:
        client = self._initialize_openai_client()

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=self._build_messages(prompt, image),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except openai.APIStatusError as e:
            raise classify_http_error(
                e.status_code, str(e.message), provider=self.provider, model=model
            ) from e
        except openai.APIConnectionError as e:
            # Covers APITimeoutError as well
            raise TransientQueryError(
                f"Request failed: {e}", provider=self.provider, model=model
            ) from e

        if not response.choices or response.choices[0].message is None:
            raise MalformedResponseError(
                f"Invalid response format from {self.provider} API",
                provider=self.provider,
                model=model,
            )

        content = response.choices[0].message.content
        if not content:
            raise MalformedResponseError(
                f"Empty response from {self.provider} API",
                provider=self.provider,
                model=model,
            )
        return content


class OpenAIVisionClient(OpenAICompatibleVisionClient):
    """GPT-4o family via api.openai.com"""


class MistralVisionClient(OpenAICompatibleVisionClient):
    """Pixtral models via api.mistral.ai"""


class HuggingFaceVisionClient(OpenAICompatibleVisionClient):
    """Open vision models via the HuggingFace inference router"""
