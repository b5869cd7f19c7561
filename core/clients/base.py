"""
Base Vision Client - Standardisierte Client-Architektur
Einheitliche Schnittstelle "Prompt + optionales Bild -> Text" für alle Provider
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from core.clients.exceptions import (
    AuthFailedError,
    TransientQueryError,
    VisionQueryError,
)
from core.config.unified_manager import ProviderConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePayload:
    """Encoded image attached to a vision query"""
    data: bytes
    mime_type: str = "image/png"


class ClientStatus(Enum):
    """Status eines Vision Clients"""
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    TIMEOUT = "timeout"
    ERROR = "error"


class HealthCheckResult(BaseModel):
    """Standardisiertes Health Check Ergebnis"""
    status: ClientStatus
    provider: str
    endpoint: str
    response_time_ms: Optional[float] = None
    last_check: datetime
    details: Dict[str, Any] = {}
    error_message: Optional[str] = None


class ClientMetrics(BaseModel):
    """Client Performance Metriken"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_response_time_ms: float = 0.0
    average_response_time_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None


class BaseVisionClient(ABC):
    """
    Basis-Klasse für alle Vision Clients

    Bietet:
    - Einheitliche Konfiguration (explizit übergeben, kein globaler Zustand)
    - Timeout pro Anfrage
    - Health Checks
    - Metriken-Sammlung
    - Fehlerklassifikation

    Führt bewusst keine Retries durch: Fallback und Abbruch entscheidet
    ausschließlich der ModelFallbackOrchestrator.
    """

    def __init__(self, config: ProviderConfig):
        """
        Initialize base vision client

        Args:
            config: Provider-Konfiguration (API key, endpoint, Kandidaten-Modelle)
        """
        self.config = config
        self.provider = config.name
        self.endpoint = config.base_url
        self.timeout = config.timeout
        self.metrics = ClientMetrics()

        logger.info(f"Initialized {self.__class__.__name__} for {self.provider}: {self.endpoint}")

    @property
    def candidate_models(self) -> list:
        """Ordered model candidates for extraction queries"""
        return list(self.config.models)

    @property
    def probe_models(self) -> list:
        """Ordered model candidates for connectivity probing"""
        return list(self.config.probe_models or self.config.models)

    @abstractmethod
    async def _query_internal(self,
                              prompt: str,
                              image: Optional[ImagePayload],
                              model: str) -> str:
        """
        Provider-spezifische Anfrage - muss von Subklassen implementiert werden

        Must raise a classified VisionQueryError on failure.
        """
        pass

    async def __aenter__(self):
        """Async context manager entry"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def close(self):
        """Schließe Client-Verbindungen"""
        pass

    async def query(self,
                    prompt: str,
                    image: Optional[ImagePayload] = None,
                    model: Optional[str] = None) -> str:
        """
        Sende genau eine Anfrage an das Modell

        Args:
            prompt: Text prompt
            image: Optional image to attach
            model: Model identifier (defaults to the first candidate)

        Returns:
            Raw text answer of the model

        Raises:
            VisionQueryError: classified failure, never retried here
        """
        model = model or (self.config.models[0] if self.config.models else "")

        if not self.config.api_key:
            raise AuthFailedError(
                f"API key for {self.provider} is not set",
                provider=self.provider,
                model=model,
            )

        start_time = time.time()
        self.metrics.total_requests += 1

        try:
            text = await asyncio.wait_for(
                self._query_internal(prompt, image, model),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error = TransientQueryError(
                f"Request timed out after {self.timeout}s",
                provider=self.provider,
                model=model,
            )
            self._record_failure(error)
            raise error
        except VisionQueryError as e:
            self._record_failure(e)
            raise

        response_time_ms = (time.time() - start_time) * 1000
        self.metrics.successful_requests += 1
        self.metrics.total_response_time_ms += response_time_ms
        self.metrics.average_response_time_ms = (
            self.metrics.total_response_time_ms / self.metrics.successful_requests
        )

        logger.debug(f"{self.provider}/{model} answered in {response_time_ms:.2f}ms: {text[:200]!r}")
        return text

    def _record_failure(self, error: VisionQueryError) -> None:
        self.metrics.failed_requests += 1
        self.metrics.last_error = str(error)
        self.metrics.last_error_time = datetime.now()

    async def health_check(self) -> HealthCheckResult:
        """
        Führe Health Check durch (minimale Textanfrage an das erste Kandidaten-Modell)

        Returns:
            Standardisiertes Health Check Ergebnis
        """
        start_time = time.time()
        model = self.config.models[0] if self.config.models else None

        try:
            reply = await self.query("Test. Reply with OK.", model=model)
            return HealthCheckResult(
                status=ClientStatus.HEALTHY,
                provider=self.provider,
                endpoint=self.endpoint,
                response_time_ms=(time.time() - start_time) * 1000,
                last_check=datetime.now(),
                details={"model": model, "response": reply[:50]}
            )

        except TransientQueryError as e:
            return HealthCheckResult(
                status=ClientStatus.TIMEOUT if "timed out" in e.message else ClientStatus.UNHEALTHY,
                provider=self.provider,
                endpoint=self.endpoint,
                last_check=datetime.now(),
                error_message=str(e)
            )

        except VisionQueryError as e:
            return HealthCheckResult(
                status=ClientStatus.ERROR,
                provider=self.provider,
                endpoint=self.endpoint,
                last_check=datetime.now(),
                error_message=str(e)
            )

    def get_metrics(self) -> ClientMetrics:
        """Hole aktuelle Client-Metriken"""
        return self.metrics.copy()
