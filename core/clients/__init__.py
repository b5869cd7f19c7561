"""Client modules for external vision providers"""

from .base import BaseVisionClient, ImagePayload, HealthCheckResult, ClientMetrics, ClientStatus
from .exceptions import (
    QueryErrorKind,
    VisionQueryError,
    RateLimitedError,
    AuthFailedError,
    ModelUnavailableError,
    TransientQueryError,
    MalformedResponseError,
    CandidatesExhaustedError,
    classify_http_error,
    is_recoverable,
)
from .factory import create_vision_client, CLIENT_REGISTRY

__all__ = [
    "BaseVisionClient",
    "ImagePayload",
    "HealthCheckResult",
    "ClientMetrics",
    "ClientStatus",
    "QueryErrorKind",
    "VisionQueryError",
    "RateLimitedError",
    "AuthFailedError",
    "ModelUnavailableError",
    "TransientQueryError",
    "MalformedResponseError",
    "CandidatesExhaustedError",
    "classify_http_error",
    "is_recoverable",
    "create_vision_client",
    "CLIENT_REGISTRY",
]
