"""
Vision query exceptions

Every provider backend translates its transport failures into one of these
classes. Nothing above the client layer ever looks at raw status codes or
provider error text.
"""

from enum import Enum
from typing import Optional


class QueryErrorKind(Enum):
    """Classification driving the model fallback policy"""
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    MODEL_UNAVAILABLE = "model_unavailable"
    TRANSIENT = "transient"
    MALFORMED = "malformed"


class VisionQueryError(Exception):
    """Base exception for vision query failures"""

    kind: QueryErrorKind = QueryErrorKind.TRANSIENT

    def __init__(self,
                 message: str,
                 provider: Optional[str] = None,
                 model: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status_code = status_code

    def __str__(self) -> str:
        origin = "/".join(part for part in (self.provider, self.model) if part)
        return f"[{origin}] {self.message}" if origin else self.message


class RateLimitedError(VisionQueryError):
    """Provider rejected the request with a rate limit / quota error (429)"""
    kind = QueryErrorKind.RATE_LIMITED


class AuthFailedError(VisionQueryError):
    """API key missing, invalid or lacking permissions (401/403)"""
    kind = QueryErrorKind.AUTH_FAILED


class ModelUnavailableError(VisionQueryError):
    """Requested model does not exist or is not served (404)"""
    kind = QueryErrorKind.MODEL_UNAVAILABLE


class TransientQueryError(VisionQueryError):
    """Network error, timeout or any other non-success response"""
    kind = QueryErrorKind.TRANSIENT


class MalformedResponseError(VisionQueryError):
    """Model answered, but not with the expected JSON shape"""
    kind = QueryErrorKind.MALFORMED

    def __init__(self, message: str, raw_response: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_response = raw_response


class CandidatesExhaustedError(VisionQueryError):
    """Every candidate model failed with a recoverable error"""

    def __init__(self, message: str, last_error: Optional[VisionQueryError] = None,
                 attempted_models: Optional[list] = None):
        super().__init__(
            message,
            provider=last_error.provider if last_error else None,
            status_code=last_error.status_code if last_error else None,
        )
        self.last_error = last_error
        self.attempted_models = list(attempted_models or [])
        if last_error is not None:
            self.kind = last_error.kind


_AUTH_MARKERS = ("api_key", "api key", "unauthorized", "permission", "invalid key", "forbidden")
_MODEL_MARKERS = ("model not found", "not found", "does not exist", "unknown model", "invalid model")
_RATE_MARKERS = ("rate limit", "quota", "resource_exhausted", "too many requests")


def classify_http_error(status_code: int,
                        body: str = "",
                        provider: Optional[str] = None,
                        model: Optional[str] = None) -> VisionQueryError:
    """
    Map a non-success HTTP response to the error taxonomy

    Args:
        status_code: HTTP status of the provider response
        body: Response body (used for providers that hide the cause in text)
        provider: Provider name for error context
        model: Model identifier for error context

    Returns:
        Classified VisionQueryError (not raised)
    """
    text = (body or "").lower()
    snippet = (body or "")[:200]
    context = {"provider": provider, "model": model, "status_code": status_code}

    if status_code == 429:
        return RateLimitedError(f"Rate limit exceeded (429): {snippet}", **context)
    if status_code in (401, 403):
        return AuthFailedError(f"Authentication failed ({status_code}): {snippet}", **context)
    if status_code == 404:
        return ModelUnavailableError(f"Model not available (404): {snippet}", **context)

    # Some providers answer 400 for key or model problems
    if any(marker in text for marker in _RATE_MARKERS):
        return RateLimitedError(f"Rate limit exceeded ({status_code}): {snippet}", **context)
    if any(marker in text for marker in _AUTH_MARKERS):
        return AuthFailedError(f"Authentication failed ({status_code}): {snippet}", **context)
    if any(marker in text for marker in _MODEL_MARKERS):
        return ModelUnavailableError(f"Model not available ({status_code}): {snippet}", **context)

    return TransientQueryError(f"Provider error ({status_code}): {snippet}", **context)


def is_recoverable(error: BaseException) -> bool:
    """True if the fallback chain should move on to the next candidate"""
    if not isinstance(error, VisionQueryError) or isinstance(error, CandidatesExhaustedError):
        return False
    return error.kind in (
        QueryErrorKind.MODEL_UNAVAILABLE,
        QueryErrorKind.TRANSIENT,
        QueryErrorKind.MALFORMED,
    )
