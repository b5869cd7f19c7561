#!/usr/bin/env python3
"""
Model Fallback Orchestrator

Runs one logical operation against an ordered list of candidate models:
- ModelUnavailable / Transient / Malformed -> log, try the next candidate
- RateLimited / AuthFailed -> abort immediately, remaining candidates untouched
- list exhausted -> CandidatesExhaustedError referencing the last error
- first success wins
"""

import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_none,
)

from core.clients.exceptions import (
    AuthFailedError,
    CandidatesExhaustedError,
    QueryErrorKind,
    RateLimitedError,
    VisionQueryError,
    is_recoverable,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

ModelOperation = Callable[[str], Awaitable[T]]


class ProbeResult(BaseModel):
    """Outcome of a connectivity probe over several models"""
    success: bool
    available_models: List[str] = []
    attempted_models: List[str] = []
    error: Optional[str] = None
    error_kind: Optional[QueryErrorKind] = None


class ModelFallbackOrchestrator:
    """
    Drives a candidate model list for a single logical operation.

    Stateless between calls; one instance can be shared by detection,
    confirmation and brand-kit extraction.
    """

    def __init__(self, provider: Optional[str] = None):
        self.provider = provider

    async def run(self,
                  candidates: Sequence[str],
                  operation: ModelOperation,
                  operation_name: str = "query") -> T:
        """
        Try candidates strictly in order until one succeeds

        Args:
            candidates: Ordered model identifiers (priority order)
            operation: Coroutine function taking the model identifier
            operation_name: Label used in log messages

        Returns:
            Result of the first successful operation

        Raises:
            RateLimitedError: provider-wide rate limit, no further candidates tried
            AuthFailedError: key problem, no further candidates tried
            CandidatesExhaustedError: every candidate failed recoverably
        """
        candidates = list(candidates)
        if not candidates:
            raise CandidatesExhaustedError(
                f"No candidate models configured for {operation_name}"
            )

        attempted: List[str] = []
        retrying = AsyncRetrying(
            stop=stop_after_attempt(len(candidates)),
            wait=wait_none(),
            retry=retry_if_exception(is_recoverable),
            before_sleep=lambda state: self._log_fallback(state, candidates, operation_name),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                model = candidates[attempt.retry_state.attempt_number - 1]
                attempted.append(model)
                with attempt:
                    result = await operation(model)

        except RateLimitedError:
            logger.error(f"❌ {operation_name}: rate limit hit on {attempted[-1]} - aborting fallback chain")
            raise
        except AuthFailedError:
            logger.error(f"❌ {operation_name}: authentication failed on {attempted[-1]} - aborting fallback chain")
            raise
        except VisionQueryError as e:
            if not is_recoverable(e):
                raise
            logger.error(f"❌ {operation_name}: all {len(attempted)} candidate model(s) failed. Last error: {e}")
            raise CandidatesExhaustedError(
                f"All models failed for {operation_name}. Last error: {e}",
                last_error=e,
                attempted_models=attempted,
            ) from e

        logger.info(f"✅ {operation_name}: successfully used model {attempted[-1]}")
        return result

    def _log_fallback(self, state: RetryCallState, candidates: List[str], operation_name: str) -> None:
        failed_model = candidates[state.attempt_number - 1]
        next_model = candidates[state.attempt_number]
        error = state.outcome.exception()
        kind = getattr(error, "kind", None)

        if kind == QueryErrorKind.MODEL_UNAVAILABLE:
            logger.info(f"{operation_name}: model {failed_model} not available, trying {next_model}...")
        else:
            logger.warning(f"{operation_name}: model {failed_model} failed ({error}), trying {next_model}...")

    async def probe(self,
                    candidates: Sequence[str],
                    operation: ModelOperation,
                    max_successes: int = 3) -> ProbeResult:
        """
        Connectivity probe: collect up to `max_successes` working models

        Uses the same policy as run(): rate limit and auth errors stop the
        probe immediately, anything recoverable moves on.
        """
        available: List[str] = []
        attempted: List[str] = []
        last_error: Optional[VisionQueryError] = None

        logger.info(f"Testing {len(candidates)} models: {list(candidates)}")

        for model in candidates:
            attempted.append(model)
            try:
                await operation(model)
            except VisionQueryError as e:
                if not is_recoverable(e):
                    logger.error(f"❌ Probe aborted on {model}: {e}")
                    return ProbeResult(
                        success=False,
                        attempted_models=attempted,
                        error=str(e),
                        error_kind=e.kind,
                    )
                last_error = e
                logger.info(f"❌ Model {model} failed: {str(e)[:150]}")
                continue

            available.append(model)
            logger.info(f"✅ Model {model} is available")
            if len(available) >= max_successes:
                break

        if available:
            return ProbeResult(success=True, available_models=available, attempted_models=attempted)

        return ProbeResult(
            success=False,
            attempted_models=attempted,
            error=f"All models failed. Last error: {last_error}" if last_error else "No models to probe",
            error_kind=last_error.kind if last_error else None,
        )
