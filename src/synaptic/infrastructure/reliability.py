"""Pipeline options wrapping the terminal provider call.

Each ``with_*`` function returns an option: a callable that takes the inner
stage and returns a stage wrapping it. Options are applied in the order they
are passed to a synapse, so the last one supplied runs outermost.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from synaptic.application.pipeline import CancellationToken, Option, Stage
from synaptic.domain.errors import (
    CallCancelledError,
    CircuitOpenError,
    PipelineTimeoutError,
    RateLimitError,
    SynapseError,
)
from synaptic.domain.models import SynapseRequest

if TYPE_CHECKING:
    from synaptic.application.synapses.base import Synapse

logger = logging.getLogger(__name__)


def is_retryable(error: Exception) -> bool:
    if isinstance(error, CallCancelledError):
        return False
    if isinstance(error, SynapseError):
        return error.retryable
    return True


def _attempt(stage: Stage, request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
    attempt_request = request.model_copy()
    attempt_request.error = None
    return stage(attempt_request, cancel)


def with_retry(max_attempts: int) -> Option:
    """Retry immediately, up to ``max_attempts`` calls in total."""

    return with_backoff(max_attempts, base_delay=0.0, max_delay=0.0)


def with_backoff(max_attempts: int, base_delay: float, max_delay: float = 60.0) -> Option:
    """Retry with exponential delay ``base_delay * 2**attempt``, capped at ``max_delay``.

    A ``RateLimitError`` carrying a server ``retry_after`` hint waits at least
    that long (still capped). Waits are interrupted by cancellation.
    """

    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if base_delay < 0 or max_delay < 0:
        raise ValueError("retry delays must be non-negative")

    def wrap(inner: Stage) -> Stage:
        def retrying(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            last_error: Exception | None = None
            for attempt in range(max_attempts):
                cancel.raise_if_cancelled(request_id=request.request_id)
                try:
                    return _attempt(inner, request, cancel)
                except Exception as error:
                    last_error = error
                    if not is_retryable(error) or attempt + 1 >= max_attempts:
                        raise
                    delay = _retry_delay_seconds(attempt, base_delay, max_delay, error)
                    logger.warning(
                        "Attempt %d/%d for request %s failed (%s); retrying in %.2fs",
                        attempt + 1,
                        max_attempts,
                        request.request_id,
                        error,
                        delay,
                    )
                    if delay > 0 and cancel.wait(delay):
                        raise CallCancelledError(
                            f"call was cancelled while waiting to retry: {cancel.reason}",
                            request_id=request.request_id,
                        ) from error

            if last_error is not None:
                raise last_error
            raise RuntimeError("retry stage finished without a response or error")

        return retrying

    return wrap


def _retry_delay_seconds(attempt: int, base_delay: float, max_delay: float, error: Exception) -> float:
    default_delay = min(base_delay * (2**attempt), max_delay)
    suggested_delay = error.retry_after if isinstance(error, RateLimitError) else None
    if suggested_delay is None:
        return default_delay
    return min(max(default_delay, suggested_delay), max_delay)


def with_timeout(seconds: float) -> Option:
    """Bound the wrapped stages to ``seconds`` of wall-clock time.

    The inner chain runs on a worker thread with a child cancellation token
    that is cancelled when the deadline passes.
    """

    if seconds <= 0:
        raise ValueError(f"timeout must be positive, got {seconds}")

    def wrap(inner: Stage) -> Stage:
        def timed(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            child = cancel.child(timeout=seconds)
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="synaptic-timeout")
            try:
                future = executor.submit(inner, request, child)
                try:
                    return future.result(timeout=seconds)
                except FutureTimeoutError as error:
                    child.cancel("deadline exceeded")
                    if cancel.cancelled:
                        raise CallCancelledError(
                            f"call was cancelled: {cancel.reason}",
                            request_id=request.request_id,
                        ) from error
                    raise PipelineTimeoutError(seconds, request_id=request.request_id) from error
                except CallCancelledError as error:
                    if not cancel.cancelled:
                        raise PipelineTimeoutError(seconds, request_id=request.request_id) from error
                    raise
            finally:
                child.release()
                executor.shutdown(wait=False)

        return timed

    return wrap


class CircuitBreaker:
    """Consecutive-failure breaker: closed, open, then half-open after ``recovery``."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failures: int,
        recovery: float,
        *,
        name: str = "synapse",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failures < 1:
            raise ValueError(f"failures must be >= 1, got {failures}")
        self._failures = failures
        self._recovery = recovery
        self._name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._state = self.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0

    @property
    def state(self) -> str:
        with self._lock:
            return self._current_state()

    def before_call(self, request_id: str) -> None:
        with self._lock:
            state = self._current_state()
            if state == self.OPEN:
                raise CircuitOpenError(self._name, request_id=request_id)
            if state == self.HALF_OPEN and self._state == self.OPEN:
                self._state = self.HALF_OPEN
                logger.warning("Circuit %r is half-open; allowing a trial request", self._name)

    def record_success(self) -> None:
        with self._lock:
            if self._state != self.CLOSED:
                logger.warning("Circuit %r closed after a successful request", self._name)
            self._state = self.CLOSED
            self._consecutive_failures = 0

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            if self._state == self.HALF_OPEN or self._consecutive_failures >= self._failures:
                if self._state != self.OPEN:
                    logger.warning(
                        "Circuit %r opened after %d consecutive failure(s)",
                        self._name,
                        self._consecutive_failures,
                    )
                self._state = self.OPEN
                self._opened_at = self._clock()

    def _current_state(self) -> str:
        if self._state == self.OPEN and self._clock() - self._opened_at >= self._recovery:
            return self.HALF_OPEN
        return self._state


def with_circuit_breaker(failures: int, recovery: float, *, name: str = "synapse") -> Option:
    breaker = CircuitBreaker(failures, recovery, name=name)
    return with_breaker(breaker)


def with_breaker(breaker: CircuitBreaker) -> Option:
    def wrap(inner: Stage) -> Stage:
        def guarded(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            breaker.before_call(request.request_id)
            try:
                result = inner(request, cancel)
            except CallCancelledError:
                raise
            except Exception:
                breaker.record_failure()
                raise
            breaker.record_success()
            return result

        return guarded

    return wrap


class TokenBucket:
    def __init__(
        self,
        rate: float,
        burst: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = float(burst)
        self._updated_at = clock()

    def reserve(self) -> float:
        """Take one token, returning how long the caller must wait before using it."""

        with self._lock:
            now = self._clock()
            self._tokens = min(self._burst, self._tokens + (now - self._updated_at) * self._rate)
            self._updated_at = now
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self._rate


def with_rate_limit(rps: float, burst: int) -> Option:
    bucket = TokenBucket(rps, burst)

    def wrap(inner: Stage) -> Stage:
        def limited(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            delay = bucket.reserve()
            if delay > 0:
                logger.debug("Rate limit reached; request %s waits %.2fs", request.request_id, delay)
                if cancel.wait(delay):
                    raise CallCancelledError(
                        f"call was cancelled while rate limited: {cancel.reason}",
                        request_id=request.request_id,
                    )
            return inner(request, cancel)

        return limited

    return wrap


def with_fallback(fallback: "Synapse") -> Option:
    """On failure, send the same request through ``fallback``'s pipeline."""

    def wrap(inner: Stage) -> Stage:
        def with_alternate(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            try:
                return _attempt(inner, request, cancel)
            except CallCancelledError:
                raise
            except Exception as error:
                logger.warning(
                    "Request %s failed on %s (%s); falling back to %s",
                    request.request_id,
                    request.provider_name,
                    error,
                    fallback.provider.name,
                )
                return _attempt(fallback.pipeline, request, cancel)

        return with_alternate

    return wrap


@dataclass(frozen=True)
class PipelineFailure:
    request_id: str
    synapse_type: str
    provider: str
    error: Exception
    duration_ms: int


def with_error_handler(handler: Callable[[PipelineFailure], None]) -> Option:
    """Report failures to ``handler``; the original error is always re-raised."""

    def wrap(inner: Stage) -> Stage:
        def handled(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            started = time.monotonic()
            try:
                return inner(request, cancel)
            except Exception as error:
                failure = PipelineFailure(
                    request_id=request.request_id,
                    synapse_type=request.synapse_type.value,
                    provider=request.provider_name,
                    error=error,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
                try:
                    handler(failure)
                except Exception:
                    logger.error("Error handler failed for request %s", request.request_id, exc_info=True)
                raise

        return handled

    return wrap


def with_debug() -> Option:
    """Log the rendered prompt and raw response of every request at INFO."""

    def wrap(inner: Stage) -> Stage:
        def debugged(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
            logger.info(
                "[%s] %s request %s prompt:\n%s",
                request.provider_name,
                request.synapse_type.value,
                request.request_id,
                request.prompt.render(),
            )
            result = inner(request, cancel)
            logger.info(
                "[%s] %s request %s response:\n%s",
                request.provider_name,
                request.synapse_type.value,
                request.request_id,
                result.response,
            )
            return result

        return debugged

    return wrap
