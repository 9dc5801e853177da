from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable, Protocol

from synaptic.application.hooks import HookBus
from synaptic.application.ports import Provider
from synaptic.domain.enums import HookSignal
from synaptic.domain.errors import CallCancelledError, ProviderError, SynapseError
from synaptic.domain.models import SynapseRequest

logger = logging.getLogger(__name__)


class CancellationToken:
    """Caller-supplied cancellation signal with an optional deadline.

    Children inherit cancellation from their parent and may carry a tighter
    deadline of their own.
    """

    def __init__(self, *, timeout: float | None = None, parent: "CancellationToken | None" = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._children: set[CancellationToken] = set()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._parent = parent
        if parent is not None:
            parent._adopt(self)

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._parent is not None and self._parent.cancelled:
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    @property
    def reason(self) -> str | None:
        return self._reason

    def remaining(self) -> float | None:
        parent_remaining = self._parent.remaining() if self._parent is not None else None
        if self._deadline is None:
            return parent_remaining
        own_remaining = max(0.0, self._deadline - time.monotonic())
        if parent_remaining is None:
            return own_remaining
        return min(own_remaining, parent_remaining)

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel(reason)

    def raise_if_cancelled(self, *, request_id: str | None = None) -> None:
        if self.cancelled:
            raise CallCancelledError(f"call was cancelled: {self._reason}", request_id=request_id)

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if the token was cancelled meanwhile."""

        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(0.0, seconds))
        return self.cancelled

    def child(self, *, timeout: float | None = None) -> "CancellationToken":
        return CancellationToken(timeout=timeout, parent=self)

    def release(self) -> None:
        """Detach from the parent once the work this token guarded has finished."""

        if self._parent is not None:
            self._parent._release(self)

    def _adopt(self, child: "CancellationToken") -> None:
        with self._lock:
            already_cancelled = self._event.is_set()
            if not already_cancelled:
                self._children.add(child)
        if already_cancelled:
            child.cancel(self._reason or "cancelled")

    def _release(self, child: "CancellationToken") -> None:
        with self._lock:
            self._children.discard(child)


class Stage(Protocol):
    def __call__(self, request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest: ...


Option = Callable[[Stage], Stage]


def compose(terminal: Stage, options: Iterable[Option]) -> Stage:
    """Wrap the terminal stage with each option in turn; the last option is outermost."""

    pipeline = terminal
    for option in options:
        pipeline = option(pipeline)
    return pipeline


def terminal_stage(provider: Provider, hooks: HookBus) -> Stage:
    provider_name = provider.name

    def call_provider(request: SynapseRequest, cancel: CancellationToken) -> SynapseRequest:
        cancel.raise_if_cancelled(request_id=request.request_id)
        messages = request.provider_messages()
        hooks.emit(
            HookSignal.PROVIDER_CALL_STARTED,
            request_id=request.request_id,
            synapse_type=request.synapse_type.value,
            provider=provider_name,
            message_count=len(messages),
            temperature=request.temperature,
        )
        logger.debug(
            "Calling provider %s for %s request %s",
            provider_name,
            request.synapse_type.value,
            request.request_id,
        )
        started = time.monotonic()
        try:
            response = provider.call(messages, request.temperature)
        except SynapseError as error:
            _emit_call_failed(hooks, request, provider_name, started, error)
            if error.request_id is None:
                error.request_id = request.request_id
            raise
        except Exception as error:
            _emit_call_failed(hooks, request, provider_name, started, error)
            raise ProviderError(
                f"{provider_name} call failed: {error}",
                provider=provider_name,
                request_id=request.request_id,
            ) from error

        duration_ms = int((time.monotonic() - started) * 1000)
        hooks.emit(
            HookSignal.PROVIDER_CALL_COMPLETED,
            request_id=request.request_id,
            synapse_type=request.synapse_type.value,
            provider=provider_name,
            model=response.model,
            prompt_tokens=response.usage.prompt,
            completion_tokens=response.usage.completion,
            total_tokens=response.usage.total,
            duration_ms=duration_ms,
            status="ok",
            finish_reason=response.finish_reason,
        )
        cancel.raise_if_cancelled(request_id=request.request_id)

        request.response = response.content
        request.usage = response.usage
        request.finish_reason = response.finish_reason
        return request

    return call_provider


def _emit_call_failed(
    hooks: HookBus,
    request: SynapseRequest,
    provider_name: str,
    started: float,
    error: Exception,
) -> None:
    hooks.emit(
        HookSignal.PROVIDER_CALL_FAILED,
        request_id=request.request_id,
        synapse_type=request.synapse_type.value,
        provider=provider_name,
        duration_ms=int((time.monotonic() - started) * 1000),
        status="error",
        status_code=getattr(error, "status_code", None),
        error=str(error),
    )
