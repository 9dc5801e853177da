from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from synaptic.domain.enums import HookSignal

logger = logging.getLogger(__name__)


class HookEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    signal: HookSignal
    fields: dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


HookListener = Callable[[HookEvent], None]


class Subscription:
    def __init__(self, bus: "HookBus", signal: HookSignal, listener: HookListener) -> None:
        self._bus = bus
        self._signal = signal
        self._listener = listener

    def close(self) -> None:
        self._bus._unhook(self._signal, self._listener)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class HookBus:
    """Fire-and-forget event sink for synapse observability.

    ``emit`` never blocks on listeners and never raises: listeners run on a
    worker pool and their failures are logged.
    """

    def __init__(self, *, max_workers: int = 4) -> None:
        self._max_workers = max_workers
        self._listeners: dict[HookSignal, list[HookListener]] = {}
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    def hook(self, signal: HookSignal, listener: HookListener) -> Subscription:
        with self._lock:
            self._listeners.setdefault(signal, []).append(listener)
        return Subscription(self, signal, listener)

    def emit(self, signal: HookSignal, **fields: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(signal, ()))
            if not listeners:
                return
            executor = self._ensure_executor()
        event = HookEvent(signal=signal, fields=fields)
        for listener in listeners:
            try:
                executor.submit(self._dispatch, listener, event)
            except RuntimeError:
                logger.warning("Dropping %s event: hook bus is shut down", signal.value)
                return

    def close(self, *, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def _unhook(self, signal: HookSignal, listener: HookListener) -> None:
        with self._lock:
            listeners = self._listeners.get(signal, [])
            if listener in listeners:
                listeners.remove(listener)

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="synaptic-hooks",
            )
        return self._executor

    @staticmethod
    def _dispatch(listener: HookListener, event: HookEvent) -> None:
        try:
            listener(event)
        except Exception:
            logger.exception("Hook listener failed for %s", event.signal.value)


default_hooks = HookBus()
