from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable

from synaptic.domain.models import Message, ProviderResponse, TokenUsage

MockCallback = Callable[[list[Message], float], str]


def _default_usage() -> TokenUsage:
    return TokenUsage(prompt=100, completion=50, total=150)


@dataclass(frozen=True)
class RecordedCall:
    messages: list[Message]
    temperature: float


@dataclass
class MockProvider:
    """In-memory provider for tests and offline runs.

    Answers from ``responses`` in order (the last one repeats), from
    ``callback``, or raises ``error``. Every call is recorded.
    """

    responses: list[str] = field(default_factory=list)
    callback: MockCallback | None = None
    error: Exception | None = None
    usage: TokenUsage = field(default_factory=_default_usage)
    provider_name: str = "mock"
    calls: list[RecordedCall] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._cursor = 0

    @classmethod
    def with_response(cls, response: str) -> "MockProvider":
        return cls(responses=[response], provider_name="mock-fixed")

    @classmethod
    def with_callback(cls, callback: MockCallback) -> "MockProvider":
        return cls(callback=callback, provider_name="mock-callback")

    @classmethod
    def with_error(cls, error: Exception) -> "MockProvider":
        return cls(error=error, provider_name="mock-error")

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    def call(self, messages: list[Message], temperature: float) -> ProviderResponse:
        with self._lock:
            self.calls.append(RecordedCall(messages=list(messages), temperature=temperature))
            if self.error is not None:
                raise self.error
            if self.callback is not None:
                content = self.callback(messages, temperature)
            elif self.responses:
                content = self.responses[min(self._cursor, len(self.responses) - 1)]
                self._cursor += 1
            else:
                content = "{}"
        return ProviderResponse(
            content=content,
            usage=self.usage.model_copy(),
            finish_reason="stop",
            model=self.provider_name,
        )
