from __future__ import annotations

from typing import Protocol, runtime_checkable

from synaptic.domain.models import Message, ProviderResponse


@runtime_checkable
class Provider(Protocol):
    @property
    def name(self) -> str: ...

    def call(self, messages: list[Message], temperature: float) -> ProviderResponse: ...
