from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel

from synaptic.application.hooks import HookBus
from synaptic.application.pipeline import Option
from synaptic.application.ports import Provider
from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import ExtractionInput, Prompt
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_DETERMINISTIC

T = TypeVar("T", bound=BaseModel)


class ExtractionSynapse(Synapse[ExtractionInput, T]):
    """Pulls a caller-defined record ``T`` out of free text.

    Every call shape returns the full record.
    """

    kind = SynapseKind.EXTRACTION
    input_model = ExtractionInput
    baseline_temperature = DEFAULT_TEMPERATURE_DETERMINISTIC

    def __init__(
        self,
        what: str,
        response_model: type[T],
        provider: Provider,
        *options: Option,
        defaults: ExtractionInput | None = None,
        hooks: HookBus | None = None,
    ) -> None:
        super().__init__(
            what,
            provider,
            *options,
            defaults=defaults,
            hooks=hooks,
            response_model=response_model,
        )

    def _build_prompt(self, merged: ExtractionInput) -> Prompt:
        examples: list[str] = []
        for example in merged.examples:
            examples.extend(line for line in example.splitlines() if line.strip())
        return Prompt(
            task=f"Extract {self.task}",
            input=merged.text,
            context=merged.context,
            examples={"examples": examples} if examples else {},
            response_schema=self.schema,
            constraints=[
                f"extract only {self.task}",
                "use null for missing values",
                "match exact JSON structure",
            ],
        )
