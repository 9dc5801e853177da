from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

from synaptic.application.hooks import HookBus
from synaptic.application.pipeline import Option
from synaptic.application.ports import Provider
from synaptic.application.synapses.analyze import serialize_data
from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import ConvertInput, Prompt
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_DETERMINISTIC

InT = TypeVar("InT")
OutT = TypeVar("OutT", bound=BaseModel)


class ConvertSynapse(Synapse[ConvertInput[InT], OutT], Generic[InT, OutT]):
    """Maps a value of one type onto the caller's output model ``OutT``."""

    kind = SynapseKind.CONVERT
    input_model = ConvertInput
    baseline_temperature = DEFAULT_TEMPERATURE_DETERMINISTIC

    def __init__(
        self,
        instruction: str,
        output_model: type[OutT],
        provider: Provider,
        *options: Option,
        defaults: ConvertInput[InT] | None = None,
        hooks: HookBus | None = None,
    ) -> None:
        super().__init__(
            instruction,
            provider,
            *options,
            defaults=defaults,
            hooks=hooks,
            response_model=output_model,
        )

    def _build_prompt(self, merged: ConvertInput[InT]) -> Prompt:
        constraints = [
            "Convert input data to match the exact output schema",
            "Preserve all relevant information during conversion",
            "Apply the specified transformation rules",
            "Ensure output is valid JSON matching the schema",
        ]
        if merged.rules:
            constraints.append(f"Conversion rules: {merged.rules}")
        return Prompt(
            task=f"Convert: {self.task}",
            input=serialize_data(merged.data),
            context=merged.context,
            response_schema=self.schema,
            constraints=constraints,
        )
