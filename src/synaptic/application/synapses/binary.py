from __future__ import annotations

from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import BinaryInput, BinaryResponse, Prompt
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_DETERMINISTIC


class BinarySynapse(Synapse[BinaryInput, BinaryResponse]):
    """Yes/no decisions: ``fire`` returns the boolean ``decision``."""

    kind = SynapseKind.BINARY
    input_model = BinaryInput
    response_model = BinaryResponse
    primary_field = "decision"
    baseline_temperature = DEFAULT_TEMPERATURE_DETERMINISTIC

    def _build_prompt(self, merged: BinaryInput) -> Prompt:
        constraints = [
            "decision: true or false only",
            "confidence: 0.0 to 1.0",
            "reasoning: ordered steps explaining decision",
        ]
        constraints.extend(f"evaluate: {criterion}" for criterion in merged.criteria)
        constraints.extend(merged.constraints)
        return Prompt(
            task=f"Determine if {self.task}",
            input=merged.subject,
            context=merged.context,
            examples={"examples": list(merged.examples)} if merged.examples else {},
            response_schema=self.schema,
            constraints=constraints,
        )
