from __future__ import annotations

from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import Prompt, TransformInput, TransformResponse
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_CREATIVE


class TransformSynapse(Synapse[TransformInput, TransformResponse]):
    """Text-to-text rewriting; ``fire`` returns the transformed ``output``."""

    kind = SynapseKind.TRANSFORM
    input_model = TransformInput
    response_model = TransformResponse
    primary_field = "output"
    baseline_temperature = DEFAULT_TEMPERATURE_CREATIVE

    def _build_prompt(self, merged: TransformInput) -> Prompt:
        examples: dict[str, list[str]] = {}
        if merged.examples:
            examples = {
                "Input": list(merged.examples.keys()),
                "Output": list(merged.examples.values()),
            }
        constraints = [
            "output: the transformed text",
            "confidence: 0.0 to 1.0",
            "changes: list of key transformations made",
            "reasoning: explanation of transformation approach",
        ]
        if merged.style:
            constraints.append(f"style: {merged.style}")
        if merged.max_length:
            constraints.append(f"maximum length: {merged.max_length} characters")
        return Prompt(
            task=f"Transform: {self.task}",
            input=merged.text,
            context=merged.context,
            examples=examples,
            response_schema=self.schema,
            constraints=constraints,
        )
