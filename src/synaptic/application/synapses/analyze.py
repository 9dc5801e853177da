from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic_core import PydanticSerializationError, to_json

from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import AnalyzeInput, AnalyzeResponse, Prompt
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_ANALYTICAL

DataT = TypeVar("DataT")


def serialize_data(data: Any) -> str:
    """Render structured input as indented JSON for the prompt."""

    try:
        return to_json(data, indent=2).decode()
    except PydanticSerializationError:
        return repr(data)


class AnalyzeSynapse(Synapse[AnalyzeInput[DataT], AnalyzeResponse], Generic[DataT]):
    """Structured data in, analysis text out; ``fire`` returns ``analysis``."""

    kind = SynapseKind.ANALYZE
    input_model = AnalyzeInput
    response_model = AnalyzeResponse
    primary_field = "analysis"
    baseline_temperature = DEFAULT_TEMPERATURE_ANALYTICAL

    def _build_prompt(self, merged: AnalyzeInput[DataT]) -> Prompt:
        constraints = [
            "analysis: comprehensive text analysis of the input data",
            "confidence: 0.0 to 1.0",
            "findings: list of key findings or issues discovered",
            "reasoning: explanation of analysis methodology",
        ]
        if merged.focus:
            constraints.append(f"focus: {merged.focus}")
        return Prompt(
            task=f"Analyze: {self.task}",
            input=serialize_data(merged.data),
            context=merged.context,
            response_schema=self.schema,
            constraints=constraints,
        )
