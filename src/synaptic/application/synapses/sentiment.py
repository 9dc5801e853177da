from __future__ import annotations

from synaptic.application.hooks import HookBus
from synaptic.application.pipeline import Option
from synaptic.application.ports import Provider
from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SentimentLabel, SynapseKind
from synaptic.domain.errors import ResponseValidationError
from synaptic.domain.models import Prompt, SentimentInput, SentimentResponse
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_ANALYTICAL

_LABELS = {label.value for label in SentimentLabel}


class SentimentSynapse(Synapse[SentimentInput, SentimentResponse]):
    kind = SynapseKind.SENTIMENT
    input_model = SentimentInput
    response_model = SentimentResponse
    primary_field = "overall"
    baseline_temperature = DEFAULT_TEMPERATURE_ANALYTICAL

    def __init__(
        self,
        analysis_type: str,
        provider: Provider,
        *options: Option,
        defaults: SentimentInput | None = None,
        hooks: HookBus | None = None,
    ) -> None:
        super().__init__(analysis_type, provider, *options, defaults=defaults, hooks=hooks)

    def _build_prompt(self, merged: SentimentInput) -> Prompt:
        constraints = [
            "overall: positive, negative, neutral, or mixed only",
            "scores: sum to 1.0",
            "emotions: standard emotion categories",
            "confidence: 0.0 to 1.0",
        ]
        if merged.aspects:
            constraints.append("aspects: analyze each specified aspect")
        return Prompt(
            task=f"Analyze {self.task} sentiment",
            input=merged.text,
            context=merged.context,
            aspects=list(merged.aspects),
            response_schema=self.schema,
            constraints=constraints,
        )

    def _check(self, merged: SentimentInput, response: SentimentResponse) -> None:
        if response.overall not in _LABELS:
            raise ResponseValidationError(f"invalid overall sentiment: {response.overall!r}")
