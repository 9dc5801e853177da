from __future__ import annotations

from synaptic.application.hooks import HookBus
from synaptic.application.pipeline import Option
from synaptic.application.ports import Provider
from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import ClassificationInput, ClassificationResponse, Prompt
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_CREATIVE


class ClassificationSynapse(Synapse[ClassificationInput, ClassificationResponse]):
    """Multi-class labelling over a fixed category list.

    ``fire`` returns the ``primary`` category. Example buckets are keyed by
    category label.
    """

    kind = SynapseKind.CLASSIFICATION
    input_model = ClassificationInput
    response_model = ClassificationResponse
    primary_field = "primary"
    baseline_temperature = DEFAULT_TEMPERATURE_CREATIVE

    def __init__(
        self,
        question: str,
        categories: list[str],
        provider: Provider,
        *options: Option,
        defaults: ClassificationInput | None = None,
        hooks: HookBus | None = None,
    ) -> None:
        if not categories:
            raise ValueError("ClassificationSynapse needs at least one category")
        self._categories = list(categories)
        super().__init__(question, provider, *options, defaults=defaults, hooks=hooks)

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    def _build_prompt(self, merged: ClassificationInput) -> Prompt:
        constraints = [
            "primary: required, from categories list",
            "secondary: optional, from categories list or empty string",
            "confidence: 0.0 to 1.0",
            "reasoning: ordered steps explaining classification",
            *merged.constraints,
        ]
        return Prompt(
            task=self.task,
            input=merged.subject,
            context=merged.context,
            categories=list(self._categories),
            examples={label: list(examples) for label, examples in merged.examples.items()},
            response_schema=self.schema,
            constraints=constraints,
        )
