from __future__ import annotations

from collections import Counter

from synaptic.application.synapses.base import Synapse
from synaptic.domain.enums import SynapseKind
from synaptic.domain.errors import ResponseValidationError
from synaptic.domain.models import Prompt, RankingInput, RankingResponse
from synaptic.domain.temperature import DEFAULT_TEMPERATURE_ANALYTICAL


class RankingSynapse(Synapse[RankingInput, RankingResponse]):
    """Orders a list of items by the bound criteria.

    Without ``top_n`` the ranking must be a permutation of the input items;
    with ``top_n`` every ranked item must come from the input.
    """

    kind = SynapseKind.RANKING
    input_model = RankingInput
    response_model = RankingResponse
    primary_field = "ranked"
    baseline_temperature = DEFAULT_TEMPERATURE_ANALYTICAL

    def _build_prompt(self, merged: RankingInput) -> Prompt:
        if merged.top_n:
            constraints = [
                f"ranked: select top {merged.top_n} items only",
                "ranked: ordered highest to lowest",
            ]
        else:
            constraints = [
                "ranked: all items, ordered highest to lowest",
                "ranked: include every item exactly once",
            ]
        constraints.extend(["ranked: preserve exact item text", "confidence: 0.0 to 1.0"])
        return Prompt(
            task=f"Rank by {self.task}",
            context=merged.context,
            items=list(merged.items),
            examples={"rankings": list(merged.examples)} if merged.examples else {},
            response_schema=self.schema,
            constraints=constraints,
        )

    def _check(self, merged: RankingInput, response: RankingResponse) -> None:
        if not response.ranked:
            raise ResponseValidationError("ranking returned no items")

        known = set(merged.items)
        unknown = [item for item in response.ranked if item not in known]
        if unknown:
            raise ResponseValidationError(f"ranking contains items not in the input: {unknown}")
        if merged.top_n:
            if len(response.ranked) > merged.top_n:
                raise ResponseValidationError(
                    f"ranking returned {len(response.ranked)} items, expected at most {merged.top_n}"
                )
            return

        if len(response.ranked) != len(merged.items):
            raise ResponseValidationError(
                f"ranking returned {len(response.ranked)} items, expected {len(merged.items)}"
            )
        duplicates = sorted(item for item, count in Counter(response.ranked).items() if count > 1)
        if duplicates:
            raise ResponseValidationError(f"ranking repeats items: {duplicates}")
        missing = [item for item in merged.items if item not in set(response.ranked)]
        if missing:
            raise ResponseValidationError(f"ranking is missing items: {missing}")
