from __future__ import annotations

# Binary decisions, extraction and conversion.
DEFAULT_TEMPERATURE_DETERMINISTIC = 0.1
# Sentiment, ranking and data analysis.
DEFAULT_TEMPERATURE_ANALYTICAL = 0.2
# Classification and free-text transformation.
DEFAULT_TEMPERATURE_CREATIVE = 0.3


def resolve_temperature(
    call_value: float | None,
    default_value: float | None,
    baseline: float,
) -> float:
    """Pick the call value, then the synapse default, then the kind baseline.

    ``None`` means "not set"; 0.0 is an explicit, fully deterministic request.
    """

    if call_value is not None:
        return call_value
    if default_value is not None:
        return default_value
    return baseline
