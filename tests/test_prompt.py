from synaptic.domain.errors import PromptValidationError
from synaptic.domain.models import Prompt


def test_render_orders_sections_and_numbers_lists() -> None:
    prompt = Prompt(
        task="Classify the ticket",
        input="My card was charged twice",
        context="Banking support",
        categories=["billing", "fraud"],
        examples={"billing": ["refund please"]},
        response_schema='{"type": "object"}',
        constraints=["primary: required", "confidence: 0.0 to 1.0"],
    )

    assert prompt.render() == (
        "Task: Classify the ticket\n\n"
        "Input: My card was charged twice\n\n"
        "Context: Banking support\n\n"
        "Categories:\n  1. billing\n  2. fraud\n\n"
        "Examples:\n  billing:\n    - refund please\n\n"
        'Return JSON:\n{"type": "object"}\n\n'
        "Constraints:\n- primary: required\n- confidence: 0.0 to 1.0"
    )


def test_render_skips_empty_sections() -> None:
    prompt = Prompt(task="Rank by urgency", items=["a", "b"], response_schema="{}")

    assert prompt.render() == "Task: Rank by urgency\n\nItems:\n  1. a\n  2. b\n\nReturn JSON:\n{}"


def test_ensure_complete_requires_task_and_schema() -> None:
    try:
        Prompt(task="  ", response_schema="").ensure_complete()
    except PromptValidationError as error:
        assert "task" in str(error)
        assert "schema" in str(error)
    else:
        raise AssertionError("Expected PromptValidationError for an empty prompt.")

    Prompt(task="Determine if x", response_schema="{}").ensure_complete()
