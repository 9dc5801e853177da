import json

import pytest
from pydantic import BaseModel

from synaptic.application.synapses.analyze import AnalyzeSynapse
from synaptic.application.synapses.binary import BinarySynapse
from synaptic.application.synapses.classification import ClassificationSynapse
from synaptic.application.synapses.convert import ConvertSynapse
from synaptic.application.synapses.extraction import ExtractionSynapse
from synaptic.application.synapses.ranking import RankingSynapse
from synaptic.application.synapses.sentiment import SentimentSynapse
from synaptic.application.synapses.transform import TransformSynapse
from synaptic.domain.errors import SchemaGenerationError
from synaptic.domain.models import (
    AnalyzeInput,
    BinaryInput,
    ClassificationInput,
    ConvertInput,
    ExtractionInput,
    RankingInput,
    SentimentInput,
    TransformInput,
)
from synaptic.infrastructure.mock_provider import MockProvider

BINARY_RESPONSE = json.dumps({"decision": False, "confidence": 0.8, "reasoning": ["no @ sign"]})


class Contact(BaseModel):
    name: str
    email: str | None = None


class LegacyUser(BaseModel):
    full_name: str
    mail: str


def _last_prompt(provider: MockProvider) -> str:
    return provider.calls[-1].messages[-1].content


def test_binary_prompt_lists_shape_directives_then_caller_constraints() -> None:
    synapse = BinarySynapse("the text is an email address", MockProvider())

    prompt = synapse.build_prompt(
        BinaryInput(
            subject="hello",
            criteria=["contains @"],
            constraints=["ignore whitespace"],
            examples=["a@b.c"],
        )
    )

    assert prompt.task == "Determine if the text is an email address"
    assert prompt.input == "hello"
    assert prompt.constraints == [
        "decision: true or false only",
        "confidence: 0.0 to 1.0",
        "reasoning: ordered steps explaining decision",
        "evaluate: contains @",
        "ignore whitespace",
    ]
    assert prompt.examples == {"examples": ["a@b.c"]}
    assert prompt.response_schema == synapse.schema


def test_defaults_merge_scalars_and_append_lists() -> None:
    synapse = BinarySynapse(
        "valid",
        MockProvider(),
        defaults=BinaryInput(context="A", criteria=["c1"]),
    )

    inherited = synapse.build_prompt(BinaryInput(subject="x"))
    overridden = synapse.build_prompt(BinaryInput(subject="x", context="B", criteria=["c2"]))

    assert inherited.context == "A"
    assert overridden.context == "B"
    assert overridden.constraints[-2:] == ["evaluate: c1", "evaluate: c2"]
    assert synapse.defaults == BinaryInput(context="A", criteria=["c1"])


def test_classification_examples_merge_per_label() -> None:
    synapse = ClassificationSynapse(
        "What kind of ticket is this?",
        ["billing", "bug"],
        MockProvider(),
        defaults=ClassificationInput(examples={"billing": ["refund"]}),
    )

    prompt = synapse.build_prompt(
        ClassificationInput(subject="app crashes", examples={"billing": ["invoice"], "bug": ["crash"]})
    )

    assert prompt.task == "What kind of ticket is this?"
    assert prompt.categories == ["billing", "bug"]
    assert prompt.examples == {"billing": ["refund", "invoice"], "bug": ["crash"]}
    assert prompt.constraints[0] == "primary: required, from categories list"


@pytest.mark.parametrize(
    ("call_temperature", "default_temperature", "expected"),
    [
        (0.7, 0.5, 0.7),
        (None, 0.5, 0.5),
        (None, None, 0.1),
        (0.0, 0.5, 0.0),
        (None, 0.0, 0.0),
    ],
)
def test_temperature_precedence(
    call_temperature: float | None,
    default_temperature: float | None,
    expected: float,
) -> None:
    provider = MockProvider(responses=[BINARY_RESPONSE])
    synapse = BinarySynapse("valid", provider, defaults=BinaryInput(temperature=default_temperature))

    synapse.fire_with_input(BinaryInput(subject="x", temperature=call_temperature))

    assert provider.calls[0].temperature == expected


@pytest.mark.parametrize(
    ("synapse_factory", "baseline"),
    [
        (lambda provider: BinarySynapse("x", provider), 0.1),
        (lambda provider: ExtractionSynapse("contacts", Contact, provider), 0.1),
        (lambda provider: ConvertSynapse("users", Contact, provider), 0.1),
        (lambda provider: SentimentSynapse("customer", provider), 0.2),
        (lambda provider: RankingSynapse("urgency", provider), 0.2),
        (lambda provider: AnalyzeSynapse("logs", provider), 0.2),
        (lambda provider: ClassificationSynapse("kind?", ["a"], provider), 0.3),
        (lambda provider: TransformSynapse("shorten", provider), 0.3),
    ],
)
def test_kind_baseline_temperatures(synapse_factory, baseline: float) -> None:
    synapse = synapse_factory(MockProvider())

    assert synapse.resolve_temperature(synapse.input_model()) == baseline


def test_four_call_shapes_project_the_same_response() -> None:
    provider = MockProvider(responses=[BINARY_RESPONSE])
    synapse = BinarySynapse("valid", provider)

    assert synapse.fire("x") is False
    assert synapse.fire_with_details("x").reasoning == ["no @ sign"]
    assert synapse.fire_with_input(BinaryInput(subject="x")) is False
    assert synapse.fire_with_input_details(BinaryInput(subject="x")).confidence == 0.8
    assert len({call.messages[-1].content for call in provider.calls}) == 1


def test_ranking_prompt_depends_on_top_n() -> None:
    synapse = RankingSynapse("urgency", MockProvider())

    everything = synapse.build_prompt(RankingInput(items=["a", "b"]))
    top = synapse.build_prompt(RankingInput(items=["a", "b", "c"], top_n=2))

    assert everything.task == "Rank by urgency"
    assert everything.items == ["a", "b"]
    assert everything.constraints[:2] == [
        "ranked: all items, ordered highest to lowest",
        "ranked: include every item exactly once",
    ]
    assert top.constraints[0] == "ranked: select top 2 items only"
    assert top.constraints[-2:] == ["ranked: preserve exact item text", "confidence: 0.0 to 1.0"]


def test_sentiment_prompt_adds_aspects() -> None:
    synapse = SentimentSynapse("customer", MockProvider())

    prompt = synapse.build_prompt(SentimentInput(text="Great food, slow service", aspects=["food", "service"]))

    assert prompt.task == "Analyze customer sentiment"
    assert prompt.aspects == ["food", "service"]
    assert prompt.constraints[-1] == "aspects: analyze each specified aspect"


def test_extraction_returns_caller_model_and_splits_examples() -> None:
    provider = MockProvider(responses=[json.dumps({"name": "Ada", "email": None})])
    synapse = ExtractionSynapse("contact details", Contact, provider)

    prompt = synapse.build_prompt(ExtractionInput(text="Ada here", examples=["name: Bob\nemail: b@x.io"]))
    contact = synapse.fire("Ada here")

    assert prompt.task == "Extract contact details"
    assert prompt.examples == {"examples": ["name: Bob", "email: b@x.io"]}
    assert prompt.constraints[0] == "extract only contact details"
    assert contact == Contact(name="Ada")
    assert synapse.fire_with_details("Ada here") == contact


def test_transform_prompt_pairs_examples_and_limits() -> None:
    synapse = TransformSynapse("make it formal", MockProvider())

    prompt = synapse.build_prompt(
        TransformInput(text="hey", style="business", max_length=40, examples={"yo": "Hello"})
    )

    assert prompt.task == "Transform: make it formal"
    assert prompt.examples == {"Input": ["yo"], "Output": ["Hello"]}
    assert prompt.constraints[-2:] == ["style: business", "maximum length: 40 characters"]


def test_transform_returns_output_field() -> None:
    response = json.dumps({"output": "Hello.", "confidence": 0.9, "changes": ["formal"], "reasoning": ["tone"]})
    synapse = TransformSynapse("make it formal", MockProvider(responses=[response]))

    assert synapse.fire("hey") == "Hello."


def test_analyze_serializes_structured_data() -> None:
    response = json.dumps({"analysis": "Two errors", "confidence": 0.7, "findings": ["spike"], "reasoning": []})
    provider = MockProvider(responses=[response])
    synapse = AnalyzeSynapse("error log", provider)

    analysis = synapse.fire_with_input(AnalyzeInput(data={"errors": 2}, focus="spikes"))

    assert analysis == "Two errors"
    assert "Input: {\n  \"errors\": 2\n}" in _last_prompt(provider)
    assert "- focus: spikes" in _last_prompt(provider)


def test_convert_maps_input_model_to_output_model() -> None:
    provider = MockProvider(responses=[json.dumps({"name": "Ada Lovelace", "email": "ada@example.com"})])
    synapse = ConvertSynapse("legacy user to contact", Contact, provider)

    prompt = synapse.build_prompt(
        ConvertInput(data=LegacyUser(full_name="Ada Lovelace", mail="ada@example.com"), rules="mail -> email")
    )
    contact = synapse.fire(LegacyUser(full_name="Ada Lovelace", mail="ada@example.com"))

    assert prompt.task == "Convert: legacy user to contact"
    assert '"full_name": "Ada Lovelace"' in prompt.input
    assert prompt.constraints[-1] == "Conversion rules: mail -> email"
    assert contact.email == "ada@example.com"


def test_construction_fails_for_unreflectable_result_type() -> None:
    with pytest.raises(SchemaGenerationError):
        ExtractionSynapse("things", dict, MockProvider())  # type: ignore[arg-type]


def test_classification_requires_categories() -> None:
    with pytest.raises(ValueError):
        ClassificationSynapse("kind?", [], MockProvider())
