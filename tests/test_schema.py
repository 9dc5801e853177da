import json
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from synaptic.application.schema import build_schema, describe_fields, generate_schema, to_validation_payload
from synaptic.application.synapses.extraction import ExtractionSynapse
from synaptic.domain.errors import SchemaGenerationError
from synaptic.domain.models import BinaryResponse, StrictModel
from synaptic.infrastructure.mock_provider import MockProvider


class Address(BaseModel):
    street: str
    city: str
    zip_code: str = ""


class Customer(BaseModel):
    name: str
    tags: list[str]
    address: Address


class Directory(BaseModel):
    offices: dict[str, Address]


class Priority(Enum):
    LOW = "low"
    HIGH = "high"


class Ticket(BaseModel):
    Title: str
    internal_note: str = Field(default="", exclude=True)
    summary: str = Field(default="", serialization_alias="abstract", description="one sentence")
    priority: Priority
    channel: Literal["email", "chat"]
    score: float | None = None
    is_open: bool
    count: int
    scores_by_day: dict[str, list[int]] = Field(default_factory=dict)


class Node(BaseModel):
    value: int
    children: list["Node"] = Field(default_factory=list)


def test_nested_array_and_object_fields_are_described() -> None:
    schema = build_schema(Customer)

    assert schema["type"] == "object"
    assert schema["additionalProperties"] is False
    assert schema["required"] == ["name", "tags", "address"]
    assert schema["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}
    address = schema["properties"]["address"]
    assert address["type"] == "object"
    assert set(address["properties"]) == {"street", "city", "zip_code"}
    assert address["required"] == ["street", "city"]


def test_map_of_records_uses_value_schema_as_additional_properties() -> None:
    schema = build_schema(Directory)

    offices = schema["properties"]["offices"]
    assert offices["type"] == "object"
    assert offices["additionalProperties"]["type"] == "object"
    assert set(offices["additionalProperties"]["properties"]) == {"street", "city", "zip_code"}


def test_field_metadata_controls_names_optionality_and_skipping() -> None:
    schema = build_schema(Ticket)
    properties = schema["properties"]

    assert "title" in properties
    assert "Title" not in properties
    assert "internal_note" not in properties
    assert properties["abstract"] == {"type": "string", "description": "one sentence"}
    assert "abstract" not in schema["required"]
    assert "score" not in schema["required"]
    assert schema["required"] == ["title", "priority", "channel", "is_open", "count"]


def test_scalar_enum_and_literal_types_map_to_json_types() -> None:
    properties = build_schema(Ticket)["properties"]

    assert properties["priority"] == {"type": "string", "enum": ["low", "high"]}
    assert properties["channel"] == {"type": "string", "enum": ["email", "chat"]}
    assert properties["score"] == {"type": "number"}
    assert properties["is_open"] == {"type": "boolean"}
    assert properties["count"] == {"type": "integer"}
    assert properties["scores_by_day"] == {
        "type": "object",
        "additionalProperties": {"type": "array", "items": {"type": "integer"}},
    }


def test_unknown_scalar_types_fall_back_to_object() -> None:
    class Opaque:
        pass

    class Holder(BaseModel):
        model_config = {"arbitrary_types_allowed": True}

        payload: Opaque

    assert build_schema(Holder)["properties"]["payload"] == {"type": "object"}


def test_self_referencing_model_terminates() -> None:
    schema = build_schema(Node)

    assert schema["properties"]["children"] == {"type": "array", "items": {"type": "object"}}


def test_generation_is_deterministic_and_canonical() -> None:
    first = generate_schema(Customer)
    second = generate_schema(Customer)

    assert first == second
    assert json.loads(first) == build_schema(Customer)
    assert first == json.dumps(json.loads(first), indent=2, sort_keys=True)


class Record(StrictModel):
    Name: str
    Count: int


class Line(StrictModel):
    Sku: str
    unit_price: float = Field(serialization_alias="unitPrice")


class Invoice(StrictModel):
    Number: str
    full_name: str = Field(serialization_alias="fullName")
    lines: list[Line]
    by_region: dict[str, Line] = Field(default_factory=dict)
    billing: Line | None = None


def test_round_trip_decodes_a_payload_that_follows_the_schema() -> None:
    provider = MockProvider(responses=[json.dumps({"name": "x", "count": 3})])
    synapse = ExtractionSynapse("record", Record, provider)

    record = synapse.fire("some text")

    assert set(json.loads(synapse.schema)["properties"]) == {"name", "count"}
    assert record == Record(Name="x", Count=3)


def test_aliased_and_nested_fields_decode_under_their_schema_names() -> None:
    payload = {
        "number": "INV-7",
        "fullName": "Ada Lovelace",
        "lines": [{"sku": "A1", "unitPrice": 2.5}],
        "by_region": {"eu": {"sku": "B2", "unitPrice": 1.0}},
        "billing": {"sku": "C3", "unitPrice": 0.5},
    }
    schema = build_schema(Invoice)
    synapse = ExtractionSynapse("invoice", Invoice, MockProvider(responses=[json.dumps(payload)]))

    invoice = synapse.fire("invoice text")

    assert set(schema["properties"]) == {"number", "fullName", "lines", "by_region", "billing"}
    assert set(schema["properties"]["lines"]["items"]["properties"]) == {"sku", "unitPrice"}
    assert invoice.Number == "INV-7"
    assert invoice.full_name == "Ada Lovelace"
    assert invoice.lines == [Line(Sku="A1", unit_price=2.5)]
    assert invoice.by_region["eu"].Sku == "B2"
    assert invoice.billing is not None and invoice.billing.unit_price == 0.5


def test_unknown_keys_pass_through_for_validation_to_reject() -> None:
    renamed = to_validation_payload(Record, {"name": "x", "count": 3, "extra": True})

    assert renamed == {"Name": "x", "Count": 3, "extra": True}


def test_excluded_field_without_default_is_rejected() -> None:
    class Skipped(StrictModel):
        keep: str
        secret: str = Field(exclude=True)

    try:
        ExtractionSynapse("skipped", Skipped, MockProvider())
    except SchemaGenerationError as error:
        assert "secret" in str(error)
    else:
        raise AssertionError("Expected SchemaGenerationError for a required excluded field.")

def test_response_models_describe_their_fields() -> None:
    names = [descriptor.name for descriptor in describe_fields(BinaryResponse)]

    assert names == ["decision", "confidence", "reasoning"]
    assert describe_fields(BinaryResponse) is describe_fields(BinaryResponse)


def test_non_model_types_are_rejected() -> None:
    try:
        generate_schema(dict)  # type: ignore[arg-type]
    except SchemaGenerationError as error:
        assert "not a pydantic model" in str(error)
    else:
        raise AssertionError("Expected SchemaGenerationError for a non-model type.")
