from __future__ import annotations

import json
import types
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel

from synaptic.domain.errors import SchemaGenerationError

JSON_TYPE_OBJECT = "object"
JSON_TYPE_STRING = "string"
JSON_TYPE_INTEGER = "integer"
JSON_TYPE_NUMBER = "number"
JSON_TYPE_BOOLEAN = "boolean"
JSON_TYPE_ARRAY = "array"

_UNION_ORIGINS = {Union, types.UnionType}


@dataclass(frozen=True)
class FieldDescriptor:
    attribute: str
    name: str
    input_key: str
    annotation: Any
    optional: bool
    skip: bool
    description: str | None = None


@lru_cache(maxsize=None)
def describe_fields(model: type[BaseModel]) -> tuple[FieldDescriptor, ...]:
    """Reflect a pydantic model into field descriptors in declaration order.

    The logical name comes from the serialization alias, then the alias, then
    the lower-cased attribute name. A field is optional when it declares a
    default, and skipped when it is declared with ``exclude=True``. A skipped
    field must have a default, since it never appears in a response.
    """

    if not isinstance(model, type) or not issubclass(model, BaseModel):
        raise SchemaGenerationError(f"cannot generate a schema for {model!r}: not a pydantic model")
    if not model.__pydantic_complete__:
        try:
            model.model_rebuild(raise_errors=True)
        except Exception as error:
            raise SchemaGenerationError(
                f"cannot generate a schema for {model.__name__}: {error}"
            ) from error

    descriptors: list[FieldDescriptor] = []
    for attribute, field in model.model_fields.items():
        name = field.serialization_alias or field.alias or attribute.lower()
        skip = bool(field.exclude)
        if skip and field.is_required():
            raise SchemaGenerationError(
                f"cannot generate a schema for {model.__name__}: excluded field {attribute!r} has no default"
            )
        validation_alias = field.validation_alias if isinstance(field.validation_alias, str) else None
        descriptors.append(
            FieldDescriptor(
                attribute=attribute,
                name=name,
                input_key=validation_alias or field.alias or attribute,
                annotation=field.annotation,
                optional=not field.is_required(),
                skip=skip,
                description=field.description,
            )
        )
    return tuple(descriptors)


def build_schema(model: type[BaseModel]) -> dict[str, Any]:
    return _object_schema(model, visiting=())


def generate_schema(model: type[BaseModel]) -> str:
    """Return the canonical JSON text of the schema for ``model``.

    Keys are sorted so repeated generations are byte-identical; ``required``
    keeps field declaration order.
    """

    schema = build_schema(model)
    try:
        return json.dumps(schema, indent=2, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as error:
        raise SchemaGenerationError(f"failed to serialize schema for {model.__name__}: {error}") from error


def to_validation_payload(model: type[BaseModel], payload: Any) -> Any:
    """Rename keys from schema names to the names ``model`` validates by.

    Nested models, arrays and maps are walked the same way the schema is
    built. Keys that match no field are passed through for pydantic to reject.
    """

    if not isinstance(payload, dict):
        return payload
    by_name = {descriptor.name: descriptor for descriptor in describe_fields(model) if not descriptor.skip}
    renamed: dict[str, Any] = {}
    for key, value in payload.items():
        descriptor = by_name.get(key)
        if descriptor is None:
            renamed[key] = value
        else:
            renamed[descriptor.input_key] = _to_validation_value(descriptor.annotation, value)
    return renamed


def _to_validation_value(annotation: Any, value: Any) -> Any:
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return _to_validation_value(args[0], value)

    if origin in _UNION_ORIGINS:
        concrete = [arg for arg in args if arg is not type(None)]
        if len(concrete) == 1:
            return _to_validation_value(concrete[0], value)
        return value

    if origin is not None and isinstance(origin, type):
        if issubclass(origin, Mapping) and isinstance(value, dict) and len(args) == 2:
            return {key: _to_validation_value(args[1], item) for key, item in value.items()}
        if issubclass(origin, (Sequence, Set)) and not issubclass(origin, (str, bytes)) and isinstance(value, list):
            item_type = args[0] if args else Any
            return [_to_validation_value(item_type, item) for item in value]
        return value

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return to_validation_payload(annotation, value)
    return value


def _object_schema(model: type[BaseModel], *, visiting: tuple[type, ...]) -> dict[str, Any]:
    if model in visiting:
        # Self-referencing models stop at an open object.
        return {"type": JSON_TYPE_OBJECT}

    properties: dict[str, Any] = {}
    required: list[str] = []
    for descriptor in describe_fields(model):
        if descriptor.skip:
            continue
        field_schema = _type_schema(descriptor.annotation, visiting=(*visiting, model))
        if descriptor.description:
            field_schema["description"] = descriptor.description
        properties[descriptor.name] = field_schema
        if not descriptor.optional:
            required.append(descriptor.name)

    schema: dict[str, Any] = {
        "type": JSON_TYPE_OBJECT,
        "properties": properties,
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return schema


def _type_schema(annotation: Any, *, visiting: tuple[type, ...]) -> dict[str, Any]:
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return _type_schema(args[0], visiting=visiting)

    if origin in _UNION_ORIGINS:
        concrete = [arg for arg in args if arg is not type(None)]
        if len(concrete) == 1:
            return _type_schema(concrete[0], visiting=visiting)
        return {"type": JSON_TYPE_OBJECT}

    if origin is Literal:
        values = [value.value if isinstance(value, Enum) else value for value in args]
        schema = _scalar_schema(type(values[0])) if values else {"type": JSON_TYPE_OBJECT}
        schema["enum"] = values
        return schema

    if origin is not None and isinstance(origin, type):
        if issubclass(origin, Mapping):
            value_type = args[1] if len(args) == 2 else Any
            return {
                "type": JSON_TYPE_OBJECT,
                "additionalProperties": _type_schema(value_type, visiting=visiting),
            }
        if issubclass(origin, (Sequence, Set)) and not issubclass(origin, (str, bytes)):
            item_type = args[0] if args else Any
            return {
                "type": JSON_TYPE_ARRAY,
                "items": _type_schema(item_type, visiting=visiting),
            }
        return {"type": JSON_TYPE_OBJECT}

    if isinstance(annotation, type):
        if issubclass(annotation, BaseModel):
            return _object_schema(annotation, visiting=visiting)
        if issubclass(annotation, Enum):
            values = [member.value for member in annotation]
            schema = _scalar_schema(type(values[0])) if values else {"type": JSON_TYPE_STRING}
            schema["enum"] = values
            return schema
        if issubclass(annotation, Mapping):
            return {"type": JSON_TYPE_OBJECT, "additionalProperties": {"type": JSON_TYPE_OBJECT}}
        if issubclass(annotation, (list, tuple, set, frozenset)):
            return {"type": JSON_TYPE_ARRAY, "items": {"type": JSON_TYPE_OBJECT}}
        return _scalar_schema(annotation)

    return {"type": JSON_TYPE_OBJECT}


def _scalar_schema(python_type: type) -> dict[str, Any]:
    # bool must be checked before int.
    if issubclass(python_type, bool):
        return {"type": JSON_TYPE_BOOLEAN}
    if issubclass(python_type, int):
        return {"type": JSON_TYPE_INTEGER}
    if issubclass(python_type, (float, Decimal)):
        return {"type": JSON_TYPE_NUMBER}
    if issubclass(python_type, str):
        return {"type": JSON_TYPE_STRING}
    return {"type": JSON_TYPE_OBJECT}
