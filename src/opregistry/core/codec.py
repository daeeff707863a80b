"""Text conversion for operation arguments and results.

Every parameter and return value crosses the dispatch boundary as text.
Scalars use strict textual forms; composites (arrays, lists, maps, models)
use JSON decoded by pydantic in strict mode. Decoded values can further be
checked against the JSON schema published for the parameter.
"""

from __future__ import annotations

import dataclasses
import math
import re
from typing import Any

import pydantic_core
from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError, ValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from referencing.exceptions import Unresolvable

from opregistry.core.result import ArgumentError
from opregistry.core.types import FLOAT32_MAX, Kind, TypeDescriptor

_TRUE_TEXT = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TEXT = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_SIGNED_RE = re.compile(r"^[+-]?[0-9]+$")
_UNSIGNED_RE = re.compile(r"^[0-9]+$")
_FLOAT_RE = re.compile(
    r"^[+-]?(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)$",
    re.IGNORECASE,
)
_NON_FINITE_RE = re.compile(r"^[+-]?(?:inf|infinity|nan)$", re.IGNORECASE)


def _cannot_convert(text: str, desc: TypeDescriptor) -> ArgumentError:
    return ArgumentError(f"Conversion error. Cannot convert passed value {text} to {desc.name}")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _decode_bool(text: str, desc: TypeDescriptor) -> bool:
    if text in _TRUE_TEXT:
        return True
    if text in _FALSE_TEXT:
        return False
    raise _cannot_convert(text, desc)


def _decode_int(text: str, desc: TypeDescriptor) -> int:
    pattern = _SIGNED_RE if desc.kind is Kind.INT else _UNSIGNED_RE
    if not pattern.match(text):
        raise _cannot_convert(text, desc)
    value = int(text)
    bits = desc.bits or 64
    if desc.kind is Kind.INT:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        raise _cannot_convert(text, desc)
    return value


def _decode_float(text: str, desc: TypeDescriptor) -> float:
    if not _FLOAT_RE.match(text):
        raise _cannot_convert(text, desc)
    value = float(text)
    if math.isfinite(value):
        if desc.bits == 32 and abs(value) > FLOAT32_MAX:
            raise _cannot_convert(text, desc)
    elif not _NON_FINITE_RE.match(text):
        # overflowed double precision
        raise _cannot_convert(text, desc)
    return value


def _rename_keys(desc: TypeDescriptor, data: Any) -> Any:
    """Map published JSON names back to the keys the model accepts."""
    kind = desc.kind
    if kind in (Kind.STRUCT, Kind.POINTER):
        struct = desc.struct
        if struct is None or not isinstance(data, dict):
            return data
        by_json = {field.json_name: field for field in struct.fields if field.exported}
        renamed: dict[str, Any] = {}
        for key, value in data.items():
            field = by_json.get(key)
            if field is None:
                renamed[key] = value
            else:
                renamed[field.input_key or field.name] = _rename_keys(field.type, value)
        return renamed
    if kind in (Kind.ARRAY, Kind.SLICE) and isinstance(data, list) and desc.elem is not None:
        return [_rename_keys(desc.elem, item) for item in data]
    if kind is Kind.MAP and isinstance(data, dict) and desc.elem is not None:
        return {key: _rename_keys(desc.elem, value) for key, value in data.items()}
    return data


def _decode_composite(text: str, desc: TypeDescriptor) -> Any:
    try:
        data = pydantic_core.from_json(text)
        renamed = _rename_keys(desc, data)
        payload = text if renamed == data else pydantic_core.to_json(renamed)
        return desc.adapter.validate_json(payload, strict=True)
    except (ValueError, PydanticValidationError) as exc:
        raise ArgumentError(
            f"Conversion error. Value {text} was not passed in expected format {desc.name}"
        ) from exc


def decode(desc: TypeDescriptor, text: str) -> Any:
    """Convert argument text into a value of the described type.

    Raises:
        ArgumentError: when the text does not parse as ``desc``.
    """
    kind = desc.kind
    if desc.composite:
        return _decode_composite(text, desc)
    if kind is Kind.BOOL:
        return _decode_bool(text, desc)
    if kind in (Kind.INT, Kind.UINT):
        return _decode_int(text, desc)
    if kind is Kind.FLOAT:
        return _decode_float(text, desc)
    if kind in (Kind.STRING, Kind.ANY):
        return text
    raise ArgumentError(f"Conversion error. Type {desc.name} cannot be decoded from text")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _is_composite_value(value: Any) -> bool:
    if isinstance(value, (list, tuple, dict, BaseModel)):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def to_plain(value: Any, desc: TypeDescriptor) -> Any:
    """Reduce ``value`` to JSON-compatible builtins using published field names."""
    if value is None:
        return None
    kind = desc.kind
    if kind in (Kind.STRUCT, Kind.POINTER) and desc.struct is not None:
        struct = desc.struct
        if isinstance(value, dict):
            return value
        return {
            field.json_name: to_plain(getattr(value, field.name, None), field.type)
            for field in struct.fields
            if field.exported
        }
    if kind in (Kind.ARRAY, Kind.SLICE) and desc.elem is not None:
        return [to_plain(item, desc.elem) for item in value]
    if kind is Kind.MAP and desc.elem is not None:
        return {str(key): to_plain(item, desc.elem) for key, item in value.items()}
    if kind is Kind.ANY and _is_composite_value(value):
        return pydantic_core.to_jsonable_python(value, by_alias=True)
    return value


def encode(value: Any, desc: TypeDescriptor) -> str:
    """Render a returned value as response text."""
    if value is None and desc.nillable:
        return ""
    if desc.composite or (desc.kind is Kind.ANY and _is_composite_value(value)):
        return pydantic_core.to_json(to_plain(value, desc)).decode("utf-8")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


# ---------------------------------------------------------------------------
# Schema validation
# ---------------------------------------------------------------------------


def _error_path(error: ValidationError) -> str:
    parts = [str(part) for part in error.absolute_path]
    return ".".join(parts) if parts else "(root)"


def format_schema_errors(errors: list[ValidationError]) -> str:
    ordered = sorted(errors, key=lambda err: [str(part) for part in err.absolute_path])
    return "\n".join(
        f"{index}. {_error_path(error)}: {error.message}" for index, error in enumerate(ordered, 1)
    )


def compile_schema(schema: dict[str, Any], components: dict[str, Any]) -> Draft7Validator:
    """Build a validator for one parameter schema plus the shared component table.

    Raises:
        ArgumentError: when the combined document is not a valid schema.
    """
    document = {"components": {"schemas": components}, "properties": {"prop": schema}}
    try:
        Draft7Validator.check_schema(document)
    except SchemaError as exc:
        raise ArgumentError(f"Invalid schema for parameter: {exc.message}") from exc
    return Draft7Validator(document)


def validate_against(value: Any, schema: dict[str, Any], components: dict[str, Any]) -> None:
    """Check a plain value against ``schema``, reporting every violation.

    Raises:
        ArgumentError: listing each violation, numbered from 1.
    """
    validator = compile_schema(schema, components)
    try:
        errors = list(validator.iter_errors({"prop": value}))
    except Unresolvable as exc:
        raise ArgumentError(f"Invalid schema for parameter: {exc}") from exc
    if errors:
        raise ArgumentError(
            f"Value passed for parameter did not match schema:\n{format_schema_errors(errors)}"
        )


def schema_input(desc: TypeDescriptor, text: str, value: Any) -> Any:
    """The plain value schema validation sees for a decoded argument.

    Models are checked as the raw JSON object that was passed, so unknown
    keys are reported rather than dropped.
    """
    if desc.kind in (Kind.STRUCT, Kind.POINTER):
        return pydantic_core.from_json(text)
    return pydantic_core.to_jsonable_python(to_plain(value, desc))


__all__ = [
    "compile_schema",
    "decode",
    "encode",
    "format_schema_errors",
    "schema_input",
    "to_plain",
    "validate_against",
]
