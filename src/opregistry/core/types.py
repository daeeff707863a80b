"""Type descriptors derived from Python annotations.

Operations declare their parameter and return shapes with ordinary
annotations. ``describe()`` turns an annotation into a ``TypeDescriptor``
once, at registration time, so nothing is re-inspected per dispatch.

Sized numeric kinds are spelled with ``Annotated`` aliases exported from
this module (``int8`` ... ``uint64``, ``float32``). Their metadata is
``annotated_types`` grouped metadata, so pydantic enforces the same ranges
when the values sit inside composite (JSON) arguments.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import inspect
import types
import typing
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin

import annotated_types
from pydantic import BaseModel, TypeAdapter

FLOAT32_MAX = 3.4028234663852886e38


class Kind(str, Enum):
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"
    SLICE = "slice"
    MAP = "map"
    STRUCT = "struct"
    POINTER = "pointer"
    INTERFACE = "interface"
    ERROR = "error"
    ANY = "any"
    UNSUPPORTED = "unsupported"


BASIC_KINDS = frozenset({Kind.BOOL, Kind.INT, Kind.UINT, Kind.FLOAT, Kind.STRING, Kind.ANY})
COMPOSITE_KINDS = frozenset({Kind.ARRAY, Kind.SLICE, Kind.MAP, Kind.STRUCT, Kind.POINTER})
NILLABLE_KINDS = frozenset({Kind.POINTER, Kind.INTERFACE, Kind.MAP, Kind.SLICE, Kind.ANY})


# ---------------------------------------------------------------------------
# Annotation markers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntBits(annotated_types.GroupedMetadata):
    """Marks an ``int`` annotation with a bit width and signedness."""

    bits: int
    signed: bool = True
    label: str | None = None

    @property
    def name(self) -> str:
        if self.label:
            return self.label
        return f"{'int' if self.signed else 'uint'}{self.bits}"

    @property
    def minimum(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def maximum(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def __iter__(self) -> Iterator[object]:
        yield annotated_types.Ge(self.minimum)
        yield annotated_types.Le(self.maximum)


@dataclass(frozen=True)
class FloatBits(annotated_types.GroupedMetadata):
    """Marks a ``float`` annotation as single precision."""

    bits: int = 32

    @property
    def name(self) -> str:
        return f"float{self.bits}"

    def __iter__(self) -> Iterator[object]:
        if self.bits == 32:
            yield annotated_types.Ge(-FLOAT32_MAX)
            yield annotated_types.Le(FLOAT32_MAX)


@dataclass(frozen=True)
class FixedLength(annotated_types.GroupedMetadata):
    """Marks a ``list[T]`` annotation as a fixed-length array."""

    length: int

    def __iter__(self) -> Iterator[object]:
        yield annotated_types.Len(self.length, self.length)


int8 = Annotated[int, IntBits(8)]
int16 = Annotated[int, IntBits(16)]
int32 = Annotated[int, IntBits(32)]
int64 = Annotated[int, IntBits(64)]
uint = Annotated[int, IntBits(64, signed=False, label="uint")]
uint8 = Annotated[int, IntBits(8, signed=False)]
uint16 = Annotated[int, IntBits(16, signed=False)]
uint32 = Annotated[int, IntBits(32, signed=False)]
uint64 = Annotated[int, IntBits(64, signed=False)]
float32 = Annotated[float, FloatBits(32)]
float64 = float


def fixed_array(elem: Any, length: int) -> Any:
    """Return the annotation for a list of exactly ``length`` elements."""
    return Annotated[list[elem], FixedLength(length)]


BASIC_TYPE_NAMES: tuple[str, ...] = tuple(
    sorted(
        [
            "Any",
            "bool",
            "float",
            "float32",
            "int",
            "int8",
            "int16",
            "int32",
            "int64",
            "str",
            "uint",
            "uint8",
            "uint16",
            "uint32",
            "uint64",
        ]
    )
)


def comma_sentence(items: typing.Sequence[str]) -> str:
    """Join items as an English list: ``a, b and c``."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} and {items[-1]}"


def list_basic_types() -> str:
    return comma_sentence(BASIC_TYPE_NAMES)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldDescriptor:
    """One annotated attribute of a model or dataclass."""

    name: str
    json_name: str
    annotation: Any
    input_key: str = ""
    required: bool = True

    @property
    def exported(self) -> bool:
        return not self.name.startswith("_")

    @cached_property
    def type(self) -> TypeDescriptor:
        return describe(self.annotation)


@dataclass(frozen=True, eq=False)
class TypeDescriptor:
    """Structural description of one annotation."""

    kind: Kind
    name: str
    annotation: Any
    py_type: Any = None
    bits: int = 0
    signed: bool = True
    length: int | None = None
    elem: TypeDescriptor | None = None
    key: TypeDescriptor | None = None

    @property
    def nillable(self) -> bool:
        return self.kind in NILLABLE_KINDS

    @property
    def composite(self) -> bool:
        return self.kind in COMPOSITE_KINDS

    @property
    def struct(self) -> TypeDescriptor | None:
        """The struct descriptor for struct and pointer-to-struct kinds."""
        if self.kind is Kind.STRUCT:
            return self
        if self.kind is Kind.POINTER:
            return self.elem
        return None

    @cached_property
    def fields(self) -> tuple[FieldDescriptor, ...]:
        """Every annotated attribute in declaration order, exported or not."""
        if self.kind is not Kind.STRUCT:
            return ()
        return tuple(_struct_fields(self.py_type))

    @cached_property
    def adapter(self) -> TypeAdapter[Any]:
        """Pydantic adapter used to decode JSON text into this shape."""
        return TypeAdapter(self.annotation)

    def exported_fields(self) -> Iterator[FieldDescriptor]:
        """Yield fields up to, not including, the first non-exported one."""
        for field in self.fields:
            if not field.exported:
                return
            yield field

    def hidden_fields(self) -> tuple[FieldDescriptor, ...]:
        """Fields from the first non-exported one onwards."""
        return self.fields[len(tuple(self.exported_fields())) :]

    def __repr__(self) -> str:
        return f"TypeDescriptor({self.kind.value}, {self.name!r})"


def type_name(annotation: Any) -> str:
    """Human readable name for an annotation."""
    if annotation is inspect.Parameter.empty:
        return "<missing>"
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, type) and get_origin(annotation) is None:
        return annotation.__name__
    return describe(annotation).name


def is_protocol(annotation: Any) -> bool:
    return (
        isinstance(annotation, type)
        and bool(getattr(annotation, "_is_protocol", False))
        and annotation is not typing.Protocol
    )


def _is_struct_class(annotation: Any) -> bool:
    if not isinstance(annotation, type):
        return False
    if issubclass(annotation, BaseModel):
        return True
    return dataclasses.is_dataclass(annotation)


def _is_union(origin: Any) -> bool:
    return origin is Union or origin is types.UnionType


_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def describe(annotation: Any) -> TypeDescriptor:
    """Derive the descriptor for ``annotation``."""
    if annotation is Any or annotation is object:
        return TypeDescriptor(Kind.ANY, "Any", annotation)

    origin = get_origin(annotation)

    if origin is Annotated:
        return _describe_annotated(annotation)

    if annotation is bool:
        return TypeDescriptor(Kind.BOOL, "bool", annotation, py_type=bool)
    if annotation is int:
        return TypeDescriptor(Kind.INT, "int", annotation, py_type=int, bits=64)
    if annotation is float:
        return TypeDescriptor(Kind.FLOAT, "float", annotation, py_type=float, bits=64)
    if annotation is str:
        return TypeDescriptor(Kind.STRING, "str", annotation, py_type=str)

    if annotation in (list, collections.abc.Sequence) or origin in _SEQUENCE_ORIGINS:
        args = get_args(annotation)
        elem = describe(args[0] if args else Any)
        return TypeDescriptor(Kind.SLICE, f"list[{elem.name}]", annotation, py_type=list, elem=elem)

    if annotation in (dict, collections.abc.Mapping) or origin in _MAPPING_ORIGINS:
        args = get_args(annotation)
        key = describe(args[0] if args else str)
        elem = describe(args[1] if len(args) > 1 else Any)
        return TypeDescriptor(
            Kind.MAP, f"dict[{key.name}, {elem.name}]", annotation, py_type=dict, key=key, elem=elem
        )

    if _is_union(origin):
        return _describe_optional(annotation)

    if isinstance(annotation, type):
        if issubclass(annotation, BaseException):
            return TypeDescriptor(Kind.ERROR, annotation.__name__, annotation, py_type=annotation)
        if is_protocol(annotation):
            return TypeDescriptor(Kind.INTERFACE, annotation.__name__, annotation, py_type=annotation)
        if _is_struct_class(annotation):
            return TypeDescriptor(Kind.STRUCT, annotation.__name__, annotation, py_type=annotation)
        return TypeDescriptor(Kind.UNSUPPORTED, annotation.__name__, annotation, py_type=annotation)

    return TypeDescriptor(Kind.UNSUPPORTED, _fallback_name(annotation), annotation)


def _fallback_name(annotation: Any) -> str:
    return repr(annotation).replace("typing.", "")


def _describe_annotated(annotation: Any) -> TypeDescriptor:
    base, *metadata = get_args(annotation)
    for marker in metadata:
        if isinstance(marker, IntBits) and base is int:
            kind = Kind.INT if marker.signed else Kind.UINT
            return TypeDescriptor(
                kind, marker.name, annotation, py_type=int, bits=marker.bits, signed=marker.signed
            )
        if isinstance(marker, FloatBits) and base is float:
            return TypeDescriptor(Kind.FLOAT, marker.name, annotation, py_type=float, bits=marker.bits)
        if isinstance(marker, FixedLength):
            inner = describe(base)
            if inner.kind is not Kind.SLICE or inner.elem is None:
                return TypeDescriptor(Kind.UNSUPPORTED, _fallback_name(annotation), annotation)
            return TypeDescriptor(
                Kind.ARRAY,
                f"array[{inner.elem.name}, {marker.length}]",
                annotation,
                py_type=list,
                length=marker.length,
                elem=inner.elem,
            )
    described = describe(base)
    return dataclasses.replace(described, annotation=annotation)


def _describe_optional(annotation: Any) -> TypeDescriptor:
    args = get_args(annotation)
    members = [arg for arg in args if arg is not type(None)]
    if len(members) == 1 and len(args) == 2:
        inner = describe(members[0])
        if inner.kind is Kind.STRUCT:
            return TypeDescriptor(
                Kind.POINTER, f"{inner.name} | None", annotation, py_type=inner.py_type, elem=inner
            )
        if inner.kind is Kind.ERROR:
            return dataclasses.replace(inner, annotation=annotation)
        return TypeDescriptor(Kind.UNSUPPORTED, f"{inner.name} | None", annotation)
    names = " | ".join(type_name(arg) for arg in args)
    return TypeDescriptor(Kind.UNSUPPORTED, names, annotation)


# ---------------------------------------------------------------------------
# Struct fields
# ---------------------------------------------------------------------------


def _struct_bases(cls: type) -> list[type]:
    bases: list[type] = []
    for klass in reversed(cls.__mro__):
        if klass is object or klass is BaseModel:
            continue
        if klass.__module__.startswith("pydantic"):
            continue
        bases.append(klass)
    return bases


def _is_classvar(annotation: Any) -> bool:
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def _field_names(cls: type, name: str) -> tuple[str, str]:
    """JSON name written on output and key accepted on input."""
    if issubclass(cls, BaseModel):
        info = cls.model_fields.get(name)
        if info is None:
            return name, name
        validation = info.validation_alias if isinstance(info.validation_alias, str) else None
        return info.serialization_alias or info.alias or name, validation or info.alias or name
    for field in dataclasses.fields(cls):
        if field.name == name:
            alias = field.metadata.get("alias")
            # pydantic reads the same metadata key as the validation alias
            return (alias, alias) if isinstance(alias, str) else (name, name)
    return name, name


def _field_required(cls: type, name: str) -> bool:
    """Whether decoding needs a value for the field."""
    if issubclass(cls, BaseModel):
        info = cls.model_fields.get(name)
        # private attributes are never validated
        return info is not None and info.is_required()
    for field in dataclasses.fields(cls):
        if field.name == name:
            return (
                field.init
                and field.default is dataclasses.MISSING
                and field.default_factory is dataclasses.MISSING
            )
    return False


def _struct_fields(cls: type) -> Iterator[FieldDescriptor]:
    annotations: dict[str, Any] = {}
    for klass in _struct_bases(cls):
        for name, annotation in inspect.get_annotations(klass, eval_str=True).items():
            if _is_classvar(annotation):
                continue
            annotations[name] = annotation

    for name, annotation in annotations.items():
        json_name, input_key = _field_names(cls, name) if not name.startswith("_") else (name, name)
        yield FieldDescriptor(
            name=name,
            json_name=json_name,
            annotation=annotation,
            input_key=input_key,
            required=_field_required(cls, name),
        )


__all__ = [
    "BASIC_TYPE_NAMES",
    "FixedLength",
    "FieldDescriptor",
    "FloatBits",
    "IntBits",
    "Kind",
    "TypeDescriptor",
    "comma_sentence",
    "describe",
    "fixed_array",
    "float32",
    "float64",
    "int8",
    "int16",
    "int32",
    "int64",
    "is_protocol",
    "list_basic_types",
    "type_name",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
]
