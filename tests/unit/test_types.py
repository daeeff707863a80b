"""Tests for core/types.py - annotation descriptors."""

from __future__ import annotations

from typing import Annotated, Any

import annotated_types
import pytest
from pydantic import TypeAdapter, ValidationError

from opregistry.core.types import (
    BASIC_TYPE_NAMES,
    FixedLength,
    IntBits,
    Kind,
    comma_sentence,
    describe,
    fixed_array,
    float32,
    int8,
    int32,
    list_basic_types,
    type_name,
    uint,
    uint16,
)
from tests.mocks.sample_sets import Asset, Host, Partial, Point


class TestScalarDescriptors:
    @pytest.mark.parametrize(
        ("annotation", "kind", "name", "bits"),
        [
            (bool, Kind.BOOL, "bool", 0),
            (int, Kind.INT, "int", 64),
            (int8, Kind.INT, "int8", 8),
            (int32, Kind.INT, "int32", 32),
            (uint, Kind.UINT, "uint", 64),
            (uint16, Kind.UINT, "uint16", 16),
            (float, Kind.FLOAT, "float", 64),
            (float32, Kind.FLOAT, "float32", 32),
            (str, Kind.STRING, "str", 0),
            (Any, Kind.ANY, "Any", 0),
        ],
    )
    def test_basic_kinds(self, annotation: Any, kind: Kind, name: str, bits: int) -> None:
        desc = describe(annotation)
        assert desc.kind is kind
        assert desc.name == name
        assert desc.bits == bits

    def test_unsigned_flag(self) -> None:
        assert describe(uint16).signed is False
        assert describe(int8).signed is True

    def test_unknown_class_is_unsupported(self) -> None:
        assert describe(complex).kind is Kind.UNSUPPORTED
        assert describe(complex).name == "complex"

    def test_exception_is_error_kind(self) -> None:
        assert describe(ValueError).kind is Kind.ERROR
        assert describe(ValueError | None).kind is Kind.ERROR


class TestCompositeDescriptors:
    def test_list(self) -> None:
        desc = describe(list[int32])
        assert desc.kind is Kind.SLICE
        assert desc.elem is not None and desc.elem.name == "int32"
        assert desc.nillable

    def test_fixed_array(self) -> None:
        desc = describe(fixed_array(str, 4))
        assert desc.kind is Kind.ARRAY
        assert desc.length == 4
        assert desc.name == "array[str, 4]"
        assert not desc.nillable

    def test_map(self) -> None:
        desc = describe(dict[str, bool])
        assert desc.kind is Kind.MAP
        assert desc.key is not None and desc.key.kind is Kind.STRING
        assert desc.elem is not None and desc.elem.kind is Kind.BOOL

    def test_model_is_struct(self) -> None:
        desc = describe(Asset)
        assert desc.kind is Kind.STRUCT
        assert desc.struct is desc
        assert [field.name for field in desc.fields] == ["ID", "Value"]

    def test_optional_model_is_pointer(self) -> None:
        desc = describe(Asset | None)
        assert desc.kind is Kind.POINTER
        assert desc.nillable
        assert desc.struct is not None and desc.struct.py_type is Asset

    def test_optional_scalar_is_unsupported(self) -> None:
        assert describe(int | None).kind is Kind.UNSUPPORTED

    def test_protocol_is_interface(self) -> None:
        assert describe(Host).kind is Kind.INTERFACE


class TestFields:
    def test_exported_fields_stop_at_first_private(self) -> None:
        desc = describe(Partial)
        assert [field.name for field in desc.fields] == ["Exported1", "_unexported", "Exported2"]
        assert [field.name for field in desc.exported_fields()] == ["Exported1"]
        assert [field.required for field in desc.fields] == [True, False, False]
        assert [field.name for field in desc.hidden_fields()] == ["_unexported", "Exported2"]

    def test_dataclass_alias(self) -> None:
        fields = describe(Point).fields
        assert [(field.name, field.json_name) for field in fields] == [("x", "X"), ("y", "Y")]

    def test_model_alias(self) -> None:
        from pydantic import BaseModel, Field

        class Renamed(BaseModel):
            owner_id: str = Field(alias="OwnerID")

        (field,) = describe(Renamed).fields
        assert field.json_name == "OwnerID"
        assert field.input_key == "OwnerID"


class TestMarkers:
    def test_int_bits_range(self) -> None:
        marker = IntBits(8)
        assert (marker.minimum, marker.maximum) == (-128, 127)
        unsigned = IntBits(8, signed=False)
        assert (unsigned.minimum, unsigned.maximum) == (0, 255)

    def test_markers_expand_for_pydantic(self) -> None:
        assert list(FixedLength(2)) == [annotated_types.Len(2, 2)]
        adapter = TypeAdapter(int8)
        assert adapter.validate_python(127) == 127
        with pytest.raises(ValidationError):
            adapter.validate_python(128)

    def test_fixed_length_enforced_by_pydantic(self) -> None:
        adapter = TypeAdapter(Annotated[list[int], FixedLength(2)])
        with pytest.raises(ValidationError):
            adapter.validate_python([1, 2, 3])


class TestNames:
    def test_comma_sentence(self) -> None:
        assert comma_sentence([]) == ""
        assert comma_sentence(["a"]) == "a"
        assert comma_sentence(["a", "b", "c"]) == "a, b and c"

    def test_basic_type_listing_is_sorted(self) -> None:
        assert list(BASIC_TYPE_NAMES) == sorted(BASIC_TYPE_NAMES)
        assert list_basic_types().endswith("and uint8")

    def test_type_name(self) -> None:
        assert type_name(None) == "None"
        assert type_name(str) == "str"
        assert type_name(list[int]) == "list[int]"
