"""JSON schema generation for type descriptors.

Models and dataclasses are emitted once into the shared component table
and referenced everywhere else with ``$ref``.
"""

from __future__ import annotations

from typing import Any

from opregistry.core.result import RegistrationError
from opregistry.core.types import Kind, TypeDescriptor
from opregistry.metadata.models import ObjectMetadata

COMPONENT_PREFIX = "#/components/schemas/"

_INT_FORMATS = {32: "int32", 64: "int64"}


def _integer_schema(desc: TypeDescriptor) -> dict[str, Any]:
    bits = desc.bits or 64
    schema: dict[str, Any] = {"type": "integer"}
    if desc.kind is Kind.INT:
        if bits in _INT_FORMATS:
            schema["format"] = _INT_FORMATS[bits]
        schema["minimum"] = -(1 << (bits - 1))
        schema["maximum"] = (1 << (bits - 1)) - 1
    else:
        schema["minimum"] = 0
        schema["maximum"] = (1 << bits) - 1
    return schema


def _primitive_schema(desc: TypeDescriptor) -> dict[str, Any] | None:
    kind = desc.kind
    if kind is Kind.BOOL:
        return {"type": "boolean"}
    if kind is Kind.STRING:
        return {"type": "string"}
    if kind in (Kind.INT, Kind.UINT):
        return _integer_schema(desc)
    if kind is Kind.FLOAT:
        return {"type": "number", "format": "float" if desc.bits == 32 else "double"}
    if kind is Kind.ANY:
        return {}
    return None


def _add_component(struct: TypeDescriptor, components: dict[str, ObjectMetadata]) -> str:
    name = struct.py_type.__name__
    if name in components:
        return name

    component = ObjectMetadata(properties={}, required=[], additional_properties=False)
    # registered before the fields so self-referencing models terminate
    components[name] = component
    for field in struct.exported_fields():
        component.properties[field.json_name] = build_schema(field.type, components)
        component.required.append(field.json_name)
    return name


def build_schema(desc: TypeDescriptor, components: dict[str, ObjectMetadata]) -> dict[str, Any]:
    """Return the schema for ``desc``, registering models in ``components``.

    Raises:
        RegistrationError: for kinds that have no schema.
    """
    primitive = _primitive_schema(desc)
    if primitive is not None:
        return primitive

    kind = desc.kind
    if kind is Kind.ARRAY:
        if not desc.length or desc.length < 1:
            raise RegistrationError("Arrays must have length greater than 0")
        assert desc.elem is not None
        return {"type": "array", "items": build_schema(desc.elem, components)}
    if kind is Kind.SLICE:
        assert desc.elem is not None
        return {"type": "array", "items": build_schema(desc.elem, components)}
    if kind is Kind.MAP:
        assert desc.elem is not None
        return {"type": "object", "additionalProperties": build_schema(desc.elem, components)}
    if kind in (Kind.STRUCT, Kind.POINTER) and desc.struct is not None:
        return {"$ref": COMPONENT_PREFIX + _add_component(desc.struct, components)}

    raise RegistrationError(f"{desc.name} was not a valid type")


__all__ = ["COMPONENT_PREFIX", "build_schema"]
