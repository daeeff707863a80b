"""Pydantic models for the metadata document.

Serialized with ``by_alias=True`` the models produce the published JSON
shape::

    {"info": {...}, "contracts": {name: {"info", "name", "transactions"}},
     "components": {"schemas": {name: {"properties", "required",
                                       "additionalProperties"}}}}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UNDEFINED_TITLE = "undefined"
LATEST_VERSION = "latest"


class _MetadataModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InfoMetadata(_MetadataModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str | None = None
    version: str | None = None

    def is_empty(self) -> bool:
        return not self.title and not self.version and not self.model_extra


class ParameterMetadata(_MetadataModel):
    name: str
    description: str | None = None
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")


class OperationMetadata(_MetadataModel):
    name: str
    tag: list[str] = Field(default_factory=list)
    parameters: list[ParameterMetadata] | None = None
    returns: dict[str, Any] | None = None

    def parameter_count(self) -> int:
        return len(self.parameters or [])


class NamespaceMetadata(_MetadataModel):
    info: InfoMetadata = Field(default_factory=InfoMetadata)
    name: str
    operations: list[OperationMetadata] = Field(default_factory=list, alias="transactions")

    def get(self, operation: str) -> OperationMetadata | None:
        for candidate in self.operations:
            if candidate.name == operation:
                return candidate
        return None


class ObjectMetadata(_MetadataModel):
    properties: dict[str, dict[str, Any]] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    additional_properties: bool = Field(default=False, alias="additionalProperties")


class ComponentMetadata(_MetadataModel):
    schemas: dict[str, ObjectMetadata] = Field(default_factory=dict)

    def as_schema_table(self) -> dict[str, Any]:
        """Plain JSON-schema view used for validation."""
        return {
            name: component.model_dump(by_alias=True, exclude_none=True)
            for name, component in self.schemas.items()
        }


class MetadataDocument(_MetadataModel):
    info: InfoMetadata = Field(default_factory=InfoMetadata)
    namespaces: dict[str, NamespaceMetadata] = Field(default_factory=dict, alias="contracts")
    components: ComponentMetadata = Field(default_factory=ComponentMetadata)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "ComponentMetadata",
    "InfoMetadata",
    "LATEST_VERSION",
    "MetadataDocument",
    "NamespaceMetadata",
    "ObjectMetadata",
    "OperationMetadata",
    "ParameterMetadata",
    "UNDEFINED_TITLE",
]
