"""Metadata document models, schema generation and loading."""

from opregistry.metadata.assembler import build_document, check_parameter_counts, overlay
from opregistry.metadata.loader import default_metadata_path, load_metadata_file, parse_metadata
from opregistry.metadata.models import (
    ComponentMetadata,
    InfoMetadata,
    MetadataDocument,
    NamespaceMetadata,
    ObjectMetadata,
    OperationMetadata,
    ParameterMetadata,
)
from opregistry.metadata.schema import build_schema

__all__ = [
    "ComponentMetadata",
    "InfoMetadata",
    "MetadataDocument",
    "NamespaceMetadata",
    "ObjectMetadata",
    "OperationMetadata",
    "ParameterMetadata",
    "build_document",
    "build_schema",
    "check_parameter_counts",
    "default_metadata_path",
    "load_metadata_file",
    "overlay",
    "parse_metadata",
]
