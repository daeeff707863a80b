"""Build the metadata document describing a set of namespaces."""

from __future__ import annotations

from collections.abc import Iterable

from opregistry.core.console import get_logger
from opregistry.core.namespace import NamespaceEntry
from opregistry.core.operation import OperationDescriptor
from opregistry.core.result import MetadataError
from opregistry.metadata.models import (
    LATEST_VERSION,
    UNDEFINED_TITLE,
    ComponentMetadata,
    InfoMetadata,
    MetadataDocument,
    NamespaceMetadata,
    ObjectMetadata,
    OperationMetadata,
    ParameterMetadata,
)
from opregistry.metadata.schema import build_schema

logger = get_logger(__name__)


def operation_metadata(
    operation: OperationDescriptor, components: dict[str, ObjectMetadata]
) -> OperationMetadata:
    parameters = [
        ParameterMetadata(name=f"param{index}", schema_=build_schema(param.type, components))
        for index, param in enumerate(operation.parameters)
    ]
    returns = operation.returns
    return OperationMetadata(
        name=operation.name,
        tag=[operation.call_type.value],
        parameters=parameters or None,
        returns=build_schema(returns, components) if returns is not None else None,
    )


def namespace_metadata(
    entry: NamespaceEntry, components: dict[str, ObjectMetadata]
) -> NamespaceMetadata:
    return NamespaceMetadata(
        info=InfoMetadata(title=entry.name, version=entry.version),
        name=entry.name,
        operations=[operation_metadata(op, components) for op in entry.operations.values()],
    )


def build_document(
    namespaces: Iterable[NamespaceEntry],
    title: str | None = None,
    version: str | None = None,
) -> MetadataDocument:
    """Reflect ``namespaces`` into a metadata document.

    Namespaces are listed by name; operations keep registration order.
    """
    components: dict[str, ObjectMetadata] = {}
    reflected: dict[str, NamespaceMetadata] = {}
    for entry in sorted(namespaces, key=lambda item: item.name):
        reflected[entry.name] = namespace_metadata(entry, components)

    return MetadataDocument(
        info=InfoMetadata(title=title or UNDEFINED_TITLE, version=version or LATEST_VERSION),
        namespaces=reflected,
        components=ComponentMetadata(schemas=dict(sorted(components.items()))),
    )


def overlay(reflected: MetadataDocument, supplied: MetadataDocument | None) -> MetadataDocument:
    """Replace reflected sections with the supplied ones that are non-empty.

    Each section is taken whole from one document or the other; nothing is
    merged per namespace or per operation.
    """
    if supplied is None:
        return reflected

    info = reflected.info
    if supplied.info.title or supplied.info.version:
        info = InfoMetadata(
            **{
                **reflected.info.model_dump(exclude_none=True),
                **supplied.info.model_dump(exclude_none=True),
            }
        )

    namespaces = supplied.namespaces if supplied.namespaces else reflected.namespaces
    components = supplied.components if supplied.components.schemas else reflected.components
    if supplied.namespaces:
        logger.debug("Using supplied metadata for %d namespaces", len(supplied.namespaces))

    return MetadataDocument(info=info, namespaces=namespaces, components=components)


def check_parameter_counts(
    document: MetadataDocument, namespaces: Iterable[NamespaceEntry]
) -> None:
    """Ensure every described operation declares as many parameters as it takes.

    Raises:
        MetadataError: naming the first operation whose counts differ.
    """
    for entry in namespaces:
        described = document.namespaces.get(entry.name)
        if described is None:
            continue
        for operation in entry.operations.values():
            meta = described.get(operation.name)
            if meta is None:
                continue
            expected = len(operation.parameters)
            received = meta.parameter_count()
            if expected != received:
                raise MetadataError(
                    "Incorrect number of params in supplementary metadata. "
                    f"Expected {expected}, received {received}",
                    context={"namespace": entry.name, "operation": operation.name},
                )


__all__ = ["build_document", "check_parameter_counts", "operation_metadata", "overlay"]
