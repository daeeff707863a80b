"""The operation registry.

A ``Registry`` is built once from a set of source objects and never changes
afterwards. Building it reflects every source into a namespace, adds the
built-in ``opregistry.system`` namespace, then assembles (and optionally
overlays) the metadata document. Any failure aborts the whole build.

    registry = create_registry(Ledger(), Accounts(), title="bank")
    result = Dispatcher(registry).dispatch("Ledger:read", ["alice"])
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from opregistry.core.config import RegistryConfig
from opregistry.core.console import get_logger
from opregistry.core.namespace import NamespaceEntry, OperationSet, namespace_name
from opregistry.core.result import RegistrationError
from opregistry.metadata.assembler import build_document, check_parameter_counts, overlay
from opregistry.metadata.loader import load_metadata_file, parse_metadata
from opregistry.metadata.models import MetadataDocument

logger = get_logger(__name__)

SYSTEM_NAMESPACE = "opregistry.system"

SupplementarySource = MetadataDocument | Mapping[str, Any] | str | Path


class SystemOperations(OperationSet):
    """Built-in namespace exposing the registry's own metadata."""

    def __init__(self) -> None:
        self._metadata_json = ""

    def get_name(self) -> str:
        return SYSTEM_NAMESPACE

    def get_evaluate_operations(self) -> list[str]:
        return ["get_metadata"]

    def get_metadata(self) -> str:
        """Return the metadata document as JSON."""
        return self._metadata_json

    def _publish(self, metadata_json: str) -> None:
        self._metadata_json = metadata_json


@dataclass(frozen=True)
class ParameterSchemas:
    """Published names and schemas of one operation's parameters."""

    names: tuple[str, ...]
    schemas: tuple[dict[str, Any], ...]


class Registry:
    """Immutable namespace table plus its metadata document."""

    def __init__(
        self,
        namespaces: Mapping[str, NamespaceEntry],
        metadata: MetadataDocument,
        default_namespace: str | None = None,
    ) -> None:
        self._namespaces: Mapping[str, NamespaceEntry] = MappingProxyType(dict(namespaces))
        self._metadata = metadata
        self._metadata_json = metadata.to_json()
        self._components = MappingProxyType(metadata.components.as_schema_table())
        self._default_namespace = default_namespace
        self._parameters = MappingProxyType(self._collect_parameters())

    def _collect_parameters(self) -> dict[tuple[str, str], ParameterSchemas]:
        reflected = build_document(self._namespaces.values())
        collected: dict[tuple[str, str], ParameterSchemas] = {}
        for entry in self._namespaces.values():
            described = self._metadata.namespaces.get(entry.name)
            fallback = reflected.namespaces[entry.name]
            for name in entry.operations:
                meta = (described.get(name) if described else None) or fallback.get(name)
                params = (meta.parameters or []) if meta else []
                collected[(entry.name, name)] = ParameterSchemas(
                    names=tuple(param.name for param in params),
                    schemas=tuple(param.schema_ for param in params),
                )
        return collected

    @property
    def namespaces(self) -> Mapping[str, NamespaceEntry]:
        return self._namespaces

    @property
    def default_namespace(self) -> str | None:
        return self._default_namespace

    @property
    def title(self) -> str | None:
        return self._metadata.info.title

    @property
    def version(self) -> str | None:
        return self._metadata.info.version

    @property
    def metadata(self) -> MetadataDocument:
        return self._metadata

    @property
    def metadata_json(self) -> str:
        return self._metadata_json

    @property
    def components(self) -> Mapping[str, Any]:
        """Component schemas keyed by name, as plain JSON schema."""
        return self._components

    def parameter_schemas(self, namespace: str, operation: str) -> ParameterSchemas:
        return self._parameters.get((namespace, operation), ParameterSchemas((), ()))

    def get(self, namespace: str) -> NamespaceEntry | None:
        return self._namespaces.get(namespace)

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._namespaces

    def __iter__(self) -> Iterator[str]:
        return iter(self._namespaces)

    def __len__(self) -> int:
        return len(self._namespaces)

    def __repr__(self) -> str:
        return f"Registry(namespaces={list(self._namespaces)!r}, default={self._default_namespace!r})"


class RegistryBuilder:
    """Collects namespaces, then produces a ``Registry``.

    A builder is single-use: ``build()`` adds the system namespace.
    """

    def __init__(self) -> None:
        self._entries: dict[str, NamespaceEntry] = {}
        self._built = False

    @property
    def namespaces(self) -> Mapping[str, NamespaceEntry]:
        return MappingProxyType(self._entries)

    def add_namespace(self, source: object, excluded: Iterable[str] = ()) -> NamespaceEntry:
        """Reflect ``source`` and add it.

        Raises:
            RegistrationError: when the name is taken or the source cannot be
                described; the builder is left unchanged.
        """
        if self._built:
            raise RegistrationError("Registry has already been built")

        name = namespace_name(source)
        if name in self._entries:
            raise RegistrationError(
                f"Multiple namespaces being merged into registry with name {name}"
            )

        entry = NamespaceEntry.from_source(source, excluded)
        self._entries[entry.name] = entry
        logger.debug(
            "Added namespace %s (version %s, %d operations)",
            entry.name,
            entry.version,
            len(entry.operations),
        )
        return entry

    def build(
        self,
        *,
        title: str | None = None,
        version: str | None = None,
        default_namespace: str | None = None,
        supplementary: MetadataDocument | None = None,
    ) -> Registry:
        if default_namespace is not None and default_namespace not in self._entries:
            raise RegistrationError(
                f"Default namespace {default_namespace} is not registered",
                context={"namespace": default_namespace},
            )
        default = default_namespace or next(iter(self._entries), None)

        system = SystemOperations()
        self.add_namespace(system)
        self._built = True

        reflected = build_document(self._entries.values(), title=title, version=version)
        if supplementary is not None:
            check_parameter_counts(supplementary, self._entries.values())
        document = overlay(reflected, supplementary)
        system._publish(document.to_json())

        registry = Registry(self._entries, document, default_namespace=default)
        logger.info(
            "Registry ready: %d namespaces, default %s",
            len(self._entries),
            default or "<none>",
        )
        return registry


def _resolve_supplementary(source: SupplementarySource | None) -> MetadataDocument | None:
    if source is None or isinstance(source, MetadataDocument):
        return source
    if isinstance(source, (str, Path)):
        return load_metadata_file(Path(source))
    return parse_metadata(dict(source))


def create_registry(
    *sources: object,
    title: str | None = None,
    version: str | None = None,
    default_namespace: str | None = None,
    supplementary: SupplementarySource | None = None,
    config: RegistryConfig | None = None,
) -> Registry:
    """Build a registry from ``sources``.

    Explicit arguments win over values taken from ``config``.

    Raises:
        RegistrationError: the first problem found; no registry is returned.
    """
    if config is not None:
        title = title or config.title
        version = version or config.version
        default_namespace = default_namespace or config.default_namespace
        if supplementary is None and config.metadata_path is not None:
            supplementary = config.metadata_path

    builder = RegistryBuilder()
    for source in sources:
        builder.add_namespace(source)

    return builder.build(
        title=title,
        version=version,
        default_namespace=default_namespace,
        supplementary=_resolve_supplementary(supplementary),
    )


__all__ = [
    "ParameterSchemas",
    "Registry",
    "RegistryBuilder",
    "SYSTEM_NAMESPACE",
    "SystemOperations",
    "create_registry",
]
