"""Source objects and the namespaces built from them.

Any object can be registered. Its public methods become operations; the
optional capabilities below customise the namespace. ``OperationSet``
implements all of them with ``get_``/``set_`` pairs, and every public
method of ``OperationSet`` itself is excluded from the operation list.

    class Ledger(OperationSet):
        def get_evaluate_operations(self) -> list[str]:
            return ["read"]

        def read(self, ctx: OperationContext, key: str) -> str: ...
        def write(self, ctx: OperationContext, key: str, value: str) -> None: ...
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from opregistry.core.console import get_logger
from opregistry.core.context import ContextInterface, OperationContext
from opregistry.core.operation import CallType, HookDescriptor, HookKind, OperationDescriptor
from opregistry.core.result import RegistrationError
from opregistry.core.validation import check_protocol

logger = get_logger(__name__)

DEFAULT_VERSION = "latest"


class OperationSet:
    """Base class for objects whose methods are exposed as operations.

    Subclasses may override the getters or call the setters; both are
    read once, when the object is registered.
    """

    _name: str = ""
    _version: str = ""
    _before_hook: Callable[..., Any] | None = None
    _after_hook: Callable[..., Any] | None = None
    _unknown_hook: Callable[..., Any] | None = None
    _context_type: type | None = None

    def get_name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        self._name = name

    def get_version(self) -> str:
        return self._version

    def set_version(self, version: str) -> None:
        self._version = version

    def get_before_hook(self) -> Callable[..., Any] | None:
        return self._before_hook

    def set_before_hook(self, hook: Callable[..., Any] | None) -> None:
        self._before_hook = hook

    def get_after_hook(self) -> Callable[..., Any] | None:
        return self._after_hook

    def set_after_hook(self, hook: Callable[..., Any] | None) -> None:
        self._after_hook = hook

    def get_unknown_hook(self) -> Callable[..., Any] | None:
        return self._unknown_hook

    def set_unknown_hook(self, hook: Callable[..., Any] | None) -> None:
        self._unknown_hook = hook

    def get_context_type(self) -> type | None:
        return self._context_type

    def set_context_type(self, context_type: type | None) -> None:
        self._context_type = context_type

    def get_ignored_operations(self) -> list[str]:
        return []

    def get_evaluate_operations(self) -> list[str]:
        return []


def framework_excludes() -> frozenset[str]:
    """Names of the ``OperationSet`` capability methods."""
    return frozenset(
        name
        for name, value in vars(OperationSet).items()
        if not name.startswith("_") and callable(value)
    )


def _capability(source: object, name: str, default: Any = None) -> Any:
    getter = getattr(source, name, None)
    if not callable(getter):
        return default
    value = getter()
    return default if value is None else value


def namespace_name(source: object) -> str:
    """Declared namespace name, or the source's type name."""
    return _capability(source, "get_name", "") or type(source).__name__


def _public_methods(
    source: object, excluded: Collection[str]
) -> list[tuple[str, Callable[..., Any]]]:
    methods: list[tuple[str, Callable[..., Any]]] = []
    for name in sorted(dir(source)):
        if name.startswith("_") or name in excluded:
            continue
        raw = inspect.getattr_static(source, name)
        if isinstance(raw, property):
            continue
        member = getattr(source, name)
        if inspect.isclass(member) or not callable(member):
            continue
        methods.append((name, member))
    return methods


@dataclass(frozen=True, eq=False)
class NamespaceEntry:
    """One registered namespace: operations, hooks and context type."""

    name: str
    version: str
    operations: Mapping[str, OperationDescriptor]
    context_type: type = OperationContext
    before: HookDescriptor | None = None
    after: HookDescriptor | None = None
    unknown: HookDescriptor | None = None
    source: object | None = field(default=None, repr=False)

    def get(self, operation: str) -> OperationDescriptor | None:
        return self.operations.get(operation)

    def __contains__(self, operation: object) -> bool:
        return operation in self.operations

    def operation_names(self) -> list[str]:
        return list(self.operations)

    @classmethod
    def from_source(cls, source: object, excluded: Iterable[str] = ()) -> NamespaceEntry:
        """Reflect ``source`` into a namespace.

        Raises:
            RegistrationError: on the first operation or hook that cannot be
                described. Nothing is kept from a failed source.
        """
        name = namespace_name(source)
        version = _capability(source, "get_version", "") or DEFAULT_VERSION
        context_type = _capability(source, "get_context_type", OperationContext)

        if not isinstance(context_type, type):
            raise RegistrationError(
                f"Context type for namespace {name} must be a class",
                context={"namespace": name},
            )
        try:
            check_protocol(context_type, ContextInterface)
        except RegistrationError as exc:
            raise RegistrationError(
                f"Context type {context_type.__name__} for namespace {name} is not valid. {exc}",
                context={"namespace": name},
            ) from exc

        skip = set(excluded) | set(framework_excludes())
        skip.update(_capability(source, "get_ignored_operations", []))
        evaluate = set(_capability(source, "get_evaluate_operations", []))

        operations: dict[str, OperationDescriptor] = {}
        for op_name, method in _public_methods(source, skip):
            call_type = CallType.EVALUATE if op_name in evaluate else CallType.SUBMIT
            operations[op_name] = OperationDescriptor.from_callable(
                method, call_type, context_type, name=op_name, namespace=name
            )
            logger.debug("Registered %s:%s (%s)", name, op_name, call_type.value)

        hooks: dict[HookKind, HookDescriptor | None] = {}
        for kind in HookKind:
            hook = _capability(source, f"get_{kind.value}_hook")
            hooks[kind] = (
                HookDescriptor.from_hook(hook, kind, context_type, namespace=name)
                if hook is not None
                else None
            )

        return cls(
            name=name,
            version=version,
            operations=MappingProxyType(operations),
            context_type=context_type,
            before=hooks[HookKind.BEFORE],
            after=hooks[HookKind.AFTER],
            unknown=hooks[HookKind.UNKNOWN],
            source=source,
        )


__all__ = [
    "DEFAULT_VERSION",
    "NamespaceEntry",
    "OperationSet",
    "framework_excludes",
    "namespace_name",
]
