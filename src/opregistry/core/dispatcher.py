"""Command dispatch against a built registry.

A command is ``"namespace:operation"`` or just ``"operation"`` (the
registry's default namespace). One dispatch runs, in order and against one
context instance:

    before hook -> operation (or unknown hook) -> after hook

A before-hook error stops the dispatch; an after-hook error replaces an
otherwise successful response.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from opregistry.core.console import get_logger
from opregistry.core.namespace import NamespaceEntry
from opregistry.core.operation import OperationDescriptor, Outcome
from opregistry.core.registry import Registry
from opregistry.core.result import DispatchError, Err, Ok, ResolutionError, Result

logger = get_logger(__name__)

SEPARATOR = ":"


def split_command(command: str, default_namespace: str | None) -> tuple[str, str]:
    """Split a command into ``(namespace, operation)``."""
    namespace, sep, operation = command.rpartition(SEPARATOR)
    if not sep:
        return default_namespace or "", operation
    return namespace, operation


class Dispatcher:
    """Resolves commands against one ``Registry`` and runs them."""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def resolve(self, command: str) -> tuple[NamespaceEntry, str, OperationDescriptor | None]:
        """Find the namespace and operation a command names.

        The operation is ``None`` when the namespace will route the call to
        its unknown hook.

        Raises:
            ResolutionError: the namespace or operation does not exist.
        """
        if not command:
            raise ResolutionError("No operation name passed")

        ns_name, op_name = split_command(command, self.registry.default_namespace)
        if not op_name:
            raise ResolutionError("No operation name passed")
        entry = self.registry.get(ns_name)
        if entry is None:
            raise ResolutionError(f"Contract not found with name {ns_name}")

        operation = entry.get(op_name)
        if operation is None and entry.unknown is None:
            raise ResolutionError(f"Function {op_name} not found in contract {ns_name}")
        return entry, op_name, operation

    def _run(self, command: str, args: Sequence[str], host: Any) -> str:
        entry, op_name, operation = self.resolve(command)

        ctx = entry.context_type()
        ctx.set_host(host)

        if entry.before is not None:
            logger.debug("Running before hook for %s:%s", entry.name, op_name)
            entry.before.run(ctx)

        outcome: Outcome
        if operation is not None:
            params = self.registry.parameter_schemas(entry.name, op_name)
            outcome = operation.call(
                ctx,
                args,
                schemas=params.schemas,
                components=dict(self.registry.components),
                names=params.names,
            )
        else:
            assert entry.unknown is not None
            logger.debug("Routing unknown operation %s to %s unknown hook", op_name, entry.name)
            outcome = entry.unknown.run(ctx)

        if entry.after is not None:
            logger.debug("Running after hook for %s:%s", entry.name, op_name)
            entry.after.run(ctx, outcome.value)

        return outcome.text

    def dispatch(
        self, command: str, args: Sequence[str] = (), host: Any = None
    ) -> Result[str, DispatchError]:
        """Run ``command`` with textual ``args``.

        Returns ``Ok(payload)`` or ``Err(error)``; exceptions other than
        ``DispatchError`` raised by operation bodies propagate.
        """
        try:
            return Ok(self._run(command, list(args), host))
        except DispatchError as exc:
            logger.debug("Dispatch of %r failed: %s", command, exc)
            return Err(exc)


__all__ = ["Dispatcher", "SEPARATOR", "split_command"]
