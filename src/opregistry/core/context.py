"""Per-dispatch context objects.

A fresh context is created for every dispatch and passed to the before
hook, the operation and the after hook in turn, so they can share state.
The host collaborator (storage handle, request envelope, ...) is attached
with ``set_host`` before the first phase runs.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ContextInterface(Protocol):
    """What every namespace context type must provide."""

    def set_host(self, host: Any) -> None: ...


class OperationContext:
    """Default context: carries the host handle and nothing else."""

    def __init__(self) -> None:
        self._host: Any = None

    def set_host(self, host: Any) -> None:
        self._host = host

    def get_host(self) -> Any:
        return self._host


__all__ = ["ContextInterface", "OperationContext"]
