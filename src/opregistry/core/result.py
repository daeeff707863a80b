"""
Result types and error hierarchy for opregistry.

This module provides:
1. Result[T, E] type for explicit error handling
2. The registration/dispatch exception hierarchy
3. Helper functions for Result operations

Operations may declare a value-plus-error return by annotating
``-> Result[T, E]`` and returning ``Ok(value)`` or ``Err(error)``:

    from opregistry import Err, Ok, OperationError, Result

    def transfer(self, amount: int) -> Result[str, OperationError]:
        if amount <= 0:
            return Err(OperationError("amount must be positive"))
        return Ok("done")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class OpRegistryError(Exception):
    """Base exception for all opregistry errors.

    All custom exceptions inherit from this class so hosts can catch
    everything the registry raises with a single clause.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigError(OpRegistryError):
    """Raised when configuration cannot be loaded or validated."""


class RegistrationError(OpRegistryError):
    """Raised while building a registry.

    Examples:
    - Two source objects resolve to the same namespace name
    - An operation declares a parameter or return type that cannot be serialized
    - A hook has an unsupported signature
    - The namespace context does not satisfy a protocol used by an operation
    """


class MetadataError(RegistrationError):
    """Raised when a supplementary metadata document cannot be used."""


class DispatchError(OpRegistryError):
    """Base class for every failure a dispatch can report."""


class ResolutionError(DispatchError):
    """Raised when a command names an unknown namespace or operation."""


class ArgumentError(DispatchError):
    """Raised when textual arguments cannot be converted or validated.

    Examples:
    - Fewer arguments than the operation declares
    - Text that does not parse as the parameter type
    - A decoded value that violates the parameter schema
    """


class InvocationError(DispatchError):
    """Carries the error an operation or hook declared as its outcome."""


class OperationError(InvocationError):
    """Raised (or returned in ``Err``) by operation bodies to report failure."""


class ResponseShapeError(DispatchError):
    """Raised when a callable returns values that disagree with its signature."""


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def try_result(fn: Callable[[], T], error_type: type[E] = OpRegistryError) -> Result[T, E]:
    """Execute a function and wrap the result in Ok/Err.

    Args:
        fn: Function to execute
        error_type: Exception type to catch (default: OpRegistryError)

    Returns:
        Ok(value) on success, Err(exception) on failure
    """
    try:
        return Ok(fn())
    except error_type as exc:
        return Err(exc)


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "OpRegistryError",
    "ConfigError",
    "RegistrationError",
    "MetadataError",
    "DispatchError",
    "ResolutionError",
    "ArgumentError",
    "InvocationError",
    "OperationError",
    "ResponseShapeError",
    # Helpers
    "try_result",
]
