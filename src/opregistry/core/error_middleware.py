"""
Centralized error formatting for the CLI and JSON consumers.

Registration and dispatch errors are rendered with a stable code derived
from their type, so hosts can tell resolution failures from argument or
invocation failures without parsing messages.
"""

from __future__ import annotations

import json
import traceback
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from rich.markup import escape

from opregistry.core.result import (
    ArgumentError,
    ConfigError,
    InvocationError,
    MetadataError,
    OpRegistryError,
    RegistrationError,
    ResolutionError,
    ResponseShapeError,
    Result,
)


class ErrorSeverity(Enum):
    """Severity levels for error display."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass(frozen=True, slots=True)
class FormattedError:
    """A formatted error ready for display."""

    message: str
    severity: ErrorSeverity
    code: str
    details: dict[str, Any]
    traceback: str | None = None


_COLOR_MAP = {
    ErrorSeverity.INFO: "blue",
    ErrorSeverity.WARNING: "yellow",
    ErrorSeverity.ERROR: "red",
    ErrorSeverity.CRITICAL: "bold red",
}


def _error_code(exc: BaseException) -> str:
    """Derive an error code from exception type."""
    if isinstance(exc, MetadataError):
        return "METADATA_ERROR"
    if isinstance(exc, RegistrationError):
        return "REGISTRATION_ERROR"
    if isinstance(exc, ResolutionError):
        return "RESOLUTION_ERROR"
    if isinstance(exc, ArgumentError):
        return "ARGUMENT_ERROR"
    if isinstance(exc, InvocationError):
        return "INVOCATION_ERROR"
    if isinstance(exc, ResponseShapeError):
        return "RESPONSE_SHAPE_ERROR"
    if isinstance(exc, ConfigError):
        return "CONFIG_ERROR"
    if isinstance(exc, OpRegistryError):
        return "OPREGISTRY_ERROR"
    if isinstance(exc, (ImportError, AttributeError)):
        return "TARGET_NOT_FOUND"
    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND"
    return "UNEXPECTED_ERROR"


def _severity(exc: BaseException) -> ErrorSeverity:
    """Determine severity based on exception type."""
    if isinstance(exc, ResponseShapeError):
        return ErrorSeverity.CRITICAL
    if isinstance(exc, (ResolutionError, ArgumentError, ConfigError)):
        return ErrorSeverity.WARNING
    return ErrorSeverity.ERROR


def format_error(
    exc: BaseException,
    *,
    include_traceback: bool = False,
) -> FormattedError:
    """Format an exception into a structured error.

    Args:
        exc: The exception to format
        include_traceback: Whether to include full traceback (for debugging)

    Returns:
        FormattedError ready for display
    """
    details: dict[str, Any] = {}
    message = str(exc)
    if isinstance(exc, OpRegistryError):
        details = exc.context.copy()
        message = exc.message

    tb = None
    if include_traceback:
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return FormattedError(
        message=message,
        severity=_severity(exc),
        code=_error_code(exc),
        details=details,
        traceback=tb,
    )


def format_for_cli(error: FormattedError) -> str:
    """Format error for CLI display with Rich markup.

    Messages are escaped; only the code and severity colour are markup.
    """
    color = _COLOR_MAP.get(error.severity, "red")

    parts = [f"[{color}]{error.code}[/{color}]: {escape(error.message)}"]

    if error.details:
        detail_lines = [f"  {k}: {escape(str(v))}" for k, v in error.details.items()]
        parts.append("\n".join(detail_lines))

    if error.traceback:
        parts.append(f"\n[dim]{escape(error.traceback)}[/dim]")

    return "\n".join(parts)


def format_for_json(error: FormattedError) -> str:
    """Format error as a JSON object for machine consumers."""
    payload: dict[str, Any] = {
        "error": error.code,
        "message": error.message,
    }

    if error.details:
        payload["details"] = {k: str(v) for k, v in error.details.items()}

    return json.dumps(payload)


def result_to_cli(result: Result) -> str:
    """Format a Result for CLI output."""
    if result.is_ok():
        return escape(str(result.unwrap()))
    return format_for_cli(format_error(result.error))


def result_to_json(result: Result) -> str:
    """Format a Result as a JSON envelope."""
    if result.is_ok():
        return json.dumps({"ok": True, "payload": result.unwrap()})
    return format_for_json(format_error(result.error))


__all__ = [
    "ErrorSeverity",
    "FormattedError",
    "format_error",
    "format_for_cli",
    "format_for_json",
    "result_to_cli",
    "result_to_json",
]
