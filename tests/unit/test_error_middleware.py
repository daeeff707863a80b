"""Tests for core/error_middleware.py - centralized error formatting."""

from __future__ import annotations

import json

import pytest

from opregistry.core.error_middleware import (
    ErrorSeverity,
    format_error,
    format_for_cli,
    format_for_json,
    result_to_cli,
    result_to_json,
)
from opregistry.core.result import (
    ArgumentError,
    ConfigError,
    Err,
    InvocationError,
    MetadataError,
    Ok,
    OperationError,
    OpRegistryError,
    RegistrationError,
    ResolutionError,
    ResponseShapeError,
)

# ---------------------------------------------------------------------------
# Test _error_code (via format_error)
# ---------------------------------------------------------------------------


class TestErrorCode:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (MetadataError("m"), "METADATA_ERROR"),
            (RegistrationError("r"), "REGISTRATION_ERROR"),
            (ResolutionError("r"), "RESOLUTION_ERROR"),
            (ArgumentError("a"), "ARGUMENT_ERROR"),
            (OperationError("o"), "INVOCATION_ERROR"),
            (InvocationError("i"), "INVOCATION_ERROR"),
            (ResponseShapeError("s"), "RESPONSE_SHAPE_ERROR"),
            (ConfigError("c"), "CONFIG_ERROR"),
            (OpRegistryError("g"), "OPREGISTRY_ERROR"),
            (ImportError("i"), "TARGET_NOT_FOUND"),
            (FileNotFoundError("f"), "FILE_NOT_FOUND"),
            (RuntimeError("x"), "UNEXPECTED_ERROR"),
        ],
    )
    def test_codes(self, exc: BaseException, code: str) -> None:
        assert format_error(exc).code == code


class TestSeverity:
    def test_shape_errors_are_critical(self) -> None:
        assert format_error(ResponseShapeError("s")).severity is ErrorSeverity.CRITICAL

    def test_caller_errors_are_warnings(self) -> None:
        assert format_error(ResolutionError("r")).severity is ErrorSeverity.WARNING
        assert format_error(ArgumentError("a")).severity is ErrorSeverity.WARNING

    def test_default_is_error(self) -> None:
        assert format_error(OperationError("o")).severity is ErrorSeverity.ERROR


class TestFormatting:
    def test_context_becomes_details(self) -> None:
        exc = MetadataError("bad counts", context={"namespace": "Ledger"})
        formatted = format_error(exc)
        assert formatted.message == "bad counts"
        assert formatted.details == {"namespace": "Ledger"}

    def test_traceback_optional(self) -> None:
        try:
            raise ArgumentError("boom")
        except ArgumentError as exc:
            assert format_error(exc).traceback is None
            assert "ArgumentError" in (format_error(exc, include_traceback=True).traceback or "")

    def test_cli_escapes_markup(self) -> None:
        text = format_for_cli(format_error(ArgumentError("value [bold]x[/bold]")))
        assert text.startswith("[yellow]ARGUMENT_ERROR[/yellow]: ")
        assert "\\[bold]" in text

    def test_cli_details(self) -> None:
        text = format_for_cli(format_error(MetadataError("m", context={"path": "/tmp/x"})))
        assert "  path: /tmp/x" in text

    def test_json(self) -> None:
        payload = json.loads(format_for_json(format_error(ResolutionError("missing"))))
        assert payload == {"error": "RESOLUTION_ERROR", "message": "missing"}


class TestResults:
    def test_ok_to_json(self) -> None:
        assert json.loads(result_to_json(Ok("5"))) == {"ok": True, "payload": "5"}

    def test_err_to_json(self) -> None:
        payload = json.loads(result_to_json(Err(OperationError("nope"))))
        assert payload["error"] == "INVOCATION_ERROR"

    def test_cli(self) -> None:
        assert result_to_cli(Ok("[x]")) == "\\[x]"
        assert "RESOLUTION_ERROR" in result_to_cli(Err(ResolutionError("gone")))
