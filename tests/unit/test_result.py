"""Tests for core/result.py - Result helpers and the error hierarchy."""

from __future__ import annotations

import pytest

from opregistry.core.result import (
    ArgumentError,
    DispatchError,
    Err,
    InvocationError,
    MetadataError,
    Ok,
    OperationError,
    OpRegistryError,
    RegistrationError,
    try_result,
)


def test_ok_helpers() -> None:
    result = Ok(2)
    assert result.is_ok() and not result.is_err()
    assert result.unwrap() == 2


def test_err_helpers() -> None:
    result: Err[ArgumentError] = Err(ArgumentError("bad"))
    assert result.is_err() and not result.is_ok()
    with pytest.raises(ArgumentError):
        result.unwrap()


def test_context_rendering() -> None:
    assert str(OpRegistryError("plain")) == "plain"
    exc = MetadataError("counts", context={"namespace": "Ledger", "operation": "read"})
    assert str(exc) == "counts [namespace=Ledger, operation=read]"
    assert exc.message == "counts"


def test_hierarchy() -> None:
    assert issubclass(MetadataError, RegistrationError)
    assert issubclass(OperationError, InvocationError)
    assert issubclass(InvocationError, DispatchError)
    assert not issubclass(RegistrationError, DispatchError)


def test_try_result() -> None:
    assert try_result(lambda: 1) == Ok(1)

    def fail() -> int:
        raise ArgumentError("nope")

    caught = try_result(fail, ArgumentError)
    assert isinstance(caught, Err)
    assert caught.error.message == "nope"

    with pytest.raises(ZeroDivisionError):
        try_result(lambda: 1 // 0)
