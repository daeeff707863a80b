"""Tests for core/namespace.py - reflecting source objects into namespaces."""

from __future__ import annotations

import pytest

from opregistry.core.context import OperationContext
from opregistry.core.namespace import (
    DEFAULT_VERSION,
    NamespaceEntry,
    OperationSet,
    framework_excludes,
    namespace_name,
)
from opregistry.core.operation import CallType
from opregistry.core.result import RegistrationError
from tests.mocks.sample_sets import (
    Calculator,
    ComplexParam,
    Ledger,
    Plain,
    SharedContext,
    Tracked,
    WithUnknown,
    XFirst,
)


class TestNaming:
    def test_type_name_default(self) -> None:
        assert namespace_name(Calculator()) == "Calculator"
        assert namespace_name(Plain()) == "Plain"

    def test_declared_name(self) -> None:
        assert namespace_name(XFirst()) == "X"

    def test_set_name(self) -> None:
        source = Calculator()
        source.set_name("calc")
        assert namespace_name(source) == "calc"
        assert namespace_name(Calculator()) == "Calculator"


class TestFromSource:
    def test_operations_sorted_and_filtered(self) -> None:
        entry = NamespaceEntry.from_source(Calculator())
        assert entry.operation_names() == [
            "add",
            "lookup",
            "low_byte",
            "midpoint",
            "negate",
            "scale",
            "triple",
        ]
        assert "helper" not in entry

    def test_framework_methods_excluded(self) -> None:
        excluded = framework_excludes()
        assert {"get_name", "set_before_hook", "get_evaluate_operations"} <= excluded
        entry = NamespaceEntry.from_source(Ledger())
        assert not excluded & set(entry.operation_names())

    def test_explicit_exclusions(self) -> None:
        entry = NamespaceEntry.from_source(Calculator(), excluded=["add"])
        assert "add" not in entry

    def test_call_types(self) -> None:
        entry = NamespaceEntry.from_source(Ledger())
        assert entry.operations["read"].call_type is CallType.EVALUATE
        assert entry.operations["write"].call_type is CallType.SUBMIT

    def test_version(self) -> None:
        assert NamespaceEntry.from_source(Ledger()).version == "1.2.0"
        assert NamespaceEntry.from_source(Calculator()).version == DEFAULT_VERSION

    def test_plain_object(self) -> None:
        entry = NamespaceEntry.from_source(Plain())
        assert entry.operation_names() == ["hello"]
        assert entry.context_type is OperationContext
        assert entry.before is None and entry.after is None and entry.unknown is None

    def test_hooks_and_context(self) -> None:
        entry = NamespaceEntry.from_source(Tracked([]))
        assert entry.name == "tracked"
        assert entry.context_type is SharedContext
        assert entry.before is not None and entry.after is not None
        assert entry.unknown is None
        assert entry.operation_names() == ["last_seen", "main"]

    def test_unknown_hook(self) -> None:
        entry = NamespaceEntry.from_source(WithUnknown())
        assert entry.unknown is not None
        assert entry.operation_names() == ["known"]

    def test_bad_operation_aborts(self) -> None:
        with pytest.raises(RegistrationError, match="^bad contains invalid parameter type"):
            NamespaceEntry.from_source(ComplexParam())

    def test_context_type_must_satisfy_interface(self) -> None:
        class NoHost:
            pass

        source = Calculator()
        source.set_context_type(NoHost)
        with pytest.raises(RegistrationError) as excinfo:
            NamespaceEntry.from_source(source)
        assert excinfo.value.message == (
            "Context type NoHost for namespace Calculator is not valid. Missing function set_host"
        )

    def test_operations_are_read_only(self) -> None:
        entry = NamespaceEntry.from_source(Plain())
        with pytest.raises(TypeError):
            entry.operations["other"] = entry.operations["hello"]  # type: ignore[index]


class TestOperationSet:
    def test_defaults(self) -> None:
        source = OperationSet()
        assert source.get_name() == ""
        assert source.get_version() == ""
        assert source.get_before_hook() is None
        assert source.get_ignored_operations() == []
        assert NamespaceEntry.from_source(source).operation_names() == []

    def test_setters_are_per_instance(self) -> None:
        first, second = OperationSet(), OperationSet()
        first.set_version("2.0")
        assert second.get_version() == ""
