"""Tests for core/registry.py - building registries and their metadata."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from opregistry.core.config import RegistryConfig
from opregistry.core.dispatcher import Dispatcher
from opregistry.core.registry import SYSTEM_NAMESPACE, RegistryBuilder, create_registry
from opregistry.core.result import MetadataError, RegistrationError
from opregistry.metadata.models import MetadataDocument
from tests.mocks.sample_sets import Calculator, ComplexParam, Ledger, XFirst, XSecond


def described_add(*names: str) -> dict[str, Any]:
    return {
        "contracts": {
            "Calculator": {
                "name": "Calculator",
                "transactions": [
                    {
                        "name": "add",
                        "tag": ["submit"],
                        "parameters": [
                            {"name": name, "schema": {"type": "integer", "maximum": 10}}
                            for name in names
                        ],
                    }
                ],
            }
        }
    }


class TestBuilder:
    def test_conflicting_names(self) -> None:
        builder = RegistryBuilder()
        builder.add_namespace(XFirst())
        with pytest.raises(RegistrationError) as excinfo:
            builder.add_namespace(XSecond())
        assert str(excinfo.value) == "Multiple namespaces being merged into registry with name X"

        registry = builder.build()
        assert Dispatcher(registry).dispatch("X:ping").unwrap() == "first"

    def test_failed_source_leaves_builder_unchanged(self) -> None:
        builder = RegistryBuilder()
        builder.add_namespace(Calculator())
        with pytest.raises(RegistrationError):
            builder.add_namespace(ComplexParam())
        assert list(builder.namespaces) == ["Calculator"]

    def test_single_use(self) -> None:
        builder = RegistryBuilder()
        builder.build()
        with pytest.raises(RegistrationError, match="already been built"):
            builder.add_namespace(Calculator())

    def test_system_namespace_added(self) -> None:
        registry = RegistryBuilder().build()
        assert SYSTEM_NAMESPACE in registry
        assert registry.namespaces[SYSTEM_NAMESPACE].operation_names() == ["get_metadata"]
        assert registry.default_namespace is None


class TestCreateRegistry:
    def test_default_namespace_is_first_source(self) -> None:
        registry = create_registry(Calculator(), Ledger())
        assert registry.default_namespace == "Calculator"
        assert list(registry) == ["Calculator", "Ledger", SYSTEM_NAMESPACE]
        assert len(registry) == 3

    def test_explicit_default(self) -> None:
        registry = create_registry(Calculator(), Ledger(), default_namespace="Ledger")
        assert registry.default_namespace == "Ledger"

    def test_unregistered_default(self) -> None:
        with pytest.raises(RegistrationError) as excinfo:
            create_registry(Calculator(), default_namespace="Nope")
        assert excinfo.value.message == "Default namespace Nope is not registered"

    def test_config_defaults(self) -> None:
        config = RegistryConfig(title="cfg", version="9", default_namespace="Ledger")
        registry = create_registry(Calculator(), Ledger(), config=config)
        assert registry.title == "cfg"
        assert registry.version == "9"
        assert registry.default_namespace == "Ledger"

    def test_arguments_win_over_config(self) -> None:
        config = RegistryConfig(title="cfg")
        registry = create_registry(Calculator(), title="explicit", config=config)
        assert registry.title == "explicit"

    def test_namespaces_are_read_only(self) -> None:
        registry = create_registry(Calculator())
        with pytest.raises(TypeError):
            registry.namespaces["other"] = registry.namespaces["Calculator"]  # type: ignore[index]


class TestReflectedMetadata:
    def test_document_shape(self) -> None:
        registry = create_registry(Ledger(), title="bank")
        document = json.loads(registry.metadata_json)

        assert document["info"] == {"title": "bank", "version": "latest"}
        assert list(document["contracts"]) == ["Ledger", SYSTEM_NAMESPACE]
        ledger = document["contracts"]["Ledger"]
        assert ledger["info"] == {"title": "Ledger", "version": "1.2.0"}
        names = [tx["name"] for tx in ledger["transactions"]]
        assert names == ["get_asset", "read", "store_asset", "write"]

        store_asset = ledger["transactions"][2]
        assert store_asset["tag"] == ["submit"]
        assert store_asset["parameters"] == [
            {"name": "param0", "schema": {"$ref": "#/components/schemas/Asset"}}
        ]
        assert "returns" not in store_asset

        read = ledger["transactions"][1]
        assert read["tag"] == ["evaluate"]
        assert read["returns"] == {"type": "string"}

        asset = document["components"]["schemas"]["Asset"]
        assert asset["required"] == ["ID", "Value"]
        assert asset["additionalProperties"] is False

    def test_defaults_when_untitled(self) -> None:
        registry = create_registry(Calculator())
        assert registry.title == "undefined"
        assert registry.version == "latest"

    def test_get_metadata_operation(self) -> None:
        registry = create_registry(Calculator())
        payload = Dispatcher(registry).dispatch(f"{SYSTEM_NAMESPACE}:get_metadata").unwrap()
        assert payload == registry.metadata_json
        system = json.loads(payload)["contracts"][SYSTEM_NAMESPACE]
        assert system["transactions"][0]["tag"] == ["evaluate"]

    def test_components_table(self) -> None:
        registry = create_registry(Calculator())
        assert registry.components["Point"]["properties"] == {
            "X": {"type": "integer", "format": "int32", "minimum": -(2**31), "maximum": 2**31 - 1},
            "Y": {"type": "integer", "format": "int32", "minimum": -(2**31), "maximum": 2**31 - 1},
        }


class TestSupplementaryMetadata:
    def test_info_is_merged(self) -> None:
        registry = create_registry(Calculator(), supplementary={"info": {"title": "supplied"}})
        assert registry.title == "supplied"
        assert registry.version == "latest"
        assert "Calculator" in registry.metadata.namespaces

    def test_parameter_count_checked(self) -> None:
        with pytest.raises(MetadataError) as excinfo:
            create_registry(Calculator(), supplementary=described_add("left"))
        assert excinfo.value.message == (
            "Incorrect number of params in supplementary metadata. Expected 2, received 1"
        )
        assert excinfo.value.context == {"namespace": "Calculator", "operation": "add"}

    def test_supplied_schemas_validate_arguments(self) -> None:
        registry = create_registry(Calculator(), supplementary=described_add("left", "right"))
        assert registry.parameter_schemas("Calculator", "add").names == ("left", "right")

        dispatcher = Dispatcher(registry)
        assert dispatcher.dispatch("Calculator:add", ["3", "4"]).unwrap() == "7"
        result = dispatcher.dispatch("Calculator:add", ["11", "4"])
        assert result.is_err()
        assert result.error.message.startswith("Error validating parameter left.")

    def test_undescribed_operations_keep_reflected_schemas(self) -> None:
        registry = create_registry(Calculator(), supplementary=described_add("left", "right"))
        assert registry.parameter_schemas("Calculator", "negate").names == ("param0",)
        assert Dispatcher(registry).dispatch("Calculator:negate", ["true"]).unwrap() == "false"

    def test_namespaces_replaced_wholesale(self) -> None:
        registry = create_registry(Calculator(), supplementary=described_add("a", "b"))
        document = json.loads(registry.metadata_json)
        assert list(document["contracts"]) == ["Calculator"]
        assert [tx["name"] for tx in document["contracts"]["Calculator"]["transactions"]] == ["add"]

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({"info": {"version": "3.1"}}), encoding="utf-8")
        registry = create_registry(Calculator(), supplementary=path)
        assert registry.version == "3.1"

    def test_from_config_path(self, tmp_path: Path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({"info": {"title": "from-config"}}), encoding="utf-8")
        registry = create_registry(Calculator(), config=RegistryConfig(metadata_path=path))
        assert registry.title == "from-config"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MetadataError) as excinfo:
            create_registry(Calculator(), supplementary=tmp_path / "absent.json")
        assert excinfo.value.message == (
            "Failed to read metadata from file. Metadata file does not exist"
        )

    def test_document_instance(self) -> None:
        supplied = MetadataDocument.model_validate({"info": {"title": "doc"}})
        assert create_registry(Calculator(), supplementary=supplied).title == "doc"
