from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
for entry in (SRC, ROOT):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't touch user state."""
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("OPREGISTRY_CONFIG", str(cfg_path))
    for name in ("TITLE", "VERSION", "DEFAULT_NAMESPACE", "METADATA_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(f"OPREG_{name}", raising=False)
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True, width=200, file=io.StringIO())
    import opregistry.core.console as core_console
    import opregistry.main as op_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(core_console, "stderr_console", test_console)
    monkeypatch.setattr(op_main, "console", test_console)
    monkeypatch.setattr(op_main, "stderr_console", test_console)
    return test_console


@pytest.fixture
def store() -> dict[str, Any]:
    """Host object handed to dispatches that keep state."""
    return {}
