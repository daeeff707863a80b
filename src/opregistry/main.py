from __future__ import annotations

import importlib
import inspect
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from rich import box
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import ConfigLoadResult, RegistryConfig, load_config
from .core.console import console, setup_logging, stderr_console
from .core.dispatcher import Dispatcher
from .core.error_middleware import format_error, format_for_cli, result_to_json
from .core.registry import Registry, create_registry
from .core.result import Err, OpRegistryError, Result, try_result

app = typer.Typer(help="opregistry: describe and invoke registered operations.")
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    config: RegistryConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger


class TargetError(OpRegistryError):
    """Raised when a ``module:attribute`` target cannot be loaded."""


def _expand_sources(value: Any) -> list[object]:
    if isinstance(value, (list, tuple)):
        sources: list[object] = []
        for item in value:
            sources.extend(_expand_sources(item))
        return sources
    if inspect.isclass(value):
        return [value()]
    if inspect.isfunction(value):
        return _expand_sources(value())
    return [value]


def load_target(target: str) -> list[object]:
    """Resolve ``module:attribute`` into source objects.

    The attribute may be a source object, a class (instantiated with no
    arguments), a zero-argument factory, or a list of any of these.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise TargetError(f"Target must look like 'module:attribute', got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise TargetError(f"Cannot import module {module_name}: {exc}") from exc

    value: Any = module
    for part in attribute.split("."):
        try:
            value = getattr(value, part)
        except AttributeError as exc:
            raise TargetError(f"{module_name} has no attribute {attribute}") from exc
    return _expand_sources(value)


def _build_registry(state: AppState, target: str) -> Registry:
    sources = load_target(target)
    return create_registry(*sources, config=state.config)


def _load_registry(ctx: typer.Context, target: str) -> Registry:
    state: AppState = ctx.obj
    result: Result[Registry, OpRegistryError] = try_result(
        lambda: _build_registry(state, target), OpRegistryError
    )
    if isinstance(result, Err):
        stderr_console.print(format_for_cli(format_error(result.error)))
        raise typer.Exit(code=1)
    return result.unwrap()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to an opregistry config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    loaded_config, meta = load_config(config_path=config)
    app_logger = setup_logging(level=loaded_config.log_level, verbose=verbose)

    ctx.obj = AppState(config=loaded_config, config_meta=meta, logger=app_logger)

    if meta.error:
        stderr_console.print(
            Panel(
                f"[bold red]Configuration Error - Safe Mode Active[/bold red]\n\n"
                f"Failed to load {meta.path}:\n{meta.error}\n\n"
                f"[yellow]Using default settings.[/yellow]",
                border_style="red",
            )
        )
    else:
        app_logger.debug(
            "Loaded configuration from %s (file: %s, env overrides: %s)",
            meta.path,
            meta.file_loaded,
            sorted(meta.env_overrides),
        )


@app.command("describe")
def describe(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Source objects as 'module:attribute'."),
    compact: bool = typer.Option(False, "--compact", help="Print single-line JSON."),
) -> None:
    """Print the metadata document for TARGET."""
    registry = _load_registry(ctx, target)
    if compact:
        typer.echo(registry.metadata_json)
    else:
        console.print_json(registry.metadata_json)


@app.command("operations")
def operations(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Source objects as 'module:attribute'."),
) -> None:
    """List the namespaces and operations registered from TARGET."""
    registry = _load_registry(ctx, target)

    table = Table(title="Operations", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Command", style="cyan", no_wrap=True)
    table.add_column("Tag", style="white")
    table.add_column("Params", style="white", justify="right")
    table.add_column("Returns", style="white")

    for ns_name, entry in registry.namespaces.items():
        marker = " (default)" if ns_name == registry.default_namespace else ""
        for op_name, op in entry.operations.items():
            table.add_row(
                f"{ns_name}:{op_name}{marker}",
                op.call_type.value,
                str(len(op.parameters)),
                op.returns.name if op.returns is not None else "-",
            )

    console.print(table)


@app.command("invoke")
def invoke(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Source objects as 'module:attribute'."),
    command: str = typer.Argument(..., help="Command as '[namespace:]operation'."),
    args: list[str] | None = typer.Argument(None, help="Textual operation arguments."),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON envelope."),
) -> None:
    """Dispatch COMMAND with ARGS against the registry built from TARGET."""
    registry = _load_registry(ctx, target)
    result = Dispatcher(registry).dispatch(command, args or [])

    if as_json:
        typer.echo(result_to_json(result))
        if result.is_err():
            raise typer.Exit(code=1)
        return

    if isinstance(result, Err):
        stderr_console.print(format_for_cli(format_error(result.error)))
        raise typer.Exit(code=1)
    typer.echo(result.unwrap())


@app.command("version")
def version() -> None:
    """Print the installed opregistry version."""
    typer.echo(json.dumps({"opregistry": __version__}))


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
