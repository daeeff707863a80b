"""Console output and logging configuration.

Provides Rich-based console output and logging setup:
    - console: Rich console for stdout (payloads, metadata JSON)
    - stderr_console: Rich console for stderr (logs, errors)
    - setup_logging(): Configure the ``opregistry`` logger with a Rich handler
    - get_logger(): Get a logger under the ``opregistry`` namespace
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "opregistry"

console = Console()
stderr_console = Console(stderr=True)


def _normalize_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_logging(level: str | int = logging.INFO, verbose: bool = False) -> logging.Logger:
    """Attach a Rich handler to the package logger and return it."""
    numeric_level = logging.DEBUG if verbose else _normalize_level(level)

    handler = RichHandler(
        console=stderr_console,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(numeric_level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(numeric_level)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_console(stderr: bool = False) -> Console:
    return stderr_console if stderr else console


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``opregistry`` or a child of it.

    Module names are accepted as-is (``get_logger(__name__)``).
    """
    if not name or name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name or LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
