"""Core machinery for opregistry.

This package contains:
    - types / validation: type descriptors and representability checks
    - codec: text conversion and schema validation of arguments
    - operation / namespace: reflected operations, hooks and namespaces
    - registry / dispatcher: the immutable table and command execution
    - config / console / result / error_middleware: ambient infrastructure
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
