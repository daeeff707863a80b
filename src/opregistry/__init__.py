"""opregistry - operation registry and schema-driven dispatcher.

Source objects expose methods; the registry reflects them into namespaced
operations with typed, text-encoded parameters and returns, runs
before/after/unknown hooks around each dispatch, and publishes a JSON
metadata document describing the whole surface.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__version__ = "0.1.0"

from opregistry.core.codec import decode, encode, validate_against
from opregistry.core.context import ContextInterface, OperationContext
from opregistry.core.dispatcher import Dispatcher
from opregistry.core.namespace import NamespaceEntry, OperationSet
from opregistry.core.operation import CallType, HookDescriptor, OperationDescriptor
from opregistry.core.registry import SYSTEM_NAMESPACE, Registry, RegistryBuilder, create_registry
from opregistry.core.result import (
    ArgumentError,
    ConfigError,
    DispatchError,
    Err,
    InvocationError,
    MetadataError,
    Ok,
    OperationError,
    OpRegistryError,
    RegistrationError,
    ResolutionError,
    ResponseShapeError,
    Result,
)
from opregistry.core.types import (
    FixedLength,
    FloatBits,
    IntBits,
    describe,
    fixed_array,
    float32,
    float64,
    int8,
    int16,
    int32,
    int64,
    uint,
    uint8,
    uint16,
    uint32,
    uint64,
)
from opregistry.metadata import MetadataDocument, load_metadata_file

__all__ = [
    "ArgumentError",
    "CallType",
    "ConfigError",
    "ContextInterface",
    "DispatchError",
    "Dispatcher",
    "Err",
    "FixedLength",
    "FloatBits",
    "HookDescriptor",
    "IntBits",
    "InvocationError",
    "MetadataDocument",
    "MetadataError",
    "NamespaceEntry",
    "Ok",
    "OpRegistryError",
    "OperationContext",
    "OperationDescriptor",
    "OperationError",
    "OperationSet",
    "RegistrationError",
    "Registry",
    "RegistryBuilder",
    "ResolutionError",
    "ResponseShapeError",
    "Result",
    "SYSTEM_NAMESPACE",
    "__version__",
    "create_registry",
    "decode",
    "describe",
    "encode",
    "fixed_array",
    "float32",
    "float64",
    "int8",
    "int16",
    "int32",
    "int64",
    "load_metadata_file",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "validate_against",
]
