"""Representability checks for type descriptors.

``validate_type`` decides whether values of a described type can cross the
text boundary. ``check_protocol`` decides whether a context class
structurally satisfies a ``typing.Protocol`` used by an operation.
Both raise ``RegistrationError``; callers prefix the message with the
operation being registered.
"""

from __future__ import annotations

import inspect
import typing
from collections.abc import Collection
from typing import Any, get_args, get_origin

from opregistry.core.result import RegistrationError
from opregistry.core.types import (
    Kind,
    TypeDescriptor,
    comma_sentence,
    is_protocol,
    list_basic_types,
    type_name,
)


def _allowed(desc: TypeDescriptor, allowed: Collection[Any]) -> bool:
    for item in allowed:
        if desc.annotation is item or (desc.py_type is not None and desc.py_type is item):
            return True
        if (
            desc.kind is Kind.ERROR
            and isinstance(item, type)
            and issubclass(item, BaseException)
            and issubclass(desc.py_type, item)
        ):
            return True
    return False


def _invalid(desc: TypeDescriptor, allowed: Collection[Any]) -> RegistrationError:
    if allowed:
        extras = comma_sentence([type_name(item) for item in allowed])
        return RegistrationError(
            f"Type {desc.name} is not valid. Expected a struct, one of the basic types "
            f"{list_basic_types()}, an array/slice of these, or one of these additional "
            f"types {extras}"
        )
    return RegistrationError(
        f"Type {desc.name} is not valid. Expected a struct or one of the basic types "
        f"{list_basic_types()} or an array/slice of these"
    )


def validate_type(
    desc: TypeDescriptor,
    allowed: Collection[Any] = (),
    _seen: tuple[type, ...] = (),
) -> None:
    """Raise ``RegistrationError`` unless ``desc`` is representable.

    ``allowed`` lists extra annotations accepted at this level (the error
    type for sole returns, the context class for parameters). Slice and map
    elements are always checked without them.
    """
    kind = desc.kind

    if kind is Kind.ARRAY:
        if not desc.length or desc.length < 1:
            raise RegistrationError("Arrays must have length greater than 0")
        assert desc.elem is not None
        validate_type(desc.elem, allowed, _seen)
        return

    if kind is Kind.SLICE:
        assert desc.elem is not None
        validate_type(desc.elem, (), _seen)
        return

    if kind is Kind.MAP:
        assert desc.key is not None and desc.elem is not None
        if desc.key.kind is not Kind.STRING:
            raise RegistrationError(f"Map key type {desc.key.name} is not valid. Expected string")
        validate_type(desc.elem, (), _seen)
        return

    if kind in (Kind.STRUCT, Kind.POINTER) and not _allowed(desc, allowed):
        struct = desc.struct
        assert struct is not None
        if struct.py_type in _seen:
            return
        seen = (*_seen, struct.py_type)
        for field in struct.exported_fields():
            validate_type(field.type, allowed, seen)
        for field in struct.hidden_fields():
            if field.required:
                raise RegistrationError(
                    f"Field {field.name} of {struct.name} is not published and must have a default"
                )
        return

    if kind in (Kind.BOOL, Kind.INT, Kind.UINT, Kind.FLOAT, Kind.STRING, Kind.ANY):
        return

    if _allowed(desc, allowed):
        return

    raise _invalid(desc, allowed)


# ---------------------------------------------------------------------------
# Structural protocol satisfaction
# ---------------------------------------------------------------------------

_PROTOCOL_BASES = frozenset({"Protocol", "Generic", "object"})


def _protocol_methods(protocol: type) -> list[str]:
    names: set[str] = set()
    for klass in protocol.__mro__:
        if klass.__name__ in _PROTOCOL_BASES and klass.__module__ in ("typing", "builtins"):
            continue
        for name, value in vars(klass).items():
            if name.startswith("_"):
                continue
            if callable(value) or isinstance(value, (staticmethod, classmethod)):
                names.add(name)
    return sorted(names)


def _hints(fn: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(fn, include_extras=True)
    except (NameError, TypeError):
        return dict(getattr(fn, "__annotations__", {}))


def _method_shape(fn: Any) -> tuple[list[Any], list[Any]]:
    """Parameter annotations (receiver excluded) and returned types."""
    signature = inspect.signature(fn)
    hints = _hints(fn)
    params = [
        hints.get(name, inspect.Parameter.empty)
        for index, name in enumerate(signature.parameters)
        if not (index == 0 and name in ("self", "cls"))
    ]

    returned = hints.get("return", inspect.Parameter.empty)
    if returned is type(None) or returned is None:
        returns: list[Any] = []
    elif get_origin(returned) is tuple:
        returns = list(get_args(returned))
    else:
        returns = [returned]
    return params, returns


def check_protocol(context_type: type, protocol: Any) -> None:
    """Raise ``RegistrationError`` unless ``context_type`` satisfies ``protocol``.

    Every method the protocol declares must exist on the context class with
    the same parameter and return annotations.
    """
    if not is_protocol(protocol):
        raise RegistrationError("Type passed for interface is not an interface")

    for name in _protocol_methods(protocol):
        actual_fn = getattr(context_type, name, None)
        if actual_fn is None or not callable(actual_fn):
            raise RegistrationError(f"Missing function {name}")

        expected_params, expected_returns = _method_shape(getattr(protocol, name))
        actual_params, actual_returns = _method_shape(actual_fn)

        if len(expected_params) != len(actual_params):
            raise RegistrationError(
                f"Parameter mismatch in method {name}. "
                f"Expected {len(expected_params)}, got {len(actual_params)}"
            )
        for index, (want, got) in enumerate(zip(expected_params, actual_params)):
            if want != got:
                raise RegistrationError(
                    f"Parameter mismatch in method {name} at parameter {index}. "
                    f"Expected {type_name(want)}, got {type_name(got)}"
                )

        if len(expected_returns) != len(actual_returns):
            raise RegistrationError(
                f"Return mismatch in method {name}. "
                f"Expected {len(expected_returns)}, got {len(actual_returns)}"
            )
        for index, (want, got) in enumerate(zip(expected_returns, actual_returns)):
            if want != got:
                raise RegistrationError(
                    f"Return mismatch in method {name} at return {index}. "
                    f"Expected {type_name(want)}, got {type_name(got)}"
                )


def satisfies_protocol(context_type: type, protocol: Any) -> bool:
    try:
        check_protocol(context_type, protocol)
    except RegistrationError:
        return False
    return True


__all__ = ["check_protocol", "satisfies_protocol", "validate_type"]
