"""Operation descriptors: one callable plus its derived signature.

Signatures are read from annotations once, when a namespace is registered.
Each descriptor then adapts its callable to a uniform contract: convert
textual arguments, invoke, and unpack whatever the callable returned into a
``(value, error)`` pair according to its declared return shape.

Return shapes:
    -> None / no annotation            nothing
    -> T                               a value
    -> SomeError / Result[None, E]     an error or nothing
    -> Result[T, E] / tuple[T, E]      a value or an error

Operation bodies may also raise ``OperationError`` to report a failure.
"""

from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union, get_args, get_origin

from opregistry.core import codec
from opregistry.core.console import get_logger
from opregistry.core.context import OperationContext
from opregistry.core.result import (
    ArgumentError,
    DispatchError,
    Err,
    InvocationError,
    Ok,
    OperationError,
    RegistrationError,
    ResponseShapeError,
)
from opregistry.core.types import Kind, TypeDescriptor, describe, type_name
from opregistry.core.validation import check_protocol, validate_type

logger = get_logger(__name__)

SHAPE_MISMATCH = "response does not match expected return for given function"


class CallType(str, Enum):
    """Calling convention advertised in metadata tags."""

    SUBMIT = "submit"
    EVALUATE = "evaluate"


class ReturnShape(str, Enum):
    NONE = "none"
    VALUE = "value"
    ERROR = "error"
    VALUE_ERROR = "value_error"


class ReturnStyle(str, Enum):
    """How the callable spells a two-part outcome."""

    PLAIN = "plain"
    RESULT = "result"
    TUPLE = "tuple"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: TypeDescriptor


@dataclass(frozen=True)
class OperationSignature:
    uses_context: bool
    parameters: tuple[Parameter, ...]
    shape: ReturnShape
    returns: TypeDescriptor | None = None
    style: ReturnStyle = ReturnStyle.PLAIN


@dataclass(frozen=True)
class Outcome:
    """What one successful invocation produced."""

    value: Any
    text: str


def _display_name(fn: Callable[..., Any], name: str | None) -> str:
    if name:
        return name
    fn_name = getattr(fn, "__name__", "")
    return fn_name if fn_name and fn_name != "<lambda>" else "Function"


def _type_hints(fn: Callable[..., Any], label: str) -> dict[str, Any]:
    target = inspect.unwrap(fn)
    target = getattr(target, "__func__", target)
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError) as exc:
        raise RegistrationError(f"{label} has annotations that cannot be resolved. {exc}") from exc


# ---------------------------------------------------------------------------
# Signature parsing
# ---------------------------------------------------------------------------


def _is_context(annotation: Any, context_type: type) -> bool:
    return annotation is context_type


def _parse_parameters(
    fn: Callable[..., Any], label: str, hints: dict[str, Any], context_type: type
) -> tuple[bool, tuple[Parameter, ...]]:
    uses_context = False
    params: list[Parameter] = []

    for index, param in enumerate(inspect.signature(fn).parameters.values()):
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise RegistrationError(
                f"{label} contains invalid parameter type. "
                f"Variadic parameter {param.name} is not supported"
            )
        if param.name not in hints:
            raise RegistrationError(
                f"{label} contains invalid parameter type. "
                f"Parameter {param.name} is missing a type hint."
            )

        annotation = hints[param.name]
        desc = describe(annotation)
        is_ctx = _is_context(annotation, context_type)
        type_error: RegistrationError | None = None

        if not is_ctx:
            try:
                validate_type(desc)
            except RegistrationError as exc:
                type_error = exc

        if type_error is not None and desc.kind is Kind.INTERFACE:
            try:
                check_protocol(context_type, annotation)
            except RegistrationError as exc:
                raise RegistrationError(
                    f"{label} contains invalid context interface type. Set context type for "
                    f"namespace does not meet interface used in method. {exc}"
                ) from exc
            is_ctx = True
            type_error = None

        if type_error is not None:
            raise RegistrationError(
                f"{label} contains invalid parameter type. {type_error}"
            ) from type_error
        if is_ctx and index != 0:
            raise RegistrationError(
                "Functions requiring the context must require it as the first parameter. "
                f"{label} takes it in as parameter {index}"
            )
        if is_ctx:
            uses_context = True
        else:
            params.append(Parameter(name=param.name, type=desc))

    return uses_context, tuple(params)


def _split_returns(annotation: Any) -> tuple[list[Any], ReturnStyle]:
    """Decompose a return annotation into the ordered returned types."""
    if annotation is inspect.Parameter.empty or annotation is None or annotation is type(None):
        return [], ReturnStyle.PLAIN

    origin = get_origin(annotation)
    if origin is tuple:
        return list(get_args(annotation)), ReturnStyle.TUPLE

    if origin is Union or origin is types.UnionType:
        members = get_args(annotation)
        ok = [arg for arg in members if get_origin(arg) is Ok or arg is Ok]
        err = [arg for arg in members if get_origin(arg) is Err or arg is Err]
        if ok and err and len(members) == 2:
            ok_args = get_args(ok[0]) or (Any,)
            err_args = get_args(err[0]) or (Exception,)
            value = ok_args[0]
            if value is None or value is type(None):
                return [err_args[0]], ReturnStyle.RESULT
            return [value, err_args[0]], ReturnStyle.RESULT

    return [annotation], ReturnStyle.PLAIN


def _parse_returns(
    label: str, hints: dict[str, Any]
) -> tuple[ReturnShape, TypeDescriptor | None, ReturnStyle]:
    returned, style = _split_returns(hints.get("return", inspect.Parameter.empty))

    if len(returned) > 2:
        raise RegistrationError(
            f"Functions may only return a maximum of two values. {label} returns {len(returned)}"
        )

    if len(returned) == 1:
        desc = describe(returned[0])
        try:
            validate_type(desc, (Exception,))
        except RegistrationError as exc:
            raise RegistrationError(f"{label} contains invalid single return type. {exc}") from exc
        if desc.kind is Kind.ERROR:
            return ReturnShape.ERROR, None, style
        return ReturnShape.VALUE, desc, style

    if len(returned) == 2:
        first = describe(returned[0])
        second = describe(returned[1])
        try:
            validate_type(first)
        except RegistrationError as exc:
            raise RegistrationError(f"{label} contains invalid first return type. {exc}") from exc
        if second.kind is not Kind.ERROR:
            raise RegistrationError(
                f"{label} contains invalid second return type. "
                f"Type {type_name(returned[1])} is not valid. Expected error"
            )
        return ReturnShape.VALUE_ERROR, first, style

    return ReturnShape.NONE, None, style


def parse_signature(
    fn: Callable[..., Any], context_type: type, name: str | None = None
) -> OperationSignature:
    """Derive the signature of ``fn``.

    Raises:
        RegistrationError: naming the callable and the offending type.
    """
    label = _display_name(fn, name)
    hints = _type_hints(fn, label)
    uses_context, params = _parse_parameters(fn, label, hints, context_type)
    shape, returns, style = _parse_returns(label, hints)
    return OperationSignature(
        uses_context=uses_context,
        parameters=params,
        shape=shape,
        returns=returns,
        style=style,
    )


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


def _as_dispatch_error(error: BaseException) -> DispatchError:
    if isinstance(error, DispatchError):
        return error
    wrapped = InvocationError(str(error))
    wrapped.__cause__ = error
    return wrapped


@dataclass(frozen=True, eq=False)
class OperationDescriptor:
    """A registered callable, its convention tag and its derived signature."""

    name: str
    call_type: CallType
    signature: OperationSignature
    fn: Callable[..., Any] = field(repr=False)
    namespace: str = ""

    @classmethod
    def from_callable(
        cls,
        fn: Callable[..., Any],
        call_type: CallType = CallType.SUBMIT,
        context_type: type | None = None,
        *,
        name: str | None = None,
        namespace: str = "",
    ) -> OperationDescriptor:
        if not callable(fn):
            raise RegistrationError(
                f"Cannot create operation from {type(fn).__name__}. Can only use callables"
            )
        if context_type is None:
            context_type = OperationContext
        signature = parse_signature(fn, context_type, name)
        return cls(
            name=_display_name(fn, name),
            call_type=call_type,
            signature=signature,
            fn=fn,
            namespace=namespace,
        )

    @property
    def parameters(self) -> tuple[Parameter, ...]:
        return self.signature.parameters

    @property
    def returns(self) -> TypeDescriptor | None:
        return self.signature.returns

    # -- argument handling -------------------------------------------------

    def convert_args(
        self,
        args: Sequence[str],
        schemas: Sequence[dict[str, Any]] | None = None,
        components: dict[str, Any] | None = None,
        names: Sequence[str] | None = None,
    ) -> list[Any]:
        """Decode textual arguments, validating each against its schema.

        Arguments beyond the declared parameters are ignored.
        """
        params = self.signature.parameters
        if len(args) < len(params):
            raise ArgumentError(
                f"Incorrect number of params. Expected {len(params)}, received {len(args)}"
            )

        values: list[Any] = []
        for index, (param, text) in enumerate(zip(params, args)):
            label = names[index] if names and index < len(names) else f"param{index}"
            try:
                value = codec.decode(param.type, text)
            except ArgumentError as exc:
                raise ArgumentError(
                    f"Error converting parameter {label}. {exc.message}", context=exc.context
                ) from exc

            if schemas is not None and index < len(schemas):
                try:
                    codec.validate_against(
                        codec.schema_input(param.type, text, value),
                        schemas[index],
                        components or {},
                    )
                except ArgumentError as exc:
                    raise ArgumentError(
                        f"Error validating parameter {label}. {exc.message}"
                    ) from exc
            values.append(value)
        return values

    # -- invocation ----------------------------------------------------------

    def _unpack(self, raw: Any) -> tuple[Any, BaseException | None]:
        shape = self.signature.shape
        style = self.signature.style

        if style is ReturnStyle.RESULT:
            if isinstance(raw, Ok):
                value, error = raw.value, None
                if shape is ReturnShape.ERROR and value is not None:
                    raise ResponseShapeError(SHAPE_MISMATCH)
            elif isinstance(raw, Err):
                value, error = None, raw.error
            else:
                raise ResponseShapeError(SHAPE_MISMATCH)
        elif style is ReturnStyle.TUPLE:
            if not isinstance(raw, tuple) or len(raw) != 2:
                raise ResponseShapeError(SHAPE_MISMATCH)
            value, error = raw
        elif shape is ReturnShape.NONE:
            if raw is not None:
                raise ResponseShapeError(SHAPE_MISMATCH)
            value, error = None, None
        elif shape is ReturnShape.ERROR:
            value, error = None, raw
        else:
            value, error = raw, None

        if error is not None:
            if not isinstance(error, BaseException):
                raise ResponseShapeError(SHAPE_MISMATCH)
            return None, error

        returns = self.signature.returns
        if returns is not None and value is None and not returns.nillable:
            raise ResponseShapeError(SHAPE_MISMATCH)
        return value, None

    def invoke(self, ctx: Any, values: Sequence[Any]) -> tuple[Any, BaseException | None]:
        """Call the underlying function and return ``(value, error)``.

        ``OperationError`` raised by the body is reported as the error; any
        other exception propagates.
        """
        call_args = [ctx, *values] if self.signature.uses_context else list(values)
        try:
            raw = self.fn(*call_args)
        except OperationError as exc:
            return None, exc
        return self._unpack(raw)

    def call(
        self,
        ctx: Any,
        args: Sequence[str] = (),
        schemas: Sequence[dict[str, Any]] | None = None,
        components: dict[str, Any] | None = None,
        names: Sequence[str] | None = None,
    ) -> Outcome:
        """Convert ``args``, invoke, and encode the result.

        Raises:
            ArgumentError: arguments could not be converted or validated.
            InvocationError: the callable reported its declared error.
            ResponseShapeError: the callable returned something unexpected.
        """
        values = self.convert_args(args, schemas, components, names)
        value, error = self.invoke(ctx, values)
        if error is not None:
            raise _as_dispatch_error(error)
        returns = self.signature.returns
        text = codec.encode(value, returns) if returns is not None else ""
        return Outcome(value=value, text=text)


class HookKind(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    UNKNOWN = "unknown"


@dataclass(frozen=True, eq=False)
class HookDescriptor(OperationDescriptor):
    """A before/after/unknown hook.

    Hooks take only the context; after hooks may also take one ``Any``
    parameter receiving the value the operation produced.
    """

    kind: HookKind = HookKind.BEFORE

    @classmethod
    def from_hook(
        cls,
        fn: Callable[..., Any],
        kind: HookKind,
        context_type: type | None = None,
        *,
        namespace: str = "",
    ) -> HookDescriptor:
        base = OperationDescriptor.from_callable(
            fn, CallType.SUBMIT, context_type, namespace=namespace
        )
        params = base.signature.parameters
        title = kind.value.capitalize()

        if kind is HookKind.AFTER:
            if len(params) > 1:
                raise RegistrationError(
                    "After hooks may not take any params other than the context and a value"
                )
            if params and params[0].type.kind is not Kind.ANY:
                raise RegistrationError(
                    "After hooks must take type Any as their only non-context param"
                )
        elif params:
            raise RegistrationError(
                f"{title} hooks may not take any params other than the context"
            )

        return cls(
            name=base.name,
            call_type=base.call_type,
            signature=base.signature,
            fn=fn,
            namespace=namespace,
            kind=kind,
        )

    def run(self, ctx: Any, value: Any = None) -> Outcome:
        """Invoke the hook, raising the error it reports."""
        values = [value] if self.signature.parameters else []
        result, error = self.invoke(ctx, values)
        if error is not None:
            logger.debug("%s hook %s reported an error: %s", self.kind.value, self.name, error)
            raise _as_dispatch_error(error)
        returns = self.signature.returns
        text = codec.encode(result, returns) if returns is not None else ""
        return Outcome(value=result, text=text)


__all__ = [
    "CallType",
    "HookDescriptor",
    "HookKind",
    "OperationDescriptor",
    "OperationSignature",
    "Outcome",
    "Parameter",
    "ReturnShape",
    "ReturnStyle",
    "SHAPE_MISMATCH",
    "parse_signature",
]
