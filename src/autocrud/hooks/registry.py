"""Hook registry.

A record type gets a hook for an operation either by explicit registration
(``HookRegistry.register`` or the ``@hook`` decorator) or by naming
convention: a method called after the operation (``create``, ``update``).
Registrations win over the convention. Resolved bindings are cached per
(record type, operation).
"""

import inspect
import logging
import threading
import types
import typing
from collections.abc import Callable
from typing import Any, Union

from pydantic.errors import PydanticUserError

from autocrud.codec import JSONObject, check_decodable
from autocrud.context import RequestContext
from autocrud.errors import HookSignatureError
from autocrud.hooks.types import HookBinding, HookFn, Operation, SignatureShape

logger = logging.getLogger(__name__)

_UNSET = object()


class HookRegistry:
    """Registry and binding cache for record type hooks.

    Example:
        @hook(Person, "create")
        def create_person(person: Person, req: PersonIn) -> None:
            ...
    """

    _hooks: dict[tuple[type, Operation], HookFn] = {}
    _bindings: dict[tuple[type, Operation], HookBinding | None] = {}
    _lock = threading.Lock()

    @classmethod
    def register(cls, record_type: type, operation: Operation | str, hook_fn: HookFn) -> None:
        """Register a hook for a record type and operation.

        Idempotent: re-registering the same key is a no-op.
        """
        key = (record_type, Operation(operation))
        with cls._lock:
            if key in cls._hooks:
                return
            cls._hooks[key] = hook_fn
            cls._bindings.pop(key, None)

    @classmethod
    def get(cls, record_type: type, operation: Operation | str) -> HookFn | None:
        """Find the hook function for a key, or None."""
        op = Operation(operation)
        registered = cls._hooks.get((record_type, op))
        if registered is not None:
            return registered

        attr = inspect.getattr_static(record_type, op.value, None)
        if inspect.isfunction(attr):
            return attr
        return None

    @classmethod
    def binding(cls, record_type: type, operation: Operation | str) -> HookBinding | None:
        """Resolve (once) and return the binding for a key.

        Raises:
            HookSignatureError: If the hook's signature cannot be driven
        """
        key = (record_type, Operation(operation))
        cached = cls._bindings.get(key, _UNSET)
        if cached is not _UNSET:
            return cached  # type: ignore[return-value]

        with cls._lock:
            cached = cls._bindings.get(key, _UNSET)
            if cached is not _UNSET:
                return cached  # type: ignore[return-value]

            hook_fn = cls.get(*key)
            resolved = resolve_binding(record_type, key[1], hook_fn) if hook_fn else None
            cls._bindings[key] = resolved

        if resolved is None:
            logger.debug("No %s hook on %s; using raw binding", key[1].value, record_type.__name__)
        else:
            logger.debug(
                "Bound %s hook %s (%s)", key[1].value, resolved.name, resolved.shape.value
            )
        return resolved

    @classmethod
    def is_registered(cls, record_type: type, operation: Operation | str) -> bool:
        """Check if a hook was registered explicitly."""
        return (record_type, Operation(operation)) in cls._hooks

    @classmethod
    def list_registered(cls) -> list[str]:
        """List explicit registrations as "Type.operation"."""
        return sorted(f"{t.__name__}.{op.value}" for t, op in cls._hooks)

    @classmethod
    def clear(cls) -> None:
        """Clear registrations and cached bindings. Primarily for testing."""
        with cls._lock:
            cls._hooks.clear()
            cls._bindings.clear()


def hook(record_type: type, operation: Operation | str) -> Callable[[HookFn], HookFn]:
    """Decorator to register a hook function.

    Usage:
        @hook(Person, "update")
        def update_person(person: Person, ctx: RequestContext, req: dict) -> dict:
            ...
    """

    def decorator(fn: HookFn) -> HookFn:
        HookRegistry.register(record_type, operation, fn)
        return fn

    return decorator


def resolve_binding(record_type: type, operation: Operation, hook_fn: HookFn) -> HookBinding:
    """Inspect a hook's signature and build its binding.

    The first parameter receives the record instance. A following parameter
    annotated with RequestContext receives the context; a trailing parameter
    receives the decoded payload.
    """
    name = getattr(hook_fn, "__qualname__", repr(hook_fn))
    if inspect.iscoroutinefunction(hook_fn):
        raise HookSignatureError(f"Hook '{name}' must be a plain function, not a coroutine")

    params = [
        p for p in inspect.signature(hook_fn).parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if not params:
        raise HookSignatureError(f"Hook '{name}' must accept the record instance")
    params = params[1:]

    hints = _type_hints(hook_fn)

    takes_context = bool(params) and _is_context(hints.get(params[0].name))
    if takes_context:
        params = params[1:]

    if len(params) > 1:
        raise HookSignatureError(
            f"Hook '{name}' declares {len(params)} payload parameters; at most one is supported"
        )

    input_type = None
    if params:
        input_type = hints.get(params[0].name, JSONObject)
        if input_type is not record_type:
            try:
                check_decodable(input_type)
            except PydanticUserError as e:
                raise HookSignatureError(
                    f"Hook '{name}' payload type {input_type!r} cannot be decoded: {e}"
                ) from e

    return HookBinding(
        record_type=record_type,
        operation=operation,
        function=hook_fn,
        shape=SignatureShape.of(takes_context, input_type is not None),
        input_type=input_type,
        output_type=_output_type(hints.get("return", _UNSET), record_type),
    )


def _type_hints(fn: HookFn) -> dict[str, Any]:
    try:
        return typing.get_type_hints(fn)
    except (NameError, TypeError):
        return dict(getattr(fn, "__annotations__", {}))


def _is_context(annotation: Any) -> bool:
    return inspect.isclass(annotation) and issubclass(annotation, RequestContext)


def _output_type(annotation: Any, record_type: type) -> Any:
    if annotation is _UNSET or annotation is None or annotation is type(None):
        return record_type
    if annotation is Any:
        return object

    origin = typing.get_origin(annotation)
    if origin in (Union, types.UnionType):
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        resolved = tuple(_output_type(a, record_type) for a in members)
        return resolved[0] if len(resolved) == 1 else resolved
    if origin is not None:
        return origin
    if inspect.isclass(annotation):
        return annotation
    return object
