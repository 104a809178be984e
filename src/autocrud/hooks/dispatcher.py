"""Hook dispatch: decode payloads, drive hooks, fold their outputs.

Without a binding the raw payload is bound straight into records. With
one, the payload is decoded into the hook's declared input type and the
hook is invoked once per element on a fresh record instance.
"""

from typing import Any

from autocrud import codec
from autocrud.context import RequestContext
from autocrud.errors import HookError
from autocrud.hooks.registry import HookRegistry
from autocrud.hooks.types import HookBinding, Operation
from autocrud.schema import Schema


class HookDispatcher:
    """Resolves and invokes per-operation hooks for record types."""

    def __init__(self, registry: type[HookRegistry] = HookRegistry):
        self.registry = registry

    def bind(self, record_type: type, operation: Operation | str) -> HookBinding | None:
        """Return the hook binding for an operation, or None for raw binding."""
        return self.registry.binding(record_type, operation)

    def decode(
        self,
        binding: HookBinding | None,
        schema: Schema,
        raw: bytes,
        batch: bool = False,
    ) -> list[Any]:
        """Decode a payload into the elements to dispatch.

        Always returns a list; a single payload yields one element.

        Raises:
            BindError: If the payload does not fit the expected type
        """
        if binding is None or binding.input_type is schema.record_type:
            payload = codec.decode(raw, codec.JSONObject, many=batch)
            elements = payload if batch else [payload]
            return [codec.bind_record(schema, e) for e in elements]

        if binding.input_type is None:
            # The hook takes no payload; the array only sets the invocation count
            if batch:
                return [None] * len(codec.decode(raw, Any, many=True))
            return [None]

        payload = codec.decode(raw, binding.input_type, many=batch)
        return payload if batch else [payload]

    def apply(
        self,
        binding: HookBinding,
        schema: Schema,
        context: RequestContext | None,
        element: Any,
    ) -> Any:
        """Invoke a hook for one decoded element and fold its output.

        Returns the hook's value, or the mutated record when it returns None.

        Raises:
            HookError: If the hook fails, returns an exception, or returns a
                value of a type other than its declared output type
        """
        record = schema.record_type()
        args: list[Any] = [record]
        if binding.takes_context:
            args.append(context if context is not None else RequestContext())
        if binding.takes_payload:
            args.append(element)

        try:
            output = binding.function(*args)
        except HookError:
            raise
        except Exception as e:
            raise HookError(f"Hook '{binding.name}' failed: {e}") from e

        if isinstance(output, BaseException):
            raise HookError(f"Hook '{binding.name}' failed: {output}") from output

        if output is None:
            return record

        if not isinstance(output, binding.output_type):
            raise HookError(
                f"Hook '{binding.name}' returned {type(output).__name__}, "
                f"declared {_type_name(binding.output_type)}"
            )
        return output

    def invoke(
        self,
        binding: HookBinding | None,
        schema: Schema,
        context: RequestContext | None,
        raw: bytes,
        batch: bool = False,
    ) -> Any:
        """Decode ``raw`` and dispatch every element.

        Returns one value, or a list of values in batch mode.
        """
        elements = self.decode(binding, schema, raw, batch=batch)
        if binding is None:
            outputs = elements
        else:
            outputs = [self.apply(binding, schema, context, e) for e in elements]
        return outputs if batch else outputs[0]


def _type_name(declared: Any) -> str:
    if isinstance(declared, tuple):
        return " | ".join(t.__name__ for t in declared)
    return getattr(declared, "__name__", repr(declared))
