"""Hook system types.

Defines the operations hooks can attach to, the signature shapes the
dispatcher understands, and the resolved per-type binding.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operation(str, Enum):
    """Write operations a record type can customize."""

    CREATE = "create"
    UPDATE = "update"


class SignatureShape(Enum):
    """Which inputs a hook asks for, besides the record instance."""

    NONE = "none"
    CONTEXT = "context"
    PAYLOAD = "payload"
    CONTEXT_PAYLOAD = "context+payload"

    @classmethod
    def of(cls, takes_context: bool, takes_payload: bool) -> "SignatureShape":
        if takes_context and takes_payload:
            return cls.CONTEXT_PAYLOAD
        if takes_context:
            return cls.CONTEXT
        if takes_payload:
            return cls.PAYLOAD
        return cls.NONE


# Hook function signature: (record, [context], [payload]) -> value | None
HookFn = Callable[..., Any]


@dataclass(frozen=True)
class HookBinding:
    """A hook resolved against a record type.

    Attributes:
        record_type: The record type the hook customizes
        operation: The operation the hook runs for
        function: The hook; its first parameter receives a fresh record
        shape: Which of context/payload the hook is supplied with
        input_type: Type the payload is decoded into, or None
        output_type: The single type (or tuple of types) a returned value
            must have
    """

    record_type: type
    operation: Operation
    function: HookFn
    shape: SignatureShape
    input_type: Any = None
    output_type: Any = object

    @property
    def name(self) -> str:
        return getattr(self.function, "__qualname__", repr(self.function))

    @property
    def takes_context(self) -> bool:
        return self.shape in (SignatureShape.CONTEXT, SignatureShape.CONTEXT_PAYLOAD)

    @property
    def takes_payload(self) -> bool:
        return self.shape in (SignatureShape.PAYLOAD, SignatureShape.CONTEXT_PAYLOAD)
