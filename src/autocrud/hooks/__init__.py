"""Per-operation customization hooks for record types.

A record type customizes a write by defining a method named after the
operation, or by registering a function for it:

    class Person(Base):
        ...

        def create(self, req: PersonIn) -> None:
            self.name = req.name.upper()
            self.age = req.age * 10

    @hook(Person, "update")
    def update_person(person: Person, ctx: RequestContext, req: dict) -> dict:
        return req

The first parameter always receives a fresh record instance. An optional
RequestContext parameter comes next, then at most one payload parameter.
"""

from autocrud.hooks.dispatcher import HookDispatcher
from autocrud.hooks.registry import HookRegistry, hook, resolve_binding
from autocrud.hooks.types import HookBinding, HookFn, Operation, SignatureShape

__all__ = [
    "HookBinding",
    "HookDispatcher",
    "HookFn",
    "HookRegistry",
    "Operation",
    "SignatureShape",
    "hook",
    "resolve_binding",
]
