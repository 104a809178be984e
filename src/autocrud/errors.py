"""Error taxonomy for the CRUD engine.

The core raises these and never formats them for the wire; the API layer
maps each class to a status code and error body.
"""


class CrudError(Exception):
    """Base class for all engine errors."""

    code = "CRUD_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "code": self.code, "severity": "error"}


class BindError(CrudError):
    """Malformed request structure or payload.

    Raised before anything is written.
    """

    code = "BIND_ERROR"


class ResolutionError(CrudError):
    """A referenced field could not be resolved against the schema."""

    code = "NOT_RESOLVED"


class SchemaError(ResolutionError):
    """A record type cannot be described."""

    code = "SCHEMA_ERROR"


class HookError(CrudError):
    """A hook reported a failure; the current batch is aborted."""

    code = "HOOK_ABORT"


class HookSignatureError(HookError):
    """A hook is declared with a signature the dispatcher cannot drive."""

    code = "HOOK_SIGNATURE"


class PersistenceError(CrudError):
    """The storage layer failed; the transaction has been rolled back."""

    code = "PERSISTENCE_ERROR"
