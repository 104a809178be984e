"""autocrud: generic CRUD endpoints derived from record types.

Mount a SQLAlchemy model and get list, read, create, update and delete
endpoints, with optional per-operation hooks::

    app = create_app([("persons", Person)], create_adapter(DatabaseConfig.from_env()))
"""

from autocrud.api import create_app, mount
from autocrud.context import RequestContext
from autocrud.errors import (
    BindError,
    CrudError,
    HookError,
    HookSignatureError,
    PersistenceError,
    ResolutionError,
    SchemaError,
)
from autocrud.hooks import HookDispatcher, HookRegistry, Operation, hook
from autocrud.persistence import DatabaseConfig, SQLAlchemyAdapter, create_adapter, run_batch
from autocrud.result import Result
from autocrud.schema import FieldDescriptor, Schema, describe
from autocrud.service import CrudService

__version__ = "0.1.0"

__all__ = [
    "BindError",
    "CrudError",
    "CrudService",
    "DatabaseConfig",
    "FieldDescriptor",
    "HookDispatcher",
    "HookError",
    "HookRegistry",
    "HookSignatureError",
    "Operation",
    "PersistenceError",
    "RequestContext",
    "ResolutionError",
    "Result",
    "SQLAlchemyAdapter",
    "Schema",
    "SchemaError",
    "create_adapter",
    "create_app",
    "describe",
    "hook",
    "run_batch",
    "mount",
]
