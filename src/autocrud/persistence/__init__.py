"""Persistence layer: adapter Protocol, SQLAlchemy implementation, batches."""

from autocrud.persistence.adapter import PersistenceAdapter, Transaction
from autocrud.persistence.batch import BatchState, BatchTransaction, run_batch
from autocrud.persistence.config import DatabaseConfig, create_adapter
from autocrud.persistence.sqlalchemy import SQLAlchemyAdapter, SQLAlchemyTransaction, parse_sort

__all__ = [
    "BatchState",
    "BatchTransaction",
    "DatabaseConfig",
    "PersistenceAdapter",
    "SQLAlchemyAdapter",
    "SQLAlchemyTransaction",
    "Transaction",
    "create_adapter",
    "parse_sort",
    "run_batch",
]
