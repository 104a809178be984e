"""Database configuration and adapter factory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autocrud.persistence.adapter import PersistenceAdapter


@dataclass
class DatabaseConfig:
    """Where autocrud keeps its records, as a single SQLAlchemy-style URL.

    Only SQLite and PostgreSQL URLs get an adapter from ``create_adapter``.
    """

    url: str

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> DatabaseConfig:
        """Pick the database URL from the process environment.

        ``DATABASE_URL`` is used verbatim when set. Failing that,
        ``AUTOCRUD_DB_PATH`` names a SQLite file. Without either, the file
        lives at ``data/autocrud.db`` under ``base_path``, or at
        ``autocrud.db`` in the working directory when no base path is given.
        """
        url = os.environ.get("DATABASE_URL")
        if url:
            return cls(url=url)

        db_path = os.environ.get("AUTOCRUD_DB_PATH")
        if db_path:
            return cls(url=f"sqlite:///{db_path}")

        if base_path:
            return cls(url=f"sqlite:///{base_path / 'data' / 'autocrud.db'}")

        return cls(url="sqlite:///autocrud.db")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        return self.url.startswith("postgresql")

    @property
    def sqlalchemy_url(self) -> str:
        """The URL handed to ``create_engine``.

        Bare postgresql:// URLs are pointed at the psycopg (v3) driver.
        """
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url


def create_adapter(config: DatabaseConfig, echo: bool = False) -> PersistenceAdapter:
    """Build an unconnected adapter for ``config``.

    A missing parent directory of a SQLite file is created first. ``echo``
    makes SQLAlchemy log each statement it runs.

    Raises:
        ValueError: If the URL scheme is neither SQLite nor PostgreSQL
    """
    if config.is_sqlite or config.is_postgresql:
        from autocrud.persistence.sqlalchemy import SQLAlchemyAdapter

        if config.is_sqlite:
            # Make sure the parent directory of a file database exists
            db_path = config.url.split("///", 1)[1] if "///" in config.url else ""
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        return SQLAlchemyAdapter(config.sqlalchemy_url, echo=echo)

    raise ValueError(f"Unsupported database URL scheme: {config.url}")
