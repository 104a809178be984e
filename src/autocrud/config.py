"""Application configuration loaded from YAML.

Example ``autocrud.yaml``::

    database:
      url: sqlite:///data/app.db
    prefix: /api
    mounts:
      - name: persons
        model: myapp.models:Person
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from autocrud.persistence.config import DatabaseConfig


def load_model(path: str) -> type:
    """Import a record type from a ``package.module:Class`` path.

    Raises:
        ValueError: If the path is malformed or does not name a class
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Model path must look like 'package.module:Class', got '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import module '{module_name}': {e}") from e

    target: Any = module
    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise ValueError(f"Module '{module_name}' has no attribute '{attr}'")
    if not isinstance(target, type):
        raise ValueError(f"'{path}' is not a class")
    return target


@dataclass
class MountConfig:
    """One record type exposed under a path name."""

    name: str
    model: str

    @property
    def record_type(self) -> type:
        return load_model(self.model)


@dataclass
class AppConfig:
    """Top-level application configuration."""

    database: DatabaseConfig
    mounts: list[MountConfig] = field(default_factory=list)
    prefix: str = ""

    @classmethod
    def load(cls, path: Path) -> AppConfig:
        """Load configuration from a YAML file.

        Without a ``database.url`` the database is resolved from the
        environment, relative to the file's directory.

        Raises:
            ValueError: If the file is not a mapping or a mount is incomplete
        """
        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")

        database = data.get("database") or {}
        url = database.get("url") if isinstance(database, dict) else None
        db_config = DatabaseConfig(url=url) if url else DatabaseConfig.from_env(path.parent)

        mounts: list[MountConfig] = []
        for index, entry in enumerate(data.get("mounts") or []):
            if not isinstance(entry, dict) or not entry.get("name") or not entry.get("model"):
                raise ValueError(f"{path}: mounts[{index}] needs both 'name' and 'model'")
            mounts.append(MountConfig(name=str(entry["name"]), model=str(entry["model"])))

        return cls(database=db_config, mounts=mounts, prefix=str(data.get("prefix") or ""))

    def resolved_mounts(self) -> list[tuple[str, type]]:
        """(name, record type) pairs, importing every model."""
        return [(m.name, m.record_type) for m in self.mounts]
