"""Resolve migration descriptors to executable code."""

from __future__ import annotations

import importlib.util
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Iterator, Protocol, runtime_checkable

from rethinkdb_migrate.exceptions import LoadError
from rethinkdb_migrate.migrations.parser import (
    DEFAULT_EXTENSION,
    MigrationDescriptor,
    discover_migrations,
)

__all__ = [
    "MigrationCode",
    "MigrationUnit",
    "MigrationSource",
    "DirectoryMigrationSource",
    "load_migration",
]


@runtime_checkable
class MigrationCode(Protocol):
    """What a migration module must expose."""

    def up(self, r: Any, conn: Any) -> Awaitable[Any]:
        ...

    def down(self, r: Any, conn: Any) -> Awaitable[Any]:
        ...


@dataclass(frozen=True)
class MigrationUnit:
    timestamp: datetime
    name: str
    filename: str
    code: Any

    @classmethod
    def from_descriptor(
        cls, descriptor: MigrationDescriptor, code: Any
    ) -> "MigrationUnit":
        return cls(
            timestamp=descriptor.timestamp,
            name=descriptor.name,
            filename=descriptor.filename,
            code=code,
        )


@runtime_checkable
class MigrationSource(Protocol):
    """Where migrations come from: discovery plus code loading."""

    def discover(self) -> Iterator[MigrationDescriptor]:
        ...

    def load(self, descriptor: MigrationDescriptor) -> MigrationUnit:
        ...


def _module_name(filename: str) -> str:
    return "rethinkdb_migrate_migration_" + re.sub(r"\W", "_", Path(filename).stem)


def load_migration(descriptor: MigrationDescriptor, directory: Path) -> MigrationUnit:
    """Import a migration file by path and attach its up/down pair.

    The module is executed afresh on every call and never registered in
    ``sys.modules``.

    Raises:
        LoadError: If the file is missing, fails to import, or does not
            define callable ``up`` and ``down``
    """
    path = directory / descriptor.filename
    if not path.is_file():
        raise LoadError(f"Migration file '{path}' not found")

    spec = importlib.util.spec_from_file_location(_module_name(descriptor.filename), path)
    if spec is None or spec.loader is None:
        raise LoadError(f"Cannot load migration module: {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise LoadError(f"Failed to import migration '{descriptor.filename}': {exc}") from exc

    missing = [
        attr for attr in ("up", "down") if not callable(getattr(module, attr, None))
    ]
    if missing:
        raise LoadError(
            f"Migration '{descriptor.filename}' must define callable "
            + " and ".join(missing)
        )

    return MigrationUnit.from_descriptor(descriptor, module)


class DirectoryMigrationSource:
    """Migrations stored as Python files in a single directory."""

    def __init__(self, directory: Path, extension: str = DEFAULT_EXTENSION) -> None:
        self.directory = Path(directory)
        self.extension = extension

    def discover(self) -> Iterator[MigrationDescriptor]:
        return discover_migrations(self.directory, self.extension)

    def load(self, descriptor: MigrationDescriptor) -> MigrationUnit:
        return load_migration(descriptor, self.directory)

    def __repr__(self) -> str:
        return f"DirectoryMigrationSource({str(self.directory)!r})"
