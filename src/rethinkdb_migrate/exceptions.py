"""Exception classes for rethinkdb-migrate."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rethinkdb_migrate.migrations.loader import MigrationUnit

__all__ = [
    "MigrateError",
    "ConfigError",
    "DatabaseConnectionError",
    "DiscoveryError",
    "LoadError",
    "LedgerError",
    "MigrationExecutionError",
    "PersistenceError",
    "ScaffoldError",
]


class MigrateError(Exception):
    """Base exception for rethinkdb-migrate.

    ``stage`` names the part of the invocation that failed so the CLI can
    report it.
    """

    stage = "migration"


class ConfigError(MigrateError):
    """Invalid or incomplete configuration."""

    stage = "validation"


class DatabaseConnectionError(MigrateError):
    """Could not connect to, create, or wait for the target database."""

    stage = "connection"


class DiscoveryError(MigrateError):
    """Migrations directory unreadable or a filename has a bad timestamp."""

    stage = "discovery"


class LoadError(MigrateError):
    """A migration file cannot be imported or lacks up/down."""

    stage = "discovery"


class LedgerError(MigrateError):
    """The migrations table or its index cannot be created or read."""

    stage = "discovery"


class MigrationExecutionError(MigrateError):
    """A migration's up or down step failed."""

    stage = "execution"

    def __init__(
        self,
        message: str,
        unit: "MigrationUnit",
        completed: Optional[list["MigrationUnit"]] = None,
    ):
        self.unit = unit
        self.completed = list(completed or [])
        super().__init__(message)


class PersistenceError(MigrateError):
    """Writing to the migrations table failed after a successful run."""

    stage = "persistence"


class ScaffoldError(MigrateError):
    """A new migration file could not be created."""

    stage = "create"
