"""Ordered, file-based migrations for RethinkDB."""

from rethinkdb_migrate.config import Config
from rethinkdb_migrate.database import Database, InMemoryDatabase
from rethinkdb_migrate.events import LoggingObserver, NullObserver, Observer
from rethinkdb_migrate.exceptions import (
    ConfigError,
    DatabaseConnectionError,
    DiscoveryError,
    LedgerError,
    LoadError,
    MigrateError,
    MigrationExecutionError,
    PersistenceError,
    ScaffoldError,
)
from rethinkdb_migrate.migrate import migrate, migrate_down, migrate_up, plan
from rethinkdb_migrate.types import Direction

__all__ = [
    "Config",
    "Database",
    "InMemoryDatabase",
    "Observer",
    "LoggingObserver",
    "NullObserver",
    "Direction",
    "migrate",
    "migrate_up",
    "migrate_down",
    "plan",
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
