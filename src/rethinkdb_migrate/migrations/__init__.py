"""Migration discovery, ledger, resolution and execution."""

from rethinkdb_migrate.migrations.ledger import Ledger, LedgerEntry
from rethinkdb_migrate.migrations.loader import (
    DirectoryMigrationSource,
    MigrationCode,
    MigrationSource,
    MigrationUnit,
    load_migration,
)
from rethinkdb_migrate.migrations.parser import (
    MigrationDescriptor,
    discover_migrations,
    parse_migration_filename,
)
from rethinkdb_migrate.migrations.resolver import (
    pending_migrations,
    resolve_down,
    resolve_up,
)
from rethinkdb_migrate.migrations.runner import Runner, RunResult

__all__ = [
    "MigrationDescriptor",
    "parse_migration_filename",
    "discover_migrations",
    "MigrationCode",
    "MigrationUnit",
    "MigrationSource",
    "DirectoryMigrationSource",
    "load_migration",
    "Ledger",
    "LedgerEntry",
    "pending_migrations",
    "resolve_up",
    "resolve_down",
    "Runner",
    "RunResult",
]
