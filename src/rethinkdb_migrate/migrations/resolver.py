"""Decide which migrations to run, and in what order."""

from __future__ import annotations

from rethinkdb_migrate.migrations.ledger import Ledger
from rethinkdb_migrate.migrations.loader import MigrationSource, MigrationUnit
from rethinkdb_migrate.migrations.parser import MigrationDescriptor

__all__ = ["pending_migrations", "resolve_up", "resolve_down"]


async def pending_migrations(
    ledger: Ledger, source: MigrationSource, create: bool = True
) -> list[MigrationDescriptor]:
    """
    Migrations newer than the most recent ledger entry, oldest first.

    Only the latest applied timestamp matters: a file dated at or before it
    is treated as applied even if it has no entry of its own. The sort is
    stable, so equal timestamps keep filename order.

    ``create=False`` reads the ledger without creating its table.
    """
    latest = await ledger.latest_timestamp(create=create)
    newer = [d for d in source.discover() if d.timestamp > latest]
    return sorted(newer, key=lambda d: d.timestamp)


async def resolve_up(
    ledger: Ledger, source: MigrationSource, create: bool = True
) -> list[MigrationUnit]:
    """Loaded migrations to run forward, ascending by timestamp."""
    pending = await pending_migrations(ledger, source, create=create)
    return [source.load(d) for d in pending]


async def resolve_down(
    ledger: Ledger, source: MigrationSource, create: bool = True
) -> list[MigrationUnit]:
    """Every applied migration, loaded from disk, most recent first."""
    entries = await ledger.list_entries(create=create)
    return [
        source.load(
            MigrationDescriptor(
                timestamp=entry.timestamp, name=entry.name, filename=entry.filename
            )
        )
        for entry in entries
    ]
