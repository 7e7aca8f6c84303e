"""Top-level migration flow: resolve, run, then update the ledger."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from rethinkdb_migrate.config import Config
from rethinkdb_migrate.database import Database
from rethinkdb_migrate.events import INFO, Observer, notify
from rethinkdb_migrate.migrations.ledger import Ledger
from rethinkdb_migrate.migrations.loader import (
    DirectoryMigrationSource,
    MigrationSource,
    MigrationUnit,
)
from rethinkdb_migrate.migrations.resolver import resolve_down, resolve_up
from rethinkdb_migrate.migrations.runner import Runner, RunResult
from rethinkdb_migrate.rethink.client import RethinkClient
from rethinkdb_migrate.types import Direction

__all__ = ["migrate", "migrate_up", "migrate_down", "plan"]

logger = logging.getLogger(__name__)


def _source_for(config: Config, source: Optional[MigrationSource]) -> MigrationSource:
    if source is not None:
        return source
    return DirectoryMigrationSource(config.migrations_path)


async def migrate_up(
    db: Database,
    config: Config,
    source: Optional[MigrationSource] = None,
    observer: Optional[Observer] = None,
) -> RunResult:
    """
    Run every migration newer than the ledger's latest entry.

    The ledger is written only after all of them succeed, one entry per
    migration in execution order. If any migration fails the error is raised
    and no entry is written, not even for the ones that did run.
    """
    ledger = Ledger(db, config.migrations_table)
    units = await resolve_up(ledger, _source_for(config, source))

    result = await Runner(db, observer).run(Direction.UP, units)
    result.raise_for_error()

    if result.completed:
        notify(observer, INFO, "Saving metadata")
        await ledger.record_executed(result.completed)
    return result


async def migrate_down(
    db: Database,
    config: Config,
    source: Optional[MigrationSource] = None,
    observer: Optional[Observer] = None,
) -> RunResult:
    """
    Revert every applied migration, most recent first, then empty the ledger.

    The ledger is cleared as a whole and only when every ``down`` succeeded.
    """
    ledger = Ledger(db, config.migrations_table)
    units = await resolve_down(ledger, _source_for(config, source))

    result = await Runner(db, observer).run(Direction.DOWN, units)
    result.raise_for_error()

    notify(observer, INFO, "Clearing migrations table")
    await ledger.clear()
    return result


async def plan(
    db: Database, config: Config, source: Optional[MigrationSource] = None
) -> list[MigrationUnit]:
    """What ``config.op`` would run, without running it or writing anything."""
    ledger = Ledger(db, config.migrations_table)
    source = _source_for(config, source)
    if Direction(config.op) is Direction.UP:
        return await resolve_up(ledger, source, create=False)
    return await resolve_down(ledger, source, create=False)


async def migrate(
    config: Config,
    observer: Optional[Observer] = None,
    client_factory: Callable[[Config], Any] = RethinkClient,
    source: Optional[MigrationSource] = None,
) -> Config:
    """Validate, connect, run ``config.op`` and close.

    Returns:
        The config that was used, so calls can be chained.

    Raises:
        MigrateError: Subclass naming the failing stage.
    """
    notify(observer, INFO, "Validating options")
    config.validate()

    notify(observer, INFO, "Connecting to RethinkDB")
    client = client_factory(config)
    await client.connect()
    succeeded = False
    try:
        if await client.ensure_database():
            notify(observer, INFO, f"Created db {config.db}")
        if config.wait_timeout:
            await client.wait_for_ready(config.wait_timeout)

        notify(observer, INFO, "Executing migrations")
        db = client.database()
        if Direction(config.op) is Direction.UP:
            result = await migrate_up(db, config, source, observer)
        else:
            result = await migrate_down(db, config, source, observer)
        logger.debug(
            f"{config.op}: {len(result.completed)} migration(s) executed"
        )
        succeeded = True
    finally:
        notify(observer, INFO, "Closing connection")
        try:
            await client.close()
        except Exception:
            # The run's own error takes precedence.
            if succeeded:
                raise
            logger.warning("Failed to close connection", exc_info=True)

    return config
