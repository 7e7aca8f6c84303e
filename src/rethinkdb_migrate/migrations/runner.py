"""Migration runner: execute loaded migrations one at a time."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Optional

from rethinkdb_migrate.database import Database
from rethinkdb_migrate.events import MIGRATION_EXECUTED, Observer, notify
from rethinkdb_migrate.exceptions import MigrationExecutionError
from rethinkdb_migrate.migrations.loader import MigrationUnit
from rethinkdb_migrate.types import Direction

__all__ = ["RunResult", "Runner"]

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """
    Outcome of one pass over a list of migrations.

    ``completed`` is always a prefix of the input list. When ``error`` is set
    the pass stopped at ``error.unit``; the completed prefix is NOT reverted.
    """

    direction: Direction
    completed: list[MigrationUnit] = field(default_factory=list)
    error: Optional[MigrationExecutionError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class Runner:
    """
    Runs migrations strictly in list order against one database handle.

    Each step is awaited before the next starts. The first failure ends the
    pass (stop-at-first-failure, no compensation): migrations that already
    ran stay applied in the database and nothing is rolled back.
    """

    def __init__(self, db: Database, observer: Optional[Observer] = None) -> None:
        self._db = db
        self._observer = observer

    async def run(
        self, direction: Direction, units: list[MigrationUnit]
    ) -> RunResult:
        result = RunResult(direction=direction)

        if not units:
            logger.info("No migrations to run.")
            return result

        for unit in units:
            logger.debug(f"Running {unit.filename} {direction.value}...")
            try:
                await self._execute(unit, direction)
            except Exception as exc:
                error = MigrationExecutionError(
                    f"Migration {unit.filename} failed during {direction.value}: {exc}",
                    unit=unit,
                    completed=result.completed,
                )
                error.__cause__ = exc
                result.error = error
                logger.debug(
                    f"Stopped after {len(result.completed)} of {len(units)} migrations"
                )
                return result

            result.completed.append(unit)
            notify(
                self._observer,
                MIGRATION_EXECUTED,
                {
                    "name": unit.name,
                    "filename": unit.filename,
                    "direction": direction.value,
                },
            )

        return result

    async def _execute(self, unit: MigrationUnit, direction: Direction) -> None:
        step = getattr(unit.code, direction.value)
        outcome = step(self._db.r, self._db.conn)
        if not inspect.isawaitable(outcome):
            raise TypeError(
                f"{direction.value}() must return an awaitable, "
                f"got {type(outcome).__name__}"
            )
        await outcome
