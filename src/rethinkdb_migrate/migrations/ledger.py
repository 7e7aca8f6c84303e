"""The migrations table recording which migrations have been executed."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from rethinkdb_migrate.database import Database
from rethinkdb_migrate.exceptions import ConfigError, LedgerError, PersistenceError
from rethinkdb_migrate.migrations.loader import MigrationUnit
from rethinkdb_migrate.types import EPOCH, TABLE_NAME_RE, Record

__all__ = [
    "DEFAULT_TABLE",
    "Ledger",
    "LedgerEntry",
    "format_timestamp",
    "parse_timestamp",
]

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "_migrations"
TIMESTAMP_INDEX = "timestamp"


def _validate_table_name(value: str) -> str:
    if not TABLE_NAME_RE.match(value):
        raise ConfigError(f"Invalid migrations table name: {value!r}")
    return value


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2021-01-01T12:00:00.000Z."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Read a stored timestamp: an ISO string, or a native ReQL time."""
    if isinstance(value, datetime):
        parsed = value
    else:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class LedgerEntry:
    """Record of a migration that has been executed."""

    timestamp: datetime
    name: str
    filename: str

    @classmethod
    def from_unit(cls, unit: MigrationUnit) -> "LedgerEntry":
        return cls(timestamp=unit.timestamp, name=unit.name, filename=unit.filename)

    @classmethod
    def from_record(cls, record: Record) -> "LedgerEntry":
        return cls(
            timestamp=parse_timestamp(record["timestamp"]),
            name=record["name"],
            filename=record["filename"],
        )

    def to_record(self) -> Record:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "name": self.name,
            "filename": self.filename,
        }


class Ledger:
    """
    The migrations table: which migrations count as applied.

    Semantics:
    - The set of entries is exactly the set of applied migrations.
    - "up" appends one entry per executed migration; "down" removes all
      entries at once.
    - There is no lock: concurrent invocations against the same table can
      both see the same pending set and apply it twice.
    """

    def __init__(self, db: Database, table: str = DEFAULT_TABLE) -> None:
        self._db = db
        self.table = _validate_table_name(table)

    async def ensure_table(self) -> None:
        """Create the table and its timestamp index unless the table exists."""
        try:
            tables = await self._db.list_tables()
            if self.table in tables:
                return
            logger.debug(f"Creating migrations table {self.table}")
            try:
                await self._db.create_table(self.table)
            except Exception:
                if self.table not in await self._db.list_tables():
                    raise
                logger.debug(f"Migrations table {self.table} appeared meanwhile")
                return
            await self._db.create_index(self.table, TIMESTAMP_INDEX)
            await self._db.wait_for_index(self.table)
        except Exception as exc:
            raise LedgerError(
                f"Failed to prepare migrations table '{self.table}': {exc}"
            ) from exc

    async def exists(self) -> bool:
        try:
            return self.table in await self._db.list_tables()
        except Exception as exc:
            raise LedgerError(
                f"Failed to read migrations table '{self.table}': {exc}"
            ) from exc

    async def list_entries(self, create: bool = True) -> list[LedgerEntry]:
        """Return all entries, most recent timestamp first.

        With ``create=False`` nothing is written: a missing table reads as
        an empty ledger.
        """
        if create:
            await self.ensure_table()
        elif not await self.exists():
            return []
        try:
            rows = await self._db.fetch_ordered(
                self.table, TIMESTAMP_INDEX, descending=True
            )
            entries = [LedgerEntry.from_record(row) for row in rows]
        except Exception as exc:
            raise LedgerError(
                f"Failed to read migrations table '{self.table}': {exc}"
            ) from exc
        # Sort again so the order holds for backends that ignore the index.
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries

    async def get_latest(self, create: bool = True) -> Optional[LedgerEntry]:
        entries = await self.list_entries(create=create)
        return entries[0] if entries else None

    async def latest_timestamp(self, create: bool = True) -> datetime:
        latest = await self.get_latest(create=create)
        return latest.timestamp if latest is not None else EPOCH

    async def record_executed(self, units: Iterable[MigrationUnit]) -> None:
        """Insert one entry per unit, in order, each insert awaited in turn.

        A failing insert stops the loop; entries written before it stay.
        """
        for unit in units:
            record = LedgerEntry.from_unit(unit).to_record()
            try:
                await self._db.insert(self.table, record)
            except Exception as exc:
                raise PersistenceError(
                    f"Failed to record migration '{unit.filename}': {exc}"
                ) from exc

    async def clear(self) -> None:
        try:
            await self._db.delete_all(self.table)
        except Exception as exc:
            raise PersistenceError(
                f"Failed to clear migrations table '{self.table}': {exc}"
            ) from exc
