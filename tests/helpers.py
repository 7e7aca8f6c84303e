"""Shared test helpers for rethinkdb-migrate tests."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from rethinkdb_migrate.config import Config
from rethinkdb_migrate.database import InMemoryDatabase
from rethinkdb_migrate.migrations.loader import MigrationUnit
from rethinkdb_migrate.migrations.parser import (
    MigrationDescriptor,
    parse_migration_filename,
)

EVENTS_TABLE = "events"

MIGRATION_TEMPLATE = '''
async def up(r, conn):
    await r.insert("events", {{"migration": "{name}", "direction": "up"}})


async def down(r, conn):
    await r.insert("events", {{"migration": "{name}", "direction": "down"}})
'''

FAILING_UP_TEMPLATE = '''
async def up(r, conn):
    raise RuntimeError("{name} exploded")


async def down(r, conn):
    await r.insert("events", {{"migration": "{name}", "direction": "down"}})
'''


def ts(value: str) -> datetime:
    """Parse YYYYMMDDHHmmss as an aware UTC datetime."""
    return datetime.strptime(value, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)


def write_migration(
    directory: Path, filename: str, template: str = MIGRATION_TEMPLATE
) -> Path:
    """Write a migration file that logs its own execution into EVENTS_TABLE."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(template.format(name=filename))
    return path


def make_test_config(tmp_path: Path, **overrides) -> Config:
    """Create a Config whose migrations directory is tmp_path/migrations."""
    values = dict(op="up", db="test_db", relative_to=str(tmp_path))
    values.update(overrides)
    return Config(**values)


def make_database() -> InMemoryDatabase:
    db = InMemoryDatabase()
    db.tables[EVENTS_TABLE] = []
    db.indexes[EVENTS_TABLE] = set()
    return db


def events(db: InMemoryDatabase) -> list[tuple[str, str]]:
    return [(row["migration"], row["direction"]) for row in db.rows(EVENTS_TABLE)]


class FakeCode:
    """Migration code recording calls into a shared list."""

    def __init__(self, name: str, calls: list, fail_on: Optional[str] = None):
        self._name = name
        self._calls = calls
        self._fail_on = fail_on

    async def _step(self, direction: str) -> None:
        if self._fail_on == direction:
            raise RuntimeError(f"{self._name} {direction} failed")
        self._calls.append((self._name, direction))

    def up(self, r, conn):
        return self._step("up")

    def down(self, r, conn):
        return self._step("down")


def make_unit(
    filename: str, calls: Optional[list] = None, fail_on: Optional[str] = None
) -> MigrationUnit:
    descriptor = parse_migration_filename(filename)
    assert descriptor is not None
    code = FakeCode(descriptor.name, calls if calls is not None else [], fail_on)
    return MigrationUnit.from_descriptor(descriptor, code)


class FakeSource:
    """In-memory MigrationSource keyed by filename."""

    def __init__(self, units: list[MigrationUnit]):
        self._units = {u.filename: u for u in units}
        self.loaded: list[str] = []

    def discover(self) -> Iterator[MigrationDescriptor]:
        for unit in self._units.values():
            yield MigrationDescriptor(
                timestamp=unit.timestamp, name=unit.name, filename=unit.filename
            )

    def load(self, descriptor: MigrationDescriptor) -> MigrationUnit:
        self.loaded.append(descriptor.filename)
        return self._units[descriptor.filename]


class FakeClient:
    """Stands in for RethinkClient, backed by an InMemoryDatabase."""

    def __init__(self, db: InMemoryDatabase, databases: Optional[list] = None):
        self.db = db
        self.databases = databases if databases is not None else []
        self.calls: list = []

    def __call__(self, config: Config) -> "FakeClient":
        self.config = config
        return self

    async def connect(self) -> None:
        self.calls.append("connect")

    async def ensure_database(self) -> bool:
        self.calls.append("ensure_database")
        if self.config.db in self.databases:
            return False
        self.databases.append(self.config.db)
        return True

    async def wait_for_ready(self, timeout: int) -> None:
        self.calls.append(("wait_for_ready", timeout))

    def database(self) -> InMemoryDatabase:
        return self.db

    async def close(self) -> None:
        self.calls.append("close")


class RecordingObserver:
    def __init__(self):
        self.events: list = []

    def notify(self, event, payload):
        self.events.append((event, payload))

