"""End-to-end workflow tests.

Real migration files on disk are discovered, loaded and run against an
in-memory database through the same ``migrate`` entry point the CLI uses.
"""

import pytest

from rethinkdb_migrate.exceptions import MigrationExecutionError
from rethinkdb_migrate.migrate import migrate
from rethinkdb_migrate.migrations.ledger import Ledger
from tests.helpers import (
    FAILING_UP_TEMPLATE,
    FakeClient,
    RecordingObserver,
    events,
    make_database,
    make_test_config,
    write_migration,
)

FIRST = "20210101000000-create-users.py"
SECOND = "20210102000000-add-email-index.py"
THIRD = "20210103000000-backfill.py"


@pytest.fixture
def migrations_dir(tmp_path):
    path = tmp_path / "migrations"
    write_migration(path, SECOND)
    write_migration(path, FIRST)
    return path


async def ledger_filenames(db, config):
    return [e.filename for e in await Ledger(db, config.migrations_table).list_entries()]


class TestUpWorkflow:
    @pytest.mark.asyncio
    async def test_runs_in_timestamp_order_and_records_ledger(
        self, tmp_path, migrations_dir
    ):
        db = make_database()
        config = make_test_config(tmp_path)

        await migrate(config, client_factory=FakeClient(db))

        assert events(db) == [(FIRST, "up"), (SECOND, "up")]
        assert await ledger_filenames(db, config) == [SECOND, FIRST]

    @pytest.mark.asyncio
    async def test_second_run_is_a_noop(self, tmp_path, migrations_dir):
        db = make_database()
        config = make_test_config(tmp_path)
        client = FakeClient(db)

        await migrate(config, client_factory=client)
        await migrate(config, client_factory=client)

        assert events(db) == [(FIRST, "up"), (SECOND, "up")]
        assert len(await ledger_filenames(db, config)) == 2

    @pytest.mark.asyncio
    async def test_new_file_runs_on_next_invocation(self, tmp_path, migrations_dir):
        db = make_database()
        config = make_test_config(tmp_path)
        client = FakeClient(db)

        await migrate(config, client_factory=client)
        write_migration(migrations_dir, THIRD)
        await migrate(config, client_factory=client)

        assert events(db)[-1] == (THIRD, "up")
        assert await ledger_filenames(db, config) == [THIRD, SECOND, FIRST]

    @pytest.mark.asyncio
    async def test_empty_directory_creates_ledger_table_only(self, tmp_path):
        (tmp_path / "migrations").mkdir()
        db = make_database()
        config = make_test_config(tmp_path)

        await migrate(config, client_factory=FakeClient(db))

        assert config.migrations_table in await db.list_tables()
        assert await ledger_filenames(db, config) == []

    @pytest.mark.asyncio
    async def test_partial_failure_leaves_ledger_untouched(
        self, tmp_path, migrations_dir
    ):
        write_migration(migrations_dir, THIRD, FAILING_UP_TEMPLATE)
        db = make_database()
        config = make_test_config(tmp_path)
        client = FakeClient(db)

        with pytest.raises(MigrationExecutionError) as exc_info:
            await migrate(config, client_factory=client)

        assert exc_info.value.unit.filename == THIRD
        assert [u.filename for u in exc_info.value.completed] == [FIRST, SECOND]
        assert events(db) == [(FIRST, "up"), (SECOND, "up")]
        assert await ledger_filenames(db, config) == []
        assert client.calls[-1] == "close"


class TestDownWorkflow:
    @pytest.mark.asyncio
    async def test_up_then_down_reverts_in_reverse_order(
        self, tmp_path, migrations_dir
    ):
        db = make_database()
        client = FakeClient(db)

        await migrate(make_test_config(tmp_path), client_factory=client)
        config = make_test_config(tmp_path, op="down")
        await migrate(config, client_factory=client)

        assert events(db) == [
            (FIRST, "up"),
            (SECOND, "up"),
            (SECOND, "down"),
            (FIRST, "down"),
        ]
        assert await ledger_filenames(db, config) == []

    @pytest.mark.asyncio
    async def test_down_with_empty_ledger_runs_nothing(self, tmp_path, migrations_dir):
        db = make_database()
        config = make_test_config(tmp_path, op="down")

        await migrate(config, client_factory=FakeClient(db))

        assert events(db) == []

    @pytest.mark.asyncio
    async def test_up_after_down_reapplies_everything(self, tmp_path, migrations_dir):
        db = make_database()
        client = FakeClient(db)
        up = make_test_config(tmp_path)

        await migrate(up, client_factory=client)
        await migrate(make_test_config(tmp_path, op="down"), client_factory=client)
        await migrate(up, client_factory=client)

        assert events(db)[-2:] == [(FIRST, "up"), (SECOND, "up")]
        assert await ledger_filenames(db, up) == [SECOND, FIRST]


class TestObserverMilestones:
    @pytest.mark.asyncio
    async def test_reports_milestones_and_executions(self, tmp_path, migrations_dir):
        db = make_database()
        observer = RecordingObserver()

        await migrate(
            make_test_config(tmp_path), observer=observer, client_factory=FakeClient(db)
        )

        infos = [payload for event, payload in observer.events if event == "info"]
        executed = [
            payload["filename"]
            for event, payload in observer.events
            if event == "migration_executed"
        ]
        assert infos == [
            "Validating options",
            "Connecting to RethinkDB",
            "Created db test_db",
            "Executing migrations",
            "Saving metadata",
            "Closing connection",
        ]
        assert executed == [FIRST, SECOND]
