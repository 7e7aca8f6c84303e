"""Command-line interface for rethinkdb-migrate."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rethinkdb_migrate.config import Config
from rethinkdb_migrate.database import InMemoryDatabase
from rethinkdb_migrate.events import LoggingObserver
from rethinkdb_migrate.exceptions import ConfigError, MigrateError
from rethinkdb_migrate.migrate import migrate, plan
from rethinkdb_migrate.migrations.ledger import Ledger
from rethinkdb_migrate.migrations.loader import DirectoryMigrationSource
from rethinkdb_migrate.rethink.client import RethinkClient
from rethinkdb_migrate.scaffold import create_migration


def _add_path_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, help="YAML config file")
    parser.add_argument(
        "--migrations-dir", help="Directory holding migration files (default: migrations)"
    )
    parser.add_argument(
        "--relative-to", help="Root the migrations directory is resolved from (default: cwd)"
    )


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    _add_path_args(parser)
    parser.add_argument("--db", help="Database name")
    parser.add_argument("--host", help="RethinkDB host (default: localhost)")
    parser.add_argument("--port", type=int, help="RethinkDB port (default: 28015)")
    parser.add_argument("--user", help="RethinkDB user")
    parser.add_argument("--password", help="RethinkDB password")
    parser.add_argument("--auth-key", help="RethinkDB auth key (legacy)")
    parser.add_argument("--ssl-ca-certs", help="CA certificate file for TLS")
    parser.add_argument(
        "--migrations-table",
        help="Table recording executed migrations (default: _migrations)",
    )
    parser.add_argument(
        "--wait-timeout",
        type=int,
        help="Wait up to this many seconds for the database to accept writes",
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="rethinkdb-migrate",
        description="RethinkDB migration tool",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for op, help_text in (
        ("up", "Run pending migrations"),
        ("down", "Revert all executed migrations"),
    ):
        op_parser = subparsers.add_parser(op, help=help_text)
        _add_connection_args(op_parser)
        op_parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List the migrations that would run without executing them",
        )

    status_parser = subparsers.add_parser("status", help="Show migration status")
    _add_connection_args(status_parser)

    create_parser = subparsers.add_parser("create", help="Create a migration file")
    create_parser.add_argument("name", help="Migration name, e.g. add-users")
    _add_path_args(create_parser)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )

    if args.command in ("up", "down"):
        return cmd_migrate(args)
    elif args.command == "status":
        return cmd_status(args)
    return cmd_create(args)


def build_config(args: argparse.Namespace, op: str) -> Config:
    """Build a Config from parsed CLI arguments, env vars and config file."""
    return Config.from_env(
        op=op,
        db=getattr(args, "db", None),
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        user=getattr(args, "user", None),
        password=getattr(args, "password", None),
        auth_key=getattr(args, "auth_key", None),
        ssl_ca_certs=getattr(args, "ssl_ca_certs", None),
        migrations_dir=args.migrations_dir,
        relative_to=args.relative_to,
        migrations_table=getattr(args, "migrations_table", None),
        wait_timeout=getattr(args, "wait_timeout", None),
        config_file=args.config,
    )


def _report(error: MigrateError) -> int:
    print(f"{error.stage.capitalize()} error: {error}", file=sys.stderr)
    cause = error.__cause__
    if cause is not None and str(cause) not in str(error):
        print(f"  caused by: {cause!r}", file=sys.stderr)
    return 2 if isinstance(error, ConfigError) else 1


def cmd_migrate(args: argparse.Namespace) -> int:
    """Run (or with --dry-run, list) migrations in the direction of args.command."""
    try:
        config = build_config(args, args.command)

        if args.dry_run:
            config.validate()
            units = asyncio.run(_plan(config))
            if not units:
                print("No migrations to run")
                return 0
            print(f"Would run {len(units)} migration(s) {config.op}:")
            for unit in units:
                print(f"  {unit.filename}")
            print("\nDry run - no migrations executed")
            return 0

        asyncio.run(migrate(config, observer=LoggingObserver()))
        print(f"Migrations {config.op} complete")
        return 0
    except MigrateError as e:
        return _report(e)
    except Exception as e:
        print(f"Run error: {e}", file=sys.stderr)
        return 1


async def _plan(config: Config):
    async with RethinkClient(config) as client:
        if not await client.select_database():
            # Missing database: nothing applied yet.
            return await plan(InMemoryDatabase(), config)
        return await plan(client.database(), config)


async def _status(config: Config):
    entries = []
    async with RethinkClient(config) as client:
        if await client.select_database():
            ledger = Ledger(client.database(), config.migrations_table)
            entries = await ledger.list_entries(create=False)
    source = DirectoryMigrationSource(config.migrations_path)
    return entries, sorted(source.discover(), key=lambda d: d.timestamp)


def cmd_status(args: argparse.Namespace) -> int:
    """Show which migration files are applied and which are pending."""
    try:
        config = build_config(args, "up")
        config.validate()
        entries, migrations = asyncio.run(_status(config))

        if not migrations and not entries:
            print(f"No migrations found in {config.migrations_path}")
            return 0

        applied = {e.filename for e in entries}
        latest = entries[0].timestamp if entries else None

        print(f"Migrations in {config.migrations_path}:")
        for migration in migrations:
            if migration.filename in applied:
                status = "✓ applied"
            elif latest is not None and migration.timestamp <= latest:
                status = "- skipped (older than latest applied)"
            else:
                status = "○ pending"
            print(f"  {migration.filename} [{status}]")

        on_disk = {m.filename for m in migrations}
        for entry in entries:
            if entry.filename not in on_disk:
                print(f"  {entry.filename} [✗ applied, file missing]")

        pending_count = sum(
            1 for m in migrations if latest is None or m.timestamp > latest
        )
        print(
            f"\nTotal: {len(migrations)} migrations "
            f"({len(entries)} applied, {pending_count} pending)"
        )
        return 0
    except MigrateError as e:
        return _report(e)
    except Exception as e:
        print(f"Status error: {e}", file=sys.stderr)
        return 1


def cmd_create(args: argparse.Namespace) -> int:
    """Write a new, empty migration file."""
    try:
        config = Config.from_env(
            migrations_dir=args.migrations_dir,
            relative_to=args.relative_to,
            config_file=args.config,
        )
        path = create_migration(args.name, config.migrations_path)
        print(f"Created {path}")
        return 0
    except MigrateError as e:
        return _report(e)
    except Exception as e:
        print(f"Create error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
