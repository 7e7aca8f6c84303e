"""Tests for migration filename parsing and discovery."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from rethinkdb_migrate.exceptions import DiscoveryError
from rethinkdb_migrate.migrations.parser import (
    MigrationDescriptor,
    discover_migrations,
    parse_migration_filename,
)

# 20210101120000 written in Arabic-Indic digits
NON_ASCII_DIGITS = "".join(chr(0x0660 + int(d)) for d in "20210101120000")


class TestParseFilename:
    def test_parser_extracts_timestamp_and_name(self):
        descriptor = parse_migration_filename("20210101120000-add-users.py")

        assert descriptor == MigrationDescriptor(
            timestamp=datetime(2021, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
            name="add-users",
            filename="20210101120000-add-users.py",
        )

    def test_parser_timestamp_is_utc(self):
        descriptor = parse_migration_filename("20210101120000-add-users.py")

        assert descriptor.timestamp.utcoffset().total_seconds() == 0

    def test_parser_keeps_hyphens_and_dots_in_name(self):
        descriptor = parse_migration_filename("20200315080910-add.users-index.py")

        assert descriptor.name == "add.users-index"

    def test_parser_custom_extension(self):
        descriptor = parse_migration_filename(
            "20210101120000-add-users.js", extension=".js"
        )

        assert descriptor is not None
        assert descriptor.name == "add-users"

    @pytest.mark.parametrize(
        "filename",
        [
            "notes.txt",
            "README.md",
            "__init__.py",
            "2021010112000-short.py",
            "202101011200000-long.py",
            "20210101120000_add_users.py",
            "20210101120000-add-users.js",
            "20210101120000-add-users.py.bak",
            NON_ASCII_DIGITS + "-arabic-digits.py",
        ],
    )
    def test_parser_non_matching_returns_none(self, filename):
        assert parse_migration_filename(filename) is None

    def test_parser_invalid_calendar_date_raises_DiscoveryError(self):
        with pytest.raises(DiscoveryError, match="20211301120000-bad-month.py"):
            parse_migration_filename("20211301120000-bad-month.py")

    def test_parser_invalid_time_raises_DiscoveryError(self):
        with pytest.raises(DiscoveryError):
            parse_migration_filename("20210101256000-bad-hour.py")

    def test_parser_empty_name_raises_DiscoveryError(self):
        with pytest.raises(DiscoveryError, match="name cannot be empty"):
            parse_migration_filename("20210101120000-.py")

    def test_descriptor_requires_aware_timestamp(self):
        with pytest.raises(TypeError):
            MigrationDescriptor(
                timestamp=datetime(2021, 1, 1), name="x", filename="x.py"
            )


class TestDiscoverMigrations:
    def test_discover_ignores_non_migration_files(self, tmp_path: Path):
        (tmp_path / "20210101120000-add-users.py").write_text("")
        (tmp_path / "notes.txt").write_text("hello")
        (tmp_path / "helpers.py").write_text("")

        found = list(discover_migrations(tmp_path))

        assert [d.filename for d in found] == ["20210101120000-add-users.py"]

    def test_discover_ignores_directories(self, tmp_path: Path):
        (tmp_path / "20210101120000-not-a-file.py").mkdir()
        (tmp_path / "__pycache__").mkdir()

        assert list(discover_migrations(tmp_path)) == []

    def test_discover_empty_directory(self, tmp_path: Path):
        assert list(discover_migrations(tmp_path)) == []

    def test_discover_is_lazy(self, tmp_path: Path):
        missing = tmp_path / "missing"

        iterator = discover_migrations(missing)

        with pytest.raises(DiscoveryError, match="(?i)failed to read"):
            next(iterator)

    def test_discover_missing_directory_raises_DiscoveryError(self, tmp_path: Path):
        with pytest.raises(DiscoveryError):
            list(discover_migrations(tmp_path / "nope"))

    def test_discover_bad_timestamp_raises_DiscoveryError(self, tmp_path: Path):
        (tmp_path / "20210101120000-ok.py").write_text("")
        (tmp_path / "20219999999999-bad.py").write_text("")

        with pytest.raises(DiscoveryError, match="20219999999999"):
            list(discover_migrations(tmp_path))
