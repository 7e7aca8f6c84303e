"""Migration filename parser for <YYYYMMDDHHmmss>-<name>.py files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from rethinkdb_migrate.exceptions import DiscoveryError

__all__ = [
    "MigrationDescriptor",
    "filename_pattern",
    "parse_migration_filename",
    "discover_migrations",
]

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
DEFAULT_EXTENSION = ".py"


@dataclass(frozen=True)
class MigrationDescriptor:
    timestamp: datetime
    name: str
    filename: str

    def __post_init__(self):
        if self.timestamp.tzinfo is None:
            raise TypeError("timestamp must be timezone-aware")


def filename_pattern(extension: str = DEFAULT_EXTENSION) -> re.Pattern[str]:
    return re.compile(r"^([0-9]{14})-(.*)" + re.escape(extension) + "$")


def parse_timestamp(value: str) -> datetime:
    """Parse a 14 digit YYYYMMDDHHmmss string as a UTC datetime.

    Raises:
        DiscoveryError: If the digits are not a valid calendar timestamp
    """
    if len(value) != 14 or not value.isdigit():
        raise DiscoveryError(f"Invalid migration timestamp '{value}'")
    # YYYY MM DD HH mm ss
    bounds = (0, 4, 6, 8, 10, 12, 14)
    parts = [int(value[a:b]) for a, b in zip(bounds, bounds[1:])]
    try:
        return datetime(*parts, tzinfo=timezone.utc)
    except ValueError as exc:
        raise DiscoveryError(f"Invalid migration timestamp '{value}': {exc}") from exc


def parse_migration_filename(
    filename: str, extension: str = DEFAULT_EXTENSION
) -> Optional[MigrationDescriptor]:
    """Parse a migration filename.

    Args:
        filename: Bare file name, e.g. 20210101120000-add-users.py
        extension: Extension migration files must carry

    Returns:
        MigrationDescriptor, or None if the name does not look like a
        migration (such files are not an error)

    Raises:
        DiscoveryError: If the timestamp segment is not a valid date/time,
            or the name segment is empty
    """
    match = filename_pattern(extension).match(filename)
    if not match:
        return None

    timestamp_str, name = match.groups()
    if not name:
        raise DiscoveryError(
            f"Invalid migration filename '{filename}': migration name cannot be empty"
        )
    try:
        timestamp = parse_timestamp(timestamp_str)
    except DiscoveryError as exc:
        raise DiscoveryError(f"Invalid migration filename '{filename}': {exc}") from exc

    return MigrationDescriptor(timestamp=timestamp, name=name, filename=filename)


def discover_migrations(
    directory: Path, extension: str = DEFAULT_EXTENSION
) -> Iterator[MigrationDescriptor]:
    """Lazily yield a descriptor for every migration file in a directory.

    Entries are yielded in filename order; callers still sort by timestamp.

    Raises:
        DiscoveryError: If the directory is missing or unreadable, or a
            matching filename carries an invalid timestamp
    """
    try:
        entries = sorted(p.name for p in directory.iterdir() if not p.is_dir())
    except OSError as exc:
        raise DiscoveryError(
            f"Failed to read migrations directory '{directory}': {exc}"
        ) from exc

    for filename in entries:
        descriptor = parse_migration_filename(filename, extension)
        if descriptor is not None:
            yield descriptor
