"""Generate empty migration files."""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rethinkdb_migrate.exceptions import ScaffoldError
from rethinkdb_migrate.migrations.parser import TIMESTAMP_FORMAT

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

TEMPLATE = '''"""Migration: {name}

Created: {created}
"""


async def up(r, conn):
    pass


async def down(r, conn):
    pass
'''


def migration_filename(name: str, now: datetime) -> str:
    return f"{now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)}-{name}.py"


def create_migration(
    name: str, directory: Path, now: Optional[datetime] = None
) -> Path:
    """Write a new migration skeleton and return its path.

    The directory is created if needed; an existing file is never overwritten.
    """
    name = name.strip().replace(" ", "-")
    if not _NAME_RE.match(name):
        raise ScaffoldError(
            f"Invalid migration name {name!r}: use letters, digits, '-' and '_'"
        )

    now = now or datetime.now(timezone.utc)
    path = Path(directory) / migration_filename(name, now)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "x") as f:
            f.write(TEMPLATE.format(name=name, created=now.isoformat()))
    except FileExistsError:
        raise ScaffoldError(f"Migration file already exists: {path}") from None
    except OSError as exc:
        raise ScaffoldError(f"Failed to write migration {path}: {exc}") from exc

    return path
