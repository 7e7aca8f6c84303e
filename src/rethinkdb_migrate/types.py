"""Core type definitions for rethinkdb-migrate."""

from datetime import datetime, timezone
import re
from enum import Enum
from typing import TypeAlias

TableName: TypeAlias = str
FieldName: TypeAlias = str
Record: TypeAlias = dict

# Older than any realistic migration; used when the ledger is empty.
EPOCH = datetime(1900, 1, 1, tzinfo=timezone.utc)

# Names accepted for the migrations table.
TABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

__all__ = [
    "TableName",
    "FieldName",
    "Record",
    "EPOCH",
    "TABLE_NAME_RE",
    "Direction",
]


class Direction(Enum):
    """Direction in which a set of migrations is executed."""

    UP = "up"
    DOWN = "down"
