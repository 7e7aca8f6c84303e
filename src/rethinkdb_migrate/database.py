"""Database capability consumed by the migration engine."""

from __future__ import annotations

import copy
from typing import Any, Protocol, runtime_checkable

from rethinkdb_migrate.types import FieldName, Record, TableName

__all__ = ["Database", "InMemoryDatabase"]


@runtime_checkable
class Database(Protocol):
    """
    Minimal set of asynchronous operations the migration engine needs.

    ``r`` and ``conn`` are handed verbatim to each migration's ``up`` and
    ``down``; the engine itself never touches them.
    """

    r: Any
    conn: Any

    async def list_tables(self) -> list[TableName]:
        ...

    async def create_table(self, name: TableName) -> None:
        ...

    async def create_index(self, table: TableName, field: FieldName) -> None:
        ...

    async def wait_for_index(self, table: TableName) -> None:
        ...

    async def fetch_ordered(
        self, table: TableName, field: FieldName, descending: bool = False
    ) -> list[Record]:
        """Return all records of ``table`` ordered by ``field``."""
        ...

    async def insert(self, table: TableName, record: Record) -> None:
        ...

    async def delete_all(self, table: TableName) -> None:
        ...


class InMemoryDatabase:
    """Dict-backed Database, for tests and for running migrations without a server."""

    def __init__(self, r: Any = None, conn: Any = None) -> None:
        self.tables: dict[TableName, list[Record]] = {}
        self.indexes: dict[TableName, set[FieldName]] = {}
        self.r = self if r is None else r
        self.conn = conn

    def _table(self, name: TableName) -> list[Record]:
        if name not in self.tables:
            raise KeyError(f"Table '{name}' does not exist")
        return self.tables[name]

    async def list_tables(self) -> list[TableName]:
        return list(self.tables)

    async def create_table(self, name: TableName) -> None:
        if name in self.tables:
            raise ValueError(f"Table '{name}' already exists")
        self.tables[name] = []
        self.indexes[name] = set()

    async def create_index(self, table: TableName, field: FieldName) -> None:
        self._table(table)
        if field in self.indexes[table]:
            raise ValueError(f"Index '{field}' already exists on '{table}'")
        self.indexes[table].add(field)

    async def wait_for_index(self, table: TableName) -> None:
        self._table(table)

    async def fetch_ordered(
        self, table: TableName, field: FieldName, descending: bool = False
    ) -> list[Record]:
        rows = sorted(self._table(table), key=lambda row: row[field], reverse=descending)
        return [copy.deepcopy(row) for row in rows]

    async def insert(self, table: TableName, record: Record) -> None:
        self._table(table).append(copy.deepcopy(record))

    async def delete_all(self, table: TableName) -> None:
        self._table(table).clear()

    def rows(self, table: TableName) -> list[Record]:
        """Synchronous snapshot of a table, for assertions."""
        return [copy.deepcopy(row) for row in self.tables.get(table, [])]

    def has_index(self, table: TableName, field: FieldName) -> bool:
        return field in self.indexes.get(table, set())

    def __repr__(self) -> str:
        return f"InMemoryDatabase(tables={sorted(self.tables)!r})"

