"""ReQL implementation of the Database capability."""

from typing import Any

from rethinkdb_migrate.types import FieldName, Record, TableName


async def _to_list(result: Any) -> list[Any]:
    """Drain a cursor; plain arrays are returned as they are."""
    if isinstance(result, list):
        return result
    return [item async for item in result]


class RethinkDatabase:
    """Runs the engine's table operations on an open asyncio connection."""

    def __init__(self, r: Any, conn: Any) -> None:
        self.r = r
        self.conn = conn

    async def list_tables(self) -> list[TableName]:
        return list(await self.r.table_list().run(self.conn))

    async def create_table(self, name: TableName) -> None:
        await self.r.table_create(name).run(self.conn)

    async def create_index(self, table: TableName, field: FieldName) -> None:
        await self.r.table(table).index_create(field).run(self.conn)

    async def wait_for_index(self, table: TableName) -> None:
        await self.r.table(table).index_wait().run(self.conn)

    async def fetch_ordered(
        self, table: TableName, field: FieldName, descending: bool = False
    ) -> list[Record]:
        key = self.r.desc(field) if descending else self.r.asc(field)
        result = await self.r.table(table).order_by(index=key).run(self.conn)
        return await _to_list(result)

    async def insert(self, table: TableName, record: Record) -> None:
        result = await self.r.table(table).insert(record).run(self.conn)
        if result.get("errors"):
            raise RuntimeError(result.get("first_error", "insert failed"))

    async def delete_all(self, table: TableName) -> None:
        await self.r.table(table).delete().run(self.conn)
