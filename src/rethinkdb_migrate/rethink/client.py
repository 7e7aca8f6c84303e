import logging
from typing import Any, Optional

from rethinkdb import RethinkDB
from rethinkdb.errors import ReqlError

from rethinkdb_migrate.config import Config
from rethinkdb_migrate.exceptions import DatabaseConnectionError
from rethinkdb_migrate.rethink.database import RethinkDatabase

logger = logging.getLogger(__name__)


class RethinkClient:
    """Thin asyncio wrapper around the official RethinkDB driver.

    Owns the connection for one invocation: connect, make sure the target
    database exists and is selected, optionally wait for it to accept
    writes, and close.
    """

    def __init__(self, config: Config, r: Optional[Any] = None) -> None:
        self._config = config
        if r is None:
            r = RethinkDB()
            r.set_loop_type("asyncio")
        self._r = r
        self._conn: Any = None

    @property
    def r(self) -> Any:
        return self._r

    @property
    def conn(self) -> Any:
        if self._conn is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._conn

    async def connect(self) -> None:
        """Open the connection. Must be called before any other operation."""
        if self._conn is not None:
            raise RuntimeError("Already connected. Call close() before reconnecting.")

        try:
            self._conn = await self._r.connect(**self._config.connection_kwargs())
        except (ReqlError, OSError) as exc:
            raise DatabaseConnectionError(
                f"Could not connect to RethinkDB at "
                f"{self._config.host}:{self._config.port}: {exc}"
            ) from exc

    async def _database_exists(self) -> bool:
        try:
            return self._config.db in await self._r.db_list().run(self.conn)
        except ReqlError as exc:
            raise DatabaseConnectionError(
                f"Failed to prepare database '{self._config.db}': {exc}"
            ) from exc

    async def ensure_database(self) -> bool:
        """Create the configured database if missing and make it the default.

        Returns:
            True if the database had to be created.
        """
        db = self._config.db
        created = False
        if not await self._database_exists():
            try:
                await self._r.db_create(db).run(self.conn)
            except ReqlError as exc:
                raise DatabaseConnectionError(
                    f"Failed to prepare database '{db}': {exc}"
                ) from exc
            created = True

        self.conn.use(db)
        return created

    async def select_database(self) -> bool:
        """Make the configured database the default only if it already exists.

        Returns:
            False if the database is missing; nothing is created.
        """
        if not await self._database_exists():
            return False
        self.conn.use(self._config.db)
        return True

    async def wait_for_ready(self, timeout: int) -> None:
        """Block until the database is ready for writes, at most ``timeout`` seconds."""
        try:
            await self._r.db(self._config.db).wait(
                wait_for="ready_for_writes", timeout=timeout
            ).run(self.conn)
        except ReqlError as exc:
            raise DatabaseConnectionError(
                f"Database '{self._config.db}' not ready after {timeout}s: {exc}"
            ) from exc

    def database(self) -> RethinkDatabase:
        return RethinkDatabase(self._r, self.conn)

    async def close(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.close()
        except (ReqlError, OSError) as exc:
            raise DatabaseConnectionError(
                f"Failed to close connection to {self._config.host}:"
                f"{self._config.port}: {exc}"
            ) from exc
        finally:
            self._conn = None

    async def __aenter__(self) -> "RethinkClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            await self.close()
        except DatabaseConnectionError:
            if exc_type is None:
                raise
            logger.warning("Failed to close connection", exc_info=True)
