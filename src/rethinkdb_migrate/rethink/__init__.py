"""RethinkDB connectivity."""

from rethinkdb_migrate.rethink.client import RethinkClient
from rethinkdb_migrate.rethink.database import RethinkDatabase

__all__ = ["RethinkClient", "RethinkDatabase"]
