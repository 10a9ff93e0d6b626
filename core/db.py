"""
core/db.py -- Engine, schema metadata, and per-request connections.

One Database instance is built in the API lifespan and stored on app.state.
The SQLAlchemy engine owns the connection pool; get_connection() checks out
exactly one connection per request and returns it to the pool when the
request finishes, whether the handler returned or raised.

Table definitions live next to the stores that query them (auth/store.py,
catalog/store.py) and register themselves on the shared `metadata` below.

Layer rule: core/ does not import from api/, auth/ or catalog/.

Usage:
    db = Database("sqlite:///:memory:")
    db.create_all()
    with db.connect() as conn:
        ...
    db.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import MetaData, create_engine, event, text
from sqlalchemy.engine import URL, Connection, Engine

from core.config import Settings

logger = logging.getLogger("pharmabolt.db")

metadata = MetaData()

# Primary keys are Integer columns, which PostgreSQL stores in 32 bits. An id
# outside this range cannot name a row, and drivers raise rather than match
# nothing when handed one.
MAX_ROW_ID = 2**31 - 1


def valid_row_id(value: int) -> bool:
    return -MAX_ROW_ID - 1 <= value <= MAX_ROW_ID


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


class Database:
    """Thin owner of the SQLAlchemy engine."""

    def __init__(self, db_url: str | URL, connect_args: dict | None = None) -> None:
        args: dict = dict(connect_args or {})
        is_sqlite = str(db_url).startswith("sqlite")
        if is_sqlite:
            args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=args, pool_pre_ping=not is_sqlite)
        if is_sqlite:
            event.listen(self.engine, "connect", _set_wal_mode)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.sqlalchemy_url(), connect_args=settings.db_connect_args())

    def create_all(self) -> None:
        """Create any missing tables and indexes. Existing tables are left alone.

        Only tables whose store module has been imported are known to
        `metadata`; api/main.py imports both stores through its routers.
        """
        metadata.create_all(self.engine)

    def connect(self) -> Connection:
        return self.engine.connect()

    def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database ping failed")
            return False

    def close(self) -> None:
        self.engine.dispose()


def get_connection(request: Request) -> Iterator[Connection]:
    """FastAPI dependency: one pooled connection for the lifetime of a request.

    The with-block guarantees the connection goes back to the pool on every
    exit path. Uncommitted work is rolled back on release.
    """
    db: Database = request.app.state.db
    with db.connect() as conn:
        yield conn
