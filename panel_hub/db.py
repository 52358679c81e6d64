"""
Database handle for the hub.

One Database is created at startup and passed to every component. A bare
path or sqlite:/// URL opens a SQLite file; postgresql:// URLs use a psycopg2
connection pool. Queries are written once with ? placeholders.
"""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from panel_hub.errors import StorageError
from panel_hub.models import as_utc, format_timestamp

logger = logging.getLogger(__name__)

DRIVER_ERRORS = (sqlite3.Error, psycopg2.Error)
INTEGRITY_ERRORS = (sqlite3.IntegrityError, psycopg2.IntegrityError)

SQLITE_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS nodes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        ip TEXT UNIQUE NOT NULL,
        status TEXT NOT NULL DEFAULT 'offline',
        last_seen TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS samples (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        node_id INTEGER NOT NULL REFERENCES nodes (id),
        cpu_percent REAL NOT NULL,
        memory_total INTEGER NOT NULL,
        memory_used INTEGER NOT NULL,
        memory_percent REAL NOT NULL,
        cpu_temp REAL NOT NULL DEFAULT 0,
        timestamp TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_samples_node_time ON samples (node_id, timestamp)",
]

POSTGRES_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id BIGSERIAL PRIMARY KEY,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS nodes (
        id BIGSERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        ip TEXT UNIQUE NOT NULL,
        status TEXT NOT NULL DEFAULT 'offline',
        last_seen TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS samples (
        id BIGSERIAL PRIMARY KEY,
        node_id BIGINT NOT NULL REFERENCES nodes (id),
        cpu_percent DOUBLE PRECISION NOT NULL,
        memory_total BIGINT NOT NULL,
        memory_used BIGINT NOT NULL,
        memory_percent DOUBLE PRECISION NOT NULL,
        cpu_temp DOUBLE PRECISION NOT NULL DEFAULT 0,
        timestamp TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_samples_node_time ON samples (node_id, timestamp)",
]


@contextmanager
def storage_errors(message: str):
    """Turn driver errors into a StorageError carrying only `message`"""
    try:
        yield
    except DRIVER_ERRORS as e:
        logger.error(message, exc_info=True)
        raise StorageError(message) from e


class Database:
    """Shared storage handle with scoped connection acquisition"""

    def __init__(
        self,
        url: str,
        min_connections: int = 1,
        max_connections: int = 10,
        busy_timeout: float = 30.0
    ):
        self.url = url
        self.busy_timeout = busy_timeout
        self.pool: Optional[ThreadedConnectionPool] = None
        self.path: Optional[str] = None

        if url.startswith(('postgres://', 'postgresql://')):
            self.dialect = 'postgresql'
            self.pool = ThreadedConnectionPool(
                min_connections,
                max_connections,
                url,
                cursor_factory=RealDictCursor
            )
        else:
            self.dialect = 'sqlite'
            self.path = url[len('sqlite:///'):] if url.startswith('sqlite:///') else url
            if self.path != ':memory:':
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect_sqlite(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    @contextmanager
    def connection(self, conn=None):
        """
        Acquire a connection for one unit of work.

        Commits when the block exits normally and rolls back on any error.
        Passing an open connection joins the caller's transaction instead.
        """
        if conn is not None:
            yield conn
            return

        conn = self.pool.getconn() if self.pool is not None else self._connect_sqlite()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if self.pool is not None:
                self.pool.putconn(conn)
            else:
                conn.close()

    def execute(self, conn, query: str, params: Sequence[Any] = ()):
        """Run a ?-placeholder query on either backend and return the cursor"""
        if self.dialect == 'postgresql':
            query = query.replace('?', '%s')
        cur = conn.cursor()
        cur.execute(query, tuple(params))
        return cur

    def fetchone(self, conn, query: str, params: Sequence[Any] = ()) -> Optional[dict]:
        cur = self.execute(conn, query, params)
        try:
            row = cur.fetchone()
        finally:
            cur.close()
        return dict(row) if row is not None else None

    def fetchall(self, conn, query: str, params: Sequence[Any] = ()) -> List[dict]:
        cur = self.execute(conn, query, params)
        try:
            return [dict(row) for row in cur.fetchall()]
        finally:
            cur.close()

    def to_db_time(self, value: datetime) -> Union[str, datetime]:
        """SQLite keeps canonical UTC text; PostgreSQL takes an aware datetime"""
        if self.dialect == 'sqlite':
            return format_timestamp(value)
        return as_utc(value)

    def init_schema(self) -> None:
        """Create tables and indexes if they do not exist yet"""
        schema = SQLITE_SCHEMA if self.dialect == 'sqlite' else POSTGRES_SCHEMA
        with self.connection() as conn:
            if self.dialect == 'sqlite':
                conn.execute('PRAGMA journal_mode = WAL')
            for statement in schema:
                self.execute(conn, statement).close()
        logger.info("Database schema ready", extra={'context': {'dialect': self.dialect}})

    def close(self) -> None:
        """Close all pooled connections (SQLite connections are per scope)"""
        if self.pool is not None:
            self.pool.closeall()
            self.pool = None
