"""Database helpers for the read API."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional, Sequence

from psycopg2 import extras, pool, sql

from portal.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.ThreadedConnectionPool] = None

PARTNER_RELATION = "partners"
PARTNER_COLUMNS = (
    "id",
    "name",
    "type",
    "description",
    "location",
    "price_range",
    "rating",
    "amenities",
    "coordinates",
    "images",
    "contact_info",
    "created_at",
    "updated_at",
)
PROFILE_RELATION = "user_profiles"


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.ThreadedConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.ThreadedConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
            options=f"-c statement_timeout={settings.db_statement_timeout_ms}",
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


def close_pool() -> None:
    """Close every pooled connection; the next query builds a fresh pool."""
    global _connection_pool
    if _connection_pool is not None:
        _connection_pool.closeall()
        _connection_pool = None
        logger.info("Database connection pool closed")


def build_select(relation: str, columns: Optional[Sequence[str]], key: str) -> sql.Composed:
    """Compose ``SELECT <columns> FROM <relation> WHERE <key> = %(value)s LIMIT 1``."""
    if columns:
        projection = sql.SQL(", ").join(sql.Identifier(column) for column in columns)
    else:
        projection = sql.SQL("*")
    return sql.SQL("SELECT {projection} FROM {relation} WHERE {key} = %(value)s LIMIT 1").format(
        projection=projection,
        relation=sql.Identifier(relation),
        key=sql.Identifier(key),
    )


class Database:
    """Thin read-only facade over a psycopg2 connection pool.

    The pool is injected for tests; when omitted the shared pool from
    :func:`init_pool` is created on first use, so constructing a ``Database``
    never touches the network.
    """

    def __init__(self, connection_pool: Optional[Any] = None):
        self._pool = connection_pool

    @property
    def pool(self) -> Any:
        if self._pool is None:
            self._pool = init_pool()
        return self._pool

    @contextmanager
    def connection(self):
        """Context manager yielding a pooled connection."""
        pg_pool = self.pool
        conn = pg_pool.getconn()
        try:
            yield conn
        finally:
            pg_pool.putconn(conn)

    def fetch_one(
        self,
        relation: str,
        columns: Optional[Sequence[str]],
        key: str,
        value: Any,
    ) -> Optional[Dict[str, Any]]:
        """Return the single row where ``key`` equals ``value``, or ``None``."""
        query = build_select(relation, columns, key)
        with self.connection() as conn:
            try:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    cur.execute(query, {"value": value})
                    row = cur.fetchone()
            finally:
                # Reads only; end the implicit transaction before the connection goes back.
                conn.rollback()
        if row is None:
            return None
        return dict(row)


def fetch_partner_row(database: Database, partner_id: str) -> Optional[Dict[str, Any]]:
    return database.fetch_one(PARTNER_RELATION, PARTNER_COLUMNS, "id", partner_id)


def fetch_profile_row(database: Database, user_id: str) -> Optional[Dict[str, Any]]:
    return database.fetch_one(PROFILE_RELATION, None, "id", user_id)
