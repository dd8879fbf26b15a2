"""Optional Postgres connection used for identity and company-setting lookups."""

from typing import Any

import psycopg
import structlog
from psycopg.abc import Query
from psycopg.rows import dict_row

from success_mcp.config import Settings

logger = structlog.get_logger()


class Database:
    """Thin async wrapper over a single lazily opened psycopg connection."""

    def __init__(self, conninfo: str = "", **kwargs: Any) -> None:
        """Initialize the database wrapper.

        Args:
            conninfo: libpq connection string or URL
            **kwargs: Discrete connection parameters (host, port, dbname, user, password)
        """
        self.conninfo = conninfo
        self.connect_kwargs = {k: v for k, v in kwargs.items() if v is not None}
        self._conn: psycopg.AsyncConnection | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database | None":
        """Build a Database from settings, or None when no database is configured."""
        if settings.database_url:
            logger.debug("Using DATABASE_URL for database connection")
            return cls(settings.database_url)
        if settings.db_host:
            logger.debug("Using discrete database settings", host=settings.db_host, port=settings.db_port)
            return cls(
                host=settings.db_host,
                port=settings.db_port,
                dbname=settings.db_name,
                user=settings.db_user,
                password=settings.db_password,
            )
        logger.debug("No database configured")
        return None

    async def _connection(self) -> psycopg.AsyncConnection:
        if self._conn is None or self._conn.closed:
            logger.debug("Opening database connection")
            self._conn = await psycopg.AsyncConnection.connect(
                self.conninfo, autocommit=True, row_factory=dict_row, **self.connect_kwargs
            )
        return self._conn

    async def _run(self, sql: Query, params: tuple | dict | None, fetch: str) -> Any:
        """Run one statement in its own transaction.

        A failed statement rolls back with its transaction, so the shared
        connection stays usable for the next call.
        """
        conn = await self._connection()
        async with conn.transaction():
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                if fetch == "one":
                    return await cur.fetchone()
                return await cur.fetchall() if cur.description else []

    async def fetch_all(self, sql: Query, params: tuple | dict | None = None) -> list[dict[str, Any]]:
        return await self._run(sql, params, "all")

    async def fetch_one(self, sql: Query, params: tuple | dict | None = None) -> dict[str, Any] | None:
        return await self._run(sql, params, "one")

    async def execute(self, sql: Query, params: tuple | dict | None = None) -> list[dict[str, Any]]:
        """Run a write statement and return any RETURNING rows."""
        return await self._run(sql, params, "all")

    async def close(self) -> None:
        if self._conn is not None and not self._conn.closed:
            await self._conn.close()
        self._conn = None

    async def test_connection(self) -> dict[str, Any]:
        """Check connectivity and that the identity tables exist."""
        try:
            tables = await self.fetch_one(
                """
                SELECT
                  EXISTS (SELECT FROM information_schema.tables WHERE table_name = 'user_api_keys') AS has_api_keys,
                  EXISTS (SELECT FROM information_schema.tables WHERE table_name = 'users') AS has_users
                """
            )
            if not tables or not tables["has_api_keys"] or not tables["has_users"]:
                return {
                    "ok": False,
                    "error": "Required database tables not found (user_api_keys, users). Check database schema.",
                }
            count = await self.fetch_one("SELECT COUNT(*) AS count FROM user_api_keys")
            return {
                "ok": True,
                "message": f"Database connection successful. Found {count['count']} API keys.",
            }
        except psycopg.Error as e:
            logger.error("Database connection test failed", error=str(e))
            return {"ok": False, "error": f"Database connection failed: {e}"}
