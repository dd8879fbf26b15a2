"""Tests for the Postgres wrapper."""

from contextlib import asynccontextmanager

import psycopg
from psycopg import errors
import pytest

from success_mcp.config import Settings
from success_mcp.database import Database


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self.conn = conn
        self.description = None
        self._rows: list[dict] = []

    async def __aenter__(self) -> "FakeCursor":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def execute(self, query, params=None) -> None:
        self.conn.statements.append(query)
        if self.conn.aborted:
            raise errors.InFailedSqlTransaction("current transaction is aborted")
        if "fail" in query:
            self.conn.aborted = True
            raise errors.UniqueViolation("duplicate key value")
        if query.startswith("SELECT") or "RETURNING" in query:
            self.description = [("ok",)]
            self._rows = [{"ok": 1}]

    async def fetchone(self) -> dict | None:
        return self._rows[0] if self._rows else None

    async def fetchall(self) -> list[dict]:
        return list(self._rows)


class FakeConnection:
    """Connection that stays aborted after an error until its transaction ends."""

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.closed = False
        self.aborted = False
        self.statements: list[str] = []
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        try:
            yield
        finally:
            self.aborted = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_connection(monkeypatch: pytest.MonkeyPatch) -> FakeConnection:
    conn = FakeConnection()

    async def connect(conninfo="", **kwargs):
        conn.kwargs = {"conninfo": conninfo, **kwargs}
        return conn

    monkeypatch.setattr(psycopg.AsyncConnection, "connect", connect)
    return conn


def test_from_settings() -> None:
    """Test that a URL wins over discrete settings and nothing configured gives None."""
    assert Database.from_settings(Settings()) is None
    assert Database.from_settings(Settings(database_url="postgresql://x", db_host="h")).conninfo == "postgresql://x"

    discrete = Database.from_settings(Settings(db_host="h", db_name="eos", db_user="u"))
    assert discrete.connect_kwargs == {"host": "h", "port": 5432, "dbname": "eos", "user": "u"}


@pytest.mark.asyncio
async def test_failed_statement_leaves_connection_usable(fake_connection: FakeConnection) -> None:
    """Test that a statement after a failed write still succeeds on the same connection."""
    database = Database("postgresql://x")

    with pytest.raises(errors.UniqueViolation):
        await database.execute("INSERT INTO teams_on_data_fields VALUES ('fail')")

    assert await database.fetch_one("SELECT 1 AS ok") == {"ok": 1}
    assert fake_connection.transactions == 2
    assert fake_connection.kwargs["autocommit"] is True


@pytest.mark.asyncio
async def test_execute_returns_rows_only_when_returned(fake_connection: FakeConnection) -> None:
    """Test that execute returns RETURNING rows and an empty list otherwise."""
    database = Database("postgresql://x")

    assert await database.execute("UPDATE data_fields SET name = %s RETURNING id", ("x",)) == [{"ok": 1}]
    assert await database.execute("DELETE FROM data_fields WHERE id = %s", ("df1",)) == []


@pytest.mark.asyncio
async def test_close_reopens_on_next_use(fake_connection: FakeConnection) -> None:
    """Test that close drops the connection and the next call opens it again."""
    database = Database("postgresql://x")
    await database.fetch_all("SELECT 1 AS ok")

    await database.close()

    assert fake_connection.closed is True
    fake_connection.closed = False
    assert await database.fetch_all("SELECT 1 AS ok") == [{"ok": 1}]
