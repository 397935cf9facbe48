"""Tests for the driver handles."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from casvizer.drivers import (
    AsyncpgHandle,
    DriverHandle,
    PyMySQLHandle,
    RowSet,
    SqliteHandle,
    open_handle,
    sqlite_path,
)
from casvizer.errors import ConnectionFailed, QueryFailed
from casvizer.models import BackendKind


class _Attribute:
    def __init__(self, name: str) -> None:
        self.name = name


class _FakeStatement:
    def __init__(self, columns: tuple[str, ...], rows: list[tuple[object, ...]]) -> None:
        self._columns = columns
        self._rows = rows

    def get_attributes(self) -> tuple[_Attribute, ...]:
        return tuple(_Attribute(name) for name in self._columns)

    async def fetch(self) -> list[tuple[object, ...]]:
        return self._rows


class _FakeAsyncpgConnection:
    def __init__(self, columns=("id", "email"), rows=None, status: str = "UPDATE 3") -> None:  # type: ignore[no-untyped-def]
        self.columns = columns
        self.rows = rows or [(1, "anna@example.com")]
        self.status = status
        self.closed = False
        self.prepared: list[str] = []

    async def prepare(self, sql: str) -> _FakeStatement:
        self.prepared.append(sql)
        return _FakeStatement(self.columns, self.rows)

    async def execute(self, _sql: str) -> str:
        return self.status

    async def close(self) -> None:
        self.closed = True

    def is_closed(self) -> bool:
        return self.closed


def test_sqlite_handle_queries_and_executes(tmp_path: Path) -> None:
    handle = SqliteHandle(str(tmp_path / "demo.db"))
    try:
        handle.execute("CREATE TABLE t (id INTEGER, name TEXT)")
        assert handle.execute("INSERT INTO t VALUES (1, 'a'), (2, NULL)") == 2

        rows = handle.query("SELECT id, name FROM t ORDER BY id")

        assert rows.columns == ("id", "name")
        assert rows.rows == ((1, "a"), (2, None))
        assert isinstance(handle, DriverHandle)
    finally:
        handle.close()
    assert handle.is_open() is False


def test_sqlite_handle_wraps_driver_errors(tmp_path: Path) -> None:
    handle = SqliteHandle(str(tmp_path / "demo.db"))
    try:
        with pytest.raises(QueryFailed):
            handle.query("SELECT * FROM missing")
    finally:
        handle.close()


def test_row_set_records_lowercase_keys() -> None:
    rows = RowSet(columns=("COLUMN_NAME", "Data_Type"), rows=(("id", "int"),))

    assert list(rows.records()) == [{"column_name": "id", "data_type": "int"}]


@pytest.mark.parametrize(
    ("connection_string", "expected"),
    [
        ("sqlite:/tmp/demo.db", "/tmp/demo.db"),
        ("sqlite:///tmp/demo.db", "/tmp/demo.db"),
        ("sqlite:demo.db", "demo.db"),
        ("demo.db", "demo.db"),
    ],
)
def test_sqlite_path_strips_scheme(connection_string: str, expected: str) -> None:
    assert sqlite_path(connection_string) == expected


def test_asyncpg_handle_runs_queries_on_private_loop(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_conn = _FakeAsyncpgConnection()
    seen: dict[str, Any] = {}

    async def _fake_connect(**kwargs: Any) -> _FakeAsyncpgConnection:
        seen.update(kwargs)
        return fake_conn

    monkeypatch.setattr("casvizer.drivers.asyncpg.connect", _fake_connect)
    handle = AsyncpgHandle("postgresql://localhost:5432/app", "app", "pw")
    try:
        rows = handle.query("SELECT id, email FROM accounts")

        assert seen == {"dsn": "postgresql://localhost:5432/app", "user": "app", "password": "pw"}
        assert rows.columns == ("id", "email")
        assert rows.rows == ((1, "anna@example.com"),)
        assert handle.execute("UPDATE accounts SET email = email") == 3
        assert handle.is_open() is True
    finally:
        handle.close()
    assert fake_conn.closed is True
    assert handle.is_open() is False


def test_open_handle_wraps_connect_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _broken_connect(**kwargs: Any) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr("casvizer.drivers.asyncpg.connect", _broken_connect)

    with pytest.raises(ConnectionFailed, match="connection refused"):
        open_handle(BackendKind.POSTGRES, "postgresql://localhost:1/app")


class _FakeCursor:
    def __init__(self, conn: "_FakePyMySQLConnection") -> None:
        self._conn = conn
        self.description = (("ID",), ("NAME",))

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def execute(self, sql: str) -> int:
        self._conn.statements.append(sql)
        return 4

    def fetchall(self) -> tuple[tuple[object, ...], ...]:
        return ((1, "a"),)


class _FakePyMySQLConnection:
    def __init__(self) -> None:
        self.open = True
        self.statements: list[str] = []

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    def close(self) -> None:
        self.open = False


def test_pymysql_handle_parses_url_and_prefers_profile_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_conn = _FakePyMySQLConnection()
    seen: dict[str, Any] = {}

    def _fake_connect(**kwargs: Any) -> _FakePyMySQLConnection:
        seen.update(kwargs)
        return fake_conn

    monkeypatch.setattr("casvizer.drivers.pymysql.connect", _fake_connect)
    handle = PyMySQLHandle("mysql://db.internal:3307/shop", "shopper", "pw")

    rows = handle.query("SELECT id, name FROM items")

    assert seen["host"] == "db.internal"
    assert seen["port"] == 3307
    assert seen["database"] == "shop"
    assert seen["user"] == "shopper"
    assert seen["password"] == "pw"
    assert seen["autocommit"] is True
    assert rows.columns == ("ID", "NAME")
    assert handle.execute("DELETE FROM items") == 4
    handle.close()
    assert handle.is_open() is False
