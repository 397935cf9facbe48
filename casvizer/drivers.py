"""Synchronous driver handles wrapping sqlite3, asyncpg and PyMySQL."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from dataclasses import dataclass
from typing import Any, Coroutine, Iterator, Protocol, runtime_checkable
from urllib.parse import unquote, urlsplit

import asyncpg
import pymysql

from .errors import ConnectionFailed, QueryFailed
from .models import BackendKind

LOG = logging.getLogger(__name__)

MYSQL_DEFAULT_PORT = 3306


@dataclass(frozen=True, slots=True)
class RowSet:
    """Fully materialized rows plus the driver-reported column names."""

    columns: tuple[str, ...]
    rows: tuple[tuple[object, ...], ...]

    def records(self) -> Iterator[dict[str, object]]:
        """Yield each row keyed by lower-cased column name."""

        keys = tuple(column.lower() for column in self.columns)
        for row in self.rows:
            yield dict(zip(keys, row))


@runtime_checkable
class DriverHandle(Protocol):
    """Blocking connection handle the core talks to."""

    def is_open(self) -> bool: ...

    def query(self, sql: str) -> RowSet: ...

    def execute(self, sql: str) -> int: ...

    def close(self) -> None: ...


class SqliteHandle:
    """Handle backed by the standard library sqlite3 module."""

    def __init__(self, path: str) -> None:
        self._path = path
        # The UI runs statements from worker threads; the registry serializes access.
        self._conn = sqlite3.connect(path, check_same_thread=False)

    def is_open(self) -> bool:
        try:
            self._conn.total_changes
        except sqlite3.ProgrammingError:
            return False
        return True

    def query(self, sql: str) -> RowSet:
        try:
            cursor = self._conn.execute(sql)
            columns = tuple(description[0] for description in cursor.description or ())
            rows = tuple(tuple(row) for row in cursor.fetchall())
        except sqlite3.Error as exc:
            raise QueryFailed(str(exc)) from exc
        return RowSet(columns=columns, rows=rows)

    def execute(self, sql: str) -> int:
        try:
            cursor = self._conn.execute(sql)
            self._conn.commit()
        except sqlite3.Error as exc:
            raise QueryFailed(str(exc)) from exc
        return max(cursor.rowcount, 0)

    def close(self) -> None:
        self._conn.close()


class AsyncpgHandle:
    """Blocking facade over an asyncpg connection.

    asyncpg is coroutine-only, so each handle owns a private event loop
    running on a daemon thread and submits work to it.
    """

    def __init__(self, dsn: str, username: str | None = None, secret: str | None = None) -> None:
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="casvizer-asyncpg",
            daemon=True,
        )
        self._loop_thread.start()
        kwargs: dict[str, object] = {"dsn": dsn}
        if username:
            kwargs["user"] = username
        if secret:
            kwargs["password"] = secret
        try:
            self._conn = self._run(asyncpg.connect(**kwargs))
        except BaseException:
            self._shutdown_loop()
            raise

    def is_open(self) -> bool:
        return self._loop.is_running() and not self._conn.is_closed()

    def query(self, sql: str) -> RowSet:
        try:
            return self._run(self._query(sql))
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise QueryFailed(str(exc)) from exc

    def execute(self, sql: str) -> int:
        try:
            status = self._run(self._conn.execute(sql))
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise QueryFailed(str(exc)) from exc
        return _affected_rows(status)

    def close(self) -> None:
        try:
            if not self._conn.is_closed():
                self._run(self._conn.close())
        finally:
            self._shutdown_loop()

    async def _query(self, sql: str) -> RowSet:
        statement = await self._conn.prepare(sql)
        columns = tuple(attribute.name for attribute in statement.get_attributes())
        records = await statement.fetch()
        return RowSet(columns=columns, rows=tuple(tuple(record) for record in records))

    def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def _shutdown_loop(self) -> None:
        if not self._loop.is_running():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=1)


class PyMySQLHandle:
    """Handle backed by PyMySQL with autocommit enabled."""

    def __init__(self, url: str, username: str | None = None, secret: str | None = None) -> None:
        parts = urlsplit(url)
        self._conn = pymysql.connect(
            host=parts.hostname or "localhost",
            port=parts.port or MYSQL_DEFAULT_PORT,
            user=username or (unquote(parts.username) if parts.username else None),
            password=secret or (unquote(parts.password) if parts.password else ""),
            database=parts.path.lstrip("/") or None,
            autocommit=True,
        )

    def is_open(self) -> bool:
        return bool(self._conn.open)

    def query(self, sql: str) -> RowSet:
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(sql)
                columns = tuple(description[0] for description in cursor.description or ())
                rows = tuple(tuple(row) for row in cursor.fetchall())
        except pymysql.MySQLError as exc:
            raise QueryFailed(str(exc)) from exc
        return RowSet(columns=columns, rows=rows)

    def execute(self, sql: str) -> int:
        try:
            with self._conn.cursor() as cursor:
                return cursor.execute(sql)
        except pymysql.MySQLError as exc:
            raise QueryFailed(str(exc)) from exc

    def close(self) -> None:
        if self._conn.open:
            self._conn.close()


def sqlite_path(connection_string: str) -> str:
    """Extract the file path from ``sqlite:<path>`` (``sqlite:///abs`` also works)."""

    path = connection_string
    if path.startswith("sqlite:"):
        path = path[len("sqlite:"):]
        if path.startswith("//"):
            path = path[2:]
    return path


def open_handle(
    kind: BackendKind,
    connection_string: str,
    username: str | None = None,
    secret: str | None = None,
) -> DriverHandle:
    """Open a driver handle; any driver failure becomes ``ConnectionFailed``."""

    try:
        if kind is BackendKind.SQLITE:
            return SqliteHandle(sqlite_path(connection_string))
        if kind is BackendKind.POSTGRES:
            return AsyncpgHandle(connection_string, username, secret)
        return PyMySQLHandle(connection_string, username, secret)
    except Exception as exc:
        raise ConnectionFailed(f"Failed to connect to {kind.value} database: {exc}") from exc


def _affected_rows(status: str | None) -> int:
    """Parse the trailing count from a command tag such as ``UPDATE 3``."""

    if not status:
        return 0
    tail = status.rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else 0


__all__ = [
    "AsyncpgHandle",
    "DriverHandle",
    "PyMySQLHandle",
    "RowSet",
    "SqliteHandle",
    "open_handle",
    "sqlite_path",
]
