"""Shared dataclasses used across connection/query modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from .errors import InvalidArgument, UnsupportedBackend


class BackendKind(str, Enum):
    """Database products the client knows how to talk to."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: "str | BackendKind | None") -> "BackendKind":
        """Resolve a user-supplied backend tag (case-insensitive)."""

        if isinstance(value, BackendKind):
            return value
        tag = (value or "").strip().lower()
        if not tag:
            raise UnsupportedBackend("Database type must be specified.")
        tag = _ALIASES.get(tag, tag)
        try:
            return cls(tag)
        except ValueError:
            raise UnsupportedBackend(f"Unsupported database type: {value}") from None


_ALIASES = {"postgresql": "postgres"}


@dataclass(frozen=True, slots=True)
class ConnectionProfile:
    """Runtime representation of a connection profile.

    ``secret`` is always plaintext in memory; the profile repository is the
    only place that encrypts it.
    """

    name: str
    backend_kind: str
    host: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    secret: str | None = field(default=None, repr=False)
    connection_string: str | None = None

    @property
    def kind(self) -> BackendKind:
        return BackendKind.parse(self.backend_kind)


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Normalized column description returned by metadata introspection."""

    name: str
    data_type: str
    nullable: bool
    default: str | None = None

    def __str__(self) -> str:
        null_label = "NULL" if self.nullable else "NOT NULL"
        return f"{self.name} ({self.data_type}) {null_label}"


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Materialized query output returned to the UI."""

    columns: tuple[str, ...]
    rows: tuple[tuple[object, ...], ...]
    elapsed_ms: int
    statement: str = ""

    def __post_init__(self) -> None:
        columns = tuple(str(column) for column in self.columns)
        rows = tuple(tuple(row) for row in self.rows)
        width = len(columns)
        for index, row in enumerate(rows):
            if len(row) != width:
                raise InvalidArgument(
                    f"Row {index} has {len(row)} values but the result has {width} columns."
                )
        object.__setattr__(self, "columns", columns)
        object.__setattr__(self, "rows", rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @classmethod
    def from_rows(
        cls,
        columns: Sequence[str],
        rows: Sequence[Sequence[object]],
        *,
        elapsed_ms: int = 0,
        statement: str = "",
    ) -> "QueryResult":
        return cls(
            columns=tuple(columns),
            rows=tuple(tuple(row) for row in rows),
            elapsed_ms=elapsed_ms,
            statement=statement,
        )


__all__ = ["BackendKind", "ColumnInfo", "ConnectionProfile", "QueryResult"]
