"""Per-backend SQL text for pagination, EXPLAIN and catalog queries."""

from __future__ import annotations

from typing import Mapping

from .errors import InvalidArgument
from .models import BackendKind

DEFAULT_SCHEMA = "public"


def quote_literal(value: str) -> str:
    """Embed ``value`` as a SQL string literal, doubling single quotes."""

    return "'" + value.replace("'", "''") + "'"


class Dialect:
    """Capability interface shared by the three supported backends."""

    kind: BackendKind
    name: str

    def quote_identifier(self, identifier: str) -> str:
        # ANSI quoting for every backend, MySQL included.
        if not identifier:
            raise InvalidArgument("Identifier must not be empty.")
        return '"' + identifier.replace('"', '""') + '"'

    def add_pagination(self, query: str, limit: int, offset: int) -> str:
        if limit < 0:
            raise InvalidArgument("Limit must be a non-negative integer.")
        if offset < 0:
            raise InvalidArgument("Offset must be a non-negative integer.")
        return f"{query} LIMIT {limit} OFFSET {offset}"

    def explain_query(self, query: str) -> str:
        return f"EXPLAIN {query}"

    def list_schemas_query(self) -> str:
        raise NotImplementedError

    def list_tables_query(self, schema: str | None = None) -> str:
        raise NotImplementedError

    def list_columns_query(self, schema: str | None, table: str) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _InformationSchemaDialect(Dialect):
    """Catalog queries for backends exposing ``information_schema``."""

    _SYSTEM_SCHEMAS: tuple[str, ...] = ("information_schema",)

    def list_schemas_query(self) -> str:
        excluded = ", ".join(quote_literal(schema) for schema in self._SYSTEM_SCHEMAS)
        return (
            "SELECT schema_name FROM information_schema.schemata "
            f"WHERE schema_name NOT IN ({excluded}) "
            "ORDER BY schema_name"
        )

    def list_tables_query(self, schema: str | None = None) -> str:
        schema = schema or DEFAULT_SCHEMA
        return (
            "SELECT table_name FROM information_schema.tables "
            f"WHERE table_schema = {quote_literal(schema)} AND table_type = 'BASE TABLE' "
            "ORDER BY table_name"
        )

    def list_columns_query(self, schema: str | None, table: str) -> str:
        schema = schema or DEFAULT_SCHEMA
        return (
            "SELECT column_name, data_type, is_nullable, column_default "
            "FROM information_schema.columns "
            f"WHERE table_schema = {quote_literal(schema)} AND table_name = {quote_literal(table)} "
            "ORDER BY ordinal_position"
        )


class PostgresDialect(_InformationSchemaDialect):
    kind = BackendKind.POSTGRES
    name = "PostgreSQL"
    _SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")


class MySQLDialect(_InformationSchemaDialect):
    kind = BackendKind.MYSQL
    name = "MySQL"
    _SYSTEM_SCHEMAS = ("information_schema", "mysql", "performance_schema", "sys")


class SQLiteDialect(Dialect):
    kind = BackendKind.SQLITE
    name = "SQLite"

    def explain_query(self, query: str) -> str:
        return f"EXPLAIN QUERY PLAN {query}"

    def list_schemas_query(self) -> str:
        # SQLite has no schema catalog beyond the main database.
        return "SELECT 'main' AS schema_name"

    def list_tables_query(self, schema: str | None = None) -> str:
        return (
            "SELECT name AS table_name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )

    def list_columns_query(self, schema: str | None, table: str) -> str:
        # Table name goes in as a literal, not an identifier.
        return f"PRAGMA table_info({quote_literal(table)})"


_DIALECTS: Mapping[BackendKind, Dialect] = {
    BackendKind.POSTGRES: PostgresDialect(),
    BackendKind.MYSQL: MySQLDialect(),
    BackendKind.SQLITE: SQLiteDialect(),
}


def resolve_dialect(kind: BackendKind | str | None) -> Dialect:
    """Return the dialect for a backend tag; raises ``UnsupportedBackend``."""

    return _DIALECTS[BackendKind.parse(kind)]


__all__ = [
    "DEFAULT_SCHEMA",
    "Dialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "quote_literal",
    "resolve_dialect",
]
