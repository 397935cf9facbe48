"""Schema, table and column introspection over a live connection."""

from __future__ import annotations

from .connections import LiveConnection
from .models import BackendKind, ColumnInfo


class MetadataInspector:
    """Runs dialect catalog queries and normalizes their result shapes."""

    def list_schemas(self, connection: LiveConnection) -> list[str]:
        rows = connection.query(connection.dialect.list_schemas_query())
        return [str(row[0]) for row in rows.rows]

    def list_tables(self, connection: LiveConnection, schema: str | None = None) -> list[str]:
        rows = connection.query(connection.dialect.list_tables_query(schema))
        return [str(row[0]) for row in rows.rows]

    def list_columns(
        self,
        connection: LiveConnection,
        schema: str | None,
        table: str,
    ) -> list[ColumnInfo]:
        rows = connection.query(connection.dialect.list_columns_query(schema, table))
        if connection.backend_kind is BackendKind.SQLITE:
            return [_from_table_info(record) for record in rows.records()]
        return [_from_information_schema(record) for record in rows.records()]


def _from_table_info(record: dict[str, object]) -> ColumnInfo:
    # PRAGMA table_info: cid, name, type, notnull, dflt_value, pk
    return ColumnInfo(
        name=str(record["name"]),
        data_type=str(record["type"] or ""),
        nullable=int(record["notnull"] or 0) == 0,
        default=_optional_text(record.get("dflt_value")),
    )


def _from_information_schema(record: dict[str, object]) -> ColumnInfo:
    return ColumnInfo(
        name=_optional_text(record["column_name"]) or "",
        data_type=_optional_text(record["data_type"]) or "",
        nullable=(_optional_text(record["is_nullable"]) or "").upper() == "YES",
        default=_optional_text(record.get("column_default")),
    )


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


__all__ = ["MetadataInspector"]
