"""Render query results as CSV, SQL INSERT statements or a text table."""

from __future__ import annotations

import csv
import io
from decimal import Decimal
from enum import Enum
from pathlib import Path

from .dialects import quote_literal, resolve_dialect
from .errors import InvalidArgument
from .models import BackendKind, QueryResult

# Exported INSERTs use ANSI identifier quoting regardless of the source backend.
_IDENTIFIERS = resolve_dialect(BackendKind.POSTGRES)


class ExportFormat(str, Enum):
    CSV = "csv"
    SQL = "sql"
    TEXT = "text"

    @property
    def suffix(self) -> str:
        return ".txt" if self is ExportFormat.TEXT else f".{self.value}"


def to_csv(result: QueryResult) -> str:
    """Comma-separated rows; embedded newlines are flattened to spaces."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow([_flatten(column) for column in result.columns])
    for row in result.rows:
        cells = ["" if value is None else _flatten(str(value)) for value in row]
        # csv quotes a lone empty field; a blank cell in a one-column result is an empty line.
        if cells == [""]:
            buffer.write("\n")
        else:
            writer.writerow(cells)
    return buffer.getvalue()


def to_sql_inserts(result: QueryResult, table: str) -> str:
    """One ``INSERT`` statement per row targeting ``table``."""

    if not table:
        raise InvalidArgument("Table name must not be empty.")
    target = _IDENTIFIERS.quote_identifier(table)
    columns = ", ".join(_IDENTIFIERS.quote_identifier(column) for column in result.columns)
    lines = []
    for row in result.rows:
        values = ", ".join(_sql_value(value) for value in row)
        lines.append(f"INSERT INTO {target} ({columns}) VALUES ({values});\n")
    return "".join(lines)


def to_text_table(result: QueryResult) -> str:
    """Fixed-width table with a ``-+-`` separator under the header."""

    cells = [[_text_cell(value) for value in row] for row in result.rows]
    widths = [len(column) for column in result.columns]
    for row in cells:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = [
        " | ".join(column.ljust(width) for column, width in zip(result.columns, widths)),
        "-+-".join("-" * width for width in widths),
    ]
    for row in cells:
        lines.append(" | ".join(cell.ljust(width) for cell, width in zip(row, widths)))
    return "".join(f"{line}\n" for line in lines)


def render(result: QueryResult, fmt: ExportFormat | str, *, table: str | None = None) -> str:
    fmt = ExportFormat(fmt)
    if fmt is ExportFormat.CSV:
        return to_csv(result)
    if fmt is ExportFormat.SQL:
        return to_sql_inserts(result, table or "exported_data")
    return to_text_table(result)


def export_result(
    result: QueryResult,
    path: Path | str,
    fmt: ExportFormat | str,
    *,
    table: str | None = None,
) -> Path:
    """Write ``result`` to ``path`` in the requested format and return the path."""

    target = Path(path).expanduser()
    target.write_text(render(result, fmt, table=table), encoding="utf-8")
    return target


def _flatten(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def _sql_value(value: object) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return quote_literal(str(value).replace("\\", "\\\\"))


def _text_cell(value: object) -> str:
    return "NULL" if value is None else str(value)


__all__ = [
    "ExportFormat",
    "export_result",
    "render",
    "to_csv",
    "to_sql_inserts",
    "to_text_table",
]
