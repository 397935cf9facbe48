"""Query execution services for the query pad."""

from __future__ import annotations

import logging
import time

from .connections import LiveConnection
from .errors import InvalidArgument, OffsetTooLarge
from .models import QueryResult

LOG = logging.getLogger(__name__)

MAX_QUERY_OFFSET = 1_000_000


class QueryExecutor:
    """Runs SQL through a live connection and materializes the result."""

    def __init__(self, *, max_offset: int = MAX_QUERY_OFFSET) -> None:
        self._max_offset = max_offset

    def execute(
        self,
        connection: LiveConnection,
        sql: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> QueryResult:
        """Execute ``sql``; a positive ``limit`` wraps it with the dialect's pagination."""

        statement = _require_sql(sql)
        if limit is not None and limit > 0:
            if offset > self._max_offset:
                raise OffsetTooLarge(
                    f"Offset too large: {offset}. Maximum allowed is {self._max_offset}."
                )
            # A trailing terminator would leave the LIMIT clause outside the statement.
            statement = statement.rstrip(";").rstrip()
            statement = connection.dialect.add_pagination(statement, limit, offset)
        started = time.perf_counter()
        rows = connection.query(statement)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        LOG.debug("Query on '%s' returned %d row(s) in %d ms", connection.name, len(rows.rows), elapsed_ms)
        return QueryResult(
            columns=rows.columns,
            rows=rows.rows,
            elapsed_ms=elapsed_ms,
            statement=statement,
        )

    def execute_update(self, connection: LiveConnection, sql: str) -> int:
        """Run a data-modifying statement and return the affected row count."""

        return connection.execute(_require_sql(sql))

    def explain(self, connection: LiveConnection, sql: str) -> str:
        """Return the plan as one ``" | "``-joined line per result row."""

        statement = connection.dialect.explain_query(_require_sql(sql))
        rows = connection.query(statement)
        lines = [" | ".join(_plan_cell(value) for value in row) for row in rows.rows]
        return "".join(f"{line}\n" for line in lines)


def _require_sql(sql: str) -> str:
    statement = (sql or "").strip()
    if not statement:
        raise InvalidArgument("Provide SQL to execute.")
    return statement


def _plan_cell(value: object) -> str:
    return "NULL" if value is None else str(value)


__all__ = ["MAX_QUERY_OFFSET", "QueryExecutor"]
