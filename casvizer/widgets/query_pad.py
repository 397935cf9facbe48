"""Query pad widget: SQL input, paginated result grid and EXPLAIN output."""

from __future__ import annotations

from typing import Callable

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.message import Message
from textual.widgets import Button, DataTable, Input, Static

from casvizer.config import DEFAULT_PAGE_SIZE
from casvizer.errors import CasvizerError
from casvizer.models import QueryResult
from casvizer.session import SessionManager, SessionState


class QueryPad(Container):
    """Editor surface that runs SQL through the session manager one page at a time."""

    DEFAULT_CSS = """
    QueryPad {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    QueryPad .panel-title {
        text-style: bold;
    }

    QueryPad Input {
        border: heavy $primary;
    }

    QueryPad:focus-within {
        border: round $primary;
        background: $surface-lighten-1;
    }

    QueryPad .query-actions {
        margin-top: 1;
        height: auto;
        align-horizontal: left;
    }

    QueryPad .query-actions > * {
        margin-right: 1;
    }

    #connection-status {
        color: $text-muted;
    }

    #query-plan {
        height: auto;
        max-height: 8;
        color: $text-muted;
    }

    QueryPad #query-results {
        height: 1fr;
        margin-top: 1;
        border-top: solid $surface-darken-2;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+enter", "run_query", "Run query", show=False, priority=True),
        Binding("ctrl+e", "explain_query", "Explain", show=False),
        Binding("pagedown", "next_page", "Next page", show=False),
        Binding("pageup", "previous_page", "Previous page", show=False),
    ]

    def __init__(self, session_manager: SessionManager, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        super().__init__(id="query-pad")
        self._session_manager = session_manager
        self._page_size = page_size
        self._page = 0
        self._sql = ""
        self._input: Input | None = None
        self._connection_panel: Static | None = None
        self._status_panel: Static | None = None
        self._plan_panel: Static | None = None
        self._result_table: DataTable | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def page(self) -> int:
        return self._page

    def compose(self) -> ComposeResult:
        yield Static("Query Pad", classes="panel-title")
        yield Static("", id="connection-status")
        yield _QueryInput(
            placeholder="Type SQL, e.g. SELECT * FROM accounts WHERE id = 1",
            id="query-input",
            on_query=self._request_query_run,
        )
        yield Horizontal(
            Button("Run query", id="run-query", variant="primary"),
            Button("Explain", id="explain-query"),
            Button("◀ Prev", id="previous-page"),
            Button("Next ▶", id="next-page"),
            Static("", id="query-status"),
            classes="query-actions",
        )
        yield Static("", id="query-plan")
        yield DataTable(id="query-results", zebra_stripes=True)

    async def on_mount(self) -> None:
        self._input = self.query_one("#query-input", _QueryInput)
        self._connection_panel = self.query_one("#connection-status", Static)
        self._status_panel = self.query_one("#query-status", Static)
        self._plan_panel = self.query_one("#query-plan", Static)
        self._result_table = self.query_one("#query-results", DataTable)
        self._result_table.cursor_type = "row"
        self._unsubscribe = self._session_manager.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def action_run_query(self) -> None:
        await self._start_query()

    async def action_explain_query(self) -> None:
        await self._explain_current_query()

    async def action_next_page(self) -> None:
        await self._change_page(1)

    async def action_previous_page(self) -> None:
        await self._change_page(-1)

    async def on_query_run_requested(self, event: "QueryRunRequested") -> None:
        await self._start_query()
        event.stop()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button.id
        if button == "run-query":
            await self._start_query()
        elif button == "explain-query":
            await self._explain_current_query()
        elif button == "next-page":
            await self._change_page(1)
        elif button == "previous-page":
            await self._change_page(-1)

    def _request_query_run(self) -> None:
        self.post_message(QueryRunRequested())

    async def _start_query(self) -> None:
        if not self._input:
            return
        sql = self._input.value.strip()
        if not sql:
            self._set_status("Enter SQL to run.", severity="warning")
            return
        self._sql = sql
        self._page = 0
        await self._run_page()

    async def _change_page(self, step: int) -> None:
        if not self._sql:
            return
        target = self._page + step
        if target < 0:
            return
        previous = self._page
        self._page = target
        if not await self._run_page():
            self._page = previous

    async def _run_page(self) -> bool:
        self._set_status("Executing…", severity="information")
        try:
            result = await self._session_manager.run_query(
                self._sql,
                limit=self._page_size,
                offset=self._page * self._page_size,
            )
        except CasvizerError as exc:
            self._set_status(f"Error: {exc}", severity="error")
            return False
        self._render_query_result(result)
        badge = f"Page {self._page + 1} · {result.row_count} row(s) · {result.elapsed_ms} ms"
        self._set_status(badge, severity="success")
        return True

    async def _explain_current_query(self) -> None:
        if not self._input or not self._plan_panel:
            return
        sql = self._input.value.strip()
        if not sql:
            self._set_status("Enter SQL to explain.", severity="warning")
            return
        try:
            plan = await self._session_manager.explain(sql)
        except CasvizerError as exc:
            self._set_status(f"Error: {exc}", severity="error")
            return
        self._plan_panel.update(plan.rstrip("\n") or "No plan returned.")
        self._set_status("Plan ready.", severity="success")

    def _handle_session_update(self, state: SessionState) -> None:
        if not self._connection_panel:
            return
        if state.connected and state.profile is not None:
            self._connection_panel.update(f"Connected to {state.profile.name} ({state.backend_label})")
        else:
            self._connection_panel.update("No active connection.")

    def _render_query_result(self, result: QueryResult) -> None:
        if not self._result_table:
            return
        self._result_table.clear(columns=True)
        if not result.columns:
            return
        self._result_table.add_columns(*result.columns)
        for row in result.rows:
            self._result_table.add_row(*(self._format_cell(value) for value in row))

    def _set_status(self, message: str, *, severity: str) -> None:
        if not self._status_panel:
            return
        prefix = {
            "information": "ℹ",
            "warning": "⚠",
            "error": "✖",
            "success": "✔",
        }.get(severity, "•")
        self._status_panel.update(f"{prefix} {message}")

    @staticmethod
    def _format_cell(value: object) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, bytes):
            return value.hex()
        return str(value)


class QueryRunRequested(Message):
    """Message fired when the input requests a query run."""


class _QueryInput(Input):
    """Input wrapper that detects Ctrl+Enter/newline chords."""

    _TRIGGER_KEYS = {"ctrl+enter", "ctrl+j", "newline"}

    def __init__(
        self,
        *args: object,
        on_query: Callable[[], None] | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._on_query = on_query

    def _on_key(self, event: events.Key) -> None:
        key = event.key or ""
        ctrl_enter = key == "enter" and bool(getattr(event, "control", False))
        if (key in self._TRIGGER_KEYS or ctrl_enter) and self._on_query:
            self._on_query()
            event.stop()
            return
        super()._on_key(event)


__all__ = ["QueryPad", "QueryRunRequested"]
