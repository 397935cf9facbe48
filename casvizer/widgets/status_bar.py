"""Status bar widget that mirrors session information."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from casvizer.session import SessionManager, SessionState


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, session_manager: SessionManager) -> None:
        super().__init__("", id="status-bar")
        self._session_manager = session_manager
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._session_manager.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_session_update(self, state: SessionState) -> None:
        self.update(describe_state(state, open_connections=len(self._session_manager.registry)))


def describe_state(state: SessionState, *, open_connections: int = 0) -> str:
    """One-line summary of a session snapshot."""

    profile = state.profile.name if state.profile else "—"
    latency = f"{state.latency_ms} ms" if state.latency_ms is not None else "—"
    refreshed = state.refreshed_at.astimezone().strftime("%H:%M:%S")
    parts = [
        f"Profile: {profile}",
        f"Backend: {state.backend_label or '—'}",
        f"Schemas: {len(state.schemas)}",
        f"Open: {open_connections}",
        f"Status: {state.status} ({latency})",
        f"Refreshed: {refreshed}",
    ]
    if state.last_error:
        parts.append(f"Error: {state.last_error.splitlines()[0][:80]}")
    return " | ".join(parts)


__all__ = ["StatusBar", "describe_state"]
