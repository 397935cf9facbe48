"""Textual application entry point for casvizer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import Footer, Header

from .config import AppConfig, load_config, save_config
from .crypto import CredentialCipher
from .errors import CasvizerError
from .export import ExportFormat, export_result
from .models import ConnectionProfile
from .profiles import ProfileRepository
from .providers import (
    DisconnectAllProvider,
    ExportResultProvider,
    ProfileSwitchProvider,
    SessionRefreshProvider,
)
from .session import SessionManager, SessionState
from .widgets import NavigationSidebar, ProfileForm, QueryPad, StatusBar

LOG = logging.getLogger(__name__)


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def build_session_manager(config: AppConfig) -> SessionManager:
    """Wire the profile store and its cipher from configuration."""

    cipher = CredentialCipher.from_environment(fallback=config.fallback_passphrase)
    repository = ProfileRepository(config.profiles_path(), cipher)
    return SessionManager(repository)


class CasvizerApp(App[None]):
    """Textual shell around the session manager."""

    COMMANDS = App.COMMANDS | {
        ProfileSwitchProvider,
        SessionRefreshProvider,
        DisconnectAllProvider,
        ExportResultProvider,
    }
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
        border-left: solid $surface-darken-1;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+n", "new_profile", "New Profile"),
        ("ctrl+r", "refresh", "Refresh Metadata"),
        ("ctrl+d", "disconnect", "Disconnect"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(
        self,
        *,
        config: AppConfig | None = None,
        session_manager: SessionManager | None = None,
    ) -> None:
        super().__init__()
        self._config = config or _load_app_config()
        self._session_manager = session_manager or build_session_manager(self._config)
        self._session_unsubscribe: Callable[[], None] | None = None
        self._pending_notifications: list[tuple[str, str]] = []
        try:
            self._session_manager.reload_profiles()
        except CasvizerError as exc:
            self._pending_notifications.append((f"Could not load profiles: {exc}", "error"))
        self._session_unsubscribe = self._session_manager.subscribe(self._handle_session_state)

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        sidebar = NavigationSidebar(self._session_manager, width=self._config.layout.sidebar_width)
        query_pad = QueryPad(self._session_manager, page_size=self._config.page_size)
        yield Horizontal(sidebar, Container(query_pad, id="main-column"), id="content")
        yield StatusBar(self._session_manager)
        yield Footer()

    async def on_mount(self) -> None:
        self.theme = "textual-dark" if self._config.theme == "dark" else "textual-light"
        self._flush_pending_notifications()
        active = self._config.active_profile
        if active and any(profile.name == active for profile in self._session_manager.profiles):
            self.switch_profile(active)

    @property
    def session_manager(self) -> SessionManager:
        """Expose the session manager for tests and providers."""

        return self._session_manager

    @property
    def config(self) -> AppConfig:
        return self._config

    def action_refresh(self) -> None:
        try:
            self._session_manager.refresh_active_profile()
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")

    def action_disconnect(self) -> None:
        try:
            self._session_manager.disconnect()
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")

    def action_disconnect_all(self) -> None:
        try:
            self._session_manager.disconnect_all()
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify("All connections closed.", severity="information")

    def action_new_profile(self) -> None:
        self.push_screen(ProfileForm(), self._handle_profile_form)

    def edit_profile(self, name: str) -> None:
        """Open the profile form pre-filled with a saved profile."""

        profile = next((item for item in self._session_manager.profiles if item.name == name), None)
        if profile is None:
            self.notify(f"Profile '{name}' not found.", severity="error")
            return
        self.push_screen(ProfileForm(profile), self._handle_profile_form)

    def switch_profile(self, name: str) -> None:
        """Activate the requested connection profile and persist the choice."""

        try:
            state = self._session_manager.connect(name)
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")
            return
        if state.profile is None:
            return
        self._config = self._config.with_active_profile(state.profile.name)
        save_config(self._config)
        self.notify(f"Connected to profile: {state.profile.name}", severity="information")

    def delete_profile(self, name: str) -> None:
        if self._session_manager.active_profile_name == name:
            self.action_disconnect()
        try:
            self._session_manager.delete_profile(name)
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")
            return
        if self._config.active_profile == name:
            self._config = self._config.with_active_profile(None)
            save_config(self._config)
        self.notify(f"Deleted profile: {name}", severity="information")

    def export_last_result(self, fmt: ExportFormat, directory: Path | None = None) -> Path | None:
        """Write the most recent query result next to the working directory."""

        result = self._session_manager.last_result
        if result is None:
            self.notify("Run a query before exporting.", severity="warning")
            return None
        target = (directory or Path.cwd()) / f"query_result{fmt.suffix}"
        try:
            path = export_result(result, target, fmt)
        except (OSError, CasvizerError) as exc:
            LOG.warning("Export to %s failed: %s", target, exc)
            self.notify(f"Export failed: {exc}", severity="error")
            return None
        self.notify(f"Exported {result.row_count} row(s) to {path}", severity="information")
        return path

    def remember_sidebar_width(self, width: int) -> None:
        """Persist the sidebar width when it changes."""

        if self._config.layout.sidebar_width == width:
            return
        self._config = self._config.with_layout(sidebar_width=width)
        save_config(self._config)

    def _handle_profile_form(self, profile: ConnectionProfile | None) -> None:
        if profile is None:
            return
        try:
            self._session_manager.save_profile(profile)
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify(f"Saved profile: {profile.name}", severity="information")

    def _handle_session_state(self, state: SessionState) -> None:
        if state.connected and state.profile is not None:
            self.sub_title = f"{state.profile.name} ({state.backend_label})"
        else:
            self.sub_title = "Not connected"

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            self.notify(message, severity=severity)

    async def _shutdown(self) -> None:
        if self._session_unsubscribe:
            self._session_unsubscribe()
            self._session_unsubscribe = None
        try:
            self._session_manager.disconnect_all()
        except CasvizerError:
            LOG.exception("Failed to close connections on exit")
        await super()._shutdown()


def main() -> None:
    """Invoke the Textual application."""

    CasvizerApp().run()


if __name__ == "__main__":
    main()
