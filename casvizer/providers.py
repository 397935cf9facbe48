"""Command palette providers for core app features."""

from __future__ import annotations

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .export import ExportFormat
from .session import SessionManager


class _SessionProvider(Provider):
    """Base provider resolving the app's session manager."""

    @property
    def _session_manager(self) -> SessionManager | None:
        manager = getattr(self.app, "session_manager", None)
        if isinstance(manager, SessionManager):
            return manager
        return None


class ProfileSwitchProvider(_SessionProvider):
    """Expose connection profiles to the command palette."""

    async def search(self, query: str) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        matcher = self.matcher(query)
        for profile in manager.profiles:
            match = matcher.match(profile.name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Connect to profile: {matcher.highlight(profile.name)}",
                    command=self._build_callback(profile.name),
                    help="Open (or reuse) the connection and make it active.",
                )

    async def discover(self) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        for profile in manager.profiles:
            yield DiscoveryHit(
                display=f"Connect to profile: {profile.name}",
                command=self._build_callback(profile.name),
                help="Open (or reuse) the connection and make it active.",
            )

    def _build_callback(self, name: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            switcher = getattr(self.app, "switch_profile", None)
            if switcher is None:
                return
            switcher(name)

        return _run


class _SingleActionProvider(_SessionProvider):
    """Provider exposing one labelled app action."""

    _LABEL = ""
    _HELP = ""
    _ACTION = ""

    async def search(self, query: str) -> Hits:
        if self._session_manager is None:
            return
        matcher = self.matcher(query)
        score = matcher.match(self._LABEL)
        if score > 0:
            yield Hit(
                score=score,
                match_display=matcher.highlight(self._LABEL),
                command=self._build_callback(),
                help=self._HELP,
            )

    async def discover(self) -> Hits:
        if self._session_manager is None:
            return
        yield DiscoveryHit(display=self._LABEL, command=self._build_callback(), help=self._HELP)

    def _build_callback(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            await self.app.run_action(self._ACTION)

        return _run


class SessionRefreshProvider(_SingleActionProvider):
    """Expose a refresh action for the active session."""

    _LABEL = "Refresh active connection metadata"
    _HELP = "Trigger Ctrl+R equivalent refresh."
    _ACTION = "refresh"


class DisconnectAllProvider(_SingleActionProvider):
    """Close every open connection."""

    _LABEL = "Disconnect all connections"
    _HELP = "Close every open connection and clear the active one."
    _ACTION = "disconnect_all"


class ExportResultProvider(_SessionProvider):
    """Export the last query result in each supported format."""

    async def search(self, query: str) -> Hits:
        manager = self._session_manager
        if manager is None or manager.last_result is None:
            return
        matcher = self.matcher(query)
        for fmt in ExportFormat:
            label = f"Export last result as {fmt.value.upper()}"
            score = matcher.match(label)
            if score > 0:
                yield Hit(
                    score=score,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(fmt),
                    help=f"Write the result to query_result{fmt.suffix} in the working directory.",
                )

    async def discover(self) -> Hits:
        manager = self._session_manager
        if manager is None or manager.last_result is None:
            return
        for fmt in ExportFormat:
            yield DiscoveryHit(
                display=f"Export last result as {fmt.value.upper()}",
                command=self._build_callback(fmt),
                help=f"Write the result to query_result{fmt.suffix} in the working directory.",
            )

    def _build_callback(self, fmt: ExportFormat) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            exporter = getattr(self.app, "export_last_result", None)
            if exporter is None:
                return
            exporter(fmt)

        return _run


__all__ = [
    "DisconnectAllProvider",
    "ExportResultProvider",
    "ProfileSwitchProvider",
    "SessionRefreshProvider",
]
