"""Live connection tracking: connect/disconnect lifecycle plus the active slot."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .dialects import Dialect, resolve_dialect
from .drivers import DriverHandle, RowSet, open_handle
from .errors import ConnectionFailed, InvalidProfile
from .models import BackendKind, ConnectionProfile

LOG = logging.getLogger(__name__)

HandleOpener = Callable[[BackendKind, str, "str | None", "str | None"], DriverHandle]


def connection_string_for(profile: ConnectionProfile) -> str:
    """Return the explicit override or build one from the profile's fields."""

    if profile.connection_string:
        return profile.connection_string
    kind = profile.kind
    if kind is BackendKind.SQLITE:
        if not profile.database:
            raise InvalidProfile("Database file path must be specified for SQLite.")
        return f"sqlite:{profile.database}"
    label = "PostgreSQL" if kind is BackendKind.POSTGRES else "MySQL"
    if not profile.host:
        raise InvalidProfile(f"Host must be specified for {label}.")
    if not profile.database:
        raise InvalidProfile(f"Database must be specified for {label}.")
    if profile.port is None or profile.port <= 0:
        raise InvalidProfile(f"Port must be specified for {label}.")
    scheme = "postgresql" if kind is BackendKind.POSTGRES else "mysql"
    return f"{scheme}://{profile.host}:{profile.port}/{profile.database}"


class LiveConnection:
    """An open driver handle owned by the registry."""

    def __init__(self, profile: ConnectionProfile, handle: DriverHandle) -> None:
        self._profile = profile
        self._handle = handle
        self._connected = True

    @property
    def profile(self) -> ConnectionProfile:
        return self._profile

    @property
    def name(self) -> str:
        return self._profile.name

    @property
    def backend_kind(self) -> BackendKind:
        return self._profile.kind

    @property
    def dialect(self) -> Dialect:
        return resolve_dialect(self.backend_kind)

    @property
    def handle(self) -> DriverHandle:
        return self._handle

    @property
    def connected(self) -> bool:
        """True until closed locally or reported closed by the driver."""

        if self._connected and not self._handle.is_open():
            self._connected = False
        return self._connected

    def query(self, sql: str) -> RowSet:
        return self._handle.query(sql)

    def execute(self, sql: str) -> int:
        return self._handle.execute(sql)

    def close(self) -> None:
        """Release the handle; closing an already-closed handle is a no-op."""

        try:
            if self._handle.is_open():
                self._handle.close()
        except ConnectionFailed:
            raise
        except Exception as exc:
            raise ConnectionFailed(f"Failed to close connection '{self.name}': {exc}") from exc
        finally:
            self._connected = False

    def __repr__(self) -> str:
        return f"LiveConnection(name={self.name!r}, kind={self.backend_kind.value}, connected={self._connected})"


class ConnectionRegistry:
    """Tracks live connections by profile name plus one active connection.

    Every read and write of the name map and the active pointer happens under
    a single lock, so callers on different threads never observe a half-torn
    down registry.
    """

    def __init__(self, opener: HandleOpener = open_handle) -> None:
        self._opener = opener
        self._lock = threading.RLock()
        self._connections: dict[str, LiveConnection] = {}
        self._active: LiveConnection | None = None

    def connect(self, profile: ConnectionProfile) -> LiveConnection:
        """Open ``profile`` and make it the active connection.

        An existing entry under the same name is replaced without being
        closed; call :meth:`disconnect` first to release it.
        """

        connection_string = connection_string_for(profile)
        with self._lock:
            handle = self._opener(profile.kind, connection_string, profile.username, profile.secret)
            connection = LiveConnection(profile, handle)
            previous = self._connections.get(profile.name)
            if previous is not None and previous.connected:
                LOG.warning("Replacing live connection '%s' without closing it", profile.name)
            self._connections[profile.name] = connection
            self._active = connection
        LOG.info("Connected to '%s' (%s)", profile.name, profile.kind.value)
        return connection

    def disconnect(self, name: str) -> None:
        with self._lock:
            connection = self._connections.get(name)
            if connection is None:
                return
            try:
                connection.close()
            finally:
                self._connections.pop(name, None)
                if self._active is connection:
                    self._active = None
        LOG.info("Disconnected from '%s'", name)

    def disconnect_all(self) -> None:
        """Close every connection, then raise the first failure if any.

        Later failures are attached to the first as notes and listed on its
        ``suppressed`` attribute. State is cleared regardless.
        """

        failures: list[Exception] = []
        with self._lock:
            snapshot = list(self._connections.values())
            try:
                for connection in snapshot:
                    try:
                        connection.close()
                    except Exception as exc:
                        LOG.error("Failed to close connection '%s': %s", connection.name, exc)
                        failures.append(exc)
            finally:
                self._connections.clear()
                self._active = None
        if not failures:
            return
        first, *rest = failures
        for extra in rest:
            first.add_note(f"Also failed: {type(extra).__name__}: {extra}")
        setattr(first, "suppressed", tuple(rest))
        raise first

    def active_connection(self) -> LiveConnection | None:
        with self._lock:
            return self._active

    def set_active(self, name: str) -> bool:
        """Switch the active pointer; no-op unless ``name`` is still connected."""

        with self._lock:
            connection = self._connections.get(name)
            if connection is None or not connection.connected:
                return False
            self._active = connection
            return True

    def has_active_connection(self) -> bool:
        with self._lock:
            return self._active is not None and self._active.connected

    def get(self, name: str) -> LiveConnection | None:
        with self._lock:
            return self._connections.get(name)

    def connections(self) -> tuple[LiveConnection, ...]:
        with self._lock:
            return tuple(self._connections.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._connections


__all__ = [
    "ConnectionRegistry",
    "HandleOpener",
    "LiveConnection",
    "connection_string_for",
]
