"""Connection/session manager wiring the core services into the UI."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, TypeVar

from .connections import ConnectionRegistry, LiveConnection
from .errors import CasvizerError, ConnectionFailed, InvalidArgument
from .metadata import MetadataInspector
from .models import ColumnInfo, ConnectionProfile, QueryResult
from .profiles import ProfileRepository
from .query import QueryExecutor

LOG = logging.getLogger(__name__)

SessionListener = Callable[["SessionState"], None]
_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class SessionState:
    """Current session snapshot (active connection + catalog)."""

    profile: ConnectionProfile | None
    connected: bool
    schemas: tuple[str, ...] = ()
    tables: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    refreshed_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    status: str = "Idle"
    latency_ms: int | None = None
    last_error: str | None = None

    @property
    def backend_label(self) -> str | None:
        if self.profile is None:
            return None
        try:
            return self.profile.kind.value
        except CasvizerError:
            return self.profile.backend_kind


class SessionManager:
    """Facade the Textual app talks to.

    Blocking core calls stay synchronous; the query coroutines push them to a
    worker thread so the event loop keeps rendering while a statement runs.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        *,
        registry: ConnectionRegistry | None = None,
        inspector: MetadataInspector | None = None,
        executor: QueryExecutor | None = None,
    ) -> None:
        self._repository = repository
        self._registry = registry or ConnectionRegistry()
        self._inspector = inspector or MetadataInspector()
        self._executor = executor or QueryExecutor()
        self._profiles: tuple[ConnectionProfile, ...] = ()
        self._listeners: set[SessionListener] = set()
        self._state = SessionState(profile=None, connected=False)
        self._last_result: QueryResult | None = None

    @property
    def profiles(self) -> tuple[ConnectionProfile, ...]:
        """Profiles loaded from the repository."""

        return self._profiles

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def active_profile_name(self) -> str | None:
        active = self._registry.active_connection()
        return active.name if active else None

    @property
    def last_result(self) -> QueryResult | None:
        return self._last_result

    def reload_profiles(self) -> tuple[ConnectionProfile, ...]:
        """Re-read the profile store; decryption or parse failures propagate."""

        try:
            self._profiles = tuple(self._repository.load_all())
        except CasvizerError as exc:
            self._record_error(exc)
            raise
        self._notify()
        return self._profiles

    def save_profile(self, profile: ConnectionProfile) -> None:
        self._repository.upsert(profile)
        self.reload_profiles()

    def delete_profile(self, name: str) -> None:
        if self.active_profile_name == name:
            self.disconnect()
        elif name in self._registry:
            self._registry.disconnect(name)
        self._repository.delete(name)
        self.reload_profiles()

    def connect(self, name: str) -> SessionState:
        """Activate the requested profile, reusing a live connection if present.

        A live entry opened from an older version of the profile is closed and
        reopened with the saved settings.
        """

        profile = self._profile_by_name(name)
        started = time.perf_counter()
        try:
            live = self._registry.get(name)
            if live is not None and live.profile != profile:
                self._registry.disconnect(name)
            if not self._registry.set_active(name):
                if name in self._registry:
                    self._registry.disconnect(name)
                self._registry.connect(profile)
            connection = self._require_active()
            schemas, tables = self._load_catalog(connection)
        except CasvizerError as exc:
            self._record_error(exc, context=profile.name)
            raise
        latency_ms = int((time.perf_counter() - started) * 1000)
        self._update_state(connection.profile, schemas, tables, status="Connected", latency_ms=latency_ms)
        return self._state

    def refresh_active_profile(self) -> None:
        """Reload the schema/table catalog for the active connection."""

        connection = self._registry.active_connection()
        if connection is None:
            return
        started = time.perf_counter()
        try:
            schemas, tables = self._load_catalog(connection)
        except CasvizerError as exc:
            self._record_error(exc, context=connection.name)
            raise
        latency_ms = int((time.perf_counter() - started) * 1000)
        self._update_state(connection.profile, schemas, tables, status="Refreshed", latency_ms=latency_ms)

    def disconnect(self) -> None:
        """Close the active connection only."""

        connection = self._registry.active_connection()
        if connection is None:
            return
        try:
            self._registry.disconnect(connection.name)
        finally:
            self._state = SessionState(profile=connection.profile, connected=False, status="Disconnected")
            self._notify()

    def disconnect_all(self) -> None:
        profile = self._state.profile
        try:
            self._registry.disconnect_all()
        finally:
            self._state = SessionState(profile=profile, connected=False, status="Disconnected")
            self._notify()

    def list_columns(self, schema: str | None, table: str) -> list[ColumnInfo]:
        return self._inspector.list_columns(self._require_active(), schema, table)

    async def run_query(self, sql: str, *, limit: int | None = None, offset: int = 0) -> QueryResult:
        connection = self._require_active()
        result = await self._in_worker(connection, self._executor.execute, connection, sql, limit, offset)
        self._last_result = result
        return result

    async def run_update(self, sql: str) -> int:
        connection = self._require_active()
        return await self._in_worker(connection, self._executor.execute_update, connection, sql)

    async def explain(self, sql: str) -> str:
        connection = self._require_active()
        return await self._in_worker(connection, self._executor.explain, connection, sql)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe to session updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def _profile_by_name(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise InvalidArgument(f"Profile '{name}' not found.")

    def _require_active(self) -> LiveConnection:
        connection = self._registry.active_connection()
        if connection is None or not connection.connected:
            raise ConnectionFailed("Please connect to a database first.")
        return connection

    async def _in_worker(self, connection: LiveConnection, func: Callable[..., _T], *args: object) -> _T:
        try:
            return await asyncio.to_thread(func, *args)
        except CasvizerError as exc:
            self._record_error(exc, context=connection.name)
            raise

    def _load_catalog(self, connection: LiveConnection) -> tuple[tuple[str, ...], dict[str, tuple[str, ...]]]:
        schemas = tuple(self._inspector.list_schemas(connection))
        tables = {schema: tuple(self._inspector.list_tables(connection, schema)) for schema in schemas}
        return schemas, tables

    def _update_state(
        self,
        profile: ConnectionProfile,
        schemas: tuple[str, ...],
        tables: Mapping[str, tuple[str, ...]],
        *,
        status: str,
        latency_ms: int | None,
    ) -> None:
        self._state = SessionState(
            profile=profile,
            connected=True,
            schemas=schemas,
            tables=dict(tables),
            status=status,
            latency_ms=latency_ms,
        )
        self._notify()

    def _record_error(self, exc: Exception, *, context: str | None = None) -> None:
        message = f"{context}: {exc}" if context else str(exc)
        LOG.warning("Session operation failed: %s", message)
        previous = self._state
        self._state = SessionState(
            profile=previous.profile,
            connected=self._registry.has_active_connection(),
            schemas=previous.schemas,
            tables=previous.tables,
            status="Error",
            latency_ms=previous.latency_ms,
            last_error=message,
        )
        self._notify()

    def _notify(self) -> None:
        for listener in tuple(self._listeners):
            listener(self._state)


__all__ = ["SessionListener", "SessionManager", "SessionState"]
