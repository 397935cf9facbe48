"""App-level tests driving the Textual shell headlessly."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path

import pytest
from textual.widgets import Button, DataTable, Input, Tree

from casvizer.app import CasvizerApp
from casvizer.config import AppConfig, load_config
from casvizer.crypto import CredentialCipher
from casvizer.errors import InvalidArgument
from casvizer.export import ExportFormat
from casvizer.models import ConnectionProfile
from casvizer.profiles import ProfileRepository
from casvizer.providers import DisconnectAllProvider, ExportResultProvider, ProfileSwitchProvider
from casvizer.session import SessionManager
from casvizer.widgets import QueryPad
from casvizer.widgets.profile_form import ProfileForm, build_profile


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def session_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SessionManager:
    monkeypatch.setattr("casvizer.config.CONFIG_FILE", tmp_path / "config.toml")
    database = tmp_path / "demo.db"
    with closing(sqlite3.connect(database)) as conn:
        conn.execute("CREATE TABLE accounts (id INTEGER PRIMARY KEY, email TEXT)")
        conn.execute("INSERT INTO accounts (email) VALUES ('anna@example.com'), (NULL)")
        conn.commit()
    repository = ProfileRepository(tmp_path / "profiles.json", CredentialCipher("test"))
    repository.upsert(ConnectionProfile(name="Demo", backend_kind="sqlite", database=str(database)))
    return SessionManager(repository)


def test_app_registers_command_providers(session_manager: SessionManager) -> None:
    assert {ProfileSwitchProvider, DisconnectAllProvider, ExportResultProvider} <= set(CasvizerApp.COMMANDS)

    app = CasvizerApp(config=AppConfig(), session_manager=session_manager)

    assert [profile.name for profile in app.session_manager.profiles] == ["Demo"]


@pytest.mark.anyio
async def test_switch_profile_connects_and_persists_choice(session_manager: SessionManager) -> None:
    app = CasvizerApp(config=AppConfig(), session_manager=session_manager)

    async with app.run_test() as pilot:
        app.switch_profile("Demo")
        await pilot.pause()

        assert session_manager.state.connected is True
        assert load_config().active_profile == "Demo"
        tree = app.query_one("#schema-tree", Tree)
        assert [child.label.plain for child in tree.root.children] == ["main"]

    assert len(session_manager.registry) == 0


@pytest.mark.anyio
async def test_switch_to_unknown_profile_keeps_app_running(session_manager: SessionManager) -> None:
    app = CasvizerApp(config=AppConfig(), session_manager=session_manager)

    async with app.run_test() as pilot:
        app.switch_profile("Missing")
        await pilot.pause()

        assert session_manager.state.connected is False
        assert load_config().active_profile is None


@pytest.mark.anyio
async def test_query_pad_runs_paginated_query(session_manager: SessionManager, tmp_path: Path) -> None:
    app = CasvizerApp(config=AppConfig(page_size=1), session_manager=session_manager)

    async with app.run_test(size=(160, 50)) as pilot:
        app.switch_profile("Demo")
        pad = app.query_one(QueryPad)
        app.query_one("#query-input", Input).value = "SELECT email FROM accounts ORDER BY id"
        await pad.action_run_query()
        await pilot.pause()
        table = app.query_one("#query-results", DataTable)
        assert table.row_count == 1
        assert table.get_row_at(0) == ["anna@example.com"]

        await pad.action_next_page()
        await pilot.pause()
        assert pad.page == 1
        assert table.get_row_at(0) == ["NULL"]

        path = app.export_last_result(ExportFormat.CSV, tmp_path)
        assert path is not None
        assert path.read_text(encoding="utf-8") == "email\n\n"


@pytest.mark.anyio
async def test_active_profile_reconnects_on_mount(session_manager: SessionManager) -> None:
    app = CasvizerApp(config=AppConfig(active_profile="Demo"), session_manager=session_manager)

    async with app.run_test() as pilot:
        await pilot.pause()

        assert session_manager.active_profile_name == "Demo"


def test_build_profile_validates_form_values() -> None:
    profile = build_profile({"name": " Local ", "backend_kind": "PostgreSQL", "host": "db", "port": "5432"})

    assert profile.name == "Local"
    assert profile.backend_kind == "postgres"
    assert profile.port == 5432
    assert profile.database is None

    with pytest.raises(InvalidArgument):
        build_profile({"name": "", "backend_kind": "sqlite"})
    with pytest.raises(InvalidArgument):
        build_profile({"name": "x", "backend_kind": "oracle"})
    with pytest.raises(InvalidArgument):
        build_profile({"name": "x", "backend_kind": "mysql", "port": "abc"})


@pytest.mark.anyio
async def test_context_menu_edit_prefills_form_and_saves(session_manager: SessionManager, tmp_path: Path) -> None:
    app = CasvizerApp(config=AppConfig(), session_manager=session_manager)

    async with app.run_test(size=(160, 50)) as pilot:
        app.query_one("#profile-context-menu").show("Demo")
        app.query_one("#context-edit", Button).press()
        await pilot.pause()

        form = app.screen
        assert isinstance(form, ProfileForm)
        assert form.query_one("#profile-name", Input).value == "Demo"
        assert form.query_one("#profile-backend-kind", Input).value == "sqlite"
        assert form.query_one("#profile-database", Input).value == str(tmp_path / "demo.db")

        form.query_one("#profile-database", Input).value = str(tmp_path / "other.db")
        form.query_one("#profile-save", Button).press()
        await pilot.pause()

        assert not isinstance(app.screen, ProfileForm)
        assert [profile.database for profile in session_manager.profiles] == [str(tmp_path / "other.db")]


@pytest.mark.anyio
async def test_edit_unknown_profile_does_not_open_form(session_manager: SessionManager) -> None:
    app = CasvizerApp(config=AppConfig(), session_manager=session_manager)

    async with app.run_test() as pilot:
        app.edit_profile("Missing")
        await pilot.pause()

        assert not isinstance(app.screen, ProfileForm)
