"""Tests for AppConfig helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from casvizer import config as config_module
from casvizer.config import DEFAULT_PAGE_SIZE, DEFAULT_PROFILES_FILE, AppConfig, LayoutState, load_config, save_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == AppConfig()
    assert result.page_size == DEFAULT_PAGE_SIZE
    assert result.profiles_path() == DEFAULT_PROFILES_FILE


def test_load_config_reads_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
theme = "light"
page_size = 50
profiles_file = "~/work/profiles.json"
fallback_passphrase = "team-shared"
active_profile = "Local Demo"
unknown_key = 1

[layout]
sidebar_width = 30
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.theme == "light"
    assert result.page_size == 50
    assert result.profiles_path() == Path.home() / "work" / "profiles.json"
    assert result.fallback_passphrase == "team-shared"
    assert result.active_profile == "Local Demo"
    assert result.layout.sidebar_width == 30


def test_load_config_ignores_invalid_page_size(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("page_size = 0\n")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    assert load_config().page_size == DEFAULT_PAGE_SIZE


def test_load_config_handles_toml_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("theme = [unterminated")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result == AppConfig()


def test_save_config_persists_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "nested" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)
    original = AppConfig(
        theme="light",
        page_size=25,
        profiles_file='C:\\Users\\me\\"odd".json',
        active_profile="Local Demo",
        layout=LayoutState(sidebar_width=32),
    )

    save_config(original)

    content = config_path.read_text()
    assert 'theme = "light"' in content
    assert "page_size = 25" in content
    assert 'active_profile = "Local Demo"' in content
    assert "[layout]" in content
    assert "sidebar_width = 32" in content
    assert load_config() == original


def test_page_size_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        AppConfig(page_size=0)


def test_with_active_profile_updates_field() -> None:
    config = AppConfig()

    updated = config.with_active_profile("Local Demo")

    assert updated.active_profile == "Local Demo"
    assert config.active_profile is None


def test_with_layout_updates_state() -> None:
    config = AppConfig()

    updated = config.with_layout(sidebar_width=40)

    assert updated.layout.sidebar_width == 40
