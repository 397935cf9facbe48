"""App configuration loading helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "casvizer" / "config.toml"
DEFAULT_PROFILES_FILE = Path.home() / ".casvizer" / "profiles.json"
DEFAULT_PAGE_SIZE = 200


class LayoutState(BaseModel):
    """Persisted layout hints for the TUI."""

    sidebar_width: int | None = None


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    profiles_file: str | None = None
    fallback_passphrase: str | None = None
    active_profile: str | None = None
    layout: LayoutState = Field(default_factory=LayoutState)

    def profiles_path(self) -> Path:
        """Location of the profile store, honouring an override."""

        if self.profiles_file:
            return Path(self.profiles_file).expanduser()
        return DEFAULT_PROFILES_FILE

    def with_active_profile(self, name: str | None) -> AppConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})

    def with_layout(self, **updates: object) -> AppConfig:
        """Return a copy with layout state changes applied."""

        layout = self.layout.model_copy(update=updates)
        return self.model_copy(update={"layout": layout})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError) as exc:
        LOG.warning("Ignoring unreadable config file %s: %s", CONFIG_FILE, exc)
        return AppConfig()

    return AppConfig(
        theme=data.get("theme", AppConfig.model_fields["theme"].default),
        page_size=data.get("page_size", DEFAULT_PAGE_SIZE),
        profiles_file=data.get("profiles_file"),
        fallback_passphrase=data.get("fallback_passphrase"),
        active_profile=data.get("active_profile"),
        layout=data.get("layout", LayoutState()),
    )


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"theme = {_toml_string(config.theme)}",
        f"page_size = {config.page_size}",
    ]
    if config.profiles_file:
        lines.append(f"profiles_file = {_toml_string(config.profiles_file)}")
    if config.fallback_passphrase:
        lines.append(f"fallback_passphrase = {_toml_string(config.fallback_passphrase)}")
    if config.active_profile:
        lines.append(f"active_profile = {_toml_string(config.active_profile)}")
    if config.layout.sidebar_width is not None:
        lines.append("")
        lines.append("[layout]")
        lines.append(f"sidebar_width = {config.layout.sidebar_width}")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _toml_string(value: str) -> str:
    # JSON string escapes are a valid TOML basic string.
    return json.dumps(value, ensure_ascii=False)


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if isinstance(raw, dict):
        for key in ("theme", "profiles_file", "fallback_passphrase", "active_profile"):
            value = raw.get(key)
            if isinstance(value, str):
                data[key] = value
        page_size = raw.get("page_size")
        if isinstance(page_size, int) and page_size > 0:
            data["page_size"] = page_size
        layout = raw.get("layout")
        if isinstance(layout, dict):
            state: dict[str, object] = {}
            sidebar_width = layout.get("sidebar_width")
            if isinstance(sidebar_width, int):
                state["sidebar_width"] = sidebar_width
            data["layout"] = LayoutState(**state)
    return data
