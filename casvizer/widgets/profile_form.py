"""Modal form for creating or editing a connection profile."""

from __future__ import annotations

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from casvizer.errors import InvalidArgument, UnsupportedBackend
from casvizer.models import BackendKind, ConnectionProfile

_FIELDS: tuple[tuple[str, str, bool], ...] = (
    ("name", "Profile name", False),
    ("backend_kind", "Backend (postgres, mysql, sqlite)", False),
    ("host", "Host", False),
    ("port", "Port", False),
    ("database", "Database (file path for SQLite)", False),
    ("username", "Username", False),
    ("secret", "Password", True),
    ("connection_string", "Connection string override (optional)", False),
)


class ProfileForm(ModalScreen[ConnectionProfile | None]):
    """Collects profile fields and dismisses with the built profile."""

    DEFAULT_CSS = """
    ProfileForm {
        align: center middle;
    }

    #profile-form {
        width: 64;
        height: auto;
        border: thick $primary 60%;
        background: $surface;
        padding: 1 2;
    }

    #profile-form Input {
        margin-bottom: 1;
    }

    #profile-form-error {
        color: $error;
        height: auto;
    }

    #profile-form-actions {
        height: auto;
        align-horizontal: right;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, profile: ConnectionProfile | None = None) -> None:
        super().__init__()
        self._profile = profile

    def compose(self) -> ComposeResult:
        with Vertical(id="profile-form"):
            yield Static("Connection profile", classes="panel-title")
            for field, placeholder, password in _FIELDS:
                yield Input(
                    value=self._initial_value(field),
                    placeholder=placeholder,
                    password=password,
                    id=f"profile-{field.replace('_', '-')}",
                )
            yield Label("", id="profile-form-error")
            with Horizontal(id="profile-form-actions"):
                yield Button("Save", id="profile-save", variant="primary")
                yield Button("Cancel", id="profile-cancel")

    def action_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#profile-cancel")
    def _handle_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#profile-save")
    def _handle_save(self) -> None:
        try:
            profile = build_profile({field: self._value(field) for field, _, _ in _FIELDS})
        except InvalidArgument as exc:
            self.query_one("#profile-form-error", Label).update(str(exc))
            return
        self.dismiss(profile)

    def _value(self, field: str) -> str:
        return self.query_one(f"#profile-{field.replace('_', '-')}", Input).value

    def _initial_value(self, field: str) -> str:
        if self._profile is None:
            return "postgres" if field == "backend_kind" else ""
        value = getattr(self._profile, field)
        return "" if value is None else str(value)


def build_profile(values: dict[str, str]) -> ConnectionProfile:
    """Validate raw form values and build a profile from them."""

    name = values.get("name", "").strip()
    if not name:
        raise InvalidArgument("Profile name is required.")
    try:
        kind = BackendKind.parse(values.get("backend_kind", ""))
    except UnsupportedBackend as exc:
        raise InvalidArgument(str(exc)) from exc
    port_text = values.get("port", "").strip()
    if port_text and not port_text.isdigit():
        raise InvalidArgument(f"Port must be a number: {port_text}")
    return ConnectionProfile(
        name=name,
        backend_kind=kind.value,
        host=values.get("host", "").strip() or None,
        port=int(port_text) if port_text else None,
        database=values.get("database", "").strip() or None,
        username=values.get("username", "").strip() or None,
        secret=values.get("secret") or None,
        connection_string=values.get("connection_string", "").strip() or None,
    )


__all__ = ["ProfileForm", "build_profile"]
