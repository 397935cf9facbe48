"""Sidebar widget listing profiles and the active connection's catalog."""

from __future__ import annotations

from typing import Callable

from textual import events, on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Label, ListItem, ListView, Static, Tree

from casvizer.errors import CasvizerError
from casvizer.session import SessionManager, SessionState

CatalogNode = tuple[str, str]


class _ProfileContextRequested(Message):
    """Message emitted when a list item asks for its context menu."""

    def __init__(self, profile_name: str) -> None:
        super().__init__()
        self.profile_name = profile_name


class NavigationSidebar(Container):
    """Displays saved profiles plus schemas/tables pulled from the session manager."""

    DEFAULT_CSS = """
    NavigationSidebar {
        width: 32;
        min-width: 22;
        border-right: solid $surface-darken-1;
        padding: 1;
        height: 1fr;
        background: $surface-darken-2;
    }

    NavigationSidebar .sidebar-heading {
        text-style: bold;
        margin-bottom: 1;
    }

    NavigationSidebar .sidebar-section {
        margin-bottom: 1;
    }

    #profile-list {
        height: 6;
        border: round $primary 30%;
        margin-bottom: 1;
    }

    #profile-list .active {
        text-style: bold;
    }

    #profile-summary {
        padding-top: 1;
        border-top: solid $surface-darken-1;
        color: $text-muted;
        min-height: 4;
    }

    #schema-tree {
        height: 1fr;
    }
    """

    def __init__(self, session_manager: SessionManager, *, width: int | None = None) -> None:
        super().__init__(id="nav-sidebar")
        self._session_manager = session_manager
        self._initial_width = width
        self._profile_list: ListView | None = None
        self._profile_names: tuple[str, ...] = ()
        self._profile_summary: Static | None = None
        self._schema_tree: Tree[CatalogNode] | None = None
        self._context_menu: _ProfileContextMenu | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Connections", classes="sidebar-heading")
        self._profile_list = _ProfileListView(id="profile-list")
        yield self._profile_list
        self._context_menu = _ProfileContextMenu(self._handle_profile_action)
        yield self._context_menu
        self._profile_summary = Static("Not connected.", id="profile-summary", classes="sidebar-section")
        yield self._profile_summary
        self._schema_tree = Tree("Schemas", id="schema-tree")
        yield self._schema_tree

    async def on_mount(self) -> None:
        if self._initial_width:
            self.styles.width = self._initial_width
        self._unsubscribe = self._session_manager.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_resize(self, event: events.Resize) -> None:
        remember = getattr(self.app, "remember_sidebar_width", None)
        if remember is not None and event.size.width > 0:
            remember(event.size.width)

    def _handle_session_update(self, state: SessionState) -> None:
        self._render_profiles(state)
        self._render_profile_summary(state)
        self._render_catalog(state)

    def _render_profiles(self, state: SessionState) -> None:
        if not self._profile_list:
            return
        names = tuple(profile.name for profile in self._session_manager.profiles)
        if names != self._profile_names:
            self._profile_names = names
            self._profile_list.clear()
            self._profile_list.extend(_ProfileListItem(name) for name in names)
        active = self._session_manager.active_profile_name
        for item in self._profile_list.query(_ProfileListItem):
            item.set_class(item.profile_name == active, "active")

    def _render_profile_summary(self, state: SessionState) -> None:
        if not self._profile_summary:
            return
        if state.profile is None:
            self._profile_summary.update(state.last_error or "Not connected.")
            return
        profile = state.profile
        location = profile.connection_string or profile.host or profile.database or "—"
        latency = f"{state.latency_ms} ms" if state.latency_ms is not None else "—"
        table_count = sum(len(tables) for tables in state.tables.values())
        lines = [
            f"Profile: {profile.name}",
            f"Backend: {state.backend_label}",
            f"Target: {location}",
            f"Schemas: {len(state.schemas)} · Tables: {table_count}",
            f"Status: {state.status} ({latency})",
        ]
        if state.last_error:
            lines.append(f"Error: {state.last_error.splitlines()[0][:80]}")
        self._profile_summary.update("\n".join(lines))

    def _render_catalog(self, state: SessionState) -> None:
        if not self._schema_tree:
            return
        tree = self._schema_tree
        tree.clear()
        if not state.connected:
            return
        for schema in state.schemas:
            schema_node = tree.root.add(schema, expand=len(state.schemas) == 1)
            for table in state.tables.get(schema, ()):
                schema_node.add(table, data=(schema, table))
        tree.root.expand()

    @on(Tree.NodeSelected, "#schema-tree")
    def _handle_table_selected(self, event: Tree.NodeSelected[CatalogNode]) -> None:
        node = event.node
        if node.data is None or node.children:
            return
        schema, table = node.data
        try:
            columns = self._session_manager.list_columns(schema, table)
        except CasvizerError as exc:
            self.notify(str(exc), severity="error")
            return
        for column in columns:
            node.add_leaf(str(column))
        node.expand()
        event.stop()

    @on(ListView.Selected, "#profile-list")
    def _handle_profile_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, _ProfileListItem):
            self._dismiss_context_menu()
            self._request_switch(item.profile_name)
            event.stop()

    def _request_switch(self, name: str) -> None:
        switcher = getattr(self.app, "switch_profile", None)
        if switcher is None:
            return
        switcher(name)

    def _handle_profile_action(self, action: str, profile_name: str) -> None:
        if action == "switch":
            self._request_switch(profile_name)
        elif action == "edit":
            editor = getattr(self.app, "edit_profile", None)
            if editor is not None:
                editor(profile_name)
        elif action == "delete":
            remover = getattr(self.app, "delete_profile", None)
            if remover is not None:
                remover(profile_name)

    @on(_ProfileContextRequested)
    def _handle_context_requested(self, event: _ProfileContextRequested) -> None:
        if not self._context_menu:
            return
        self._context_menu.show(event.profile_name)
        event.stop()

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if self._context_menu and self._context_menu.is_visible and not self._context_menu.owns(event.widget):
            self._context_menu.hide()

    def _dismiss_context_menu(self) -> None:
        if self._context_menu and self._context_menu.is_visible:
            self._context_menu.hide()


class _ProfileListView(ListView):
    """ListView with a binding to surface the context menu via keyboard."""

    BINDINGS = ListView.BINDINGS + [
        Binding("m", "profile_menu", "Profile menu", show=False),
    ]

    def action_profile_menu(self) -> None:
        item = self.highlighted_child
        if isinstance(item, _ProfileListItem):
            self.post_message(_ProfileContextRequested(item.profile_name))


class _ProfileListItem(ListItem):
    """List item storing a profile name for selection callbacks."""

    def __init__(self, name: str) -> None:
        super().__init__(Label(name))
        self.profile_name = name

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if event.button == 3:
            event.stop()
            self.post_message(_ProfileContextRequested(self.profile_name))


class _ProfileContextMenu(Container):
    """Inline context menu with per-profile actions."""

    DEFAULT_CSS = """
    #profile-context-menu {
        border: round $surface-darken-1;
        padding: 1;
        margin-bottom: 1;
        background: $surface-darken-2;
        height: auto;
    }

    #profile-context-menu Button {
        width: 1fr;
    }
    """

    def __init__(self, action_handler: Callable[[str, str], None]) -> None:
        super().__init__(id="profile-context-menu")
        self._on_action = action_handler
        self._profile_name: str | None = None
        self._title = Label("")
        self.display = False

    @property
    def is_visible(self) -> bool:
        return bool(self.display)

    def compose(self) -> ComposeResult:
        yield self._title
        yield Button("Connect", id="context-switch")
        yield Button("Edit profile", id="context-edit")
        yield Button("Delete profile", id="context-delete", variant="error")

    def show(self, profile_name: str) -> None:
        self._profile_name = profile_name
        self._title.update(f"Actions for {profile_name}")
        self.display = True

    def hide(self) -> None:
        self.display = False
        self._profile_name = None

    def owns(self, widget: Widget | None) -> bool:
        node = widget
        while node is not None:
            if node is self:
                return True
            node = getattr(node, "parent", None)
        return False

    @on(Button.Pressed)
    def _handle_button_pressed(self, event: Button.Pressed) -> None:
        if not self._profile_name:
            return
        action = {"context-switch": "switch", "context-edit": "edit", "context-delete": "delete"}.get(event.button.id or "")
        if action:
            self._on_action(action, self._profile_name)
            self.hide()
            event.stop()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.hide()
            event.stop()


__all__ = ["NavigationSidebar"]
