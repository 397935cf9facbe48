"""Widget library for the Textual UI."""

from __future__ import annotations

from .navigation_sidebar import NavigationSidebar
from .profile_form import ProfileForm
from .query_pad import QueryPad
from .status_bar import StatusBar

__all__ = ["NavigationSidebar", "ProfileForm", "QueryPad", "StatusBar"]
