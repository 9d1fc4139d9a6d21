"""Friend search panel driven by a debounced coordinator."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import Container
from textual.widgets import Input, Static

from navikit.core import Empty, Failed, Idle, Loaded, Loading, ViewState
from navikit.models import Friend
from navikit.viewmodels import FriendSearchViewModel


def format_friend(friend: Friend) -> str:
    dot = "●" if friend.is_online else "○"
    badge = f" [{friend.status_badge}]" if friend.status_badge else ""
    sharing = " · sharing location" if friend.is_sharing_location else ""
    return f"{dot} {friend.name} (@{friend.username}){badge}{sharing}"


class FriendSearchPanel(Container):
    """Search box plus result list; typing is debounced, Enter searches now."""

    DEFAULT_CSS = """
    FriendSearchPanel {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
    }

    FriendSearchPanel .panel-title {
        text-style: bold;
    }

    #friend-results {
        height: auto;
        padding-top: 1;
    }
    """

    def __init__(self, view_model: FriendSearchViewModel) -> None:
        super().__init__(id="friend-search-panel")
        self._view_model = view_model
        self._results_view: Static | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Friends", classes="panel-title")
        yield Input(placeholder="Search friends…", id="friend-search")
        yield Static("", id="friend-results")

    async def on_mount(self) -> None:
        self._results_view = self.query_one("#friend-results", Static)
        self._unsubscribe = self._view_model.coordinator.state_machine.subscribe(self._show_state)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "friend-search":
            self._view_model.set_query(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "friend-search":
            self._view_model.submit()

    def _show_state(self, state: ViewState[list[Friend]]) -> None:
        if not self._results_view:
            return
        self._results_view.update(render_search_state(state, self._view_model.query))


def render_search_state(state: ViewState[list[Friend]], query: str) -> str:
    """Text body for the search results area."""

    if isinstance(state, Idle):
        return "Start typing to search."
    if isinstance(state, Loading):
        if state.data:
            return "\n".join(["Updating…", *(format_friend(friend) for friend in state.data)])
        return "Searching…"
    if isinstance(state, Empty):
        return f"No friends match '{query}'." if query else "No friends yet."
    if isinstance(state, Failed):
        return f"✖ {state.error.message}\nPress Ctrl+T to retry."
    if isinstance(state, Loaded):
        return "\n".join(format_friend(friend) for friend in state.data)
    return ""


__all__ = ["FriendSearchPanel", "format_friend", "render_search_state"]
