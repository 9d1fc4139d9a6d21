"""Table panels over list view models, with optional row actions."""

from __future__ import annotations

from typing import Any, Callable, Protocol, Sequence

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import DataTable, Static

from navikit.core import RequestCoordinator, ViewState
from navikit.models import Friend, FriendRequest, Group
from navikit.viewmodels import FriendRequestsViewModel, FriendsPageViewModel, GroupsViewModel

from .status_bar import describe_state


class RowSource(Protocol):
    """What a list panel needs from its view model."""

    @property
    def coordinator(self) -> RequestCoordinator[Any, Any]: ...

    @property
    def state(self) -> ViewState[Any]: ...

    @property
    def items(self) -> tuple[Any, ...]: ...

    def subscribe(self, listener: Callable[[tuple[Any, ...]], None]) -> Callable[[], None]: ...


class ListPanel(Container):
    """Table of rows plus a status line; subclasses supply columns and actions."""

    DEFAULT_CSS = """
    ListPanel {
        layout: vertical;
        border: round $primary 40%;
        padding: 0 1;
        height: 1fr;
    }

    ListPanel .panel-title {
        text-style: bold;
    }

    ListPanel .list-status {
        color: $text-muted;
    }
    """

    PANEL_TITLE = ""
    COLUMNS: tuple[str, ...] = ()

    def __init__(self, view_model: RowSource, *, id: str) -> None:
        super().__init__(id=id)
        self._view_model = view_model
        self._rows_table: DataTable | None = None
        self._status_line: Static | None = None
        self._unsubscribers: list[Callable[[], None]] = []

    def compose(self) -> ComposeResult:
        yield Static(self.PANEL_TITLE, classes="panel-title")
        yield DataTable(id=f"{self.id}-table", zebra_stripes=True)
        yield Static("", id=f"{self.id}-status", classes="list-status")

    async def on_mount(self) -> None:
        self._rows_table = self.query_one(DataTable)
        self._status_line = self.query_one(".list-status", Static)
        self._rows_table.cursor_type = "row"
        self._rows_table.add_columns(*self.COLUMNS)
        self._unsubscribers.append(self._view_model.subscribe(self._show_rows))
        self._unsubscribers.append(self._view_model.coordinator.state_machine.subscribe(self._show_status))

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def selected_row(self) -> Any | None:
        """Item under the table cursor, if any."""

        if not self._rows_table:
            return None
        items = self._view_model.items
        row = self._rows_table.cursor_row
        if 0 <= row < len(items):
            return items[row]
        return None

    def format_row(self, item: Any) -> Sequence[str]:
        raise NotImplementedError

    def _show_rows(self, items: tuple[Any, ...]) -> None:
        if not self._rows_table:
            return
        self._rows_table.clear()
        for item in items:
            self._rows_table.add_row(*self.format_row(item))
        self._show_status(self._view_model.state)

    def _show_status(self, state: ViewState[Any]) -> None:
        if not self._status_line:
            return
        self._status_line.update(f"{len(self._view_model.items)} row(s) · {describe_state(state)}")


class FriendRequestsPanel(ListPanel):
    """Pending and sent friend requests."""

    PANEL_TITLE = "Friend requests"
    COLUMNS = ("Name", "Username", "Direction", "Mutual")
    BINDINGS = [
        Binding("a", "accept", "Accept"),
        Binding("x", "decline", "Decline"),
    ]

    def __init__(self, view_model: FriendRequestsViewModel) -> None:
        super().__init__(view_model, id="requests")
        self._requests = view_model

    def format_row(self, item: FriendRequest) -> Sequence[str]:
        return (item.user.name, f"@{item.user.username}", item.direction.value, str(item.user.mutual_friends))

    def action_accept(self) -> None:
        request = self.selected_row()
        if request is not None:
            self._requests.accept(request.id)

    def action_decline(self) -> None:
        request = self.selected_row()
        if request is not None:
            self._requests.decline(request.id)


class GroupsPanel(ListPanel):
    """Groups the user belongs to."""

    PANEL_TITLE = "Groups"
    COLUMNS = ("Group", "Members", "Role")
    BINDINGS = [Binding("l", "leave", "Leave group")]

    def __init__(self, view_model: GroupsViewModel) -> None:
        super().__init__(view_model, id="groups")
        self._groups = view_model

    def format_row(self, item: Group) -> Sequence[str]:
        return (item.name, str(item.member_count), "admin" if item.is_admin else "member")

    def action_leave(self) -> None:
        group = self.selected_row()
        if group is not None:
            self._groups.leave(group.id)


class FriendsPanel(ListPanel):
    """Paginated friends list, online friends first."""

    PANEL_TITLE = "All friends"
    COLUMNS = ("Name", "Username", "Status")
    BINDINGS = [Binding("m", "load_more", "More friends")]

    def __init__(self, view_model: FriendsPageViewModel) -> None:
        super().__init__(view_model, id="friends")
        self._friends = view_model

    def format_row(self, item: Friend) -> Sequence[str]:
        return (item.name, f"@{item.username}", "online" if item.is_online else "offline")

    def action_load_more(self) -> None:
        if self._friends.load_more() is None and not self._friends.has_more:
            self.notify("No more friends to load.", severity="information")


__all__ = ["FriendRequestsPanel", "FriendsPanel", "GroupsPanel", "ListPanel", "RowSource"]
