"""Custom widgets for the navikit UI."""

from .friend_search import FriendSearchPanel
from .list_panels import FriendRequestsPanel, FriendsPanel, GroupsPanel, ListPanel
from .settings_panel import SettingsPanel
from .status_bar import StatusBar, describe_state

__all__ = [
    "FriendRequestsPanel",
    "FriendSearchPanel",
    "FriendsPanel",
    "GroupsPanel",
    "ListPanel",
    "SettingsPanel",
    "StatusBar",
    "describe_state",
]
