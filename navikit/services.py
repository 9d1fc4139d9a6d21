"""Backend services feeding the view models."""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Mapping, Protocol, Sequence, runtime_checkable

from .config import DemoServiceConfig
from .core import ErrorInfo, OperationError
from .models import Friend, FriendRequest, Group, Page, RequestDirection

LOG = logging.getLogger(__name__)

SETTING_RANGES: Mapping[str, tuple[float, float]] = {
    "voice_volume": (0.0, 1.0),
    "poi_radius": (10.0, 500.0),
    "sharing_interval": (5.0, 300.0),
}


@runtime_checkable
class NaviService(Protocol):
    """Protocol implemented by Navi backends."""

    async def search_friends(self, query: str) -> list[Friend]:
        """Friends whose name or username contains ``query``."""

    async def fetch_friends_page(self, page: int, page_size: int) -> Page[Friend]:
        """One page of the full friends list."""

    async def fetch_friend_requests(self) -> list[FriendRequest]:
        """Requests awaiting an answer."""

    async def accept_request(self, request_id: int) -> None:
        """Accept a pending request."""

    async def decline_request(self, request_id: int) -> None:
        """Decline a pending request."""

    async def fetch_groups(self) -> list[Group]:
        """Groups the user belongs to."""

    async def leave_group(self, group_id: int) -> None:
        """Leave a group."""

    async def update_setting(self, key: str, value: float) -> float:
        """Persist a numeric setting; returns the stored value."""


DEMO_FRIENDS: tuple[Friend, ...] = (
    Friend(1, "Alex Johnson", "alex_j", is_online=True, is_sharing_location=True, status_badge="Pro", mutual_friends=8),
    Friend(2, "Sarah Connor", "sconnor", mutual_friends=3),
    Friend(3, "Mike Ross", "mike_r", is_online=True, is_sharing_location=True, status_badge="Admin", mutual_friends=12),
    Friend(4, "Jessica Pearson", "jpearson", mutual_friends=5),
    Friend(5, "Harvey Specter", "harvey", is_online=True, mutual_friends=9),
    Friend(6, "Donna Paulsen", "donna_p", is_sharing_location=True, mutual_friends=7),
    Friend(7, "Louis Litt", "llitt", mutual_friends=1),
    Friend(8, "Rachel Zane", "rzane", is_online=True, mutual_friends=4),
    Friend(9, "Katrina Bennett", "kbennett", mutual_friends=2),
    Friend(10, "Samantha Wheeler", "swheeler", is_online=True, status_badge="Pro", mutual_friends=6),
)

_REQUEST_USERS: tuple[tuple[int, Friend, RequestDirection, int], ...] = (
    (1, Friend(101, "Bob Smith", "bob_s", is_online=True, mutual_friends=5), RequestDirection.PENDING, 3600),
    (2, Friend(102, "Charlie Brown", "charlie_b", mutual_friends=1), RequestDirection.PENDING, 86400),
    (3, Friend(103, "Diana Prince", "diana_p", is_online=True, mutual_friends=2), RequestDirection.SENT, 1800),
)

DEMO_GROUPS: tuple[Group, ...] = (
    Group(1, "Weekend Hikers", 6, is_admin=True),
    Group(2, "Commute Crew", 4),
    Group(3, "Road Trip 2026", 9),
)


def demo_requests(now: datetime | None = None) -> tuple[FriendRequest, ...]:
    """Preset friend requests timestamped relative to ``now``."""

    now = now or datetime.now(tz=timezone.utc)
    return tuple(
        FriendRequest(id=req_id, user=user, direction=direction, created_at=now - timedelta(seconds=age))
        for req_id, user, direction, age in _REQUEST_USERS
    )


class DemoNaviService:
    """In-memory stand-in for the Navi API with simulated latency and failures."""

    def __init__(
        self,
        *,
        latency: float = 0.8,
        failure_rate: float = 0.1,
        seed: int | None = None,
        friends: Sequence[Friend] | None = None,
        requests: Sequence[FriendRequest] | None = None,
        groups: Sequence[Group] | None = None,
    ) -> None:
        self._latency = latency
        self._failure_rate = failure_rate
        self._rng = random.Random(seed)
        self._friends: list[Friend] = list(DEMO_FRIENDS if friends is None else friends)
        self._requests: list[FriendRequest] = list(demo_requests() if requests is None else requests)
        self._groups: list[Group] = list(DEMO_GROUPS if groups is None else groups)
        self._settings: dict[str, float] = {}
        self.calls: list[str] = []

    @classmethod
    def from_config(cls, config: DemoServiceConfig) -> DemoNaviService:
        return cls(latency=config.latency_seconds, failure_rate=config.failure_rate, seed=config.seed)

    @property
    def settings(self) -> Mapping[str, float]:
        return dict(self._settings)

    async def search_friends(self, query: str) -> list[Friend]:
        await self._simulate("search_friends")
        needle = query.strip().lower()
        if not needle:
            return list(self._friends)
        return [
            friend
            for friend in self._friends
            if needle in friend.name.lower() or needle in friend.username.lower()
        ]

    async def fetch_friends_page(self, page: int, page_size: int) -> Page[Friend]:
        if page < 0 or page_size <= 0:
            raise OperationError(ErrorInfo.validation("Invalid page request."))
        await self._simulate("fetch_friends_page")
        ordered = sorted(self._friends, key=lambda friend: (not friend.is_online, friend.name))
        start = page * page_size
        items = tuple(ordered[start : start + page_size])
        return Page(items=items, page=page, has_more=start + page_size < len(ordered))

    async def fetch_friend_requests(self) -> list[FriendRequest]:
        await self._simulate("fetch_friend_requests")
        return sorted(self._requests, key=lambda request: request.created_at, reverse=True)

    async def accept_request(self, request_id: int) -> None:
        await self._simulate("accept_request")
        request = self._pop_request(request_id)
        self._friends.append(request.user)

    async def decline_request(self, request_id: int) -> None:
        await self._simulate("decline_request")
        self._pop_request(request_id)

    async def fetch_groups(self) -> list[Group]:
        await self._simulate("fetch_groups")
        return list(self._groups)

    async def leave_group(self, group_id: int) -> None:
        await self._simulate("leave_group")
        for index, group in enumerate(self._groups):
            if group.id == group_id:
                del self._groups[index]
                return
        raise OperationError(ErrorInfo.validation("Group not found."))

    async def update_setting(self, key: str, value: float) -> float:
        bounds = SETTING_RANGES.get(key)
        if bounds is None:
            raise OperationError(ErrorInfo.validation(f"Unknown setting '{key}'."))
        low, high = bounds
        if not low <= value <= high:
            raise OperationError(ErrorInfo.validation(f"{key} must be between {low:g} and {high:g}."))
        await self._simulate("update_setting")
        self._settings[key] = value
        return value

    async def _simulate(self, call: str) -> None:
        self.calls.append(call)
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._failure_rate and self._rng.random() < self._failure_rate:
            LOG.debug("Simulated network failure", extra={"call": call})
            raise OperationError(ErrorInfo.network())

    def _pop_request(self, request_id: int) -> FriendRequest:
        for index, request in enumerate(self._requests):
            if request.id == request_id and request.direction is RequestDirection.PENDING:
                return self._requests.pop(index)
        raise OperationError(ErrorInfo.validation("Request not found."))


__all__ = [
    "DEMO_FRIENDS",
    "DEMO_GROUPS",
    "DemoNaviService",
    "NaviService",
    "SETTING_RANGES",
    "demo_requests",
]
