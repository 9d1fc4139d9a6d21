"""Shared dataclasses for the social screens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Friend:
    """A user in the friends list."""

    id: int
    name: str
    username: str
    is_online: bool = False
    is_sharing_location: bool = False
    status_badge: str | None = None
    mutual_friends: int = 0


class RequestDirection(str, Enum):
    """Whether a friend request was received or sent."""

    PENDING = "pending"
    SENT = "sent"


@dataclass(frozen=True, slots=True)
class FriendRequest:
    """A friend request awaiting an answer."""

    id: int
    user: Friend
    direction: RequestDirection
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Group:
    """A travel group the user belongs to."""

    id: int
    name: str
    member_count: int
    is_admin: bool = False


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of a paginated listing; sized by its items."""

    items: tuple[T, ...] = field(default_factory=tuple)
    page: int = 0
    has_more: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)


__all__ = ["Friend", "FriendRequest", "Group", "Page", "RequestDirection"]
