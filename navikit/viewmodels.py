"""View models binding Navi screens to request coordinators."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, Hashable, TypeVar

from .config import AppConfig, ResolvedChannel
from .core import (
    Empty,
    Loaded,
    PendingRequest,
    RequestCoordinator,
    StateKind,
    ViewState,
)
from .models import Friend, FriendRequest, Group, Page, RequestDirection
from .services import NaviService

LOG = logging.getLogger(__name__)

T = TypeVar("T")

ItemsListener = Callable[[tuple[Any, ...]], None]


def _channel(settings: ResolvedChannel | None, name: str) -> ResolvedChannel:
    return settings or AppConfig().channel(name)


def _coordinator(
    operation: Callable[[Any], Awaitable[Any]],
    settings: ResolvedChannel,
    *,
    name: str,
    **kwargs: Any,
) -> RequestCoordinator[Any, Any]:
    return RequestCoordinator(
        operation,
        delay=settings.debounce_seconds,
        timeout=settings.timeout_seconds,
        keep_stale_data=settings.keep_stale_data,
        skip_unchanged=settings.skip_unchanged,
        name=name,
        **kwargs,
    )


class FriendSearchViewModel:
    """Search-as-you-type over the friends list."""

    NAME = "friend-search"

    def __init__(self, service: NaviService, *, settings: ResolvedChannel | None = None) -> None:
        self._service = service
        self._coordinator = _coordinator(
            self._search,
            _channel(settings, self.NAME),
            name=self.NAME,
            initial="",
        )

    @property
    def coordinator(self) -> RequestCoordinator[str, list[Friend]]:
        return self._coordinator

    @property
    def state(self) -> ViewState[list[Friend]]:
        return self._coordinator.state

    @property
    def query(self) -> str:
        return self._coordinator.current_value or ""

    def set_query(self, text: str) -> None:
        self._coordinator.set_input(text)

    def submit(self) -> PendingRequest[str]:
        return self._coordinator.trigger_immediate()

    def retry(self) -> PendingRequest[str] | None:
        return self._coordinator.retry()

    async def close(self) -> None:
        await self._coordinator.close()

    async def _search(self, query: str | None) -> list[Friend]:
        return await self._service.search_friends(query or "")


class FriendsPageViewModel:
    """Paginated friends list with load-more and pull-to-refresh."""

    NAME = "friends-page"

    def __init__(
        self,
        service: NaviService,
        *,
        page_size: int = 5,
        settings: ResolvedChannel | None = None,
    ) -> None:
        self._service = service
        self._page_size = page_size
        self._items: tuple[Friend, ...] = ()
        self._next_page = 0
        self._has_more = False
        self._listeners: set[ItemsListener] = set()
        self._coordinator = _coordinator(self._load_page, _channel(settings, self.NAME), name=self.NAME)
        self._coordinator.state_machine.subscribe(self._handle_state)

    @property
    def coordinator(self) -> RequestCoordinator[int, Page[Friend]]:
        return self._coordinator

    @property
    def state(self) -> ViewState[Page[Friend]]:
        return self._coordinator.state

    @property
    def items(self) -> tuple[Friend, ...]:
        return self._items

    @property
    def has_more(self) -> bool:
        return self._has_more

    def load(self) -> PendingRequest[int]:
        return self._coordinator.trigger_immediate(0)

    def load_more(self) -> PendingRequest[int] | None:
        """Fetch the next page; ignored while loading or at the end."""

        if self._coordinator.state_machine.is_loading or not self._has_more:
            return None
        return self._coordinator.trigger_immediate(self._next_page)

    def refresh(self) -> PendingRequest[int]:
        return self._coordinator.trigger_immediate(0)

    def retry(self) -> PendingRequest[int] | None:
        return self._coordinator.retry()

    def subscribe(self, listener: ItemsListener) -> Callable[[], None]:
        """Subscribe to the accumulated rows; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._items)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    async def close(self) -> None:
        await self._coordinator.close()

    async def _load_page(self, page: int | None) -> Page[Friend]:
        page = page or 0
        result = await self._service.fetch_friends_page(page, self._page_size)
        base = self._items if page > 0 else ()
        return Page(items=base + tuple(result.items), page=page, has_more=result.has_more)

    def _handle_state(self, state: ViewState[Page[Friend]]) -> None:
        if isinstance(state, Loaded):
            self._items = state.data.items
            self._next_page = state.data.page + 1
            self._has_more = state.data.has_more
        elif isinstance(state, Empty):
            self._items = ()
            self._next_page = 0
            self._has_more = False
        else:
            return
        for listener in tuple(self._listeners):
            try:
                listener(self._items)
            except Exception:
                LOG.exception("Items listener failed", extra={"view": self.NAME})


class OptimisticListViewModel(Generic[T]):
    """List screen whose row actions apply immediately and revert on failure.

    Every row action gets its own coordinator, so actions on different rows
    never supersede each other.
    """

    NAME = "list"

    def __init__(self, *, settings: ResolvedChannel | None = None) -> None:
        self._settings = _channel(settings, self.NAME)
        self._items: list[T] = []
        self._removed: dict[Hashable, tuple[int, T]] = {}
        self._actions: dict[Hashable, RequestCoordinator[Any, Any]] = {}
        self._retired: list[RequestCoordinator[Any, Any]] = []
        self._listeners: set[ItemsListener] = set()
        self._list = _coordinator(self._fetch_items, self._settings, name=self.NAME)
        self._list.state_machine.subscribe(self._handle_list_state)

    @property
    def coordinator(self) -> RequestCoordinator[None, list[T]]:
        return self._list

    @property
    def state(self) -> ViewState[list[T]]:
        return self._list.state

    @property
    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    def load(self) -> PendingRequest[None]:
        return self._list.trigger_immediate(None)

    def refresh(self) -> PendingRequest[None]:
        return self._list.refresh()

    def retry(self) -> PendingRequest[None] | None:
        return self._list.retry()

    def action_state(self, key: Hashable) -> ViewState[Any] | None:
        """State of a pending or failed action on ``key``; None once it succeeds."""

        coordinator = self._actions.get(key)
        return coordinator.state if coordinator else None

    def subscribe(self, listener: ItemsListener) -> Callable[[], None]:
        """Subscribe to visible-row changes; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self.items)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    async def close(self) -> None:
        await self._list.close()
        for coordinator in (*self._actions.values(), *self._retired):
            await coordinator.close()
        self._actions.clear()
        self._retired.clear()

    async def _fetch_items(self, _: object) -> list[T]:
        raise NotImplementedError

    def _key(self, item: T) -> Hashable:
        raise NotImplementedError

    def _act(
        self,
        key: Hashable,
        operation: Callable[[Any], Awaitable[Any]],
        action: str,
    ) -> PendingRequest[Any] | None:
        if self._index_of(key) is None:
            LOG.debug("Ignoring action on missing row", extra={"view": self.NAME, "action": action})
            return None
        coordinator = _coordinator(
            operation,
            self._settings,
            name=f"{self.NAME}:{action}:{key}",
            apply_optimistic=self._remove,
            rollback=self._restore,
        )
        previous = self._actions.pop(key, None)
        if previous is not None:
            self._retire(previous)
        self._actions[key] = coordinator
        coordinator.state_machine.subscribe(
            lambda state, k=key, c=coordinator: self._handle_action_state(k, c, state)
        )
        return coordinator.trigger_immediate(key)

    def _remove(self, key: Hashable) -> None:
        index = self._index_of(key)
        if index is None:
            raise LookupError(f"{self.NAME}: no row for {key!r}")
        self._removed[key] = (index, self._items.pop(index))
        self._notify()

    def _restore(self, key: Hashable) -> None:
        snapshot = self._removed.pop(key, None)
        if snapshot is None or self._index_of(key) is not None:
            return
        index, item = snapshot
        self._items.insert(min(index, len(self._items)), item)
        self._notify()

    def _notify(self) -> None:
        items = self.items
        for listener in tuple(self._listeners):
            try:
                listener(items)
            except Exception:
                LOG.exception("Items listener failed", extra={"view": self.NAME})

    def _retire(self, coordinator: RequestCoordinator[Any, Any]) -> None:
        coordinator.cancel()
        self._retired = [c for c in self._retired if c.in_flight]
        if coordinator.in_flight:
            self._retired.append(coordinator)

    def _index_of(self, key: Hashable) -> int | None:
        for index, item in enumerate(self._items):
            if self._key(item) == key:
                return index
        return None

    def _handle_list_state(self, state: ViewState[list[T]]) -> None:
        if isinstance(state, Loaded):
            self._items = [item for item in state.data if self._key(item) not in self._removed]
            self._notify()
        elif isinstance(state, Empty):
            self._items = []
            self._notify()

    def _handle_action_state(
        self,
        key: Hashable,
        coordinator: RequestCoordinator[Any, Any],
        state: ViewState[Any],
    ) -> None:
        if state.kind not in (StateKind.LOADED, StateKind.EMPTY):
            return
        self._removed.pop(key, None)
        # Only failed actions stay reachable through action_state().
        if self._actions.get(key) is coordinator:
            del self._actions[key]


class FriendRequestsViewModel(OptimisticListViewModel[FriendRequest]):
    """Incoming and outgoing friend requests with accept/decline."""

    NAME = "friend-requests"

    def __init__(self, service: NaviService, *, settings: ResolvedChannel | None = None) -> None:
        self._service = service
        super().__init__(settings=settings)

    @property
    def pending(self) -> tuple[FriendRequest, ...]:
        return tuple(item for item in self._items if item.direction is RequestDirection.PENDING)

    @property
    def sent(self) -> tuple[FriendRequest, ...]:
        return tuple(item for item in self._items if item.direction is RequestDirection.SENT)

    def accept(self, request_id: int) -> PendingRequest[Any] | None:
        return self._act(request_id, self._service.accept_request, "accept")

    def decline(self, request_id: int) -> PendingRequest[Any] | None:
        return self._act(request_id, self._service.decline_request, "decline")

    async def _fetch_items(self, _: object) -> list[FriendRequest]:
        return await self._service.fetch_friend_requests()

    def _key(self, item: FriendRequest) -> Hashable:
        return item.id


class GroupsViewModel(OptimisticListViewModel[Group]):
    """Groups list with optimistic leave."""

    NAME = "groups"

    def __init__(self, service: NaviService, *, settings: ResolvedChannel | None = None) -> None:
        self._service = service
        super().__init__(settings=settings)

    def leave(self, group_id: int) -> PendingRequest[Any] | None:
        return self._act(group_id, self._service.leave_group, "leave")

    async def _fetch_items(self, _: object) -> list[Group]:
        return await self._service.fetch_groups()

    def _key(self, item: Group) -> Hashable:
        return item.id


class SettingViewModel:
    """Slider or toggle value synced to the backend once it settles."""

    def __init__(
        self,
        service: NaviService,
        key: str,
        *,
        initial: float,
        settings: ResolvedChannel | None = None,
    ) -> None:
        self._service = service
        self._key = key
        self._coordinator = _coordinator(
            self._save,
            _channel(settings, f"setting:{key}"),
            name=f"setting:{key}",
            initial=initial,
        )

    @property
    def key(self) -> str:
        return self._key

    @property
    def coordinator(self) -> RequestCoordinator[float, float]:
        return self._coordinator

    @property
    def state(self) -> ViewState[float]:
        return self._coordinator.state

    @property
    def value(self) -> float | None:
        """Value shown by the control, ahead of the save."""

        return self._coordinator.current_value

    @property
    def saved_value(self) -> float | None:
        """Last value the backend confirmed."""

        return self._coordinator.state_machine.data

    def set_value(self, value: float) -> None:
        self._coordinator.set_input(value)

    def flush(self) -> PendingRequest[float]:
        return self._coordinator.trigger_immediate()

    def retry(self) -> PendingRequest[float] | None:
        return self._coordinator.retry()

    async def close(self) -> None:
        await self._coordinator.close()

    async def _save(self, value: float | None) -> float:
        if value is None:
            raise ValueError(f"No value to save for {self._key}")
        return await self._service.update_setting(self._key, value)


__all__ = [
    "FriendRequestsViewModel",
    "FriendSearchViewModel",
    "FriendsPageViewModel",
    "GroupsViewModel",
    "OptimisticListViewModel",
    "SettingViewModel",
]
