"""View-state machine driven by operation outcomes."""

from __future__ import annotations

import logging
from collections.abc import Sized
from typing import Any, Callable, Generic, TypeVar

from .models import (
    Empty,
    ErrorInfo,
    Failed,
    Idle,
    Loaded,
    Loading,
    PendingRequest,
    StateKind,
    ViewState,
)

LOG = logging.getLogger(__name__)

T = TypeVar("T")

StateListener = Callable[[ViewState[Any]], None]


class StateTransitionError(RuntimeError):
    """Raised when a transition is not legal from the current state."""


def is_empty(data: object) -> bool:
    """``None`` and zero-length sized values count as empty."""

    if data is None:
        return True
    if isinstance(data, (str, bytes)):
        return False
    if isinstance(data, Sized):
        return len(data) == 0
    return False


class ViewStateMachine(Generic[T]):
    """Holds one screen's {idle, loading, loaded, empty, failed} lifecycle.

    Every ``start`` allocates a new generation. Completions carrying an older
    generation, or arriving when nothing is loading, are dropped without a
    transition. With ``keep_stale_data`` the last good data rides along in
    ``Loading`` and ``Failed`` so a refresh does not blank the screen.
    """

    def __init__(self, *, keep_stale_data: bool = True, name: str = "view") -> None:
        self._name = name
        self._keep_stale_data = keep_stale_data
        self._state: ViewState[T] = Idle()
        self._settled: ViewState[T] = self._state
        self._last_good: T | None = None
        self._generation = 0
        self._pending: PendingRequest[Any] | None = None
        self._listeners: set[StateListener] = set()

    @property
    def state(self) -> ViewState[T]:
        return self._state

    @property
    def generation(self) -> int:
        """Highest generation handed out so far."""

        return self._generation

    @property
    def pending(self) -> PendingRequest[Any] | None:
        """Request currently allowed to commit, if any."""

        return self._pending

    @property
    def is_loading(self) -> bool:
        return self._state.kind is StateKind.LOADING

    @property
    def data(self) -> T | None:
        """Last good data, whatever the current state."""

        return self._last_good

    def start(
        self,
        *,
        initial: bool = True,
        value: object = None,
        supersede: bool = False,
    ) -> PendingRequest[Any]:
        """Enter ``Loading`` and return the request allowed to commit.

        Starting while already loading is only allowed with ``supersede``; the
        earlier request is then discarded and the loading flavour kept.
        """

        current = self._state
        if isinstance(current, Loading):
            if not supersede:
                raise StateTransitionError(f"{self._name}: already loading")
            is_initial = current.is_initial
        else:
            is_initial = initial or isinstance(current, Idle)
        self._generation += 1
        self._pending = PendingRequest(self._generation, value, is_initial)
        stale = None if is_initial or not self._keep_stale_data else self._last_good
        self._transition(Loading(is_initial=is_initial, data=stale))
        return self._pending

    def succeed(self, data: T, *, generation: int | None = None) -> bool:
        """Commit a successful result; returns False if it was dropped."""

        if not self._accepts(generation):
            return False
        self._pending = None
        if is_empty(data):
            self._last_good = None
            self._settle(Empty())
        else:
            self._last_good = data
            self._settle(Loaded(data))
        return True

    def fail(self, error: ErrorInfo, *, generation: int | None = None) -> bool:
        """Commit a failure; returns False if it was dropped."""

        if not self._accepts(generation):
            return False
        self._pending = None
        stale = self._last_good if self._keep_stale_data else None
        self._settle(Failed(error, stale))
        return True

    def retry(self, *, value: object = None) -> PendingRequest[Any]:
        """Leave ``Failed`` for a fresh initial load."""

        if not isinstance(self._state, Failed):
            raise StateTransitionError(f"{self._name}: retry requires a failed state")
        self._generation += 1
        self._pending = PendingRequest(self._generation, value, True)
        self._transition(Loading(is_initial=True))
        return self._pending

    def supersede(self) -> None:
        """Invalidate the in-flight request and fall back to the settled state."""

        self._generation += 1
        if self._pending is None:
            return
        LOG.debug(
            "Superseding in-flight request",
            extra={"view": self._name, "generation": self._pending.generation},
        )
        self._pending = None
        if isinstance(self._state, Loading):
            self._transition(self._settled)

    def reset(self) -> None:
        """Return to ``Idle`` and forget any data."""

        self._generation += 1
        self._pending = None
        self._last_good = None
        self._settle(Idle())

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to transitions; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def _accepts(self, generation: int | None) -> bool:
        if self._pending is None:
            LOG.debug("Dropping completion with nothing in flight", extra={"view": self._name})
            return False
        if generation is not None and generation != self._pending.generation:
            LOG.debug(
                "Dropping stale completion",
                extra={"view": self._name, "generation": generation, "current": self._pending.generation},
            )
            return False
        return True

    def _settle(self, state: ViewState[T]) -> None:
        self._settled = state
        self._transition(state)

    def _transition(self, state: ViewState[T]) -> None:
        self._state = state
        for listener in tuple(self._listeners):
            try:
                listener(state)
            except Exception:
                LOG.exception("View state listener failed", extra={"view": self._name})


__all__ = ["StateListener", "StateTransitionError", "ViewStateMachine", "is_empty"]
