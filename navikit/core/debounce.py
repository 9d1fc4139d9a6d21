"""Async debounce helpers used by the coordinators."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

LOG = logging.getLogger(__name__)

V = TypeVar("V")


class Debouncer:
    """Utility that coalesces rapid-fire calls into a single coroutine run."""

    def __init__(self, delay: float = 0.15) -> None:
        self._delay = delay
        self._task: asyncio.Task[Any] | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a submitted call is still waiting out its delay."""

        return self._task is not None and not self._task.done()

    def submit(self, coro_factory: Callable[[], Awaitable[Any]]) -> None:
        """Schedule a coroutine, cancelling any pending invocation."""

        loop = asyncio.get_running_loop()
        if self._task:
            self._task.cancel()
        self._task = loop.create_task(self._runner(coro_factory))

    def cancel(self) -> None:
        """Cancel any pending invocation."""

        if self._task:
            self._task.cancel()
            self._task = None

    async def _runner(self, coro_factory: Callable[[], Awaitable[Any]]) -> None:
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            return
        # A later submit() must not cancel a run already in progress.
        if self._task is asyncio.current_task():
            self._task = None
        try:
            await coro_factory()
        except Exception:
            LOG.exception("Debounced callback failed")


class DebounceChannel(Generic[V]):
    """Trailing-edge debounce over a single value.

    ``current_value`` echoes every update immediately. ``committed_value``
    follows once the input has been quiet for ``delay`` seconds, at which
    point ``on_commit`` runs exactly once with the settled value.
    """

    def __init__(
        self,
        on_commit: Callable[[V], object],
        *,
        delay: float = 0.5,
        initial: V | None = None,
        skip_unchanged: bool = False,
    ) -> None:
        self._on_commit = on_commit
        self._debouncer = Debouncer(delay)
        self._skip_unchanged = skip_unchanged
        self._current: V | None = initial
        self._committed: V | None = initial
        self._has_committed = False

    @property
    def current_value(self) -> V | None:
        return self._current

    @property
    def committed_value(self) -> V | None:
        return self._committed

    @property
    def delay(self) -> float:
        return self._debouncer.delay

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def update(self, value: V) -> None:
        """Record ``value`` and restart the quiet-period timer."""

        self._current = value
        self._debouncer.submit(self._settle)

    def set_current(self, value: V) -> None:
        """Record ``value`` without scheduling a commit."""

        self._current = value

    def cancel(self) -> None:
        """Drop the pending commit, if any."""

        self._debouncer.cancel()

    async def flush(self) -> None:
        """Commit the current value now instead of waiting for the timer."""

        self._debouncer.cancel()
        await self._settle()

    async def _settle(self) -> None:
        value = self._current
        unchanged = self._has_committed and value == self._committed
        self._committed = value
        self._has_committed = True
        if unchanged and self._skip_unchanged:
            LOG.debug("Settled value unchanged; skipping commit")
            return
        result = self._on_commit(value)  # type: ignore[arg-type]
        if inspect.isawaitable(result):
            await result


__all__ = ["DebounceChannel", "Debouncer"]
