"""Coordinator gluing debounced input, async operations and view state."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, TypeVar

from .debounce import DebounceChannel
from .models import Err, ErrorInfo, Failed, PendingRequest, StateKind, ViewState
from .operation import AsyncOperationFn, run_operation
from .state import ViewStateMachine

LOG = logging.getLogger(__name__)

In = TypeVar("In")
Out = TypeVar("Out")

OptimisticHook = Callable[[Any], None]

_CURRENT = object()


class RequestCoordinator(Generic[In, Out]):
    """Owns one editable field or list and its request lifecycle.

    Passive input goes through ``set_input`` and is debounced; explicit user
    actions use ``trigger_immediate``. Each dispatch allocates a generation on
    the state machine, so only the most recently dispatched request may
    commit, whatever order the responses arrive in.
    """

    def __init__(
        self,
        operation: AsyncOperationFn[In],
        *,
        delay: float = 0.5,
        timeout: float | None = 10.0,
        apply_optimistic: OptimisticHook | None = None,
        rollback: OptimisticHook | None = None,
        keep_stale_data: bool = True,
        skip_unchanged: bool = False,
        initial: In | None = None,
        name: str = "coordinator",
    ) -> None:
        self._operation = operation
        self._timeout = timeout
        self._apply_optimistic = apply_optimistic
        self._rollback = rollback
        self._name = name
        self._machine: ViewStateMachine[Out] = ViewStateMachine(keep_stale_data=keep_stale_data, name=name)
        self._channel: DebounceChannel[In] = DebounceChannel(
            self._on_commit,
            delay=delay,
            initial=initial,
            skip_unchanged=skip_unchanged,
        )
        self._last_input: In | None = initial
        self._tasks: set[asyncio.Task[None]] = set()
        self._timers: dict[int, asyncio.TimerHandle] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ViewState[Out]:
        return self._machine.state

    @property
    def state_machine(self) -> ViewStateMachine[Out]:
        return self._machine

    @property
    def current_value(self) -> In | None:
        """Latest raw input, echoed immediately."""

        return self._channel.current_value

    @property
    def committed_value(self) -> In | None:
        """Input value after its quiet period elapsed."""

        return self._channel.committed_value

    @property
    def last_input(self) -> In | None:
        """Value carried by the most recent dispatch."""

        return self._last_input

    @property
    def in_flight(self) -> int:
        """Number of operation tasks that have not finished yet."""

        return sum(1 for task in self._tasks if not task.done())

    def set_input(self, value: In) -> None:
        """Record passive input; the operation runs once it settles."""

        if _running_loop() is None:
            LOG.warning("No running event loop; input not scheduled", extra={"coordinator": self._name})
            self._channel.set_current(value)
            return
        self._channel.update(value)

    def trigger_immediate(self, value: Any = _CURRENT) -> PendingRequest[In]:
        """Skip the debounce and dispatch now."""

        self._channel.cancel()
        if value is _CURRENT:
            value = self._channel.current_value
        else:
            self._channel.set_current(value)
        return self.dispatch(value)

    def retry(self) -> PendingRequest[In] | None:
        """Re-dispatch the last input after a failure."""

        if not isinstance(self._machine.state, Failed):
            return None
        return self.trigger_immediate(self._last_input)

    def refresh(self) -> PendingRequest[In]:
        """Reload the last input in place (pull-to-refresh)."""

        self._channel.cancel()
        return self.dispatch(self._last_input, initial=False)

    def cancel(self) -> None:
        """Drop the pending debounce and discard in-flight results."""

        self._channel.cancel()
        self._disarm_timers()
        self._machine.supersede()

    async def close(self) -> None:
        """Tear the coordinator down, cancelling in-flight operations."""

        self.cancel()
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def dispatch(self, value: In | None, *, initial: bool | None = None) -> PendingRequest[In]:
        """Start an operation for ``value`` and route its outcome to the view state."""

        self._last_input = value
        self._disarm_timers()
        if initial is None:
            initial = not self._has_settled_data()
        loop = _running_loop()
        if loop is None:
            LOG.error("No running event loop; operation not started", extra={"coordinator": self._name})
            pending = self._machine.start(initial=initial, value=value, supersede=True)
            self._machine.fail(ErrorInfo.unknown("No running event loop."), generation=pending.generation)
            return pending
        try:
            if self._apply_optimistic is not None:
                self._apply_optimistic(value)
        except Exception:
            LOG.exception("Optimistic update failed", extra={"coordinator": self._name})
            pending = self._machine.start(initial=initial, value=value, supersede=True)
            self._machine.fail(ErrorInfo.unknown("Could not apply the change."), generation=pending.generation)
            return pending

        if isinstance(self._machine.state, Failed) and initial:
            pending = self._machine.retry(value=value)
        else:
            pending = self._machine.start(initial=initial, value=value, supersede=True)
        LOG.debug(
            "Dispatching operation",
            extra={"coordinator": self._name, "generation": pending.generation},
        )
        task = loop.create_task(self._run(pending, value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if self._timeout is not None:
            self._timers[pending.generation] = loop.call_later(
                self._timeout, self._on_timeout, pending, value
            )
        return pending

    async def _on_commit(self, value: In) -> None:
        self.dispatch(value)

    async def _run(self, pending: PendingRequest[In], value: In | None) -> None:
        result = await run_operation(self._operation, value)
        self._disarm_timer(pending.generation)
        if isinstance(result, Err):
            if self._machine.fail(result.error, generation=pending.generation):
                LOG.warning(
                    "Operation failed: %s",
                    result.error.message,
                    extra={"coordinator": self._name, "kind": result.error.kind.value},
                )
                self._run_rollback(value)
            return
        if not self._machine.succeed(result.value, generation=pending.generation):
            LOG.debug(
                "Discarded superseded result",
                extra={"coordinator": self._name, "generation": pending.generation},
            )

    def _on_timeout(self, pending: PendingRequest[In], value: In | None) -> None:
        self._timers.pop(pending.generation, None)
        error = ErrorInfo.timeout(self._timeout or 0.0)
        if not self._machine.fail(error, generation=pending.generation):
            return
        LOG.warning(
            "Operation timed out",
            extra={"coordinator": self._name, "generation": pending.generation},
        )
        self._machine.supersede()
        self._run_rollback(value)

    def _run_rollback(self, value: In | None) -> None:
        if self._rollback is None:
            return
        try:
            self._rollback(value)
        except Exception:
            LOG.exception("Rollback failed", extra={"coordinator": self._name})

    def _has_settled_data(self) -> bool:
        return self._machine.state.kind in (StateKind.LOADED, StateKind.EMPTY)

    def _disarm_timer(self, generation: int) -> None:
        handle = self._timers.pop(generation, None)
        if handle is not None:
            handle.cancel()

    def _disarm_timers(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


__all__ = ["OptimisticHook", "RequestCoordinator"]
