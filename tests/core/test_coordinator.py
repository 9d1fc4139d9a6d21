"""Tests for the request coordinator."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from navikit.core import (
    Empty,
    Err,
    ErrorInfo,
    ErrorKind,
    Failed,
    Idle,
    Loaded,
    Loading,
    Ok,
    RequestCoordinator,
)

DELAY = 0.05
SETTLE = 0.2


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _ControlledOperation:
    """Operation whose calls stay pending until the test resolves them."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, asyncio.Future[Any]]] = []

    async def __call__(self, value: Any) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.calls.append((value, future))
        return await future

    @property
    def values(self) -> list[Any]:
        return [value for value, _ in self.calls]

    def resolve(self, index: int, outcome: Any) -> None:
        self.calls[index][1].set_result(outcome)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.anyio
async def test_set_input_is_debounced_before_dispatch() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)
    try:
        coordinator.set_input("a")
        coordinator.set_input("ab")
        coordinator.set_input("abc")

        assert operation.calls == []
        assert coordinator.state == Idle()
        assert coordinator.current_value == "abc"

        await asyncio.sleep(SETTLE)

        assert operation.values == ["abc"]
        assert coordinator.committed_value == "abc"
        assert coordinator.state == Loading(is_initial=True)

        operation.resolve(0, Ok(["Alex"]))
        await _settle()

        assert coordinator.state == Loaded(["Alex"])
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_trigger_immediate_bypasses_debounce() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=10, timeout=None)
    try:
        coordinator.set_input("draft")
        pending = coordinator.trigger_immediate()
        await _settle()

        assert operation.values == ["draft"]
        assert pending.value == "draft"
        assert pending.is_initial is True

        await asyncio.sleep(DELAY)
        assert operation.values == ["draft"]
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_last_request_wins_over_late_response() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)
    try:
        first = coordinator.trigger_immediate("A")
        second = coordinator.trigger_immediate("B")
        await _settle()
        assert second.generation > first.generation

        operation.resolve(1, Ok(["b"]))
        await _settle()
        operation.resolve(0, Ok(["a"]))
        await _settle()

        assert coordinator.state == Loaded(["b"])
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_early_response_from_superseded_request_is_ignored() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)
    try:
        coordinator.trigger_immediate("A")
        coordinator.trigger_immediate("B")
        await _settle()

        operation.resolve(0, Err(ErrorInfo.network()))
        await _settle()
        assert isinstance(coordinator.state, Loading)

        operation.resolve(1, Ok([]))
        await _settle()
        assert coordinator.state == Empty()
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_timeout_fails_request_and_ignores_late_completion() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=0.1)
    try:
        pending = coordinator.trigger_immediate("slow")
        await asyncio.sleep(0.04)
        assert isinstance(coordinator.state, Loading)

        await asyncio.sleep(0.15)
        state = coordinator.state
        assert isinstance(state, Failed)
        assert state.error.kind is ErrorKind.TIMEOUT
        assert coordinator.state_machine.generation > pending.generation

        operation.resolve(0, Ok(["late"]))
        await _settle()
        assert coordinator.state == state
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_timeout_does_not_retract_committed_result() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=0.05)
    try:
        coordinator.trigger_immediate("fast")
        await _settle()
        operation.resolve(0, Ok(["done"]))
        await _settle()

        await asyncio.sleep(0.15)

        assert coordinator.state == Loaded(["done"])
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_optimistic_update_rolls_back_on_failure() -> None:
    items = ["x", "y", "z"]
    original = list(items)
    removed: dict[str, int] = {}
    rollbacks: list[str] = []

    def _apply(item: str) -> None:
        removed[item] = items.index(item)
        items.remove(item)

    def _rollback(item: str) -> None:
        rollbacks.append(item)
        if item in removed and item not in items:
            items.insert(removed.pop(item), item)

    operation = _ControlledOperation()
    coordinator = RequestCoordinator(
        operation,
        delay=DELAY,
        timeout=None,
        apply_optimistic=_apply,
        rollback=_rollback,
    )
    try:
        coordinator.trigger_immediate("x")
        assert items == ["y", "z"]

        await _settle()
        operation.resolve(0, Err(ErrorInfo.network()))
        await _settle()

        assert items == original
        assert rollbacks == ["x"]
        assert isinstance(coordinator.state, Failed)
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_rollback_runs_on_timeout_once() -> None:
    rollbacks: list[str] = []
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(
        operation,
        delay=DELAY,
        timeout=0.05,
        apply_optimistic=lambda _: None,
        rollback=rollbacks.append,
    )
    try:
        coordinator.trigger_immediate("x")
        await asyncio.sleep(0.15)
        operation.resolve(0, Err(ErrorInfo.network()))
        await _settle()

        assert rollbacks == ["x"]
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_superseded_failure_skips_rollback() -> None:
    rollbacks: list[str] = []
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None, rollback=rollbacks.append)
    try:
        coordinator.trigger_immediate("first")
        coordinator.trigger_immediate("second")
        await _settle()

        operation.resolve(0, Err(ErrorInfo.network()))
        await _settle()

        assert rollbacks == []
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_raising_operation_becomes_unknown_failure() -> None:
    async def _explode(_: object) -> None:
        raise ValueError("bad payload")

    coordinator = RequestCoordinator(_explode, delay=DELAY, timeout=None)
    try:
        coordinator.trigger_immediate("x")
        await _settle()

        state = coordinator.state
        assert isinstance(state, Failed)
        assert state.error.kind is ErrorKind.UNKNOWN
        assert "bad payload" in state.error.message
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_raising_optimistic_hook_fails_without_raising() -> None:
    operation = _ControlledOperation()

    def _apply(_: object) -> None:
        raise LookupError("gone")

    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None, apply_optimistic=_apply)
    try:
        coordinator.trigger_immediate("x")
        await _settle()

        assert operation.calls == []
        state = coordinator.state
        assert isinstance(state, Failed)
        assert state.error.kind is ErrorKind.UNKNOWN
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_retry_redispatches_last_input() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)
    try:
        assert coordinator.retry() is None

        coordinator.trigger_immediate("query")
        await _settle()
        operation.resolve(0, Err(ErrorInfo.network()))
        await _settle()
        assert isinstance(coordinator.state, Failed)

        pending = coordinator.retry()
        await _settle()

        assert pending is not None
        assert coordinator.state == Loading(is_initial=True)
        assert operation.values == ["query", "query"]

        operation.resolve(1, Ok([1]))
        await _settle()
        assert coordinator.state == Loaded([1])
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_refresh_keeps_stale_data_while_loading() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)
    try:
        coordinator.trigger_immediate("q")
        await _settle()
        operation.resolve(0, Ok([1, 2]))
        await _settle()

        pending = coordinator.refresh()

        assert pending.is_initial is False
        assert coordinator.state == Loading(is_initial=False, data=[1, 2])
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_cancel_discards_in_flight_result() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)
    try:
        coordinator.set_input("pending")
        coordinator.trigger_immediate("sent")
        await _settle()

        coordinator.cancel()
        assert coordinator.state == Idle()
        assert coordinator.in_flight == 1

        operation.resolve(0, Ok(["ignored"]))
        await _settle()

        assert coordinator.state == Idle()
        assert coordinator.in_flight == 0
        await asyncio.sleep(SETTLE)
        assert operation.values == ["sent"]
    finally:
        await coordinator.close()


@pytest.mark.anyio
async def test_close_cancels_in_flight_operations() -> None:
    operation = _ControlledOperation()
    coordinator = RequestCoordinator(operation, delay=DELAY, timeout=None)

    coordinator.trigger_immediate("x")
    await _settle()
    assert coordinator.in_flight == 1

    await coordinator.close()

    assert coordinator.in_flight == 0
    assert operation.calls[0][1].cancelled()


def test_trigger_without_event_loop_fails_cleanly() -> None:
    applied: list[str] = []
    coordinator: RequestCoordinator[str, list[str]] = RequestCoordinator(
        _ControlledOperation(),
        delay=DELAY,
        timeout=None,
        apply_optimistic=applied.append,
        rollback=applied.remove,
    )

    pending = coordinator.trigger_immediate("x")

    state = coordinator.state
    assert isinstance(state, Failed)
    assert state.error.kind is ErrorKind.UNKNOWN
    assert applied == []
    assert coordinator.state_machine.pending is None
    assert coordinator.last_input == "x"
    assert pending.value == "x"


def test_set_input_without_event_loop_only_records_value() -> None:
    coordinator: RequestCoordinator[str, list[str]] = RequestCoordinator(
        _ControlledOperation(), delay=DELAY, timeout=None
    )

    coordinator.set_input("draft")

    assert coordinator.current_value == "draft"
    assert coordinator.state == Idle()
    assert coordinator.in_flight == 0
