"""Tests for the view-state machine."""

from __future__ import annotations

import pytest

from navikit.core import (
    Empty,
    ErrorInfo,
    ErrorKind,
    Failed,
    Idle,
    Loaded,
    Loading,
    StateTransitionError,
    ViewStateMachine,
    is_empty,
)


def test_idle_to_loading_to_loaded_round_trip() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    seen = []
    machine.subscribe(seen.append)

    machine.start(initial=True)
    machine.succeed([1, 2])

    assert seen == [Idle(), Loading(is_initial=True), Loaded([1, 2])]
    assert machine.state == Loaded([1, 2])


def test_empty_and_loaded_are_distinguished() -> None:
    machine: ViewStateMachine[list[str]] = ViewStateMachine()

    machine.start()
    machine.succeed([])
    assert machine.state == Empty()

    machine.start(initial=False)
    machine.succeed(["x"])
    assert machine.state == Loaded(["x"])


def test_retry_leaves_failed_for_initial_load() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    machine.start()
    machine.fail(ErrorInfo.network())

    assert isinstance(machine.state, Failed)
    assert machine.state.error.kind is ErrorKind.NETWORK

    pending = machine.retry()

    assert machine.state == Loading(is_initial=True)
    assert machine.succeed([3], generation=pending.generation) is True
    assert machine.state == Loaded([3])


def test_retry_requires_failed_state() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()

    with pytest.raises(StateTransitionError):
        machine.retry()


def test_start_while_loading_requires_supersede() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    first = machine.start(initial=True)

    with pytest.raises(StateTransitionError):
        machine.start(initial=False)

    second = machine.start(initial=False, supersede=True)

    assert second.generation > first.generation
    assert machine.state == Loading(is_initial=True)


def test_stale_generation_is_dropped() -> None:
    machine: ViewStateMachine[str] = ViewStateMachine()
    first = machine.start()
    second = machine.start(supersede=True)

    assert machine.succeed("old", generation=first.generation) is False
    assert isinstance(machine.state, Loading)
    assert machine.fail(ErrorInfo.network(), generation=first.generation) is False
    assert isinstance(machine.state, Loading)

    assert machine.succeed("new", generation=second.generation) is True
    assert machine.state == Loaded("new")


def test_completion_without_pending_request_is_ignored() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()

    assert machine.succeed([1]) is False
    assert machine.state == Idle()


def test_refresh_keeps_stale_data_visible() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    machine.start()
    machine.succeed([1, 2])

    machine.start(initial=False)
    assert machine.state == Loading(is_initial=False, data=[1, 2])

    machine.fail(ErrorInfo.timeout(1))
    assert isinstance(machine.state, Failed)
    assert machine.state.data == [1, 2]


def test_refresh_can_clear_stale_data() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine(keep_stale_data=False)
    machine.start()
    machine.succeed([1, 2])

    machine.start(initial=False)
    assert machine.state == Loading(is_initial=False, data=None)

    machine.fail(ErrorInfo.network())
    assert isinstance(machine.state, Failed)
    assert machine.state.data is None


def test_supersede_returns_to_settled_state() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    machine.start()
    machine.succeed([5])
    pending = machine.start(initial=False)

    machine.supersede()

    assert machine.state == Loaded([5])
    assert machine.generation > pending.generation
    assert machine.succeed([6], generation=pending.generation) is False
    assert machine.state == Loaded([5])


def test_reset_returns_to_idle() -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    machine.start()
    machine.succeed([1])

    machine.reset()

    assert machine.state == Idle()
    assert machine.data is None


def test_listener_errors_do_not_break_transitions(caplog: pytest.LogCaptureFixture) -> None:
    machine: ViewStateMachine[list[int]] = ViewStateMachine()
    seen = []

    def _broken(state):  # type: ignore[no-untyped-def]
        if isinstance(state, Loading):
            raise RuntimeError("boom")

    machine.subscribe(_broken)
    machine.subscribe(seen.append)
    machine.start()

    assert seen[-1] == Loading(is_initial=True)
    assert "View state listener failed" in caplog.text


def test_is_empty_rules() -> None:
    assert is_empty(None)
    assert is_empty([])
    assert is_empty(())
    assert not is_empty([0])
    assert not is_empty("")
    assert not is_empty(0.0)
