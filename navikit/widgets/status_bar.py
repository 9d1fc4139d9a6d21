"""Status bar widget that mirrors coordinator states."""

from __future__ import annotations

from typing import Any, Callable, Sequence

from textual.widgets import Static

from navikit.core import Failed, Loading, RequestCoordinator, ViewState


def describe_state(state: ViewState[Any]) -> str:
    """Short human label for a view state."""

    if isinstance(state, Loading):
        return "loading" if state.is_initial else "refreshing"
    if isinstance(state, Failed):
        headline = state.error.message.partition("\n")[0][:60]
        return f"failed ({headline})" if headline else "failed"
    return state.kind.value


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, coordinators: Sequence[RequestCoordinator[Any, Any]]) -> None:
        super().__init__("", id="status-bar")
        self._coordinators = tuple(coordinators)
        self._unsubscribers: list[Callable[[], None]] = []

    async def on_mount(self) -> None:
        for coordinator in self._coordinators:
            self._unsubscribers.append(coordinator.state_machine.subscribe(self._handle_state))

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def summary(self) -> str:
        return " | ".join(
            f"{coordinator.name}: {describe_state(coordinator.state)}"
            for coordinator in self._coordinators
        )

    def _handle_state(self, _: ViewState[Any]) -> None:
        self.update(self.summary())


__all__ = ["StatusBar", "describe_state"]
