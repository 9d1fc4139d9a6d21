"""Numeric setting editor synced through a debounced coordinator."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import Container
from textual.widgets import Input, Static

from navikit.core import Failed, Loaded, Loading, ViewState
from navikit.viewmodels import SettingViewModel


class SettingsPanel(Container):
    """One input per setting; edits are saved once typing settles."""

    DEFAULT_CSS = """
    SettingsPanel {
        layout: vertical;
        border: round $primary 40%;
        padding: 0 1;
        height: auto;
    }

    SettingsPanel .panel-title {
        text-style: bold;
    }
    """

    def __init__(self, view_models: list[SettingViewModel]) -> None:
        super().__init__(id="settings")
        self._view_models = {vm.key: vm for vm in view_models}
        self._labels: dict[str, Static] = {}
        self._unsubscribers: list[Callable[[], None]] = []

    def compose(self) -> ComposeResult:
        yield Static("Settings", classes="panel-title")
        for key, vm in self._view_models.items():
            yield Static(key, id=f"setting-label-{key}")
            yield Input(value=f"{vm.value:g}" if vm.value is not None else "", id=f"setting-{key}")

    async def on_mount(self) -> None:
        for key, vm in self._view_models.items():
            label = self.query_one(f"#setting-label-{key}", Static)
            self._labels[key] = label
            self._unsubscribers.append(
                vm.coordinator.state_machine.subscribe(lambda state, k=key: self._show_state(k, state))
            )

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def on_input_changed(self, event: Input.Changed) -> None:
        key = (event.input.id or "").removeprefix("setting-")
        vm = self._view_models.get(key)
        if vm is None:
            return
        try:
            value = float(event.value)
        except ValueError:
            label = self._labels.get(key)
            if label is not None:
                label.update(f"{key}: enter a number")
            return
        vm.set_value(value)

    def _show_state(self, key: str, state: ViewState[float]) -> None:
        label = self._labels.get(key)
        if label is None:
            return
        if isinstance(state, Loading):
            suffix = "saving…"
        elif isinstance(state, Failed):
            suffix = f"✖ {state.error.message}"
        elif isinstance(state, Loaded):
            suffix = f"✔ saved {state.data:g}"
        else:
            suffix = ""
        label.update(f"{key}: {suffix}" if suffix else key)


__all__ = ["SettingsPanel"]
