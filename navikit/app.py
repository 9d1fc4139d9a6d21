"""Textual application entry point for navikit."""

from __future__ import annotations

import logging
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header

from .config import AppConfig, load_config
from .core import Failed, RequestCoordinator
from .providers import RefreshScreensProvider, RetryFailedProvider
from .services import DemoNaviService, NaviService
from .viewmodels import (
    FriendRequestsViewModel,
    FriendSearchViewModel,
    FriendsPageViewModel,
    GroupsViewModel,
    SettingViewModel,
)
from .widgets import FriendRequestsPanel, FriendSearchPanel, FriendsPanel, GroupsPanel, SettingsPanel, StatusBar

LOG = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

DEFAULT_SETTINGS: dict[str, float] = {
    "voice_volume": 0.7,
    "poi_radius": 50.0,
}


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def configure_logging(config: AppConfig) -> None:
    """Send logs to ``config.log_file``; the terminal belongs to the UI."""

    if not config.log_file:
        return
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(filename=config.log_file, level=level, format=LOG_FORMAT)


class NaviApp(App[None]):
    """Social screens of Navi rendered as a terminal UI."""

    COMMANDS = App.COMMANDS | {RefreshScreensProvider, RetryFailedProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column, #side-column {
        layout: vertical;
        width: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "refresh", "Refresh"),
        ("ctrl+t", "retry", "Retry"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self, *, config: AppConfig | None = None, service: NaviService | None = None) -> None:
        super().__init__()
        self._config = config or _load_app_config()
        self._navi_service = service or DemoNaviService.from_config(self._config.demo)
        self._search_vm = FriendSearchViewModel(
            self._navi_service,
            settings=self._config.channel(FriendSearchViewModel.NAME),
        )
        self._friends_vm = FriendsPageViewModel(
            self._navi_service,
            settings=self._config.channel(FriendsPageViewModel.NAME),
        )
        self._requests_vm = FriendRequestsViewModel(
            self._navi_service,
            settings=self._config.channel(FriendRequestsViewModel.NAME),
        )
        self._groups_vm = GroupsViewModel(
            self._navi_service,
            settings=self._config.channel(GroupsViewModel.NAME),
        )
        self._setting_vms = [
            SettingViewModel(
                self._navi_service,
                key,
                initial=value,
                settings=self._config.channel(f"setting:{key}"),
            )
            for key, value in DEFAULT_SETTINGS.items()
        ]

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        side = Vertical(
            FriendRequestsPanel(self._requests_vm),
            GroupsPanel(self._groups_vm),
            SettingsPanel(self._setting_vms),
            id="side-column",
        )
        main = Vertical(
            FriendSearchPanel(self._search_vm),
            FriendsPanel(self._friends_vm),
            id="main-column",
        )
        yield Horizontal(main, side, id="content")
        yield StatusBar(self.coordinators)
        yield Footer()

    async def on_mount(self) -> None:
        self._search_vm.submit()
        self._friends_vm.load()
        self._requests_vm.load()
        self._groups_vm.load()

    def action_refresh(self) -> None:
        self.refresh_all()

    def action_retry(self) -> None:
        retried = self.retry_failed()
        if not retried:
            self.notify("Nothing to retry.", severity="information")

    @property
    def app_config(self) -> AppConfig:
        return self._config

    @property
    def service(self) -> NaviService:
        return self._navi_service

    @property
    def friend_search(self) -> FriendSearchViewModel:
        return self._search_vm

    @property
    def friends_page(self) -> FriendsPageViewModel:
        return self._friends_vm

    @property
    def friend_requests(self) -> FriendRequestsViewModel:
        return self._requests_vm

    @property
    def group_list(self) -> GroupsViewModel:
        return self._groups_vm

    @property
    def setting_view_models(self) -> tuple[SettingViewModel, ...]:
        return tuple(self._setting_vms)

    @property
    def coordinators(self) -> tuple[RequestCoordinator[Any, Any], ...]:
        """Screen-level coordinators, in status bar order."""

        return (
            self._search_vm.coordinator,
            self._friends_vm.coordinator,
            self._requests_vm.coordinator,
            self._groups_vm.coordinator,
            *(vm.coordinator for vm in self._setting_vms),
        )

    def refresh_all(self) -> None:
        """Reload every list in place."""

        self._search_vm.submit()
        self._friends_vm.refresh()
        self._requests_vm.refresh()
        self._groups_vm.refresh()

    def retry_failed(self) -> int:
        """Retry each screen whose last request failed; returns how many."""

        retried = 0
        for view_model in (
            self._search_vm,
            self._friends_vm,
            self._requests_vm,
            self._groups_vm,
            *self._setting_vms,
        ):
            if not isinstance(view_model.state, Failed):
                continue
            if view_model.retry() is not None:
                retried += 1
        LOG.info("Retried failed screens", extra={"count": retried})
        return retried

    async def close_view_models(self) -> None:
        """Cancel debounce timers and in-flight requests."""

        await self._search_vm.close()
        await self._friends_vm.close()
        await self._requests_vm.close()
        await self._groups_vm.close()
        for view_model in self._setting_vms:
            await view_model.close()

    async def _shutdown(self) -> None:
        await self.close_view_models()
        await super()._shutdown()


def main() -> None:
    """Invoke the Textual application."""

    config = _load_app_config()
    configure_logging(config)
    NaviApp(config=config).run()


if __name__ == "__main__":
    main()
