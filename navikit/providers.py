"""Command palette providers for core app features."""

from __future__ import annotations

from typing import Any

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType


class _AppActionProvider(Provider):
    """Expose one app-level method as a palette command."""

    _LABEL = ""
    _HELP = ""
    _METHOD = ""

    async def search(self, query: str) -> Hits:
        if self._target is None:
            return
        matcher = self.matcher(query)
        score = matcher.match(self._LABEL)
        if score > 0:
            yield Hit(
                score=score,
                match_display=matcher.highlight(self._LABEL),
                command=self._build_callback(),
                help=self._HELP,
            )

    async def discover(self) -> Hits:
        if self._target is None:
            return
        yield DiscoveryHit(
            display=self._LABEL,
            command=self._build_callback(),
            help=self._HELP,
        )

    @property
    def _target(self) -> Any | None:
        return getattr(self.app, self._METHOD, None)

    def _build_callback(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            target = self._target
            if target is None:
                return
            target()

        return _run


class RefreshScreensProvider(_AppActionProvider):
    """Reload every screen in place."""

    _LABEL = "Refresh all screens"
    _HELP = "Trigger Ctrl+R equivalent refresh."
    _METHOD = "refresh_all"


class RetryFailedProvider(_AppActionProvider):
    """Retry every screen whose last request failed."""

    _LABEL = "Retry failed requests"
    _HELP = "Trigger Ctrl+T equivalent retry."
    _METHOD = "retry_failed"


__all__ = ["RefreshScreensProvider", "RetryFailedProvider"]
