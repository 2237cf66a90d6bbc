"""Host hook surface consumed by the integration, plus a minimal in-process host.

The integration never depends on a concrete devtools framework. It only needs
to register a shutdown callback and a custom-tab provider, which is what the
`HostHooks` protocol describes. `HookRegistry` implements it for the CLI and
for tests.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeAlias

from codetab.integration.logging import LogComponent, get_logger
from codetab.models import CustomTab

ShutdownCallback: TypeAlias = Callable[[], Awaitable[None] | None]
TabsProvider: TypeAlias = Callable[[list[CustomTab]], None]

logger = get_logger(LogComponent.HOOKS)


class HostHooks(Protocol):
    """Minimal hook surface a host must offer to the integration."""

    def on_shutdown(self, callback: ShutdownCallback) -> None: ...

    def on_describe_tabs(self, provider: TabsProvider) -> None: ...


class HookRegistry:
    """In-process host that collects tabs and runs shutdown callbacks."""

    def __init__(self) -> None:
        self._shutdown_callbacks: list[ShutdownCallback] = []
        self._tab_providers: list[TabsProvider] = []
        self.closed: bool = False

    def on_shutdown(self, callback: ShutdownCallback) -> None:
        self._shutdown_callbacks.append(callback)

    def on_describe_tabs(self, provider: TabsProvider) -> None:
        self._tab_providers.append(provider)

    def collect_tabs(self) -> list[CustomTab]:
        """Ask every provider to append its tabs, in registration order."""
        tabs: list[CustomTab] = []
        for provider in self._tab_providers:
            provider(tabs)
        return tabs

    async def close(self) -> None:
        """Run every shutdown callback once.

        A failing callback is logged and does not prevent the others from running.
        """
        if self.closed:
            return
        self.closed = True

        for callback in self._shutdown_callbacks:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Shutdown callback {callback!r} failed: {e}")
