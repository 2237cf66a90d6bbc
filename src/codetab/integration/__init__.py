"""VS Code devtools integration: launcher, host hooks and process utilities."""

from codetab.integration.errors import (
    LauncherError,
    PortAllocationError,
    ReachabilityTimeout,
    SpawnError,
)
from codetab.integration.hooks import HookRegistry, HostHooks
from codetab.integration.launcher import DevServerLauncher, LauncherState, setup

__all__ = [
    "DevServerLauncher",
    "HookRegistry",
    "HostHooks",
    "LauncherError",
    "LauncherState",
    "PortAllocationError",
    "ReachabilityTimeout",
    "SpawnError",
    "setup",
]
