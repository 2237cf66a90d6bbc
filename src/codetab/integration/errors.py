"""Errors raised while starting the editor server."""

from __future__ import annotations

from collections.abc import Sequence


class LauncherError(RuntimeError):
    """Base class for start failures of the editor server."""


class PortAllocationError(LauncherError):
    """No free TCP port could be allocated."""


class SpawnError(LauncherError):
    """The editor binary could not be launched or exited before it was ready."""


class ReachabilityTimeout(LauncherError):
    """Resources did not reach the expected state within the timeout."""

    def __init__(
        self, resources: Sequence[str], timeout: float, reverse: bool = False
    ) -> None:
        self.resources: list[str] = list(resources)
        self.timeout: float = timeout
        self.reverse: bool = reverse
        state = "unreachable" if reverse else "reachable"
        super().__init__(
            f"Timed out after {timeout:g}s waiting for {', '.join(self.resources)} "
            f"to become {state}"
        )
