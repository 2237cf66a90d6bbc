"""Start VS Code Server (or a VS Code tunnel) and describe it as a devtools tab.

Lifecycle of a launcher (one per host session):

    NotInstalled                      binary missing, terminal
    Idle -> Starting -> Ready         ensure_started() creates the single start task
                     -> Failed        the task failed; it is never re-armed

`ensure_started()` stores its task before the first await, so any number of
concurrent callers (auto-start on boot, repeated clicks on "Launch") share one
subprocess.
"""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import subprocess
from pathlib import Path
from urllib.parse import quote

from codetab.constants import (
    CODE_SERVER_BINARY,
    CODE_TUNNEL_BINARY,
    INSTALL_GUIDE_URL,
    TAB_ICON,
    TAB_NAME,
    TAB_TITLE,
    TUNNEL_BASE_URL,
)
from codetab.integration.errors import SpawnError
from codetab.integration.hooks import HostHooks
from codetab.integration.logging import LogComponent, get_logger
from codetab.integration.ports import get_port, is_port_listening
from codetab.integration.process_control import (
    TrackedProcess,
    stop_tracked_process,
    track_process,
)
from codetab.integration.reachability import wait_on
from codetab.models import (
    CustomTab,
    IframeView,
    IntegrationOptions,
    LaunchAction,
    LaunchMode,
    LaunchView,
    TabView,
)
from codetab.utils import is_binary_installed

logger = get_logger(LogComponent.LAUNCHER)

INSTALL_DESCRIPTION = (
    "It seems you don't have code-server installed.\n\n"
    f'Learn more about it with <a href="{INSTALL_GUIDE_URL}" target="_blank">this guide</a>.\n'
    "Once installed, restart the dev server and visit this tab again."
)
LAUNCH_DESCRIPTION = "Launch VS Code right in the devtools!"


def tunnel_host_id(name: str | None, hostname: str) -> str:
    """Tunnel machine name: the configured name, else the hostname without dots."""
    return name or hostname.replace(".", "")


def tunnel_url(host_id: str, directory: Path) -> str:
    """URL of a folder opened through a vscode.dev tunnel."""
    path = directory.as_posix()
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{TUNNEL_BASE_URL}/{host_id}{path}"


def local_url(host: str, port: int, folder: Path) -> str:
    """URL of a folder opened in a local VS Code Server."""
    return f"http://{host}:{port}/?folder={quote(str(folder), safe='')}"


class LauncherState:
    """Mutable launcher state; written only by the start routine."""

    def __init__(self, mode: LaunchMode, port: int) -> None:
        self.mode: LaunchMode = mode
        self.port: int = port
        self.url: str | None = None
        self.loaded: bool = False
        self.installed: bool = False
        self.start_task: asyncio.Task[None] | None = None


class DevServerLauncher:
    """Decide, start and describe the externally managed editor server."""

    def __init__(
        self,
        options: IntegrationOptions,
        hooks: HostHooks,
        root_dir: Path | None = None,
    ) -> None:
        self.options: IntegrationOptions = options
        self.hooks: HostHooks = hooks
        self.root_dir: Path = (root_dir or Path.cwd()).resolve()
        self.state: LauncherState = LauncherState(options.mode, options.port)
        self.process: asyncio.subprocess.Process | None = None
        self.tracked: TrackedProcess | None = None
        self._stream_tasks: list[asyncio.Task[None]] = []

    @property
    def binary(self) -> str:
        if self.state.mode == LaunchMode.TUNNEL:
            return CODE_TUNNEL_BINARY
        return CODE_SERVER_BINARY

    @property
    def installed(self) -> bool:
        return self.state.installed

    @property
    def loaded(self) -> bool:
        return self.state.loaded

    @property
    def url(self) -> str | None:
        return self.state.url

    async def probe_installed(self) -> bool:
        """Look up the mode's binary on PATH. A missing binary is not an error."""
        return await asyncio.to_thread(is_binary_installed, self.binary)

    # === Start ===

    def ensure_started(self) -> asyncio.Task[None]:
        """Return the single start task, creating it on first call.

        Must be called with a running event loop.
        """
        if self.state.start_task is None:
            task = asyncio.get_running_loop().create_task(self._start())
            task.add_done_callback(self._on_start_done)
            self.state.start_task = task
        return self.state.start_task

    def _on_start_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            logger.warning("VS Code start was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Failed to start VS Code ({self.state.mode.value}): {exc}")

    async def _start(self) -> None:
        if self.state.mode == LaunchMode.TUNNEL:
            await self._start_code_tunnel()
        else:
            await self._start_code_server()

    async def _start_code_server(self) -> None:
        host = self.options.host
        port = self.state.port

        if self.options.reuse_existing_server and await asyncio.to_thread(
            is_port_listening, port, host
        ):
            self.state.url = local_url(host, port, self.root_dir)
            self.state.loaded = True
            logger.info(f"Existing VS Code Server found at port {port}...")
            return

        self.state.port = await asyncio.to_thread(get_port, port, host)
        self.state.url = local_url(host, self.state.port, self.root_dir)

        logger.info(f"Starting VS Code Server at {self.state.url} ...")

        process = await self._spawn(
            [
                CODE_SERVER_BINARY,
                "serve-local",
                "--accept-server-license-terms",
                "--without-connection-token",
                f"--port={self.state.port}",
            ],
            LogComponent.SERVER,
        )
        await self._wait_until_ready(process, self.state.url)
        self.state.loaded = True

    async def _start_code_tunnel(self) -> None:
        host_id = tunnel_host_id(self.options.tunnel.name, socket.gethostname())
        current_dir = Path.cwd()

        self.state.url = tunnel_url(host_id, current_dir)

        logger.info(f"Starting VS Code tunnel at {self.state.url} ...")

        process = await self._spawn(
            [
                CODE_TUNNEL_BINARY,
                "tunnel",
                "--accept-server-license-terms",
                "--name",
                host_id,
            ],
            LogComponent.TUNNEL,
        )
        await self._wait_until_ready(process, self.state.url)
        self.state.loaded = True

    async def _spawn(
        self, command: list[str], component: LogComponent
    ) -> asyncio.subprocess.Process:
        """Launch command in its own process group and stream its output to the log."""
        creationflags = 0
        start_new_session = False
        if os.name == "nt":
            creationflags = subprocess.CREATE_NEW_PROCESS_GROUP  # type: ignore[attr-defined]
        else:
            start_new_session = True

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.root_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=start_new_session,
                creationflags=creationflags,
            )
        except OSError as e:
            raise SpawnError(f"Failed to launch {command[0]}: {e}") from e

        self.process = process
        self.tracked = await asyncio.to_thread(track_process, process.pid)
        self.hooks.on_shutdown(self.stop)

        output_logger = get_logger(component)
        for stream, name in ((process.stdout, "stdout"), (process.stderr, "stderr")):
            if stream is not None:
                self._stream_tasks.append(
                    asyncio.create_task(_log_stream(stream, name, output_logger))
                )
        return process

    async def _wait_until_ready(
        self, process: asyncio.subprocess.Process, url: str
    ) -> None:
        """Wait for url, failing early if the process exits first, then settle."""
        ready = asyncio.ensure_future(
            wait_on([url], timeout=self.options.wait_timeout)
        )
        exited = asyncio.ensure_future(process.wait())
        try:
            done, _ = await asyncio.wait(
                {ready, exited}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (ready, exited):
                if not task.done():
                    task.cancel()
            await asyncio.gather(ready, exited, return_exceptions=True)

        if ready not in done:
            raise SpawnError(
                f"{self.binary} exited with code {process.returncode} "
                f"before {url} became reachable"
            )
        ready.result()

        # The server answers before it has finished initializing.
        await asyncio.sleep(self.options.settle_delay)

    async def stop(self) -> None:
        """Terminate the spawned subprocess (registered as a host shutdown hook)."""
        for task in self._stream_tasks:
            task.cancel()
        self._stream_tasks.clear()

        process = self.process
        if process is None or process.returncode is not None:
            return

        logger.info(f"Stopping {self.binary} (pid {process.pid})")
        if self.tracked is not None:
            await asyncio.to_thread(stop_tracked_process, self.tracked, name=self.binary)
        else:
            try:
                process.terminate()
            except ProcessLookupError:
                pass

    # === Status ===

    def describe_status(self) -> CustomTab:
        """Describe the tab for the current state. Pure; safe to call any time."""
        view: TabView
        if not self.state.installed:
            view = LaunchView(
                title="Install VS Code Server",
                description=INSTALL_DESCRIPTION,
                actions=[],
            )
        elif not self.state.loaded:
            view = self._launch_view()
        else:
            assert self.state.url is not None
            view = IframeView(src=self.state.url)

        return CustomTab(name=TAB_NAME, title=TAB_TITLE, icon=TAB_ICON, view=view)

    def _launch_view(self) -> LaunchView:
        task = self.state.start_task
        description = LAUNCH_DESCRIPTION
        label = "Launch"
        if task is not None:
            label = "Starting..."
            if task.done() and not task.cancelled() and task.exception() is not None:
                label = "Failed to start"
                description = f"{LAUNCH_DESCRIPTION}\n\n{task.exception()}"

        return LaunchView(
            description=description,
            actions=[
                LaunchAction(
                    label=label,
                    pending=task is not None,
                    handle=self.ensure_started,
                )
            ],
        )

    def provide_tabs(self, tabs: list[CustomTab]) -> None:
        tabs.append(self.describe_status())


async def _log_stream(
    stream: asyncio.StreamReader, name: str, output_logger: logging.Logger
) -> None:
    """Forward stream lines to output_logger until EOF."""
    while True:
        try:
            line = await stream.readline()
        except ValueError:
            # Line exceeded the reader limit; the reader has discarded it.
            output_logger.warning(f"{name} | (line too long, skipped)")
            continue
        if not line:
            return
        decoded_line = line.decode("utf-8", errors="replace").rstrip()
        if decoded_line:
            output_logger.info(f"{name} | {decoded_line}", extra={"stream": name})


async def setup(
    hooks: HostHooks,
    options: IntegrationOptions | None = None,
    root_dir: Path | None = None,
) -> DevServerLauncher:
    """Create the launcher, register its tab and optionally start it right away."""
    launcher = DevServerLauncher(options or IntegrationOptions(), hooks, root_dir)
    launcher.state.installed = await launcher.probe_installed()

    hooks.on_describe_tabs(launcher.provide_tabs)

    if launcher.options.start_on_boot and launcher.installed:
        launcher.ensure_started()

    return launcher
