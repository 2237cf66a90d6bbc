"""Tracking and stopping the editor subprocess we spawned.

Design goals:
- Only stop processes we started (tracked by pid + create_time).
- Prefer graceful shutdown (SIGINT first), escalate deterministically.
- code-server and `code tunnel` fork helpers, so stop the whole group/tree.
"""

from __future__ import annotations

import os
import signal
import time
from typing import ClassVar

import psutil
from pydantic import BaseModel, ConfigDict

from codetab.integration.logging import LogComponent, get_logger

logger = get_logger(LogComponent.PROCESS_CONTROL)


class TrackedProcess(BaseModel):
    """A process we started and are allowed to manage.

    create_time protects against PID reuse. pgid enables POSIX process-group
    shutdown even if the original PID has already exited.
    """

    pid: int
    create_time: float
    pgid: int | None = None

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


def _get_pgid_safe(pid: int) -> int | None:
    # Windows doesn't have pgid.
    if os.name == "nt":
        return None
    try:
        return os.getpgid(pid)
    except OSError:
        return None


def track_process(pid: int) -> TrackedProcess | None:
    """Create a TrackedProcess for a running PID, recording create_time and pgid."""
    try:
        proc = psutil.Process(pid)
        return TrackedProcess(
            pid=pid,
            create_time=float(proc.create_time()),
            pgid=_get_pgid_safe(pid),
        )
    except psutil.Error:
        return None


def validate_tracked(tp: TrackedProcess) -> psutil.Process | None:
    """Return a psutil.Process only if PID matches create_time (prevents PID reuse bugs)."""
    try:
        proc = psutil.Process(tp.pid)
        if abs(float(proc.create_time()) - tp.create_time) > 0.001:
            return None
        return proc
    except psutil.Error:
        return None


def _list_pgid_members(pgid: int) -> list[int]:
    """Return PIDs in a process group (POSIX only)."""
    pids: list[int] = []
    for proc in psutil.process_iter(["pid"]):
        pid = int(proc.pid)
        if _get_pgid_safe(pid) == pgid:
            pids.append(pid)
    return pids


def _wait_for_pgid_empty(pgid: int, timeout: float, poll: float = 0.1) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if not _list_pgid_members(pgid):
            return True
        time.sleep(poll)
    return not _list_pgid_members(pgid)


def _terminate_tree(root: psutil.Process, timeout: float) -> None:
    """Terminate a process tree, children first, killing whatever survives."""
    try:
        children = root.children(recursive=True)
    except psutil.Error:
        children = []

    for proc in [*children, root]:
        try:
            proc.terminate()
        except psutil.Error:
            pass

    _, alive = psutil.wait_procs([*children, root], timeout=timeout)
    if alive:
        for proc in alive:
            try:
                proc.kill()
            except psutil.Error:
                pass
        psutil.wait_procs(alive, timeout=max(0.5, timeout / 2))


def stop_tracked_process(
    tp: TrackedProcess,
    *,
    name: str,
    sigint_timeout: float = 1.0,
    sigterm_timeout: float = 1.5,
    sigkill_timeout: float = 1.0,
) -> None:
    """Stop a tracked process and its children.

    Behavior:
    - POSIX: signal the process group (SIGINT -> SIGTERM -> SIGKILL).
    - Windows: terminate/kill the process tree.
    """
    proc = validate_tracked(tp)
    if os.name == "nt" or tp.pgid is None:
        if proc is None:
            return
        logger.debug(f"Stopping {name} pid={tp.pid}")
        _terminate_tree(proc, timeout=sigterm_timeout + sigkill_timeout)
        return

    logger.debug(f"Stopping {name} pgid={tp.pgid}")
    for sig, timeout in (
        (signal.SIGINT, sigint_timeout),
        (signal.SIGTERM, sigterm_timeout),
        (signal.SIGKILL, sigkill_timeout),
    ):
        try:
            os.killpg(tp.pgid, sig)
        except ProcessLookupError:
            return
        except PermissionError:
            break
        if _wait_for_pgid_empty(tp.pgid, timeout):
            return

    # Last resort: if we still have a valid root process, kill its tree explicitly.
    proc = validate_tracked(tp)
    if proc is not None:
        _terminate_tree(proc, timeout=sigkill_timeout)
