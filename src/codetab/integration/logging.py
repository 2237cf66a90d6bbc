"""Centralized logging for the VS Code integration (routing and CLI formatting)."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from pydantic import BaseModel
from rich.markup import escape
from typing_extensions import override

from codetab.utils import console


class LogComponent(str, Enum):
    """Where a log originated (used for prefixes and filtering)."""

    LAUNCHER = "launcher"
    SERVER = "server"
    TUNNEL = "tunnel"
    HOOKS = "hooks"
    PROCESS_CONTROL = "process_control"
    REACHABILITY = "reachability"


_COMPONENT_PREFIX: dict[LogComponent, tuple[str, str]] = {
    LogComponent.LAUNCHER: ("[vscode]", "bright_blue"),
    LogComponent.SERVER: ("[server]", "cyan"),
    LogComponent.TUNNEL: ("[tunnel]", "magenta"),
    LogComponent.HOOKS: ("[hooks]", "bright_blue"),
    LogComponent.PROCESS_CONTROL: ("[process]", "bright_blue"),
    LogComponent.REACHABILITY: ("[wait]", "bright_blue"),
}

_PREFIX_WIDTH = 10


class ComponentLogHandler(logging.Handler):
    """Print records as `time | [component] | message` on the shared console.

    Records logged with `extra={"stream": "stderr"}` (subprocess stderr) are
    coloured like errors.
    """

    def __init__(self, component: LogComponent):
        super().__init__()
        self.component: LogComponent = component
        prefix, color = _COMPONENT_PREFIX[component]
        self.prefix: str = escape(prefix).ljust(_PREFIX_WIDTH)
        self.color: str = color

    def _color_for(self, record: logging.LogRecord) -> str:
        is_stderr = getattr(record, "stream", None) == "stderr"
        if record.levelno >= logging.ERROR or is_stderr:
            return "red"
        if record.levelno >= logging.WARNING:
            return "yellow"
        return self.color

    @override
    def emit(self, record: logging.LogRecord) -> None:
        try:
            timestamp = datetime.fromtimestamp(record.created).strftime(
                "%H:%M:%S.%f"
            )[:-3]
            color = self._color_for(record)
            for line in self.format(record).splitlines() or [""]:
                console.print(
                    f"[dim]{timestamp}[/dim] | [{color}]{self.prefix}[/] | "
                    f"{escape(line)}",
                    highlight=False,
                )
        except Exception:
            self.handleError(record)


class _LogState(BaseModel):
    configured: bool = False
    level: int = logging.INFO


_STATE = _LogState()


def _logger_name(component: LogComponent) -> str:
    return f"codetab.integration.{component.value}"


def configure_logging(*, level: int = logging.INFO) -> None:
    """Configure all component loggers to print through the shared console."""
    for component in LogComponent:
        logger = logging.getLogger(_logger_name(component))
        logger.setLevel(level)
        logger.handlers.clear()
        handler = ComponentLogHandler(component)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    _STATE.configured = True
    _STATE.level = level


def get_logger(component: LogComponent) -> logging.Logger:
    """Get a logger for a component (do not call stdlib logging directly)."""
    logger = logging.getLogger(_logger_name(component))
    if not _STATE.configured and not logger.handlers:
        # Stay silent in library use until the host configures logging.
        logger.addHandler(logging.NullHandler())
    return logger
