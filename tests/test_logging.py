"""Tests for component log formatting."""

from __future__ import annotations

import logging

from codetab.integration.logging import ComponentLogHandler, LogComponent
from codetab.utils import console


def _record(msg: str, level: int = logging.INFO, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("codetab", level, __file__, 1, msg, None, None)
    record.__dict__.update(extra)
    return record


class TestComponentLogHandler:
    def test_prefix_comes_from_component(self) -> None:
        handler = ComponentLogHandler(LogComponent.TUNNEL)
        with console.capture() as capture:
            handler.emit(_record("Open this link in your browser [x]"))

        output = capture.get()
        assert "[tunnel]" in output
        assert "Open this link in your browser [x]" in output

    def test_multiline_messages_are_prefixed_per_line(self) -> None:
        handler = ComponentLogHandler(LogComponent.SERVER)
        with console.capture() as capture:
            handler.emit(_record("first\nsecond"))

        lines = capture.get().splitlines()
        assert len(lines) == 2
        assert all("[server]" in line for line in lines)

    def test_colors(self) -> None:
        handler = ComponentLogHandler(LogComponent.SERVER)
        assert handler._color_for(_record("ok")) == "cyan"
        assert handler._color_for(_record("ok", stream="stdout")) == "cyan"
        assert handler._color_for(_record("boom", stream="stderr")) == "red"
        assert handler._color_for(_record("slow", logging.WARNING)) == "yellow"
        assert handler._color_for(_record("fail", logging.ERROR)) == "red"
