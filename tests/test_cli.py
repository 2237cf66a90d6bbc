"""Tests for the codetab CLI."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from typer.testing import CliRunner

from codetab import __version__
from codetab.__main__ import app
from codetab.integration import launcher as launcher_mod

runner: CliRunner = CliRunner()


@pytest.fixture
def installed(monkeypatch: pytest.MonkeyPatch) -> Mock:
    probe = Mock(return_value=True)
    monkeypatch.setattr(launcher_mod, "is_binary_installed", probe)
    return probe


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestStatus:
    def test_not_installed(self, tmp_path: Path, installed: Mock) -> None:
        installed.return_value = False
        result = runner.invoke(app, ["status", str(tmp_path)], catch_exceptions=False)

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["name"] == "builtin-vscode"
        assert data["view"]["title"] == "Install VS Code Server"
        assert data["view"]["actions"] == []

    def test_installed_shows_launch_action(
        self, tmp_path: Path, installed: Mock
    ) -> None:
        result = runner.invoke(app, ["status", str(tmp_path)], catch_exceptions=False)

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["view"]["actions"] == [{"label": "Launch", "pending": False}]

    def test_tunnel_mode_checks_code_cli(self, tmp_path: Path, installed: Mock) -> None:
        runner.invoke(
            app, ["status", str(tmp_path), "--mode", "tunnel"], catch_exceptions=False
        )
        installed.assert_called_once_with("code")


class TestServe:
    def test_missing_binary_exits(self, tmp_path: Path, installed: Mock) -> None:
        installed.return_value = False
        result = runner.invoke(app, ["serve", str(tmp_path)])

        assert result.exit_code == 1
        assert "code-server is not installed" in result.output

    def test_invalid_port_exits(self, tmp_path: Path, installed: Mock) -> None:
        result = runner.invoke(app, ["serve", str(tmp_path), "--port", "0"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_start_failure_exits(
        self, tmp_path: Path, installed: Mock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(launcher_mod, "get_port", Mock(return_value=3080))
        monkeypatch.setattr(
            asyncio,
            "create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("code-server")),
        )
        result = runner.invoke(app, ["serve", str(tmp_path)])

        assert result.exit_code == 1
        assert "Failed to start VS Code" in result.output
