"""Tests for option loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from codetab.integration.config import load_options
from codetab.models import IntegrationOptions, LaunchMode

PYPROJECT = """
[project]
name = "demo"

[tool.codetab]
port = 4000
mode = "tunnel"
reuse-existing-server = true

[tool.codetab.tunnel]
name = "from-pyproject"
"""


class TestLoadOptions:
    def test_defaults(self, tmp_path: Path) -> None:
        options = load_options(tmp_path)
        assert options == IntegrationOptions()
        assert options.port == 3080
        assert options.mode == LaunchMode.LOCAL_SERVE
        assert options.reuse_existing_server is False
        assert options.start_on_boot is False
        assert options.tunnel.name is None
        assert options.wait_timeout == 20.0
        assert options.settle_delay == 2.0

    def test_reads_pyproject_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(PYPROJECT)
        options = load_options(tmp_path)
        assert options.port == 4000
        assert options.mode == LaunchMode.TUNNEL
        assert options.reuse_existing_server is True
        assert options.tunnel.name == "from-pyproject"

    def test_environment_overrides_pyproject(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "pyproject.toml").write_text(PYPROJECT)
        monkeypatch.setenv("CODETAB_PORT", "4100")
        monkeypatch.setenv("CODETAB_START_ON_BOOT", "true")
        monkeypatch.setenv("CODETAB_TUNNEL_NAME", "from-env")

        options = load_options(tmp_path)
        assert options.port == 4100
        assert options.start_on_boot is True
        assert options.tunnel.name == "from-env"
        assert options.mode == LaunchMode.TUNNEL

    def test_dotenv_file_is_loaded(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("CODETAB_PORT=4200\nCODETAB_MODE=tunnel\n")
        options = load_options(tmp_path)
        assert options.port == 4200
        assert options.mode == LaunchMode.TUNNEL

    def test_overrides_win_and_none_is_ignored(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CODETAB_PORT", "4100")
        options = load_options(
            tmp_path, port=5000, mode=None, tunnel_name="cli", reuse_existing_server=None
        )
        assert options.port == 5000
        assert options.mode == LaunchMode.LOCAL_SERVE
        assert options.tunnel.name == "cli"

    def test_mode_is_case_insensitive(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "pyproject.toml").write_text(
            "[tool.codetab]\nmode = \"Local-Serve\"\n"
        )
        assert load_options(tmp_path).mode == LaunchMode.LOCAL_SERVE

        monkeypatch.setenv("CODETAB_MODE", "TUNNEL")
        assert load_options(tmp_path).mode == LaunchMode.TUNNEL

    @pytest.mark.parametrize(
        "overrides", [{"port": 0}, {"port": 70000}, {"mode": "remote"}]
    )
    def test_invalid_options(self, tmp_path: Path, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            load_options(tmp_path, **overrides)
