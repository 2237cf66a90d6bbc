"""Load integration options from pyproject.toml, .env, the environment and CLI flags."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from codetab.constants import ENV_PREFIX
from codetab.models import IntegrationOptions

_ENV_FIELDS = (
    "port",
    "mode",
    "host",
    "reuse_existing_server",
    "start_on_boot",
    "wait_timeout",
    "settle_delay",
)


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Accept kebab-case keys (pyproject style) alongside field names."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _normalize_keys(value)
        normalized[key.replace("-", "_")] = value
    return normalized


def read_pyproject_options(root_dir: Path) -> dict[str, Any]:
    """Read the [tool.codetab] table from pyproject.toml, if any."""
    pyproject = root_dir / "pyproject.toml"
    if not pyproject.exists():
        return {}
    with pyproject.open("rb") as f:
        data = tomllib.load(f)
    table = data.get("tool", {}).get("codetab", {})
    if not isinstance(table, dict):
        raise ValueError(f"[tool.codetab] in {pyproject} must be a table")
    return _normalize_keys(table)


def read_env_options(root_dir: Path) -> dict[str, Any]:
    """Read CODETAB_* variables, loading <root_dir>/.env first (without overriding)."""
    dotenv_path = root_dir / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path)

    options: dict[str, Any] = {}
    for field in _ENV_FIELDS:
        value = os.environ.get(f"{ENV_PREFIX}{field.upper()}")
        if value is not None and value != "":
            options[field] = value

    tunnel_name = os.environ.get(f"{ENV_PREFIX}TUNNEL_NAME")
    if tunnel_name:
        options["tunnel"] = {"name": tunnel_name}
    return options


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_options(root_dir: Path, **overrides: Any) -> IntegrationOptions:
    """Build IntegrationOptions for a project.

    Precedence (lowest to highest): defaults, [tool.codetab] in pyproject.toml,
    .env / CODETAB_* environment variables, non-None keyword overrides.
    `tunnel_name` is accepted as an override for `tunnel.name`.

    Raises:
        pydantic.ValidationError: If the merged options are invalid
    """
    data = read_pyproject_options(root_dir)
    data = _merge(data, read_env_options(root_dir))

    cli: dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    tunnel_name = cli.pop("tunnel_name", None)
    if tunnel_name is not None:
        cli["tunnel"] = {"name": tunnel_name}
    data = _merge(data, cli)

    return IntegrationOptions.model_validate(data)
