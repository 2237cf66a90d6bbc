import pytest

from codetab.integration.config import _ENV_FIELDS

_ENV_VARS = [f"CODETAB_{field.upper()}" for field in _ENV_FIELDS] + [
    "CODETAB_TUNNEL_NAME"
]


@pytest.fixture(autouse=True)
def clean_codetab_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without CODETAB_* variables and drop any a test adds."""
    for name in _ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
