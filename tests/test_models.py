"""Tests for the tab descriptor models."""

from __future__ import annotations

import json

from codetab.models import CustomTab, LaunchAction, LaunchMode, LaunchView


async def _noop() -> None:
    return None


def test_handle_is_not_serialized() -> None:
    tab = CustomTab(
        name="builtin-vscode",
        title="VS Code",
        icon="i-bxl-visual-studio",
        view=LaunchView(
            description="Launch",
            actions=[LaunchAction(label="Launch", handle=_noop)],
        ),
    )
    data = json.loads(tab.model_dump_json())
    assert data["view"] == {
        "type": "launch",
        "title": None,
        "description": "Launch",
        "actions": [{"label": "Launch", "pending": False}],
    }


def test_view_discriminator() -> None:
    tab = CustomTab.model_validate(
        {
            "name": "builtin-vscode",
            "title": "VS Code",
            "icon": "i-bxl-visual-studio",
            "view": {"type": "iframe", "src": "http://localhost:3080/"},
        }
    )
    assert tab.view.type == "iframe"


def test_launch_mode_from_string() -> None:
    assert LaunchMode.from_string("TUNNEL") is LaunchMode.TUNNEL
