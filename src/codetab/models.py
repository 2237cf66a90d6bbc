"""Centralized Pydantic models, enums, and type aliases for codetab."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Annotated, ClassVar, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codetab.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_WAIT_TIMEOUT,
)


# === Enums ===


class LaunchMode(str, Enum):
    """How the editor is made available to the devtools."""

    LOCAL_SERVE = "local-serve"
    TUNNEL = "tunnel"

    @classmethod
    def from_string(cls, value: str) -> LaunchMode:
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid launch mode: {value}")


# === Configuration Models ===


class TunnelOptions(BaseModel):
    """Options for `code tunnel`."""

    name: str | None = Field(
        default=None,
        description="Tunnel machine name. Defaults to the hostname without dots.",
    )


class IntegrationOptions(BaseModel):
    """Complete configuration for the VS Code integration.

    This is the single source of truth for all integration configuration.
    All default values are defined here and should not be repeated elsewhere.
    """

    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    mode: LaunchMode = LaunchMode.LOCAL_SERVE
    reuse_existing_server: bool = False
    start_on_boot: bool = False
    tunnel: TunnelOptions = Field(default_factory=TunnelOptions)
    host: str = DEFAULT_HOST
    wait_timeout: float = Field(default=DEFAULT_WAIT_TIMEOUT, ge=0)
    settle_delay: float = Field(default=DEFAULT_SETTLE_DELAY, ge=0)

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: object) -> object:
        # pyproject and CODETAB_MODE values may use any case
        if isinstance(value, str) and not isinstance(value, LaunchMode):
            return LaunchMode.from_string(value)
        return value


# === Tab Descriptor Models ===


class LaunchAction(BaseModel):
    """A button rendered by the host inside a launch view."""

    label: str
    pending: bool = False
    # Host-side callback; never serialized.
    handle: Callable[[], Awaitable[None]] | None = Field(default=None, exclude=True)


class LaunchView(BaseModel):
    """Launch (or install instructions) view."""

    type: Literal["launch"] = "launch"
    title: str | None = None
    description: str
    actions: list[LaunchAction] = Field(default_factory=list)


class IframeView(BaseModel):
    """Embed the running editor in an iframe."""

    type: Literal["iframe"] = "iframe"
    src: str


TabView: TypeAlias = Annotated[LaunchView | IframeView, Field(discriminator="type")]


class CustomTab(BaseModel):
    """A devtools custom tab as consumed by the host's rendering layer."""

    name: str
    title: str
    icon: str
    view: TabView
