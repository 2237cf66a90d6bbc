"""Helpers shared by the CLI and the integration package."""

import shutil

from rich.console import Console

console = Console(legacy_windows=False)


def is_binary_installed(name: str) -> bool:
    """Check if an executable is available on PATH."""
    return shutil.which(name) is not None
