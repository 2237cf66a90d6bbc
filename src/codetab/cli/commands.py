"""VS Code integration commands for the codetab CLI."""

import asyncio
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

from pydantic import ValidationError
from rich.markup import escape
from typer import Argument, Exit, Option, Typer

from codetab import __version__
from codetab.integration.config import load_options
from codetab.integration.errors import LauncherError
from codetab.integration.hooks import HookRegistry
from codetab.integration.launcher import INSTALL_DESCRIPTION, setup
from codetab.integration.logging import configure_logging
from codetab.models import IntegrationOptions, LaunchMode
from codetab.utils import console


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"codetab {__version__}")
        raise Exit()


app = Typer(
    name="codetab",
    help="Run VS Code Server as an embedded devtools tab",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: Annotated[
        bool,
        Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
):
    """codetab command line."""


@contextmanager
def _starting(mode: LaunchMode) -> Iterator[None]:
    """Show a spinner while VS Code starts, then report how long it took."""
    started = time.perf_counter()
    with console.status(f"🚀 Starting VS Code ({mode.value})...", spinner="dots"):
        yield
    console.print(
        f"[green]✓[/green] VS Code is ready ({time.perf_counter() - started:.1f}s)"
    )


def _load_or_exit(root_dir: Path, **overrides: object) -> IntegrationOptions:
    try:
        return load_options(root_dir, **overrides)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]❌ Invalid configuration: {escape(str(e))}[/red]")
        raise Exit(code=1)


async def _serve(root_dir: Path, options: IntegrationOptions) -> None:
    hooks = HookRegistry()
    launcher = await setup(hooks, options, root_dir)

    if not launcher.installed:
        console.print(f"[red]❌ {launcher.binary} is not installed.[/red]")
        console.print(f"[yellow]{INSTALL_DESCRIPTION}[/yellow]")
        raise Exit(code=1)

    try:
        with _starting(options.mode):
            await launcher.ensure_started()

        console.print(f"[bold cyan]🔗 {launcher.url}[/bold cyan]")
        console.print("[dim]Press Ctrl+C to stop[/dim]")
        await asyncio.Event().wait()
    except LauncherError as e:
        console.print(f"[red]❌ Failed to start VS Code: {escape(str(e))}[/red]")
        raise Exit(code=1)
    finally:
        await hooks.close()


@app.command(name="serve", help="Start VS Code and keep it running until Ctrl+C")
def serve(
    root_dir: Annotated[
        Path | None,
        Argument(
            help="The folder to open. If not provided, current working directory will be used"
        ),
    ] = None,
    port: Annotated[int | None, Option(help="Preferred port for VS Code Server")] = None,
    mode: Annotated[
        LaunchMode | None, Option(help="Serve locally or through a vscode.dev tunnel")
    ] = None,
    tunnel_name: Annotated[
        str | None, Option("--tunnel-name", help="Machine name for the tunnel")
    ] = None,
    reuse_existing_server: Annotated[
        bool | None,
        Option(
            "--reuse/--no-reuse",
            help="Attach to a server already listening on the port",
        ),
    ] = None,
    verbose: Annotated[
        bool, Option("--verbose", "-v", help="Show debug logs")
    ] = False,
):
    """Start VS Code and keep it running until interrupted."""
    if root_dir is None:
        root_dir = Path.cwd()

    options = _load_or_exit(
        root_dir,
        port=port,
        mode=mode,
        tunnel_name=tunnel_name,
        reuse_existing_server=reuse_existing_server,
    )
    configure_logging(level=logging.DEBUG if verbose else logging.INFO)

    try:
        asyncio.run(_serve(root_dir, options))
    except KeyboardInterrupt:
        console.print()
        console.print("[bold yellow]🛑 VS Code stopped[/bold yellow]")


async def _describe(root_dir: Path, options: IntegrationOptions) -> str:
    hooks = HookRegistry()
    await setup(hooks, options.model_copy(update={"start_on_boot": False}), root_dir)
    return hooks.collect_tabs()[0].model_dump_json(indent=2)


@app.command(name="status", help="Print the devtools tab descriptor as JSON")
def status(
    root_dir: Annotated[
        Path | None,
        Argument(
            help="The project folder. If not provided, current working directory will be used"
        ),
    ] = None,
    mode: Annotated[
        LaunchMode | None, Option(help="Serve locally or through a vscode.dev tunnel")
    ] = None,
):
    """Print the tab the devtools would render right now."""
    if root_dir is None:
        root_dir = Path.cwd()

    options = _load_or_exit(root_dir, mode=mode)
    print(asyncio.run(_describe(root_dir, options)))
