"""Command-line interface for inferconf.

Provides commands for:
- Migrating persisted settings to the current schema
- Checking settings against the cache compatibility rules
- Showing the compatibility matrix and device catalog
"""

from __future__ import annotations

# Load .env file BEFORE any inferconf imports (constants reads env vars at import time)
from dotenv import load_dotenv

load_dotenv()

# ruff: noqa: E402 - imports must come after load_dotenv()
import os
from typing import Annotated

import typer

from inferconf import __version__
from inferconf.cli.display import console
from inferconf.logging import setup_logging

app = typer.Typer(
    name="inferconf",
    help="On-device inference configuration engine",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"inferconf v{__version__}")
        raise typer.Exit()


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable full logs with timestamps")
    ] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Minimal output (warnings only)")
    ] = False,
) -> None:
    """On-device inference configuration engine."""
    from inferconf.config.user_config import load_user_config
    from inferconf.exceptions import InferConfError
    from inferconf.logging import VerbosityType

    # Precedence: flags > INFERCONF_VERBOSITY > user config
    verbosity: VerbosityType
    if quiet:
        verbosity = "quiet"
    elif verbose:
        verbosity = "verbose"
    elif env_verbosity := os.environ.get("INFERCONF_VERBOSITY"):
        verbosity = env_verbosity  # type: ignore[assignment]
    else:
        try:
            verbosity = load_user_config().verbosity
        except InferConfError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None

    os.environ["INFERCONF_VERBOSITY"] = verbosity
    setup_logging(verbosity=verbosity)


def _register_commands() -> None:
    """Register all commands with the app.

    Done in a function to control import order and avoid circular imports.
    """
    from inferconf.cli import hardware, settings

    app.command("migrate")(settings.migrate_cmd)
    app.command("check")(settings.check_cmd)
    app.command("matrix")(hardware.matrix_cmd)
    app.command("devices")(hardware.devices_cmd)


_register_commands()


__all__ = ["app", "console", "main"]

if __name__ == "__main__":
    app()
