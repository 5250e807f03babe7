"""
treesync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import sys

import typer
from rich.console import Console

from treesync import __version__
from treesync.cli import sync, transform
from treesync.cli.argv import preprocess_argv
from treesync.core.config.env import load_layered_env
from treesync.utils.logging import configure_logging

app = typer.Typer(
    name="treesync",
    help="Publish build output to a git branch with retry",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    treesync - publish a directory to a git branch.

    Common Workflows:
        # Stamp a version, then publish
        treesync transform --target-dir ./build --version 1.2.3
        treesync sync --source-dir ./build --target-dir ./published --branch main

    Configuration:
        .treesync.json, ~/.config/treesync/config.json and TREESYNC_* env vars
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    configure_logging(debug=debug)

    ctx.obj = {"debug": debug}


app.command(name="sync")(sync.sync)
app.command(name="transform")(transform.transform)


@app.command()
def version() -> None:
    """Show treesync version and exit."""
    console.print(f"treesync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """
    Main CLI entry point.

    The argv preprocessor normalizes common patterns before Typer
    parses them (e.g. ``treesync --version``, ``treesync sync --debug``).
    """
    sys.argv[1:] = preprocess_argv(sys.argv[1:])
    app()


__all__ = ["app", "cli_main"]
