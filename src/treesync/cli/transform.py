"""
treesync CLI - transform command.

Stamps a version into `spec.version` (or another dotted field) of every YAML
file under a directory, usually right before `treesync sync` publishes it.
"""

from pathlib import Path

import typer
from rich.console import Console

from treesync.cli.errors import ExitCode, print_error, print_usage
from treesync.core.config import load_config
from treesync.core.sync import InvalidArgumentError
from treesync.core.transform import TransformError, rewrite_field

console = Console()

USAGE = "treesync transform --target-dir <dir> --version <value>"


def transform(
    target_dir: str | None = typer.Option(
        None,
        "--target-dir",
        help="Directory searched recursively for *.yml / *.yaml files",
    ),
    version: str | None = typer.Option(
        None,
        "--version",
        help="Value written into the field",
    ),
    field: str | None = typer.Option(
        None,
        "--field",
        help="Dotted field to rewrite (default: spec.version)",
    ),
) -> None:
    """
    Rewrite a YAML field in every file that already has it.

    Files without the field are left untouched; files that are not valid
    YAML are reported and skipped.

    Examples:
        treesync transform --target-dir ./manifests --version 1.0.0-release.123
        treesync transform --target-dir ./charts --version 2.1.0 --field metadata.version
    """
    missing = [
        flag
        for flag, value in (("--target-dir", target_dir), ("--version", version))
        if not value or not value.strip()
    ]
    if missing:
        print_usage(USAGE, missing)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    config = load_config()
    field_path = field or config.transform.field

    console.print("-- Transforming files ----")
    try:
        result = rewrite_field(
            Path(target_dir or ""),
            version or "",
            field=field_path,
            extensions=config.transform.extensions,
        )
    except InvalidArgumentError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except TransformError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    for path in result.updated:
        console.print(f"-- Updated {field_path} in {path}", highlight=False, soft_wrap=True)
    for path in result.skipped:
        console.print(
            f"[yellow]⚠[/yellow]  Skipped {path} (invalid YAML)", highlight=False, soft_wrap=True
        )
    console.print(f"[green]✓[/green] {result.summary()}", soft_wrap=True)
