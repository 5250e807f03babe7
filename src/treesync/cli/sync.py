"""
treesync CLI - sync command.

Copies a build directory into the current checkout and publishes it to a
remote branch, retrying when another job pushed first.
"""

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from treesync.cli.errors import (
    ExitCode,
    print_error,
    print_not_git_repo_error,
    print_usage,
)
from treesync.core.config import SyncConfig, load_config
from treesync.core.sync import (
    AttemptOutcome,
    AttemptsExhaustedError,
    CancelToken,
    GitError,
    InvalidArgumentError,
    PublishReport,
    SyncCancelledError,
    SyncError,
    Synchronizer,
    SyncRequest,
    WorkingCopy,
)
from treesync.utils.logging import EventLogger

console = Console()

USAGE = "treesync sync --source-dir <dir> --target-dir <dir> --branch <value>"


def _under(repo: Path | None, path: str) -> str:
    """Resolve a relative path against --repo when one was given."""
    if repo is None or not path.strip() or Path(path).is_absolute():
        return path
    return str(repo / path)


def _print_attempts(report: PublishReport) -> None:
    table = Table(title="Attempts")
    table.add_column("#", justify="right")
    table.add_column("Outcomes")
    table.add_column("Commit")
    table.add_column("Delay", justify="right")
    for record in report.attempts:
        table.add_row(
            str(record.attempt),
            " → ".join(outcome.value for outcome in record.outcomes),
            (record.commit_sha or "")[:8],
            f"{record.delay_seconds:g}s" if record.delay_seconds is not None else "",
        )
    console.print(table)


def sync(
    source_dir: str | None = typer.Option(
        None,
        "--source-dir",
        help="Directory whose contents are published",
    ),
    target_dir: str | None = typer.Option(
        None,
        "--target-dir",
        help="Directory inside the checkout to copy into",
    ),
    branch: str | None = typer.Option(
        None,
        "--branch",
        help="Remote branch to publish to",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help=(
            "Checkout to commit from (default: current directory). "
            "Relative --source-dir and --target-dir are resolved against it"
        ),
    ),
    max_attempts: int | None = typer.Option(
        None,
        "--max-attempts",
        min=1,
        help="Publish attempts before giving up (default: 3)",
    ),
    retry_delay: float | None = typer.Option(
        None,
        "--retry-delay",
        min=0.0,
        help="Seconds between attempts (default: 5)",
    ),
    message: str | None = typer.Option(
        None,
        "--message",
        "-m",
        help="Commit message (default: 'Update files')",
    ),
    event_log: Path | None = typer.Option(
        None,
        "--event-log",
        help="Append JSONL sync events here (default: $XDG_DATA_HOME/treesync/logs/sync.jsonl)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show every attempt after the run",
    ),
) -> None:
    """
    Publish a directory to a remote branch.

    Copies --source-dir into --target-dir (overwriting, never deleting),
    commits the result and pushes it to --branch. Rejected pushes are
    retried after pulling with rebase.

    Exit codes: 0 published or nothing to do, 1 failure, 130 cancelled.

    Examples:
        treesync sync --source-dir ./build --target-dir ./published --branch main
        treesync sync --source-dir dist --target-dir site --branch gh-pages --max-attempts 5
    """
    missing = [
        flag
        for flag, value in (
            ("--source-dir", source_dir),
            ("--target-dir", target_dir),
            ("--branch", branch),
        )
        if not value or not value.strip()
    ]
    if missing:
        print_usage(USAGE, missing)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    repo_dir = (repo or Path.cwd()).resolve()
    config = load_config(project_dir=repo_dir)

    overrides: dict[str, object] = {}
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    if retry_delay is not None:
        overrides["retry_delay"] = retry_delay
    if message is not None:
        overrides["commit_message"] = message
    try:
        sync_config = SyncConfig.model_validate({**config.sync.model_dump(), **overrides})
    except ValidationError as e:
        print_error("Invalid sync settings", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    working_copy = WorkingCopy(repo_dir, timeout=sync_config.git_timeout)
    if not working_copy.is_git_repo():
        print_not_git_repo_error(str(repo_dir))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    request = SyncRequest(
        source_path=_under(repo, source_dir or ""),
        target_path=_under(repo, target_dir or ""),
        branch_ref=branch or "",
    )
    synchronizer = Synchronizer(
        working_copy,
        sync_config,
        event_logger=EventLogger(event_log) if event_log else EventLogger.init("sync"),
    )

    token = CancelToken()
    token.register_signals()
    try:
        report = synchronizer.synchronize(request, cancel=token)
    except InvalidArgumentError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except AttemptsExhaustedError as e:
        if verbose:
            _print_attempts(e.report)
        print_error(
            "Exceeded maximum attempts to push changes, giving up",
            reason=e.report.summary(),
        )
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except SyncCancelledError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.SIGINT)
    except GitError as e:
        print_error(f"Git error: {e.stderr or e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except SyncError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    finally:
        token.unregister_signals()

    if verbose:
        _print_attempts(report)

    if report.outcome is AttemptOutcome.NO_CHANGES:
        console.print(f"[blue]No changes detected in {report.target_path}[/blue]", soft_wrap=True)
    else:
        console.print(f"[green]✓[/green] {report.summary()}", soft_wrap=True)
