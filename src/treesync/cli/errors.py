"""
Standardized error handling and exit codes for the treesync CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands. Errors and usage text
go to stderr so CI logs keep them apart from normal output.
"""

from enum import IntEnum

from rich.console import Console
from rich.markup import escape

err_console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for treesync CLI operations."""

    SUCCESS = 0
    """No changes, or changes published."""

    GENERAL_ERROR = 1
    """Invalid arguments, exhausted attempts, or git failure."""

    USER_ERROR = 2
    """Unknown flag or malformed option value (raised by the parser)."""

    SIGINT = 130
    """Cancelled by SIGINT/SIGTERM - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Not a git repository",
        ...     reason="treesync publishes from an existing checkout",
        ...     solution="cd to your checkout or pass --repo",
        ... )
    """
    err_console.print(f"[red]Error:[/red] {escape(problem)}", highlight=False, soft_wrap=True)

    if reason:
        err_console.print(f"[dim]{escape(reason)}[/dim]", highlight=False, soft_wrap=True)

    if solution:
        err_console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}", highlight=False, soft_wrap=True)


def print_usage(usage: str, missing: list[str]) -> None:
    """Print which required flags are missing followed by the usage line."""
    err_console.print(
        f"[red]Error:[/red] Missing required option(s): {', '.join(missing)}",
        highlight=False,
        soft_wrap=True,
    )
    err_console.print(f"Usage: {usage}", highlight=False, markup=False, soft_wrap=True)


def print_not_git_repo_error(path: str) -> None:
    """Print error when the publish directory is not a git checkout."""
    print_error(
        f"Not a git repository: {path}",
        reason="treesync commits and pushes from an existing checkout",
        solution="cd to your checkout or pass --repo <path>",
    )
