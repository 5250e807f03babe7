"""
Argv preprocessor for forgiving CLI flag handling.

Normalizes sys.argv before Typer parses it:
- ``treesync --version`` → ``treesync version``
- ``treesync sync --debug ...`` → ``treesync --debug sync ...``
"""

_GLOBAL_FLAGS = {"--debug"}


def preprocess_argv(argv: list[str]) -> list[str]:
    """Normalize CLI arguments for Typer compatibility.

    Applied rules (in order):
    1. ``--version`` / ``-V`` as first arg → ``version`` subcommand
    2. Global flags hoisted before the subcommand
    """
    if not argv:
        return argv

    if argv[0] in ("--version", "-V"):
        return ["version"]

    return _hoist_global_flags(argv)


def _hoist_global_flags(argv: list[str]) -> list[str]:
    """Move global flags (e.g. ``--debug``) before the subcommand."""
    hoisted: list[str] = []
    rest: list[str] = []
    seen: set[str] = set()
    for token in argv:
        if token in _GLOBAL_FLAGS:
            if token not in seen:
                hoisted.append(token)
                seen.add(token)
        else:
            rest.append(token)
    return [*hoisted, *rest]
