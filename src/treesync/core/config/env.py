"""
.env loading for CI runners and local checkouts.

Values are read from the user file ($XDG_CONFIG_HOME/treesync/.env) and then
the project files (.env, .env.local), later files winning. The merged result
only fills gaps: a variable exported by the shell or the CI runner is never
replaced.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def _env_file_values(paths: Iterable[Path]) -> dict[str, str]:
    merged: dict[str, str] = {}
    for path in map(Path, paths):
        if not path.is_file():
            continue
        for key, value in dotenv_values(path).items():
            # Bare keys without "=" come back as None
            if key and value is not None:
                merged[key] = value
    return merged


def default_user_env_path() -> Path:
    xdg_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg_home) / "treesync" / ".env"


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> list[str]:
    """
    Export variables from .env files that the process does not already have.

    Args:
        project_dir: Directory holding the project .env files (defaults to cwd)
        user_env_paths: Override the user-level files
        project_env_paths: Override the project-level files

    Returns:
        Names of the variables that were set
    """
    project_dir = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = [default_user_env_path()]
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    values = _env_file_values([*user_env_paths, *project_env_paths])

    applied = []
    for key, value in values.items():
        if key in os.environ:
            continue
        os.environ[key] = value
        applied.append(key)

    if applied:
        logger.debug("Loaded %d variable(s) from .env files", len(applied))
    return applied
