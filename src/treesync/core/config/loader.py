"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

Command-line flags are applied on top by the CLI.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import TreesyncConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: TreesyncConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/treesync/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "treesync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .treesync.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".treesync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config loading stays resilient; a broken file falls back to defaults
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set_sync_value(result: dict[str, Any], key: str, value: Any) -> None:
    if "sync" not in result or not isinstance(result["sync"], dict):
        result["sync"] = {}
    result["sync"][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        TREESYNC_MAX_ATTEMPTS - overrides sync.max_attempts
        TREESYNC_RETRY_DELAY - overrides sync.retry_delay
        TREESYNC_AUTHOR_NAME - overrides sync.author_name
        TREESYNC_AUTHOR_EMAIL - overrides sync.author_email
        TREESYNC_COMMIT_MESSAGE - overrides sync.commit_message
        TREESYNC_REMOTE - overrides sync.remote

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if attempts_str := os.environ.get("TREESYNC_MAX_ATTEMPTS"):
        try:
            attempts = int(attempts_str)
            if attempts < 1:
                logger.warning(
                    "TREESYNC_MAX_ATTEMPTS must be >= 1, got %d, ignoring", attempts
                )
            else:
                _set_sync_value(result, "max_attempts", attempts)
        except ValueError:
            logger.warning("Invalid TREESYNC_MAX_ATTEMPTS value '%s', ignoring", attempts_str)

    if delay_str := os.environ.get("TREESYNC_RETRY_DELAY"):
        try:
            delay = float(delay_str)
            if delay < 0:
                logger.warning("TREESYNC_RETRY_DELAY must be >= 0, got %s, ignoring", delay_str)
            else:
                _set_sync_value(result, "retry_delay", delay)
        except ValueError:
            logger.warning("Invalid TREESYNC_RETRY_DELAY value '%s', ignoring", delay_str)

    for env_name, key in (
        ("TREESYNC_AUTHOR_NAME", "author_name"),
        ("TREESYNC_AUTHOR_EMAIL", "author_email"),
        ("TREESYNC_COMMIT_MESSAGE", "commit_message"),
        ("TREESYNC_REMOTE", "remote"),
    ):
        if value := os.environ.get(env_name):
            _set_sync_value(result, key, value)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "sync": {
            "max_attempts": 3,
            "retry_delay": 5.0,
            "author_name": "GitHub Actions",
            "author_email": "actions@github.com",
            "commit_message": "Update files",
        },
        "transform": {"field": "spec.version"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> TreesyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TREESYNC_*)
        2. Project config (.treesync.json)
        3. User config (~/.config/treesync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .treesync.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated TreesyncConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = TreesyncConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
