"""
Filesystem half of a sync: make sure the target exists and overlay the
source tree onto it.

The copy overwrites overlapping paths and never deletes. Files that exist
only in the old target survive a sync.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from treesync.core.sync.errors import MirrorError

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """Create `path` (and parents) if needed and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_nested(inner: Path, outer: Path) -> bool:
    """Return True when `inner` is `outer` or lives below it."""
    inner = inner.resolve()
    outer = outer.resolve()
    return inner == outer or outer in inner.parents


def _copy_entry(entry: Path, destination: Path) -> None:
    """Copy one file or symlink over whatever non-directory sits at `destination`."""
    if destination.is_symlink():
        destination.unlink()
    elif destination.is_dir():
        raise IsADirectoryError(f"Cannot overwrite directory {destination} with file {entry}")

    if entry.is_symlink():
        os.symlink(os.readlink(entry), destination)
    else:
        shutil.copy2(entry, destination)


def _overlay(source: Path, target: Path, root: Path, copied: list[Path]) -> None:
    for entry in sorted(source.iterdir()):
        destination = target / entry.name
        if entry.is_dir() and not entry.is_symlink():
            if destination.is_symlink() or (destination.exists() and not destination.is_dir()):
                raise NotADirectoryError(
                    f"Cannot overwrite non-directory {destination} with directory {entry}"
                )
            destination.mkdir(exist_ok=True)
            _overlay(entry, destination, root, copied)
        else:
            _copy_entry(entry, destination)
            copied.append(destination.relative_to(root))


def copy_tree(source: Path, target: Path) -> list[Path]:
    """
    Recursively copy the contents of `source` into `target`.

    Directories are merged, files are overwritten, and nothing already in
    `target` is removed. Dotfiles are copied like any other entry. Symlinks
    are copied as links at every depth, replacing an existing link.

    Args:
        source: Existing directory to copy from
        target: Directory to copy into (created if absent)

    Returns:
        Paths of the copied files, relative to `target`, in walk order

    Raises:
        MirrorError: If an entry cannot be copied (e.g. a file would replace
            a directory)
    """
    copied: list[Path] = []
    try:
        ensure_directory(target)
        _overlay(source, target, target, copied)
    except OSError as e:
        raise MirrorError(f"Cannot copy {source} into {target}: {e}") from e

    logger.info("Copied %d file(s) from %s to %s", len(copied), source, target)
    return copied
