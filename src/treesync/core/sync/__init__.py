"""
Directory synchronize-and-publish.

Copies a source tree into a git working copy and publishes it to a remote
branch, retrying when concurrent writers move the branch underneath us.

Example:
    >>> from treesync.core.sync import SyncRequest, synchronize
    >>> report = synchronize(
    ...     SyncRequest(source_path="./build", target_path="./published", branch_ref="main"),
    ...     max_attempts=3,
    ...     retry_delay=5,
    ... )
    >>> print(report.summary())
"""

from treesync.core.sync.cancel import CancelToken
from treesync.core.sync.errors import (
    AttemptsExhaustedError,
    InvalidArgumentError,
    InvalidTransitionError,
    MirrorError,
    SyncCancelledError,
    SyncError,
)
from treesync.core.sync.models import (
    AttemptOutcome,
    AttemptRecord,
    PublishReport,
    SyncPhase,
    SyncRequest,
)
from treesync.core.sync.service import Synchronizer, synchronize
from treesync.core.sync.workcopy import GitError, WorkingCopy

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "AttemptsExhaustedError",
    "CancelToken",
    "GitError",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "MirrorError",
    "PublishReport",
    "SyncCancelledError",
    "SyncError",
    "SyncPhase",
    "SyncRequest",
    "Synchronizer",
    "WorkingCopy",
    "synchronize",
]
