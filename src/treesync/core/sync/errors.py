"""
Exceptions raised by the synchronizer.

Every failure a caller has to handle derives from SyncError. Failures that
end a run after it started (exhaustion, cancellation) carry the
PublishReport collected so far.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from treesync.core.sync.models import PublishReport


class SyncError(Exception):
    """Base class for synchronizer failures."""


class InvalidArgumentError(SyncError):
    """
    A required parameter is missing, empty, or unusable.

    Raised before the filesystem or the working copy is touched and never
    retried.

    Attributes:
        fields: Names of the offending parameters
    """

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class InvalidTransitionError(SyncError):
    """Raised when the phase machine is asked for a move it does not allow."""


class AttemptsExhaustedError(SyncError):
    """
    All publish attempts failed.

    Local commits from the final attempt are left in the working copy.
    """

    def __init__(self, report: PublishReport) -> None:
        self.report = report
        super().__init__(
            f"Exceeded maximum attempts ({report.attempt_count}) to publish "
            f"{report.target_path} to {report.branch}"
        )


class SyncCancelledError(SyncError):
    """The run was cancelled between attempts."""

    def __init__(self, report: PublishReport) -> None:
        self.report = report
        super().__init__(f"Sync cancelled after {report.attempt_count} attempt(s)")


class MirrorError(SyncError):
    """The source tree could not be copied into the target."""
