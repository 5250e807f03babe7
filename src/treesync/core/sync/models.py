"""
Data models for the synchronizer.

Defines Pydantic models for the sync request, per-attempt records, and the
final publish report, plus the enums that drive the retry loop.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AttemptOutcome(str, Enum):
    """Result of one step inside a publish attempt."""

    NO_CHANGES = "no_changes"
    COMMITTED = "committed"
    PUBLISH_SUCCEEDED = "publish_succeeded"
    PUBLISH_CONFLICT = "publish_conflict"
    PUBLISH_FAILED = "publish_failed"


class SyncPhase(str, Enum):
    """Where a synchronize run currently stands."""

    IDLE = "idle"
    STAGED = "staged"
    COMMITTED = "committed"
    PUBLISHED = "published"
    UNCHANGED = "unchanged"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class SyncRequest(BaseModel):
    """
    What to publish and where.

    All three fields are required. The model accepts empty strings so the
    caller can report every missing field at once; `missing_fields()` is the
    validation entry point.

    Example:
        >>> request = SyncRequest(
        ...     source_path="./build",
        ...     target_path="./published",
        ...     branch_ref="main",
        ... )
        >>> request.missing_fields()
        []
    """

    model_config = ConfigDict(frozen=True)

    source_path: str = Field(default="", description="Directory to copy from")
    target_path: str = Field(
        default="",
        description="Directory inside the working copy to copy into",
    )
    branch_ref: str = Field(default="", description="Remote branch to publish to")

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are empty."""
        return [
            name
            for name in ("source_path", "target_path", "branch_ref")
            if not getattr(self, name).strip()
        ]


class AttemptRecord(BaseModel):
    """What happened during one pass of the retry loop."""

    attempt: int = Field(ge=1, description="1-based attempt number")

    outcomes: list[AttemptOutcome] = Field(
        default_factory=list,
        description="Outcomes observed during the attempt, in order",
    )

    commit_sha: str | None = Field(
        default=None,
        description="Commit published (or attempted) by this attempt",
    )

    reused_commit: bool = Field(
        default=False,
        description="True when a commit from an earlier attempt was republished",
    )

    error: str | None = Field(
        default=None,
        description="Git error text for failed publishes",
    )

    delay_seconds: float | None = Field(
        default=None,
        description="Seconds slept after this attempt before the next one (None if no retry)",
    )

    @property
    def final_outcome(self) -> AttemptOutcome | None:
        """Last outcome recorded for this attempt."""
        return self.outcomes[-1] if self.outcomes else None


class PublishReport(BaseModel):
    """
    Result of a synchronize run.

    Returned on success and attached to AttemptsExhaustedError and
    SyncCancelledError on failure.
    """

    source_path: str = Field(description="Source directory that was copied")
    target_path: str = Field(description="Target directory inside the working copy")
    branch: str = Field(description="Branch the run published to")

    outcome: AttemptOutcome | None = Field(
        default=None,
        description="Final outcome (no_changes, publish_succeeded or publish_failed)",
    )

    phase: SyncPhase = Field(default=SyncPhase.IDLE, description="Final phase")

    attempts: list[AttemptRecord] = Field(default_factory=list)

    files_copied: int = Field(default=0, description="Files written into the target")

    commit_sha: str | None = Field(
        default=None,
        description="Most recent commit created by the run",
    )

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def delays_taken(self) -> int:
        """Number of retry delays that were slept."""
        return sum(1 for record in self.attempts if record.delay_seconds is not None)

    @property
    def total_delay_seconds(self) -> float:
        return sum(record.delay_seconds or 0.0 for record in self.attempts)

    @property
    def succeeded(self) -> bool:
        return self.outcome in (AttemptOutcome.NO_CHANGES, AttemptOutcome.PUBLISH_SUCCEEDED)

    @property
    def duration_seconds(self) -> float | None:
        """Calculate run duration in seconds."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the run."""
        if self.outcome == AttemptOutcome.NO_CHANGES:
            return f"No changes detected in {self.target_path}"

        if self.outcome == AttemptOutcome.PUBLISH_SUCCEEDED:
            parts = [f"Published {self.target_path} to {self.branch}"]
            if self.commit_sha:
                parts.append(f"commit {self.commit_sha[:8]}")
            parts.append(f"{self.attempt_count} attempt(s)")
            return ", ".join(parts)

        last_error = next(
            (record.error for record in reversed(self.attempts) if record.error),
            None,
        )
        message = f"Publishing {self.target_path} to {self.branch} failed"
        message += f" after {self.attempt_count} attempt(s)"
        if last_error:
            message += f": {last_error}"
        return message
