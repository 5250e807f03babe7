"""
Synchronize-and-publish service.

Copies a source tree into a directory of a git working copy, commits the
result, and publishes it to a remote branch. Concurrent publishers to the
same branch are tolerated by re-pulling (with rebase) and retrying the push
a bounded number of times.

The retry loop is driven by the pure transitions in
`treesync.core.sync.machine`; this module performs the side effects.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from treesync.core.config.models import SyncConfig
from treesync.core.sync import machine
from treesync.core.sync.cancel import CancelToken
from treesync.core.sync.errors import (
    AttemptsExhaustedError,
    InvalidArgumentError,
    MirrorError,
    SyncCancelledError,
)
from treesync.core.sync.mirror import copy_tree, is_nested
from treesync.core.sync.models import (
    AttemptOutcome,
    AttemptRecord,
    PublishReport,
    SyncPhase,
    SyncRequest,
)
from treesync.core.sync.workcopy import GitError, WorkingCopy
from treesync.utils.logging import EventLogger

logger = logging.getLogger(__name__)

# stderr fragments git prints when the remote moved underneath us
_CONFLICT_MARKERS = (
    "conflict",
    "could not apply",
    "non-fast-forward",
    "[rejected]",
    "fetch first",
    "stale info",
    "cannot lock ref",
)


def classify_publish_error(stderr: str) -> AttemptOutcome:
    """
    Map git's stderr from a failed pull/push to an attempt outcome.

    Example:
        >>> classify_publish_error("! [rejected] main -> main (fetch first)")
        <AttemptOutcome.PUBLISH_CONFLICT: 'publish_conflict'>
        >>> classify_publish_error("Could not resolve host: github.com")
        <AttemptOutcome.PUBLISH_FAILED: 'publish_failed'>
    """
    lowered = stderr.lower()
    if any(marker in lowered for marker in _CONFLICT_MARKERS):
        return AttemptOutcome.PUBLISH_CONFLICT
    return AttemptOutcome.PUBLISH_FAILED


class Synchronizer:
    """
    Publishes a directory to a remote branch with bounded retry.

    Example:
        >>> sync = Synchronizer(WorkingCopy(Path(".")), SyncConfig(max_attempts=3))
        >>> report = sync.synchronize(
        ...     SyncRequest(source_path="build", target_path="published", branch_ref="main")
        ... )
        >>> print(report.summary())
    """

    def __init__(
        self,
        working_copy: WorkingCopy | None = None,
        config: SyncConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        event_logger: EventLogger | None = None,
    ) -> None:
        """
        Args:
            working_copy: Git client for the repository to publish from.
                          Defaults to the repository in the current directory.
            config: Retry policy, identity and commit message.
            sleep: Called with the delay between attempts.
            event_logger: Optional JSONL event sink.
        """
        self.config = config or SyncConfig()
        self.working_copy = working_copy or WorkingCopy(timeout=self.config.git_timeout)
        self.event_logger = event_logger
        self._sleep = sleep

    def validate(self, request: SyncRequest) -> tuple[Path, Path]:
        """
        Check a request without touching the filesystem or git state.

        Returns:
            Resolved (source, target) directories

        Raises:
            InvalidArgumentError: If a field is empty or the paths are unusable
        """
        missing = request.missing_fields()
        if missing:
            raise InvalidArgumentError(
                f"Missing required parameter(s): {', '.join(missing)}",
                fields=missing,
            )

        source = Path(request.source_path).resolve()
        target = Path(request.target_path).resolve()

        if not source.is_dir():
            raise InvalidArgumentError(
                f"Source directory does not exist: {request.source_path}",
                fields=["source_path"],
            )
        if is_nested(target, source):
            raise InvalidArgumentError(
                f"Target directory {request.target_path} must not be inside "
                f"source directory {request.source_path}",
                fields=["target_path"],
            )
        if not is_nested(target, self.working_copy.repo_dir):
            raise InvalidArgumentError(
                f"Target directory {request.target_path} is outside the working copy "
                f"{self.working_copy.repo_dir}",
                fields=["target_path"],
            )
        return source, target

    def synchronize(
        self,
        request: SyncRequest,
        *,
        cancel: CancelToken | None = None,
    ) -> PublishReport:
        """
        Copy, commit and publish `request.source_path` into `request.target_path`.

        Args:
            request: What to publish and where
            cancel: Checked before every attempt and after every delay

        Returns:
            PublishReport with outcome NO_CHANGES or PUBLISH_SUCCEEDED

        Raises:
            InvalidArgumentError: Before any side effect, for a bad request
            AttemptsExhaustedError: Every attempt failed to publish
            SyncCancelledError: The token was set between attempts
            MirrorError: The source could not be copied into the target
            GitError: Staging, diffing or committing failed
        """
        source, target = self.validate(request)

        report = PublishReport(
            source_path=request.source_path,
            target_path=request.target_path,
            branch=request.branch_ref,
            started_at=datetime.now(timezone.utc),
        )
        if self.event_logger:
            self.event_logger.log_sync_start(
                request.source_path,
                request.target_path,
                request.branch_ref,
                self.config.max_attempts,
            )

        try:
            return self._run(request, source, target, report, cancel)
        except (GitError, MirrorError) as e:
            detail = e.stderr if isinstance(e, GitError) and e.stderr else str(e)
            if self.event_logger:
                self.event_logger.log_error(
                    detail, error_type=type(e).__name__, attempts=report.attempt_count
                )
            self._finish(report, report.phase, None)
            raise

    def _run(
        self,
        request: SyncRequest,
        source: Path,
        target: Path,
        report: PublishReport,
        cancel: CancelToken | None,
    ) -> PublishReport:
        cfg = self.config
        wc = self.working_copy

        report.files_copied = len(copy_tree(source, target))

        wc.configure_identity(cfg.author_name, cfg.author_email)
        if cfg.rebase_on_pull:
            wc.set_pull_rebase()

        phase = SyncPhase.IDLE
        pending_sha: str | None = None
        attempt = 1

        while True:
            if cancel is not None and cancel.cancelled:
                phase = machine.on_cancel(phase)
                logger.warning("Sync cancelled before attempt %d", attempt)
                self._finish(report, phase, None)
                raise SyncCancelledError(report)

            record = AttemptRecord(attempt=attempt)
            report.attempts.append(record)

            wc.stage(target)
            phase = machine.on_staged(phase)

            if wc.diff_is_empty(request.branch_ref, target, cfg.remote) and pending_sha is None:
                record.outcomes.append(AttemptOutcome.NO_CHANGES)
                phase = machine.on_diff(phase, AttemptOutcome.NO_CHANGES)
                logger.info("No changes detected in %s", request.target_path)
                self._log_attempt(record)
                break

            if not wc.diff_is_empty("HEAD", target, cfg.remote):
                pending_sha = wc.commit(cfg.commit_message)
                logger.info("Changes detected, committed %s", pending_sha[:8])
            else:
                # Index already matches HEAD: an earlier attempt's commit is still unpublished
                pending_sha = pending_sha or wc.head_sha()
                record.reused_commit = True
                logger.info("Republishing commit %s", pending_sha[:8])

            record.commit_sha = pending_sha
            report.commit_sha = pending_sha
            record.outcomes.append(AttemptOutcome.COMMITTED)
            phase = machine.on_diff(phase, AttemptOutcome.COMMITTED)

            outcome, error = self._publish(request.branch_ref)
            record.outcomes.append(outcome)
            record.error = error
            if outcome is AttemptOutcome.PUBLISH_SUCCEEDED:
                record.commit_sha = report.commit_sha = wc.head_sha()
            self._log_attempt(record)

            phase = machine.on_publish(
                phase, outcome, attempt=attempt, max_attempts=cfg.max_attempts
            )
            if machine.is_terminal(phase):
                break

            delay = cfg.delay_for(attempt)
            record.delay_seconds = delay
            logger.warning(
                "Attempt %d failed (%s), retrying in %s seconds...",
                attempt,
                outcome.value,
                delay,
            )
            if self.event_logger:
                self.event_logger.log_retry(attempt, delay)
            self._sleep(delay)
            attempt += 1

        if phase is SyncPhase.EXHAUSTED:
            logger.error(
                "Exceeded maximum attempts (%d) to push changes, giving up", cfg.max_attempts
            )
            if self.event_logger:
                self.event_logger.log_error(
                    report.summary(),
                    error_type=AttemptsExhaustedError.__name__,
                    attempts=report.attempt_count,
                )
            self._finish(report, phase, AttemptOutcome.PUBLISH_FAILED)
            raise AttemptsExhaustedError(report)

        final = (
            AttemptOutcome.PUBLISH_SUCCEEDED
            if phase is SyncPhase.PUBLISHED
            else AttemptOutcome.NO_CHANGES
        )
        if phase is SyncPhase.PUBLISHED:
            logger.info("Commit and push successful to %s", request.branch_ref)
        self._finish(report, phase, final)
        return report

    def _publish(self, branch: str) -> tuple[AttemptOutcome, str | None]:
        """Pull with rebase (when the branch exists remotely) and push as one step."""
        wc = self.working_copy
        remote = self.config.remote

        try:
            if wc.remote_branch_exists(remote, branch):
                wc.pull_rebase(remote, branch)
            else:
                logger.info("Remote branch %s not found on %s, pushing a new branch", branch, remote)
            wc.push(remote, branch)
        except GitError as e:
            error = e.stderr or str(e)
            if wc.rebase_in_progress():
                logger.info("Aborting interrupted rebase")
                wc.abort_rebase()
            return classify_publish_error(error), error

        return AttemptOutcome.PUBLISH_SUCCEEDED, None

    def _log_attempt(self, record: AttemptRecord) -> None:
        if self.event_logger and record.final_outcome is not None:
            self.event_logger.log_attempt(
                record.attempt,
                record.final_outcome.value,
                commit_sha=record.commit_sha,
                error=record.error,
            )

    def _finish(
        self,
        report: PublishReport,
        phase: SyncPhase,
        outcome: AttemptOutcome | None,
    ) -> None:
        report.phase = phase
        report.outcome = outcome
        report.completed_at = datetime.now(timezone.utc)
        if self.event_logger:
            self.event_logger.log_sync_end(
                outcome.value if outcome else phase.value,
                report.attempt_count,
                report.duration_seconds,
            )


def synchronize(
    request: SyncRequest,
    max_attempts: int | None = None,
    retry_delay: float | None = None,
    *,
    config: SyncConfig | None = None,
    working_copy: WorkingCopy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    cancel: CancelToken | None = None,
    event_logger: EventLogger | None = None,
) -> PublishReport:
    """
    Publish a directory with bounded retry.

    `max_attempts` and `retry_delay` override the matching `config` fields.

    Raises:
        InvalidArgumentError: For a bad request or retry settings
        AttemptsExhaustedError: Every attempt failed to publish
        SyncCancelledError: The token was set between attempts
    """
    overrides: dict[str, float | int] = {}
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    if retry_delay is not None:
        overrides["retry_delay"] = retry_delay

    base = config or SyncConfig()
    try:
        effective = SyncConfig.model_validate({**base.model_dump(), **overrides})
    except ValidationError as e:
        fields = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
        raise InvalidArgumentError(f"Invalid retry settings: {e}", fields=fields) from e

    synchronizer = Synchronizer(
        working_copy,
        effective,
        sleep=sleep,
        event_logger=event_logger,
    )
    return synchronizer.synchronize(request, cancel=cancel)
