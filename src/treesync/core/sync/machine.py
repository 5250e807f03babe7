"""
Phase transitions for the publish retry loop.

The loop is an explicit state machine:

    IDLE -> STAGED -> COMMITTED -> PUBLISHED
                 \\-> UNCHANGED   \\-> RETRYING -> STAGED ...
                                  \\-> EXHAUSTED

Every function here is pure: it takes the current phase plus what just
happened and returns the next phase, raising InvalidTransitionError for
moves the loop must never make. The service owns all side effects.
"""

from __future__ import annotations

from treesync.core.sync.errors import InvalidTransitionError
from treesync.core.sync.models import AttemptOutcome, SyncPhase

TERMINAL_PHASES = frozenset(
    {
        SyncPhase.PUBLISHED,
        SyncPhase.UNCHANGED,
        SyncPhase.EXHAUSTED,
        SyncPhase.CANCELLED,
    }
)

_FAILED_PUBLISH = frozenset({AttemptOutcome.PUBLISH_CONFLICT, AttemptOutcome.PUBLISH_FAILED})


def is_terminal(phase: SyncPhase) -> bool:
    """Return True once the loop must stop."""
    return phase in TERMINAL_PHASES


def on_staged(phase: SyncPhase) -> SyncPhase:
    """Changes under the target were staged."""
    if phase not in (SyncPhase.IDLE, SyncPhase.RETRYING):
        raise InvalidTransitionError(f"cannot stage from {phase.value}")
    return SyncPhase.STAGED


def on_diff(phase: SyncPhase, outcome: AttemptOutcome) -> SyncPhase:
    """
    The staged tree was compared against the branch.

    Args:
        phase: Must be STAGED
        outcome: NO_CHANGES or COMMITTED

    Returns:
        UNCHANGED for an empty diff, COMMITTED otherwise
    """
    if phase is not SyncPhase.STAGED:
        raise InvalidTransitionError(f"cannot diff from {phase.value}")
    if outcome is AttemptOutcome.NO_CHANGES:
        return SyncPhase.UNCHANGED
    if outcome is AttemptOutcome.COMMITTED:
        return SyncPhase.COMMITTED
    raise InvalidTransitionError(f"{outcome.value} is not a diff outcome")


def on_publish(
    phase: SyncPhase,
    outcome: AttemptOutcome,
    *,
    attempt: int,
    max_attempts: int,
) -> SyncPhase:
    """
    A pull-rebase plus push finished.

    Args:
        phase: Must be COMMITTED
        outcome: PUBLISH_SUCCEEDED, PUBLISH_CONFLICT or PUBLISH_FAILED
        attempt: 1-based number of the attempt that just ran
        max_attempts: Configured attempt bound

    Returns:
        PUBLISHED on success; RETRYING while attempts remain; EXHAUSTED otherwise

    Example:
        >>> on_publish(SyncPhase.COMMITTED, AttemptOutcome.PUBLISH_FAILED,
        ...            attempt=3, max_attempts=3)
        <SyncPhase.EXHAUSTED: 'exhausted'>
    """
    if phase is not SyncPhase.COMMITTED:
        raise InvalidTransitionError(f"cannot publish from {phase.value}")
    if outcome is AttemptOutcome.PUBLISH_SUCCEEDED:
        return SyncPhase.PUBLISHED
    if outcome not in _FAILED_PUBLISH:
        raise InvalidTransitionError(f"{outcome.value} is not a publish outcome")
    if attempt < max_attempts:
        return SyncPhase.RETRYING
    return SyncPhase.EXHAUSTED


def on_cancel(phase: SyncPhase) -> SyncPhase:
    """An external cancellation was observed between attempts."""
    if is_terminal(phase):
        raise InvalidTransitionError(f"cannot cancel from terminal phase {phase.value}")
    return SyncPhase.CANCELLED
