"""
Logging helpers for treesync.

Two layers:

- `configure_logging()` sets up stdlib logging for the CLI (stderr, DEBUG
  with --debug, WARNING otherwise). Library modules log through
  `logging.getLogger(__name__)`.
- `EventLogger` writes timestamped JSON Lines events describing each sync
  run, for CI artifact upload or later inspection with jq. Events go to
  ~/.local/share/treesync/logs/{name}.jsonl unless a path is given.

Each event line is valid JSON with the format:
{
  "timestamp": "2026-01-15T12:34:56.789Z",
  "event_type": "attempt",
  "data": { ... event-specific data ... }
}
"""

import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    """
    Configure stdlib logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


class EventType(str, Enum):
    """Types of events that can be logged."""

    SYNC_START = "sync_start"
    ATTEMPT = "attempt"
    RETRY = "retry"
    SYNC_END = "sync_end"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single structured log entry in JSONL format."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime = Field(..., description="When the event occurred (ISO 8601 format)")
    event_type: EventType = Field(..., description="Type of event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")


class EventLogger:
    """
    Structured JSONL logger for sync events.

    Example:
        logger = EventLogger.init("publish-docs")
        logger.log_event(EventType.SYNC_START, {"branch": "main"})
        logger.log_event(EventType.SYNC_END, {"outcome": "publish_succeeded"})
    """

    def __init__(self, log_file: Path):
        """
        Args:
            log_file: Path to the JSONL log file (will be created if needed)
        """
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def init(name: str) -> "EventLogger":
        """
        Create a logger under the XDG data directory.

        Logs are written to $XDG_DATA_HOME/treesync/logs/{name}.jsonl

        Raises:
            ValueError: If name is empty
        """
        if not name:
            raise ValueError("name cannot be empty")

        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        if not xdg_data_home:
            xdg_data_home = os.path.expanduser("~/.local/share")

        return EventLogger(Path(xdg_data_home) / "treesync" / "logs" / f"{name}.jsonl")

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        """
        Append one event to the JSONL file.

        Write failures are reported as warnings and never interrupt a sync.
        """
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            data=data or {},
        )
        log_line = entry.model_dump_json(exclude_none=True) + "\n"

        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(log_line)
        except OSError as e:
            logger.warning("Failed to write to event log %s: %s", self.log_file, e)

    def log_sync_start(self, source: str, target: str, branch: str, max_attempts: int) -> None:
        self.log_event(
            EventType.SYNC_START,
            {
                "source": source,
                "target": target,
                "branch": branch,
                "max_attempts": max_attempts,
            },
        )

    def log_attempt(
        self,
        attempt: int,
        outcome: str,
        commit_sha: str | None = None,
        error: str | None = None,
    ) -> None:
        data: dict[str, Any] = {"attempt": attempt, "outcome": outcome}
        if commit_sha:
            data["commit_sha"] = commit_sha
        if error:
            data["error"] = error
        self.log_event(EventType.ATTEMPT, data)

    def log_retry(self, attempt: int, delay_seconds: float) -> None:
        self.log_event(EventType.RETRY, {"attempt": attempt, "delay_seconds": delay_seconds})

    def log_sync_end(self, outcome: str, attempts: int, duration_sec: float | None) -> None:
        data: dict[str, Any] = {"outcome": outcome, "attempts": attempts}
        if duration_sec is not None:
            data["duration_sec"] = duration_sec
        self.log_event(EventType.SYNC_END, data)

    def log_error(self, message: str, **extra: Any) -> None:
        self.log_event(EventType.ERROR, {"message": message, **extra})
