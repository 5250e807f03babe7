"""Utility modules for treesync."""

from .logging import EventLogger, EventType, LogEntry, configure_logging

__all__ = [
    "configure_logging",
    "EventLogger",
    "EventType",
    "LogEntry",
]
