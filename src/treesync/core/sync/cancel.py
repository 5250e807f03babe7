"""
Cooperative cancellation for a running sync.

The synchronizer checks a CancelToken before every attempt and after every
retry delay. Anything can set the token: a test, a wrapping service, or the
SIGINT/SIGTERM handlers installed by `register_signals()`.

The signal handlers follow a two-stage model:
1. First signal: set the token so the loop stops at the next check
2. Second signal: force exit with SystemExit(130)

Usage:
    >>> token = CancelToken()
    >>> token.register_signals()
    >>> try:
    ...     synchronizer.synchronize(request, cancel=token)
    ... finally:
    ...     token.unregister_signals()
"""

from __future__ import annotations

import signal
import sys
import threading
from typing import Any


class CancelToken:
    """
    A flag that asks a sync to stop between attempts.

    Attributes:
        cancelled: True once cancel() was called or a signal arrived
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._original_sigint: Any = None
        self._original_sigterm: Any = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def register_signals(self) -> None:
        """
        Route SIGINT and SIGTERM to this token.

        Saves the original handlers so `unregister_signals()` can restore them.
        """
        self._original_sigint = signal.signal(signal.SIGINT, self._handle_signal)
        self._original_sigterm = signal.signal(signal.SIGTERM, self._handle_signal)

    def unregister_signals(self) -> None:
        """Restore the signal handlers saved by `register_signals()`."""
        if self._original_sigint is not None:
            signal.signal(signal.SIGINT, self._original_sigint)
            self._original_sigint = None

        if self._original_sigterm is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm)
            self._original_sigterm = None

    def _handle_signal(self, signum: int, frame: object) -> None:
        if self.cancelled:
            sys.stderr.write("\n[Force exiting...]\n")
            raise SystemExit(130)

        self.cancel()
        sys.stderr.write("\n[Interrupt received. Stopping after the current attempt...]\n")
