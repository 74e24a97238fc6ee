"""
Cancellation — cooperative cancellation for analysis runs.
"""

from __future__ import annotations

import threading


class OperationCanceledError(Exception):
    """Raised when analysis observes a cancelled token."""


class CancellationToken:
    """A thread-safe, one-way cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def throw_if_cancellation_requested(self) -> None:
        if self._event.is_set():
            raise OperationCanceledError("Analysis was cancelled")
