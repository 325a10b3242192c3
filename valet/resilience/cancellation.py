"""Cancellation token

One token is threaded through a whole validation call. Cancelling it stops
the dispatcher from starting further external calls; calls already in
flight are left to finish. Safe to cancel from any thread.
"""
from __future__ import annotations

import threading
import time


class CancellationToken:
    """Cooperative cancellation flag with an optional deadline.

    Usage:
        token = CancellationToken.with_timeout(2.0)
        await validate_with_checker(data, schema, checker, cancellation=token)
    """

    __slots__ = ("_event", "_deadline", "_reason")

    def __init__(self, deadline: float | None = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._reason: str | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> CancellationToken:
        """Token that reports cancelled once ``seconds`` have elapsed."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    @property
    def reason(self) -> str | None:
        return self._reason if self.cancelled else None

    @property
    def remaining(self) -> float | None:
        """Seconds until the deadline, if one was set."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
