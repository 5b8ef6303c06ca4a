"""Cancellation token shared by every wait in a single flow."""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import FlowCancelled


class CancellationToken:
    """Event plus optional monotonic deadline.

    All waits in the trader go through :meth:`sleep`, so cancelling the token
    (or passing its deadline) interrupts poll intervals, retry backoff, the
    balance watch and the hold delay alike.
    """

    def __init__(self, deadline: Optional[float] = None) -> None:
        self._event = threading.Event()
        self.deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        token = cls()
        token.deadline = token.now() + seconds
        return token

    def now(self) -> float:
        return time.monotonic()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and self.now() >= self.deadline

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.now())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FlowCancelled("operation cancelled")
        if self.deadline is not None and self.now() >= self.deadline:
            raise FlowCancelled("deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Wait up to ``seconds``; raise FlowCancelled if interrupted."""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(timeout)
        self.raise_if_cancelled()


def ensure_token(token: Optional[CancellationToken]) -> CancellationToken:
    return token if token is not None else CancellationToken()
