"""One-shot cancellation token shared between a caller and a running session."""

from __future__ import annotations

import threading


class CancellationToken:
    """Set once by the caller, polled by the session read loop.

    Backed by threading.Event so a UI thread may cancel a session running in an event loop.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
