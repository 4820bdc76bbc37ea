"""Errors raised across the streaming layers."""

from __future__ import annotations


class StreamTransportError(Exception):
    """The request failed before any part of the stream could be read."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamInterrupted(Exception):
    """The byte source failed after the stream had started."""
