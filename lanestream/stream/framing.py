"""Byte decoding and line framing for event-stream bodies.

Chunks from the transport may split a UTF-8 character or a line anywhere. The
decoder keeps undecoded trailing bytes between calls; the line buffer keeps the
trailing partial line.
"""

from __future__ import annotations

import codecs


class IncrementalTextDecoder:
    """Bytes -> text across chunk boundaries. Invalid sequences become U+FFFD."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)("replace")

    def decode(self, chunk: bytes) -> str:
        return self._decoder.decode(chunk)

    def flush(self) -> str:
        """Decode whatever is left; no further bytes are expected."""
        return self._decoder.decode(b"", final=True)


class LineBuffer:
    """Split appended text on newlines, holding back the last incomplete segment."""

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, text: str) -> list[str]:
        if not text:
            return []
        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        return lines

    def flush(self) -> list[str]:
        """Return the residual segment as a final line, if it is non-empty."""
        rest, self._pending = self._pending, ""
        if not rest:
            return []
        return [rest]
