"""Lane demultiplexer: one decode session per streaming request.

A session reads an async byte source, frames it into ``data:`` lines, decodes the
deltas and appends them to a fixed set of lanes. Snapshots are produced as an
async iterator: one after every frame that changed a lane, and one final snapshot
with every lane marked complete. The consumer runs between snapshots, before the
next read is issued.

Cancellation is polled before every read, before every frame and after the
residual buffer is drained. Once it is seen, nothing else is applied or emitted
except the final snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Sequence

from lanestream.core.cancellation import CancellationToken
from lanestream.core.errors import StreamInterrupted
from lanestream.core.events import (
    LaneState,
    SessionOutcome,
    SessionState,
    Snapshot,
)
from lanestream.stream.framing import IncrementalTextDecoder, LineBuffer
from lanestream.stream.payload import FrameKind, decode_payload, filter_line

logger = logging.getLogger(__name__)


class _Lane:
    __slots__ = ("index", "label", "text", "is_complete")

    def __init__(self, index: int, label: str = "") -> None:
        self.index = index
        self.label = label
        self.text = ""
        self.is_complete = False

    def state(self) -> LaneState:
        return LaneState(
            index=self.index, text=self.text, is_complete=self.is_complete, label=self.label
        )


class Session:
    """Decode state for one request: lanes, buffers, cancellation and terminal outcome."""

    def __init__(
        self,
        lane_count: int,
        cancel_token: CancellationToken | None = None,
        labels: Sequence[str] | None = None,
    ) -> None:
        if lane_count < 1:
            raise ValueError(f"lane_count must be >= 1, got {lane_count}")
        labels = list(labels or [])
        self._lanes = [
            _Lane(i, labels[i] if i < len(labels) else "") for i in range(lane_count)
        ]
        self._cancel_token = cancel_token or CancellationToken()
        self._decoder = IncrementalTextDecoder()
        self._lines = LineBuffer()
        self._state = SessionState.IDLE
        self._outcome: SessionOutcome | None = None
        self._error: str | None = None
        self._done_seen = False

    @property
    def lane_count(self) -> int:
        return len(self._lanes)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> SessionOutcome | None:
        return self._outcome

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel_token

    def snapshot(self) -> Snapshot:
        return Snapshot(
            lanes=[lane.state() for lane in self._lanes],
            final=self._state is SessionState.CLOSED,
            outcome=self._outcome,
            error=self._error,
        )

    def run(self, source: AsyncIterable[bytes]) -> AsyncIterator[Snapshot]:
        """Drive the session over ``source``. A session can be run only once."""
        if self._state is not SessionState.IDLE:
            raise RuntimeError("session already started")
        self._state = SessionState.READING
        return self._run(source)

    async def _run(self, source: AsyncIterable[bytes]) -> AsyncIterator[Snapshot]:
        chunks = source.__aiter__()
        outcome = SessionOutcome.COMPLETED
        aborted = False
        logger.debug("session started", extra={"lane_count": self.lane_count})
        try:
            while not self._done_seen:
                if self._cancel_token.cancelled:
                    self._state = SessionState.CANCELLED
                    outcome = SessionOutcome.CANCELLED
                    break
                try:
                    chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    self._state = SessionState.DRAINING
                    tail = self._lines.feed(self._decoder.flush()) + self._lines.flush()
                    for snap in self._apply_lines(tail):
                        yield snap
                    if self._cancel_token.cancelled and not self._done_seen:
                        outcome = SessionOutcome.CANCELLED
                    break
                for snap in self._apply_lines(self._lines.feed(self._decoder.decode(chunk))):
                    yield snap
        except StreamInterrupted as e:
            logger.warning("stream interrupted: %s", e)
            self._error = str(e) or type(e).__name__
            outcome = SessionOutcome.TRANSPORT_ERROR
        except (GeneratorExit, asyncio.CancelledError):
            # Consumer closed the iterator early or the hosting task was cancelled
            outcome = SessionOutcome.CANCELLED
            aborted = True
            raise
        except Exception as e:
            logger.warning("session failed: %s", e)
            self._error = str(e) or type(e).__name__
            outcome = SessionOutcome.TRANSPORT_ERROR
            aborted = True
            raise
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
            if aborted:
                self._finalize(outcome)
        yield self._finalize(outcome)

    def _apply_lines(self, lines: Iterable[str]) -> Iterator[Snapshot]:
        for line in lines:
            if self._done_seen:
                return
            if self._cancel_token.cancelled:
                self._state = SessionState.CANCELLED
                return
            frame = filter_line(line)
            if frame is None:
                continue
            if frame.kind is FrameKind.DONE:
                logger.debug("stream end sentinel received")
                self._done_seen = True
                return
            applied = 0
            for delta in decode_payload(frame.payload, self.lane_count):
                self._lanes[delta.lane_index].text += delta.text
                applied += 1
            if applied:
                yield self.snapshot()

    def _finalize(self, outcome: SessionOutcome) -> Snapshot:
        if outcome is SessionOutcome.CANCELLED:
            logger.info("session cancelled", extra={"lane_count": self.lane_count})
        self._state = SessionState.FINALIZING
        for lane in self._lanes:
            lane.is_complete = True
        self._outcome = outcome
        self._state = SessionState.CLOSED
        logger.debug("session closed", extra={"outcome": outcome.value})
        return self.snapshot()
