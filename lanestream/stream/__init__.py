"""Event-stream decoding pipeline: bytes -> lines -> frames -> deltas -> lane snapshots."""

from lanestream.stream.framing import IncrementalTextDecoder, LineBuffer
from lanestream.stream.payload import Frame, FrameKind, decode_payload, filter_line
from lanestream.stream.session import Session

__all__ = [
    "Frame",
    "FrameKind",
    "IncrementalTextDecoder",
    "LineBuffer",
    "Session",
    "decode_payload",
    "filter_line",
]
