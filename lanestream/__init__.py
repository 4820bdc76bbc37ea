"""Client-side decoder for chunked event-stream completions with parallel output lanes."""

from lanestream.core.cancellation import CancellationToken
from lanestream.core.errors import StreamInterrupted, StreamTransportError
from lanestream.core.events import Delta, LaneState, SessionOutcome, SessionState, Snapshot
from lanestream.models.client import CompletionClient, build_request_body
from lanestream.models.consumers import generate_command, generate_styles
from lanestream.stream.session import Session

__all__ = [
    "CancellationToken",
    "CompletionClient",
    "Delta",
    "LaneState",
    "Session",
    "SessionOutcome",
    "SessionState",
    "Snapshot",
    "StreamInterrupted",
    "StreamTransportError",
    "build_request_body",
    "generate_command",
    "generate_styles",
]
