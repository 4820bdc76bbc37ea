"""Event filtering and payload decoding.

Line shape: ``data: <json>`` or ``data: [DONE]``; anything else is dropped.
JSON shape: ``{"choices": [{"index": <int>, "delta": {"content": <str>}}, ...]}``.
A choice without ``index`` belongs to lane 0.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lanestream.core.events import Delta

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

# Max chars of a bad payload copied into a log record
_LOG_PAYLOAD_LIMIT = 200


class FrameKind(str, Enum):
    DATA = "data"
    DONE = "done"


@dataclass(frozen=True)
class Frame:
    kind: FrameKind
    payload: str = ""


def filter_line(line: str) -> Frame | None:
    """Classify one line. Returns None for blank lines, comments and other fields."""
    line = line.strip()
    if not line or not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return Frame(FrameKind.DONE)
    return Frame(FrameKind.DATA, payload)


def _choice_delta(choice: Any, lane_count: int) -> Delta | None:
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if not isinstance(content, str) or not content:
        return None
    index = choice.get("index", 0)
    # bool is an int subclass; true/false are not lane numbers
    if isinstance(index, bool) or not isinstance(index, int):
        logger.debug("choice index is not an integer", extra={"lane_index": repr(index)})
        return None
    if not 0 <= index < lane_count:
        logger.debug(
            "lane index out of range", extra={"lane_index": index, "lane_count": lane_count}
        )
        return None
    return Delta(lane_index=index, text=content)


def decode_payload(payload: str, lane_count: int) -> list[Delta]:
    """Parse one data payload into deltas. Malformed payloads yield an empty list."""
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and the int digit limit; deep nesting recurses
        logger.warning(
            "skipping malformed payload: %s",
            type(e).__name__,
            extra={"payload": payload[:_LOG_PAYLOAD_LIMIT]},
        )
        return []
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list):
        logger.warning(
            "skipping payload without choices", extra={"payload": payload[:_LOG_PAYLOAD_LIMIT]}
        )
        return []
    deltas = []
    for choice in choices:
        d = _choice_delta(choice, lane_count)
        if d is not None:
            deltas.append(d)
    return deltas
