"""Builders for event-stream bodies used across tests."""

from __future__ import annotations

import json


def data_line(content: str | None = None, index: int | None = None) -> str:
    """One `data:` line in the completions wire format."""
    delta = {} if content is None else {"content": content}
    choice: dict = {"delta": delta}
    if index is not None:
        choice["index"] = index
    return "data: " + json.dumps({"choices": [choice]}, ensure_ascii=False) + "\n"


async def byte_source(chunks, pulled=None):
    """Async byte source over a list of chunks; appends each pulled chunk to `pulled`."""
    for chunk in chunks:
        if pulled is not None:
            pulled.append(chunk)
        yield chunk


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]
