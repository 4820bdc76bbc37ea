"""The two request modes: a single assistant reply and N parallel style variants.

Both are the same session; they differ only in lane count and in what they return.
"""

from __future__ import annotations

from typing import Callable, Sequence

from lanestream.core.cancellation import CancellationToken
from lanestream.core.events import Snapshot
from lanestream.models.client import CompletionClient


async def generate_command(
    client: CompletionClient,
    content: str,
    *,
    cancel_token: CancellationToken | None = None,
    on_text: Callable[[str], None] | None = None,
) -> str:
    """Single-lane mode. on_text receives the accumulated reply after each update."""

    def _on_snapshot(snapshot: Snapshot) -> None:
        if on_text is not None:
            on_text(snapshot.lanes[0].text)

    final = await client.start_stream(
        client.request_for([content]),
        1,
        cancel_token=cancel_token,
        on_snapshot=_on_snapshot,
    )
    return final.lanes[0].text.strip()


async def generate_styles(
    client: CompletionClient,
    contents: Sequence[str],
    *,
    labels: Sequence[str] | None = None,
    cancel_token: CancellationToken | None = None,
    on_update: Callable[[Snapshot], None] | None = None,
) -> Snapshot:
    """N-lane mode: one lane per content string, labelled e.g. by style name."""
    if not contents:
        raise ValueError("contents must not be empty")
    return await client.start_stream(
        client.request_for(contents),
        len(contents),
        cancel_token=cancel_token,
        on_snapshot=on_update,
        labels=labels,
    )
