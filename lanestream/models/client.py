"""HTTP client for the streaming completions endpoint.

POSTs a request with ``stream: true`` and decodes the event-stream body through a
:class:`~lanestream.stream.session.Session`. Lane ``i`` receives the reply to
``contents[i]``.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Callable, Sequence

import httpx

from lanestream.config.loader import Config, SamplingSettings
from lanestream.core.cancellation import CancellationToken
from lanestream.core.errors import StreamInterrupted, StreamTransportError
from lanestream.core.events import Snapshot
from lanestream.stream.session import Session

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "*/*",
}


def build_request_body(
    contents: Sequence[str],
    sampling: SamplingSettings | None = None,
    password: str = "",
) -> dict[str, Any]:
    """Request payload: one content string per lane plus sampling parameters."""
    sampling = sampling or SamplingSettings()
    body: dict[str, Any] = {"contents": list(contents)}
    body.update(sampling.model_dump())
    body["stream"] = True
    body["password"] = password
    return body


async def _response_bytes(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        raise StreamInterrupted(str(e) or type(e).__name__) from e


class CompletionClient:
    """Streams completions from one endpoint. A new Session is created per request."""

    def __init__(
        self,
        url: str,
        *,
        password: str = "",
        sampling: SamplingSettings | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._password = password
        self._sampling = sampling or SamplingSettings()
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: Config, transport: httpx.AsyncBaseTransport | None = None
    ) -> "CompletionClient":
        return cls(
            config.api.url,
            password=config.api.password,
            sampling=config.sampling,
            timeout=config.api.timeout_seconds,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self._url

    def request_for(self, contents: Sequence[str]) -> dict[str, Any]:
        return build_request_body(contents, self._sampling, self._password)

    def stream_snapshots(
        self,
        request_body: dict[str, Any],
        lane_count: int,
        cancel_token: CancellationToken | None = None,
        labels: Sequence[str] | None = None,
    ) -> AsyncIterator[Snapshot]:
        """Async iterator of snapshots; the last one is final with every lane complete.

        Raises StreamTransportError if the request fails before the body is read.
        The response is closed on every exit path.
        """
        session = Session(lane_count, cancel_token=cancel_token, labels=labels)

        async def _stream() -> AsyncIterator[Snapshot]:
            logger.debug("stream request", extra={"url": self._url, "lane_count": lane_count})
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    async with client.stream(
                        "POST", self._url, json=request_body, headers=REQUEST_HEADERS
                    ) as resp:
                        if not resp.is_success:
                            raise StreamTransportError(
                                f"request failed: {resp.status_code} {resp.reason_phrase}",
                                status_code=resp.status_code,
                            )
                        async for snapshot in session.run(_response_bytes(resp)):
                            yield snapshot
            except httpx.TransportError as e:
                logger.warning("stream request failed: %s", e, extra={"url": self._url})
                raise StreamTransportError(f"request failed: {e}") from e

        return _stream()

    async def start_stream(
        self,
        request_body: dict[str, Any],
        lane_count: int,
        cancel_token: CancellationToken | None = None,
        on_snapshot: Callable[[Snapshot], None] | None = None,
        labels: Sequence[str] | None = None,
    ) -> Snapshot:
        """Run one request to completion, calling on_snapshot for every snapshot.

        Returns the final snapshot. Cancellation returns normally with partial text.
        """
        final: Snapshot | None = None
        async with aclosing(
            self.stream_snapshots(request_body, lane_count, cancel_token, labels)
        ) as snapshots:
            async for snapshot in snapshots:
                if on_snapshot is not None:
                    on_snapshot(snapshot)
                final = snapshot
        if final is None:
            raise RuntimeError("stream ended without a final snapshot")
        return final
