"""Tests for models/client: HTTP streaming over httpx.MockTransport."""

from __future__ import annotations

import gzip
import json

import httpx
import pytest

from lanestream.config.loader import Config, SamplingSettings
from lanestream.core.cancellation import CancellationToken
from lanestream.core.errors import StreamTransportError
from lanestream.core.events import SessionOutcome
from lanestream.models.client import REQUEST_HEADERS, CompletionClient, build_request_body
from lanestream.tests.helpers import byte_source, data_line, split_every

URL = "http://model.test/v1/chat/completions"


def streaming_client(chunks, requests=None, status=200, pulled=None) -> CompletionClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status, content=byte_source(chunks, pulled))

    return CompletionClient(URL, password="pw", transport=httpx.MockTransport(handler))


def test_build_request_body_defaults():
    body = build_request_body(["a", "b"], password="secret")
    assert body["contents"] == ["a", "b"]
    assert body["stream"] is True
    assert body["password"] == "secret"
    assert body["max_tokens"] == 100
    assert body["temperature"] == 0.95
    assert body["top_k"] == 50
    assert body["top_p"] == 0.9
    assert body["pad_zero"] is True
    assert body["alpha_decay"] == 0.996
    assert body["chunk_size"] == 128


def test_build_request_body_custom_sampling():
    body = build_request_body(["x"], SamplingSettings(max_tokens=7, temperature=0.1))
    assert body["max_tokens"] == 7
    assert body["temperature"] == 0.1
    assert body["password"] == ""


def test_from_config():
    config = Config(api={"url": URL, "password": "p", "timeout_seconds": 5})
    client = CompletionClient.from_config(config)
    assert client.url == URL
    assert client.request_for(["q"])["password"] == "p"


@pytest.mark.asyncio
async def test_start_stream_single_lane():
    requests = []
    stream = (data_line("ls") + data_line(" -la") + "data: [DONE]\n").encode()
    client = streaming_client(split_every(stream, 9), requests)
    seen = []
    final = await client.start_stream(
        client.request_for(["list files"]), 1, on_snapshot=seen.append
    )
    assert final.texts == ["ls -la"]
    assert final.is_complete
    assert final.outcome is SessionOutcome.COMPLETED
    assert [s.texts for s in seen] == [["ls"], ["ls -la"], ["ls -la"]]
    assert seen[-1] == final

    (request,) = requests
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["content-type"] == REQUEST_HEADERS["Content-Type"]
    body = json.loads(request.content)
    assert body["contents"] == ["list files"]
    assert body["stream"] is True
    assert body["password"] == "pw"


@pytest.mark.asyncio
async def test_stream_snapshots_multi_lane_labels():
    stream = (
        data_line("a", index=0)
        + data_line("1", index=1)
        + data_line("b", index=0)
        + data_line("2", index=1)
        + "data: [DONE]\n"
    ).encode()
    client = streaming_client([stream])
    snaps = [
        s
        async for s in client.stream_snapshots(
            client.request_for(["x", "y"]), 2, labels=["formal", "casual"]
        )
    ]
    assert snaps[-1].texts == ["ab", "12"]
    assert [lane.label for lane in snaps[-1].lanes] == ["formal", "casual"]


@pytest.mark.asyncio
async def test_http_error_status_raises_before_any_snapshot():
    client = streaming_client([b"internal error"], status=500)
    seen = []
    with pytest.raises(StreamTransportError) as exc_info:
        await client.start_stream(client.request_for(["x"]), 1, on_snapshot=seen.append)
    assert exc_info.value.status_code == 500
    assert "request failed: 500" in str(exc_info.value)
    assert seen == []


@pytest.mark.asyncio
async def test_connect_error_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = CompletionClient(URL, transport=httpx.MockTransport(handler))
    with pytest.raises(StreamTransportError) as exc_info:
        await client.start_stream(client.request_for(["x"]), 1)
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_read_error_mid_stream_returns_partial():
    async def body():
        yield data_line("half").encode()
        raise httpx.ReadError("connection reset")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    client = CompletionClient(URL, transport=httpx.MockTransport(handler))
    final = await client.start_stream(client.request_for(["x"]), 1)
    assert final.texts == ["half"]
    assert final.outcome is SessionOutcome.TRANSPORT_ERROR
    assert final.error == "connection reset"
    assert final.is_complete


@pytest.mark.asyncio
async def test_cancel_resolves_with_partial_content():
    token = CancellationToken()
    pulled = []
    chunks = [data_line("a").encode(), data_line("b").encode(), data_line("c").encode()]
    client = streaming_client(chunks, pulled=pulled)

    def on_snapshot(snapshot):
        if snapshot.texts == ["a"]:
            token.cancel()

    final = await client.start_stream(
        client.request_for(["x"]), 1, cancel_token=token, on_snapshot=on_snapshot
    )
    assert final.texts == ["a"]
    assert final.outcome is SessionOutcome.CANCELLED
    assert final.is_complete
    assert len(pulled) == 1


def test_invalid_lane_count_raises_immediately():
    client = streaming_client([])
    with pytest.raises(ValueError):
        client.stream_snapshots(client.request_for([]), 0)


@pytest.mark.asyncio
async def test_corrupt_gzip_body_mid_stream_returns_transport_error():
    compressed = bytearray(gzip.compress((data_line("ok") + data_line("more")).encode()))
    # Flip a CRC byte in the gzip trailer
    compressed[-8] ^= 0xFF
    chunks = [bytes(compressed[:-8]), bytes(compressed[-8:])]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, content=byte_source(chunks)
        )

    client = CompletionClient(URL, transport=httpx.MockTransport(handler))
    final = await client.start_stream(client.request_for(["x"]), 1)
    assert final.outcome is SessionOutcome.TRANSPORT_ERROR
    assert final.error
    assert final.is_complete
