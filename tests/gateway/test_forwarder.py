"""Tests for forwarding parsed messages to the ingest endpoint."""

import json

import httpx
import pytest

from serverwatch.gateway.errors import ForwardingError
from serverwatch.gateway.forwarder import IngestForwarder

INGEST_URL = "http://ingest.test/receive"


class TestIngestForwarder:
    """Tests for IngestForwarder.forward."""

    @pytest.mark.asyncio
    async def test_posts_payload_as_json(self) -> None:
        """The payload should be POSTed as JSON and the count returned."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "ok", "count": 3})

        async with IngestForwarder(INGEST_URL, transport=httpx.MockTransport(handler)) as forwarder:
            count = await forwarder.forward({"jobId": "abc", "serverName": "Farm A"})

        assert count == 3
        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == INGEST_URL
        assert json.loads(seen[0].content) == {"jobId": "abc", "serverName": "Farm A"}

    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        """A non-2xx response should raise ForwardingError."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        async with IngestForwarder(INGEST_URL, transport=transport) as forwarder:
            with pytest.raises(ForwardingError, match="HTTP 500"):
                await forwarder.forward({"jobId": "abc"})

    @pytest.mark.asyncio
    async def test_network_error_raises(self) -> None:
        """Connection failures should raise ForwardingError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with IngestForwarder(INGEST_URL, transport=httpx.MockTransport(handler)) as forwarder:
            with pytest.raises(ForwardingError) as exc_info:
                await forwarder.forward({"jobId": "abc"})

        assert exc_info.value.url == INGEST_URL
        assert "connection refused" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        """Timeouts should raise ForwardingError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with IngestForwarder(INGEST_URL, transport=httpx.MockTransport(handler)) as forwarder:
            with pytest.raises(ForwardingError):
                await forwarder.forward({"jobId": "abc"})

    @pytest.mark.asyncio
    async def test_non_json_response_returns_none(self) -> None:
        """A successful response without a JSON count should return None."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="ok"))

        async with IngestForwarder(INGEST_URL, transport=transport) as forwarder:
            assert await forwarder.forward({"jobId": "abc"}) is None
