"""Tests for the gateway collector client."""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Union

import pytest
import websockets
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosedError

from serverwatch.gateway.client import (
    UNKNOWN_AUTHOR,
    GatewayClient,
    GatewayState,
    build_record_payload,
    default_connect,
)
from serverwatch.gateway.errors import ForwardingError
from serverwatch.parsing.models import ParsedMessage

CHANNEL_ID = "424242"
HELLO = {"op": 10, "d": {"heartbeat_interval": 60_000}}
READY = {"op": 0, "t": "READY", "s": 1, "d": {}}


class FakeSocket:
    """Scripted WebSocket: yields frames, then closes (optionally abnormally)."""

    def __init__(
        self,
        frames: Optional[list[Union[str, dict[str, Any]]]] = None,
        close_error: Optional[Exception] = None,
    ) -> None:
        self.frames = frames or []
        self.close_error = close_error
        self.sent: list[dict[str, Any]] = []
        self.closed = False

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedError(None, None)
        self.sent.append(json.loads(data))

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        for frame in self.frames:
            yield frame if isinstance(frame, str) else json.dumps(frame)
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeForwarder:
    """Records forwarded payloads; can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.payloads: list[dict[str, Any]] = []

    async def forward(self, payload: dict[str, Any]) -> Optional[int]:
        if self.fail:
            raise ForwardingError("http://ingest.test/receive", "connection refused")
        self.payloads.append(payload)
        return len(self.payloads)


class FakeConnector:
    """Connect factory handing out scripted sockets or raising errors."""

    def __init__(self, *outcomes: Union[FakeSocket, Exception]) -> None:
        self.outcomes = list(outcomes)
        self.attempts: list[str] = []

    @asynccontextmanager
    async def __call__(self, url: str) -> AsyncIterator[FakeSocket]:
        self.attempts.append(url)
        outcome = self.outcomes.pop(0) if self.outcomes else FakeSocket()
        if isinstance(outcome, Exception):
            raise outcome
        yield outcome


def message_create(channel_id: str = CHANNEL_ID, **data: Any) -> dict[str, Any]:
    payload = {"id": "111", "channel_id": channel_id, "author": {"username": "bot"}}
    payload.update(data)
    return {"op": 0, "t": "MESSAGE_CREATE", "s": 2, "d": payload}


def make_client(
    forwarder: Optional[FakeForwarder] = None,
    connect: Optional[FakeConnector] = None,
) -> GatewayClient:
    return GatewayClient(
        token="secret-token",
        channel_id=CHANNEL_ID,
        forwarder=forwarder or FakeForwarder(),  # type: ignore[arg-type]
        url="wss://gateway.test/?v=9&encoding=json",
        reconnect_delay=0,
        connect=connect or FakeConnector(),
    )


class TestHandshake:
    """Tests for hello, identify and heartbeat handling."""

    @pytest.mark.asyncio
    async def test_hello_sends_identify(self) -> None:
        """A hello should trigger exactly one identify frame."""
        client = make_client()
        ws = FakeSocket()

        await client.handle_frame(ws, json.dumps(HELLO))

        assert ws.sent == [
            {
                "op": 2,
                "d": {
                    "token": "secret-token",
                    "intents": 513,
                    "properties": {
                        "$os": "linux",
                        "$browser": "node",
                        "$device": "node",
                    },
                },
            }
        ]
        assert client.state == GatewayState.IDENTIFYING
        client._mark_disconnected()

    @pytest.mark.asyncio
    async def test_heartbeat_sent_on_interval(self) -> None:
        """Heartbeats should be sent every heartbeat_interval milliseconds."""
        client = make_client()
        ws = FakeSocket()

        await client.handle_frame(ws, json.dumps({"op": 10, "d": {"heartbeat_interval": 10}}))
        await asyncio.sleep(0.06)
        client._mark_disconnected()

        heartbeats = [frame for frame in ws.sent if frame["op"] == 1]
        assert len(heartbeats) >= 2
        assert all(frame["d"] is None for frame in heartbeats)

    @pytest.mark.asyncio
    async def test_new_hello_replaces_heartbeat(self) -> None:
        """A second hello should cancel the previous heartbeat timer."""
        client = make_client()
        ws = FakeSocket()

        await client.handle_frame(ws, json.dumps(HELLO))
        first = client._heartbeat_task
        await client.handle_frame(ws, json.dumps(HELLO))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert first is not None and first.cancelled()
        assert client._heartbeat_task is not None and client._heartbeat_task is not first
        client._mark_disconnected()

    @pytest.mark.asyncio
    async def test_first_dispatch_marks_connected(self) -> None:
        """The first dispatch after identify should complete the handshake."""
        client = make_client()
        ws = FakeSocket()

        await client.handle_frame(ws, json.dumps(HELLO))
        await client.handle_frame(ws, json.dumps(READY))

        assert client.state == GatewayState.CONNECTED
        client._mark_disconnected()

    @pytest.mark.asyncio
    async def test_heartbeat_stops_when_socket_closes(self) -> None:
        """A heartbeat on a closed socket should end the timer quietly."""
        client = make_client()
        ws = FakeSocket()

        await client.handle_frame(ws, json.dumps({"op": 10, "d": {"heartbeat_interval": 5}}))
        assert [frame["op"] for frame in ws.sent] == [2]
        ws.closed = True
        task = client._heartbeat_task
        assert task is not None
        await asyncio.wait_for(task, timeout=1)

        assert not task.cancelled()
        assert task.exception() is None
        assert [frame["op"] for frame in ws.sent] == [2]

    @pytest.mark.asyncio
    async def test_malformed_frames_are_ignored(self) -> None:
        """Frames that cannot be decoded should change nothing."""
        client = make_client()
        ws = FakeSocket()

        for raw in ("not json", "[]", '{"op": 10, "d": {}}', '{"op": 11}'):
            await client.handle_frame(ws, raw)

        assert ws.sent == []
        assert client.state == GatewayState.DISCONNECTED
        assert client._heartbeat_task is None


class TestMessageHandling:
    """Tests for MESSAGE_CREATE handling."""

    @pytest.mark.asyncio
    async def test_relevant_message_is_forwarded(
        self, money_embed_message: dict[str, Any]
    ) -> None:
        """A parsed message from the target channel should be forwarded."""
        forwarder = FakeForwarder()
        client = make_client(forwarder)

        frame = {"op": 0, "t": "MESSAGE_CREATE", "d": money_embed_message}
        await client.handle_frame(FakeSocket(), json.dumps(frame))

        assert forwarder.payloads == [
            {
                "id": "1180000000000000001",
                "author": "notifier-bot",
                "serverName": "Farm A",
                "moneyPerSec": 1_200_000,
                "players": "5/8",
                "jobId": "7f1e2a3b-c4d5-6e7f-8901-23456789abcd",
            }
        ]

    @pytest.mark.asyncio
    async def test_other_channels_are_ignored(self) -> None:
        """Messages from other channels should not be forwarded."""
        forwarder = FakeForwarder()
        client = make_client(forwarder)

        frame = message_create(channel_id="999", content="abc-123-def-456")
        await client.handle_frame(FakeSocket(), json.dumps(frame))

        assert forwarder.payloads == []

    @pytest.mark.asyncio
    async def test_irrelevant_chatter_is_dropped(self) -> None:
        """Messages without a server name or job ID should be dropped."""
        forwarder = FakeForwarder()
        client = make_client(forwarder)

        frame = message_create(content="gg everyone")
        await client.handle_frame(FakeSocket(), json.dumps(frame))

        assert forwarder.payloads == []

    @pytest.mark.asyncio
    async def test_plain_text_job_id_is_forwarded_with_defaults(self) -> None:
        """A bare job ID message should be forwarded with empty defaults."""
        forwarder = FakeForwarder()
        client = make_client(forwarder)

        frame = message_create(content="`abc-123-def-456`")
        await client.handle_frame(FakeSocket(), json.dumps(frame))

        assert forwarder.payloads == [
            {
                "id": "111",
                "author": "bot",
                "serverName": "",
                "moneyPerSec": 0,
                "players": "",
                "jobId": "abc-123-def-456",
            }
        ]

    @pytest.mark.asyncio
    async def test_forwarding_failure_is_dropped(self) -> None:
        """A failed delivery should be logged and not raise."""
        client = make_client(FakeForwarder(fail=True))

        frame = message_create(content="abc-123-def-456")
        await client.handle_frame(FakeSocket(), json.dumps(frame))

    @pytest.mark.asyncio
    async def test_non_object_payload_is_ignored(self) -> None:
        """A MESSAGE_CREATE without an object payload should be ignored."""
        forwarder = FakeForwarder()
        client = make_client(forwarder)

        await client.handle_frame(FakeSocket(), json.dumps({"op": 0, "t": "MESSAGE_CREATE"}))

        assert forwarder.payloads == []


class TestBuildRecordPayload:
    """Tests for build_record_payload."""

    def test_missing_author_uses_sentinel(self) -> None:
        """Messages without an author should be attributed to Unknown."""
        payload = build_record_payload({"id": 5}, ParsedMessage(job_id="abc"))

        assert payload["author"] == UNKNOWN_AUTHOR
        assert payload["id"] == "5"

    def test_missing_id_is_omitted(self) -> None:
        """Without a message id the payload should carry no id."""
        payload = build_record_payload({}, ParsedMessage(server_name="Farm"))

        assert "id" not in payload
        assert payload["serverName"] == "Farm"


class TestReconnect:
    """Tests for the reconnect loop."""

    @pytest.mark.asyncio
    async def test_reconnects_after_close_and_errors(self) -> None:
        """The client should keep reconnecting after closes and failures."""
        connector = FakeConnector(
            FakeSocket([HELLO, READY]),
            OSError("network unreachable"),
            FakeSocket([HELLO], close_error=ConnectionClosedError(None, None)),
        )
        client = make_client(connect=connector)

        task = asyncio.create_task(client.run_forever())

        async def wait_for_attempts() -> None:
            while len(connector.attempts) < 4:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(wait_for_attempts(), timeout=2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert connector.attempts[0] == "wss://gateway.test/?v=9&encoding=json"
        assert client.connection_attempts >= 4
        assert client.state == GatewayState.DISCONNECTED
        assert client._heartbeat_task is None

    @pytest.mark.asyncio
    async def test_heartbeat_cancelled_on_disconnect(self) -> None:
        """Closing the connection should cancel its heartbeat timer."""
        ws = FakeSocket([HELLO, READY])
        client = make_client(connect=FakeConnector(ws))

        await client.connect_once()
        heartbeat = client._heartbeat_task
        client._mark_disconnected()
        await asyncio.sleep(0)

        assert heartbeat is not None and heartbeat.cancelled()
        assert client.state == GatewayState.DISCONNECTED
        assert [frame["op"] for frame in ws.sent] == [2]


class TestLargeFrames:
    """Tests for dispatches larger than the WebSocket default frame limit."""

    def test_default_connect_has_no_frame_limit(self) -> None:
        """The default connect factory should accept frames of any size."""
        client = GatewayClient(
            token="t",
            channel_id=CHANNEL_ID,
            forwarder=FakeForwarder(),  # type: ignore[arg-type]
        )

        assert client._connect is default_connect
        assert default_connect.func is websockets.connect  # type: ignore[attr-defined]
        assert default_connect.keywords["max_size"] is None  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_oversized_dispatch_does_not_drop_connection(self) -> None:
        """A 2 MiB dispatch should be read and later messages still forwarded."""
        guild_create = {"op": 0, "t": "GUILD_CREATE", "d": {"members": "x" * (2 * 1024 * 1024)}}

        async def gateway(ws: ServerConnection) -> None:
            await ws.send(json.dumps(HELLO))
            await ws.recv()  # identify
            await ws.send(json.dumps(guild_create))
            await ws.send(json.dumps(message_create(content="abc-123-def-456")))
            await ws.close()

        forwarder = FakeForwarder()
        async with serve(gateway, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = GatewayClient(
                token="secret-token",
                channel_id=CHANNEL_ID,
                forwarder=forwarder,  # type: ignore[arg-type]
                url=f"ws://127.0.0.1:{port}",
            )
            await asyncio.wait_for(client.connect_once(), timeout=10)
            client._mark_disconnected()

        assert client.state == GatewayState.DISCONNECTED
        assert [payload["jobId"] for payload in forwarder.payloads] == ["abc-123-def-456"]
