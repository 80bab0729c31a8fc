"""Long-lived collector connection to the real-time chat gateway.

The client keeps one WebSocket connection open indefinitely. After the
server's hello it identifies and heartbeats; every message created in the
target channel is parsed and, if it names a server or a job, forwarded to
the ingest endpoint. Any disconnect or error is followed by a fixed delay and
a fresh connection, forever.

State machine::

    DISCONNECTED -> CONNECTING -> AWAITING_HELLO -> IDENTIFYING -> CONNECTED
          ^                                                            |
          +----------------- close / error (any state) ----------------+
"""

import asyncio
import functools
from collections.abc import Callable
from enum import Enum
from typing import Any, AsyncContextManager, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from serverwatch.gateway.errors import ForwardingError, FrameDecodeError
from serverwatch.gateway.forwarder import IngestForwarder
from serverwatch.gateway.protocol import (
    DEFAULT_GATEWAY_URL,
    EVENT_MESSAGE_CREATE,
    OP_HELLO,
    GatewayFrame,
    decode_frame,
    heartbeat_frame,
    identify_frame,
)
from serverwatch.observability.logging import get_logger
from serverwatch.observability.metrics import get_metrics_collector
from serverwatch.parsing.message import parse_message
from serverwatch.parsing.models import ParsedMessage

logger = get_logger(__name__)

UNKNOWN_AUTHOR = "Unknown"

ConnectFactory = Callable[[str], AsyncContextManager[Any]]

# Dispatches such as GUILD_CREATE for a large guild exceed the 1 MiB default frame limit.
default_connect: ConnectFactory = functools.partial(websockets.connect, max_size=None)


class GatewayState(str, Enum):
    """Connection lifecycle states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_HELLO = "awaiting_hello"
    IDENTIFYING = "identifying"
    CONNECTED = "connected"


def build_record_payload(message: dict[str, Any], parsed: ParsedMessage) -> dict[str, Any]:
    """Build the ingest payload for a relevant channel message.

    Args:
        message: MESSAGE_CREATE payload
        parsed: Fields extracted from it

    Returns:
        Record payload with camelCase field names and empty defaults
    """
    author = message.get("author")
    username = author.get("username") if isinstance(author, dict) else None

    payload: dict[str, Any] = {
        "author": username or UNKNOWN_AUTHOR,
        "serverName": parsed.server_name or "",
        "moneyPerSec": parsed.money_per_sec or 0,
        "players": parsed.players or "",
        "jobId": parsed.job_id or "",
    }
    message_id = message.get("id")
    if message_id is not None:
        payload["id"] = str(message_id)
    return payload


class GatewayClient:
    """Self-healing gateway connection that forwards parsed channel messages.

    Attributes:
        state: Current GatewayState
        connection_attempts: Number of connections opened or attempted

    Example:
        >>> forwarder = IngestForwarder("http://127.0.0.1:5000/receive")
        >>> client = GatewayClient(token="...", channel_id="123", forwarder=forwarder)
        >>> task = asyncio.create_task(client.run_forever())
    """

    def __init__(
        self,
        token: str,
        channel_id: str,
        forwarder: IngestForwarder,
        url: str = DEFAULT_GATEWAY_URL,
        reconnect_delay: float = 5.0,
        connect: Optional[ConnectFactory] = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Gateway authentication token
            channel_id: Only messages created in this channel are collected
            forwarder: Delivers record payloads to the ingest endpoint
            url: Gateway WebSocket URL
            reconnect_delay: Seconds to wait after a disconnect before reconnecting
            connect: Factory returning an async context manager that yields an
                open socket (default: websockets.connect without a frame size limit)
        """
        self.token = token
        self.channel_id = channel_id
        self.forwarder = forwarder
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._connect: ConnectFactory = connect or default_connect
        self.state = GatewayState.DISCONNECTED
        self.connection_attempts = 0
        self._heartbeat_task: Optional[asyncio.Task[None]] = None

    async def run_forever(self) -> None:
        """Connect, and reconnect after every disconnect, until cancelled."""
        logger.info("collector_started", url=self.url, channel_id=self.channel_id)
        while True:
            try:
                await self.connect_once()
                logger.info("gateway_disconnected", reconnect_in=self.reconnect_delay)
            except (WebSocketException, OSError) as e:
                logger.error(
                    "gateway_connection_error",
                    error=str(e) or type(e).__name__,
                    reconnect_in=self.reconnect_delay,
                )
            except Exception:
                logger.exception("gateway_unexpected_error", reconnect_in=self.reconnect_delay)
            finally:
                self._mark_disconnected()
            await asyncio.sleep(self.reconnect_delay)

    async def connect_once(self) -> None:
        """Run a single connection until the server or network closes it.

        Raises:
            WebSocketException: On handshake failures or abnormal closure
            OSError: On network failures
        """
        self.state = GatewayState.CONNECTING
        self.connection_attempts += 1
        get_metrics_collector().record_connection_attempt()

        async with self._connect(self.url) as ws:
            self.state = GatewayState.AWAITING_HELLO
            logger.info("gateway_connected", url=self.url, attempt=self.connection_attempts)
            async for raw in ws:
                await self.handle_frame(ws, raw)

    async def handle_frame(self, ws: Any, raw: Union[str, bytes]) -> None:
        """Process one inbound frame.

        Malformed or unrecognized frames are ignored.

        Args:
            ws: Socket the frame arrived on, used for replies
            raw: Frame text
        """
        try:
            frame = decode_frame(raw)
        except FrameDecodeError as e:
            logger.debug("frame_ignored", reason=e.message)
            return

        if frame.op == OP_HELLO:
            await self._handle_hello(ws, frame)
            return

        if frame.t is None:
            return

        if self.state == GatewayState.IDENTIFYING:
            self.state = GatewayState.CONNECTED
            logger.info("gateway_ready", first_event=frame.t)

        if frame.t == EVENT_MESSAGE_CREATE:
            await self._handle_message(frame.d)

    async def _handle_hello(self, ws: Any, frame: GatewayFrame) -> None:
        interval_ms = frame.heartbeat_interval_ms
        if interval_ms is None:
            logger.debug("frame_ignored", reason="hello without heartbeat_interval")
            return

        self._cancel_heartbeat()
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(ws, interval_ms / 1000))
        self.state = GatewayState.IDENTIFYING
        await ws.send(identify_frame(self.token))
        logger.info("gateway_identify_sent", heartbeat_interval_ms=interval_ms)

    async def _heartbeat_loop(self, ws: Any, interval_seconds: float) -> None:
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                await ws.send(heartbeat_frame())
        except ConnectionClosed:
            logger.debug("heartbeat_stopped", reason="connection closed")

    async def _handle_message(self, data: Any) -> None:
        if not isinstance(data, dict):
            return
        channel_id = data.get("channel_id")
        if channel_id is None or str(channel_id) != self.channel_id:
            return

        metrics = get_metrics_collector()
        parsed = parse_message(data)
        if not parsed.is_relevant:
            metrics.record_gateway_event("ignored")
            logger.debug("message_ignored", message_id=data.get("id"))
            return

        payload = build_record_payload(data, parsed)
        try:
            await self.forwarder.forward(payload)
        except ForwardingError as e:
            metrics.record_gateway_event("failed")
            logger.error("forward_failed", error=e.message, message_id=payload.get("id"))
            return

        metrics.record_gateway_event("forwarded")
        logger.info("record_forwarded", **payload)

    def _cancel_heartbeat(self) -> None:
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        self._heartbeat_task = None

    def _mark_disconnected(self) -> None:
        self._cancel_heartbeat()
        self.state = GatewayState.DISCONNECTED
