"""Wire format of the real-time chat gateway.

Frames are JSON objects ``{"op": int, "t": str | null, "d": any}``. Only the
opcodes and event names the collector uses are defined here.
"""

import json
from typing import Any, Optional, Union

from pydantic import BaseModel

from serverwatch.gateway.errors import FrameDecodeError

DEFAULT_GATEWAY_URL = "wss://gateway.discord.gg/?v=9&encoding=json"

OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_HELLO = 10

# GUILDS (1 << 0) | GUILD_MESSAGES (1 << 9)
IDENTIFY_INTENTS = 513

EVENT_READY = "READY"
EVENT_MESSAGE_CREATE = "MESSAGE_CREATE"

CLIENT_PROPERTIES = {
    "$os": "linux",
    "$browser": "node",
    "$device": "node",
}


class GatewayFrame(BaseModel):
    """One decoded gateway frame.

    Attributes:
        op: Opcode
        t: Dispatch event name, only set for op 0
        d: Payload
    """

    op: Optional[int] = None
    t: Optional[str] = None
    d: Any = None

    @property
    def heartbeat_interval_ms(self) -> Optional[float]:
        """Heartbeat interval carried by a hello frame, if valid."""
        if self.op != OP_HELLO or not isinstance(self.d, dict):
            return None
        interval = self.d.get("heartbeat_interval")
        if isinstance(interval, bool) or not isinstance(interval, (int, float)):
            return None
        return float(interval) if interval > 0 else None


def decode_frame(raw: Union[str, bytes]) -> GatewayFrame:
    """Decode a raw text frame.

    Args:
        raw: Frame as received from the socket

    Returns:
        Decoded GatewayFrame

    Raises:
        FrameDecodeError: If the frame is not a JSON object with valid fields
    """
    try:
        payload = json.loads(raw)
    except (ValueError, TypeError) as e:
        raise FrameDecodeError(f"invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise FrameDecodeError(f"expected a JSON object, got {type(payload).__name__}")

    op = payload.get("op")
    t = payload.get("t")
    if op is not None and (isinstance(op, bool) or not isinstance(op, int)):
        raise FrameDecodeError(f"invalid opcode {op!r}")
    if t is not None and not isinstance(t, str):
        raise FrameDecodeError(f"invalid event name {t!r}")

    return GatewayFrame(op=op, t=t, d=payload.get("d"))


def heartbeat_frame() -> str:
    """Encode a heartbeat frame."""
    return json.dumps({"op": OP_HEARTBEAT, "d": None})


def identify_frame(token: str) -> str:
    """Encode an identify frame.

    Args:
        token: Gateway authentication token

    Returns:
        JSON text ready to send
    """
    return json.dumps(
        {
            "op": OP_IDENTIFY,
            "d": {
                "token": token,
                "intents": IDENTIFY_INTENTS,
                "properties": dict(CLIENT_PROPERTIES),
            },
        }
    )
