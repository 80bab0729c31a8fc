"""Best-effort extraction of server telemetry from chat messages."""

from serverwatch.parsing.message import parse_message
from serverwatch.parsing.models import ChatMessage, Embed, EmbedField, ParsedMessage
from serverwatch.parsing.money import parse_money_per_sec

__all__ = [
    "ChatMessage",
    "Embed",
    "EmbedField",
    "ParsedMessage",
    "parse_message",
    "parse_money_per_sec",
]
