"""Heuristic extraction of server telemetry from chat messages.

Bots in the watched channel post the same facts in many shapes: embed fields
with emoji-decorated labels, a bare job ID in the message body, or a
``TeleportToPlaceInstance(...)`` snippet in an embed description. The parser
tries each shape in a fixed order and falls back to empty values, so it never
raises on odd input.
"""

import re
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from serverwatch.observability.logging import get_logger
from serverwatch.parsing.models import ChatMessage, Embed, EmbedField, ParsedMessage
from serverwatch.parsing.money import parse_money_per_sec

logger = get_logger(__name__)

# Field label classifiers, checked in this order; the first match wins.
_NAME_LABEL = re.compile(r"name", re.IGNORECASE)
_MONEY_LABEL = re.compile(r"money|per sec|💰|generation|📈", re.IGNORECASE)
_PLAYERS_LABEL = re.compile(r"players|👥", re.IGNORECASE)
_JOB_LABEL = re.compile(r"job", re.IGNORECASE)

_TELEPORT_CALL = re.compile(r"TeleportToPlaceInstance\([^)]+,\s*[\"'`]?(?P<id>[^\"'`,)\s]+)")
_UUID_LIKE = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F-]{4,}-[0-9a-fA-F]{8,}")

MIN_CONTENT_JOB_ID_LENGTH = 10
MIN_JOB_TOKEN_LENGTH = 9


def _coerce_message(message: Union[ChatMessage, Mapping[str, Any], None]) -> ChatMessage:
    if isinstance(message, ChatMessage):
        return message
    if not isinstance(message, Mapping):
        return ChatMessage()
    try:
        return ChatMessage.model_validate(dict(message))
    except ValidationError as e:
        logger.debug("message_validation_failed", error=str(e))
        return ChatMessage()


def job_id_from_content(content: str) -> Optional[str]:
    """Treat a long message body containing ``-`` or ``/`` as a job ID.

    Args:
        content: Plain text message body

    Returns:
        The body with backticks removed, or None if it does not qualify
    """
    candidate = content.replace("`", "").strip()
    if len(candidate) >= MIN_CONTENT_JOB_ID_LENGTH and ("-" in candidate or "/" in candidate):
        return candidate
    return None


def job_id_from_field(value: str) -> Optional[str]:
    """Pick the identifier out of a job field value.

    Long whitespace-delimited tokens are more likely to be opaque identifiers
    than labels, so the first token longer than 8 characters is preferred.

    Examples:
        >>> job_id_from_field("Job `a1b2c3d4-e5f6` (copy)")
        'a1b2c3d4-e5f6'
        >>> job_id_from_field("short id")
        'short id'
    """
    clean = value.replace("`", "").strip()
    if not clean:
        return None
    for part in clean.split():
        if len(part) >= MIN_JOB_TOKEN_LENGTH:
            return part
    return clean


def job_id_from_description(description: str) -> Optional[str]:
    """Search an embed description for a job identifier.

    The teleport-call argument is captured first, but a UUID-like match
    anywhere in the description replaces it when present.
    """
    job_id = None
    call = _TELEPORT_CALL.search(description)
    if call:
        job_id = call.group("id")
    uuid_like = _UUID_LIKE.search(description)
    if uuid_like:
        job_id = uuid_like.group(0)
    return job_id


def _apply_field(result: ParsedMessage, field: EmbedField) -> None:
    name = field.name.strip()
    value = field.value.strip()

    if _NAME_LABEL.search(name):
        result.server_name = value
    elif _MONEY_LABEL.search(name):
        result.money_per_sec = parse_money_per_sec(value)
    elif _PLAYERS_LABEL.search(name):
        result.players = value.replace("*", "")
    elif _JOB_LABEL.search(name):
        job_id = job_id_from_field(value)
        if job_id:
            result.job_id = job_id


def _apply_embed(result: ParsedMessage, embed: Embed) -> None:
    for field in embed.fields:
        _apply_field(result, field)

    if not result.server_name and embed.title:
        result.server_name = embed.title
    if not result.job_id and embed.description:
        job_id = job_id_from_description(embed.description)
        if job_id:
            result.job_id = job_id


def parse_message(message: Union[ChatMessage, Mapping[str, Any], None]) -> ParsedMessage:
    """Extract server name, earnings rate, players and job ID from a message.

    The message body is checked for a bare job ID first. Embeds are then
    processed in order; their fields overwrite earlier values, and each
    embed's title and description fill in whatever is still missing.

    Args:
        message: Raw gateway message payload or a ChatMessage

    Returns:
        ParsedMessage with every unmatched attribute left at its default

    Example:
        >>> parsed = parse_message({
        ...     "embeds": [{"fields": [{"name": "💰 Money / Sec", "value": "*1.2M*/s"}]}]
        ... })
        >>> parsed.money_per_sec
        1200000
    """
    chat_message = _coerce_message(message)
    result = ParsedMessage()

    if chat_message.content.strip():
        result.job_id = job_id_from_content(chat_message.content)

    for embed in chat_message.embeds:
        _apply_embed(result, embed)

    return result
