"""Pydantic models for inbound chat messages and parser output.

The inbound models mirror the subset of a gateway ``MESSAGE_CREATE`` payload
the parser reads. They are deliberately lenient: missing or null values
become empty strings and lists, so a partially formed message still parses.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return ""


class EmbedField(BaseModel):
    """One name/value pair of an embed.

    Attributes:
        name: Field label, e.g. "💰 Money / Sec"
        value: Field content, e.g. "*1.2M*/s"
    """

    name: str = ""
    value: str = ""

    @field_validator("name", "value", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        """Coerce null and scalar values to strings."""
        return _as_text(value)


class Embed(BaseModel):
    """Rich embed attached to a chat message.

    Attributes:
        title: Embed title, used as a server name fallback
        description: Free text, searched for job identifiers
        fields: Name/value pairs
    """

    title: str = ""
    description: str = ""
    fields: list[EmbedField] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        """Coerce null and scalar values to strings."""
        return _as_text(value)

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_fields(cls, value: Any) -> list[Any]:
        """Keep only objects and models; drop anything else."""
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, EmbedField))]


class ChatMessage(BaseModel):
    """The parts of a chat message relevant to extraction.

    Attributes:
        content: Plain text body
        embeds: Attached embeds, in message order
    """

    content: str = ""
    embeds: list[Embed] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, value: Any) -> str:
        """Coerce null and scalar values to strings."""
        return _as_text(value)

    @field_validator("embeds", mode="before")
    @classmethod
    def coerce_embeds(cls, value: Any) -> list[Any]:
        """Keep only objects and models; drop anything else."""
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, Embed))]


class ParsedMessage(BaseModel):
    """Structured facts extracted from one chat message.

    Attributes:
        server_name: Display name of the game server, if found
        money_per_sec: Earnings rate, 0 when unknown
        players: Player count descriptor, if found
        job_id: Session/instance identifier, if found
    """

    server_name: Optional[str] = None
    money_per_sec: int = Field(default=0, ge=0)
    players: Optional[str] = None
    job_id: Optional[str] = None

    @property
    def is_relevant(self) -> bool:
        """A message is worth storing if it names a server or a job."""
        return bool(self.job_id or self.server_name)
