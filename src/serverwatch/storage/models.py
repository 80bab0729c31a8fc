"""Record models for the in-memory server index.

Records are exchanged over HTTP with camelCase names (``serverName``,
``moneyPerSec``, ...) and used in Python with snake_case attributes.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Stored knowledge about one observed game server.

    Attributes:
        key: Deduplication identity ("job:<jobId>" or "msg:<id>"), not serialized
        server_name: Display label
        money_per_sec: Earnings rate, 0 when unknown
        players: Free-text player count
        author: Display name of the posting account
        job_id: Session/instance identifier
        first_seen: Epoch seconds of the first observation
        last_seen: Epoch seconds of the latest observation
        id: Source message identifier
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str = Field(exclude=True)
    server_name: str = ""
    money_per_sec: int = 0
    players: str = ""
    author: str = ""
    job_id: str = ""
    first_seen: float
    last_seen: float
    id: str = ""

    def is_fresh(self, now: float, expiry_seconds: float) -> bool:
        """Whether the record was observed within the expiry window."""
        return now - self.last_seen <= expiry_seconds


class RecordUpdate(BaseModel):
    """Partial record as received from a publisher.

    Every attribute is optional; ``None`` means "not supplied" and leaves the
    stored value untouched when merged. Numbers and strings are coerced
    loosely since publishers are not consistent about JSON types.

    Example:
        >>> RecordUpdate.model_validate({"jobId": "abc", "moneyPerSec": "1500"}).money_per_sec
        1500
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    server_name: Optional[str] = None
    money_per_sec: Optional[int] = None
    players: Optional[str] = None
    author: Optional[str] = None
    job_id: Optional[str] = None
    id: Optional[str] = None

    @field_validator("server_name", "players", "author", "job_id", "id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        """Accept numeric identifiers and labels as strings."""
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("money_per_sec", mode="before")
    @classmethod
    def coerce_rate(cls, value: Any) -> Any:
        """Floor fractional and numeric-string rates, clamping at zero.

        Raises:
            ValueError: If the value is not a number
        """
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError as e:
                raise ValueError(f"moneyPerSec must be numeric, got {value!r}") from e
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                raise ValueError("moneyPerSec must be finite")
            return max(0, math.floor(value))
        return value

    def supplied_fields(self) -> dict[str, Any]:
        """Return the attributes the publisher actually supplied."""
        return self.model_dump(exclude_none=True)
