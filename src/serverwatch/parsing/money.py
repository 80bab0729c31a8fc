"""Earnings-rate parsing for values like ``$1.5K/s`` or ``**500**``."""

import math
import re
from typing import Optional

_RATE_PATTERN = re.compile(r"\$?([0-9]+(?:\.[0-9]+)?)([KkMmBbTtQq]?)")
_NUMBER_PATTERN = re.compile(r"([0-9]+(?:\.[0-9]+)?)")
_WHITESPACE = re.compile(r"\s+")

MULTIPLIERS: dict[str, float] = {
    "": 1,
    "K": 1e3,
    "M": 1e6,
    "B": 1e9,
    "T": 1e12,
    "Q": 1e15,
}


def _clean(raw: str) -> str:
    cleaned = _WHITESPACE.sub("", raw.replace("*", ""))
    # Only the first occurrence of each unit marker is removed.
    return cleaned.replace("/s", "", 1).replace("persec", "", 1)


def parse_money_per_sec(raw: Optional[str]) -> int:
    """Parse an earnings rate into a whole number per second.

    Emphasis markers and whitespace are stripped along with a ``/s`` or
    ``per sec`` unit. The first number found, with an optional currency sign
    and a case-insensitive K/M/B/T/Q magnitude suffix, is scaled and floored.

    Args:
        raw: Field value as posted in the channel

    Returns:
        Non-negative integer rate, 0 if nothing numeric was found

    Examples:
        >>> parse_money_per_sec("$1.5K/s")
        1500
        >>> parse_money_per_sec("no numbers here")
        0
    """
    if not raw:
        return 0

    cleaned = _clean(raw)

    match = _RATE_PATTERN.search(cleaned)
    if not match:
        bare = _NUMBER_PATTERN.search(cleaned)
        if not bare:
            return 0
        value = float(bare.group(1))
        return int(value) if math.isfinite(value) else 0

    number = float(match.group(1))
    multiplier = MULTIPLIERS.get(match.group(2).upper(), 1)
    scaled = number * multiplier
    if not math.isfinite(scaled):
        return 0
    return max(0, math.floor(scaled))
