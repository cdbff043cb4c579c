"""Time literal parsing and epoch normalization."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from shared.errors import TimeFormatError

# Values below this are epoch seconds, at or above it epoch milliseconds.
EPOCH_MS_THRESHOLD = 1_000_000_000_000

_INTEGER = re.compile(r"^[+-]?\d+$")


def normalize_epoch(value: int) -> int:
    """Scale epoch seconds to milliseconds; leave milliseconds alone."""
    if abs(value) < EPOCH_MS_THRESHOLD:
        return value * 1000
    return value


def datetime_to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def parse_iso_to_ms(text: str) -> int:
    """
    Parse an ISO-8601 timestamp to epoch milliseconds, assuming UTC when no
    offset is given. Raises TimeFormatError when unparseable.
    """
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise TimeFormatError(f"could not parse time: {text}") from exc
    return datetime_to_ms(parsed)


def parse_to_unix_ms(value: Optional[str]) -> Optional[int]:
    """
    Parse a user supplied time bound.

    Blank input yields None. An integer is an epoch in seconds or
    milliseconds; anything else must be an ISO-8601 timestamp.
    """
    if value is None or not value.strip():
        return None
    trimmed = value.strip()
    if _INTEGER.match(trimmed):
        return normalize_epoch(int(trimmed))
    return parse_iso_to_ms(trimmed)
