"""Domain enumerations for the stream checker."""
from __future__ import annotations

from enum import Enum


class RoutingRegion(str, Enum):
    """Regional hosts of the match backend (``{value}.api.riotgames.com``)."""
    ASIA = "asia"
    EUROPE = "europe"
    SEA = "sea"
    AMERICAS = "americas"

    @property
    def host(self) -> str:
        return f"{self.value}.api.riotgames.com"


class Verdict(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"


class Placement(str, Enum):
    """Where a match fell relative to broadcast coverage."""
    ON_STREAM = "on_stream"
    OFF_STREAM = "off_stream"
