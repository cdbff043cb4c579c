"""
Pydantic v2 domain models for the stream checker.
Internal representations plus the wire DTOs of both backends.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from shared.errors import InvalidWindowError
from shared.models.enums import RoutingRegion


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class FrozenModel(DomainModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)


class WireModel(BaseModel):
    """Backend payloads: unknown fields ignored, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Time ────────────────────────────────────────────────────────────────
class TimeWindow(FrozenModel):
    """Millisecond-epoch interval; start strictly before end."""
    start_ms: int
    end_ms: int

    @model_validator(mode="before")
    @classmethod
    def _check_order(cls, data: Any) -> Any:
        # Raised before pydantic wraps it so callers see InvalidWindowError.
        if isinstance(data, dict):
            start = data.get("start_ms", data.get("startMs"))
            end = data.get("end_ms", data.get("endMs"))
            if isinstance(start, int) and isinstance(end, int) and start >= end:
                raise InvalidWindowError(f"start must be before end ({start} >= {end})")
        return data

    @property
    def start(self) -> datetime:
        return datetime.fromtimestamp(self.start_ms / 1000, tz=timezone.utc)

    @property
    def end(self) -> datetime:
        return datetime.fromtimestamp(self.end_ms / 1000, tz=timezone.utc)


class AnalysisWindow(FrozenModel):
    """Query window plus the event's own bounds."""
    window: TimeWindow
    event_start_ms: int
    event_end_ms: Optional[int] = None
    year: int


# ── Identities ──────────────────────────────────────────────────────────
class AccountIdentity(FrozenModel):
    game_name: str
    tag_line: str
    routing: RoutingRegion

    @property
    def riot_id(self) -> str:
        return f"{self.game_name}#{self.tag_line}"


# ── Analysis records ────────────────────────────────────────────────────
class MatchRecord(DomainModel):
    match_id: str
    start_ms: int
    end_ms: int
    queue_id: Optional[int] = None
    set_number: Optional[int] = None
    game_type: Optional[str] = None


class BroadcastInterval(FrozenModel):
    id: str = ""
    start_ms: int
    end_ms: int


class ClassificationResult(DomainModel):
    """
    On/off-stream tallies for one participant.

    ``unknown`` is part of the report layout but no classification path
    produces it; every match is either on or off stream.
    """
    total: int = 0
    on_stream: int = 0
    off_stream: int = 0
    unknown: int = 0
    pct_known: float = 0.0
    pct_total: float = 0.0
    passed: bool = False


# ── Match backend DTOs ─────────────────────────────────────────────────
class RiotAccount(WireModel):
    puuid: str = ""
    game_name: Optional[str] = None
    tag_line: Optional[str] = None


class MatchInfo(WireModel):
    game_creation: Optional[int] = None
    game_datetime: Optional[int] = None
    game_start_timestamp: Optional[int] = None
    game_start_time: Optional[int] = None
    game_length: Optional[float] = None
    game_duration: Optional[float] = None
    queue_id: Optional[int] = None
    tft_set_number: Optional[int] = None
    tft_game_type: Optional[str] = None


class MatchDetail(WireModel):
    info: Optional[MatchInfo] = None


# ── Stream backend DTOs ────────────────────────────────────────────────
class TwitchToken(BaseModel):
    model_config = ConfigDict(extra="ignore")
    access_token: str = ""
    expires_in: int = 0


class TwitchUser(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = ""
    login: str = ""
    display_name: str = ""


class TwitchUsersEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")
    data: list[TwitchUser] = Field(default_factory=list)


class TwitchVideo(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: Optional[str] = None
    created_at: str = ""
    duration: str = ""


class TwitchPagination(BaseModel):
    model_config = ConfigDict(extra="ignore")
    cursor: Optional[str] = None


class TwitchVideosPage(BaseModel):
    model_config = ConfigDict(extra="ignore")
    data: list[TwitchVideo] = Field(default_factory=list)
    pagination: Optional[TwitchPagination] = None
