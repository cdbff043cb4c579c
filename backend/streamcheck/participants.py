"""
Participant list ingestion.
Accepts a JSON array of participants or an object wrapping them in ``participants``.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from shared.errors import InputFormatError

_TWITCH_LINK = re.compile(r"twitch\.tv/(?:#!/)?([A-Za-z0-9_]+)", re.IGNORECASE)


def _fold(key: str) -> str:
    return key.replace("_", "").lower()


class _CaseInsensitiveModel(BaseModel):
    """Accepts ``Name``, ``name`` or ``day_eliminated``/``DayEliminated`` alike."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _fold_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        by_fold = {_fold(name): name for name in cls.model_fields}
        return {by_fold.get(_fold(str(k)), k): v for k, v in data.items()}


class Social(_CaseInsensitiveModel):
    link_uri: Optional[str] = None


class Participant(_CaseInsensitiveModel):
    name: Optional[str] = None
    rank: Optional[float] = None
    socials: list[Social] = Field(default_factory=list)
    rank_url: Optional[str] = None
    eliminated: Optional[bool] = None
    day_eliminated: Optional[int] = None

    @property
    def twitch_login(self) -> Optional[str]:
        """Login from the first twitch.tv social link, lower-cased."""
        for social in self.socials:
            match = _TWITCH_LINK.search(social.link_uri or "")
            if match:
                return match.group(1).lower()
        return None

    @property
    def elimination_day(self) -> Optional[int]:
        """Elimination day when the participant is out, else None."""
        if self.day_eliminated and self.day_eliminated > 0 and self.eliminated is not False:
            return self.day_eliminated
        return None


class _Envelope(_CaseInsensitiveModel):
    participants: Optional[list[Optional[Participant]]] = None


def parse_participants(text: str) -> list[Participant]:
    """
    Parse participant JSON.

    Raises:
        InputFormatError: If the text is empty, not JSON, or neither shape.
    """
    if not text or not text.strip():
        raise InputFormatError("input is empty")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InputFormatError("input is not valid JSON") from exc

    try:
        if isinstance(payload, list):
            return [Participant.model_validate(p) for p in payload if p is not None]
        if isinstance(payload, dict):
            envelope = _Envelope.model_validate(payload)
            if envelope.participants is not None:
                return [p for p in envelope.participants if p is not None]
    except ValidationError as exc:
        raise InputFormatError(f"participant entry is malformed: {exc.error_count()} error(s)") from exc

    raise InputFormatError("input must be array or object with participants[]")
