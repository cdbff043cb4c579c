"""Match detail normalization."""
from __future__ import annotations

from typing import Optional

from shared.models.domain import MatchDetail, MatchRecord

from streamcheck.timeparse import normalize_epoch


def to_match_record(match_id: str, detail: Optional[MatchDetail]) -> Optional[MatchRecord]:
    """
    Turn a raw match detail into a MatchRecord.

    The first start field present wins (gameCreation, gameDatetime,
    gameStartTimestamp, gameStartTime). Returns None when the payload has no
    info block or no start time at all.
    """
    info = detail.info if detail else None
    if info is None:
        return None

    start_raw = next(
        (
            v
            for v in (info.game_creation, info.game_datetime, info.game_start_timestamp, info.game_start_time)
            if v is not None
        ),
        None,
    )
    if start_raw is None:
        return None

    start_ms = normalize_epoch(start_raw)
    duration_s = info.game_length if info.game_length is not None else (info.game_duration or 0)
    return MatchRecord(
        match_id=match_id,
        start_ms=start_ms,
        end_ms=start_ms + int(duration_s * 1000),
        queue_id=info.queue_id,
        set_number=info.tft_set_number,
        game_type=info.tft_game_type,
    )
