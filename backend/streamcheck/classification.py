"""
Interval-overlap classification.
A match is on stream when its start instant falls inside any buffered broadcast.
"""
from __future__ import annotations

from typing import Iterable

from shared.models.domain import BroadcastInterval, ClassificationResult, MatchRecord
from shared.models.enums import Placement
from shared.utils.metrics import MATCHES_CLASSIFIED

HOUR_MS = 3_600_000


def buffer_ms(buffer_hours: float) -> float:
    return buffer_hours * HOUR_MS if buffer_hours > 0 else 0


def is_on_stream(match: MatchRecord, intervals: Iterable[BroadcastInterval], buffer: float = 0) -> bool:
    return any(
        iv.start_ms - buffer <= match.start_ms <= iv.end_ms + buffer
        for iv in intervals
    )


def classify(
    matches: Iterable[MatchRecord],
    intervals: Iterable[BroadcastInterval],
    buffer_hours: float,
    threshold: float,
) -> ClassificationResult:
    """Count on/off-stream matches and decide pass/fail against ``threshold``."""
    buffer = buffer_ms(buffer_hours)
    interval_list = list(intervals)

    on_stream = 0
    off_stream = 0
    unknown = 0

    for match in matches:
        if is_on_stream(match, interval_list, buffer):
            on_stream += 1
        else:
            off_stream += 1

    MATCHES_CLASSIFIED.labels(placement=Placement.ON_STREAM.value).inc(on_stream)
    MATCHES_CLASSIFIED.labels(placement=Placement.OFF_STREAM.value).inc(off_stream)

    total = on_stream + off_stream + unknown
    known = total - unknown
    pct_known = on_stream / known if known > 0 else 0.0
    pct_total = on_stream / total if total > 0 else 0.0

    return ClassificationResult(
        total=total,
        on_stream=on_stream,
        off_stream=off_stream,
        unknown=unknown,
        pct_known=pct_known,
        pct_total=pct_total,
        passed=pct_known >= threshold,
    )
