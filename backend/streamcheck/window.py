"""
Analysis window resolution.

Explicit bounds win over event bounds, event bounds over the configured
event defaults. Batch runs then narrow the window per participant to the
event and to the day they were eliminated.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from shared.errors import InvalidWindowError
from shared.models.domain import AnalysisWindow, TimeWindow
from shared.utils.logging import get_logger

from streamcheck.config import CheckerSettings, get_checker_settings
from streamcheck.timeparse import datetime_to_ms, parse_to_unix_ms

logger = get_logger(__name__)

DAY_MS = 86_400_000


@dataclass
class WindowOptions:
    """Raw window inputs as typed by the user."""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    event_year: Optional[int] = None
    event_start: Optional[str] = None
    event_end: Optional[str] = None
    days: int = 30


def default_event_bounds(year: int, settings: Optional[CheckerSettings] = None) -> tuple[int, int]:
    """Configured event start/end for a year, in epoch ms."""
    settings = settings or get_checker_settings()
    try:
        start = datetime(year, settings.event_start_month, settings.event_start_day, tzinfo=timezone.utc)
        end = datetime(
            year,
            settings.event_end_month,
            settings.event_end_day,
            settings.event_end_hour,
            settings.event_end_minute,
            tzinfo=timezone.utc,
        )
    except (ValueError, OverflowError) as exc:
        raise InvalidWindowError(f"no event bounds for year {year}: {exc}") from exc
    return datetime_to_ms(start), datetime_to_ms(end)


def resolve_window(
    options: WindowOptions,
    now: Optional[datetime] = None,
    settings: Optional[CheckerSettings] = None,
) -> AnalysisWindow:
    """
    Resolve the authoritative analysis window.

    Raises:
        TimeFormatError: If any explicit bound cannot be parsed.
        InvalidWindowError: If the resolved start is not before the end, or
            the event year is outside the calendar range.
    """
    utc_now = now or datetime.now(timezone.utc)
    year = options.event_year or utc_now.year
    default_start, default_end = default_event_bounds(year, settings)

    explicit_event_start = parse_to_unix_ms(options.event_start)
    explicit_event_end = parse_to_unix_ms(options.event_end)
    event_start = explicit_event_start if explicit_event_start is not None else default_start
    event_end: Optional[int] = explicit_event_end if explicit_event_end is not None else default_end

    explicit_start = parse_to_unix_ms(options.start_time)
    explicit_end = parse_to_unix_ms(options.end_time)
    start = explicit_start if explicit_start is not None else event_start
    if explicit_end is not None:
        end = explicit_end
    elif event_end is not None:
        end = event_end
    else:
        end = start + options.days * DAY_MS

    if start >= end:
        raise InvalidWindowError(f"start must be before end ({start} >= {end})")

    resolved = AnalysisWindow(
        window=TimeWindow(start_ms=start, end_ms=end),
        event_start_ms=event_start,
        event_end_ms=event_end,
        year=year,
    )
    logger.debug("window_resolved", start_ms=start, end_ms=end, event_start_ms=event_start, event_end_ms=event_end)
    return resolved


def elimination_cutoff_ms(event_start_ms: int, day_eliminated: int) -> int:
    """Last millisecond of event day ``day_eliminated`` (1-indexed)."""
    return event_start_ms + day_eliminated * DAY_MS - 1


def narrow_for_participant(
    analysis: AnalysisWindow,
    day_eliminated: Optional[int] = None,
) -> Optional[TimeWindow]:
    """
    Clamp the query window to the event and to an elimination day.

    Returns None when nothing is left to analyse; callers treat that as a
    skip, not an error.
    """
    start = max(analysis.window.start_ms, analysis.event_start_ms)
    end = analysis.window.end_ms
    if analysis.event_end_ms is not None:
        end = min(end, analysis.event_end_ms)
    if day_eliminated is not None and day_eliminated > 0:
        end = min(end, elimination_cutoff_ms(analysis.event_start_ms, day_eliminated))
    if end <= start:
        return None
    return TimeWindow(start_ms=start, end_ms=end)
