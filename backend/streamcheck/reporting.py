"""
Report rendering: CSV rows appended per participant and a console summary.
"""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Optional

from shared.models.enums import Verdict

from streamcheck.engine import PlayerOutcome

CSV_HEADER = (
    "Name",
    "GameName",
    "TagLine",
    "Twitch",
    "Total",
    "OnStream",
    "OffStream",
    "Unknown",
    "PctTotal",
    "Result",
)


def format_percent(value: float) -> str:
    return f"{value * 100:.2f}%"


def result_label(outcome: PlayerOutcome) -> str:
    if outcome.verdict == Verdict.SKIP:
        return f"SKIP: {outcome.skip_reason}" if outcome.skip_reason else "SKIP"
    return outcome.verdict.value


def csv_row(outcome: PlayerOutcome) -> list[str]:
    stats = outcome.result
    identity = outcome.identity
    return [
        outcome.name,
        identity.game_name if identity else "",
        identity.tag_line if identity else "",
        outcome.twitch_login or "",
        str(stats.total),
        str(stats.on_stream),
        str(stats.off_stream),
        str(stats.unknown),
        format_percent(stats.pct_total),
        result_label(outcome),
    ]


def append_csv(path: Optional[str | Path], outcome: PlayerOutcome) -> None:
    """Append one row, writing the header first when the file is new."""
    if not path:
        return
    target = Path(path).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    needs_header = not target.exists()
    with target.open("a", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh, lineterminator="\n")
        if needs_header:
            writer.writerow(CSV_HEADER)
        writer.writerow(csv_row(outcome))


def format_summary(outcome: PlayerOutcome, threshold: float) -> str:
    """Human readable block for one participant."""
    identity = outcome.identity
    riot_id = identity.riot_id if identity else "?"
    lines = [f"=== {outcome.name or riot_id} ({riot_id}) twitch:{outcome.twitch_login or '-'} ==="]
    if outcome.verdict == Verdict.SKIP:
        lines.append(f"Skipped: {outcome.skip_reason or 'unknown reason'}")
        lines.append("")
        return "\n".join(lines)

    stats = outcome.result
    lines.extend([
        f"Total matches: {stats.total}",
        f"On-stream: {stats.on_stream}",
        f"Off-stream: {stats.off_stream}",
        f"Unknown: {stats.unknown}",
        f"On-stream % (known-only): {format_percent(stats.pct_known)}",
        f"On-stream % (total): {format_percent(stats.pct_total)}",
        f"Result: {outcome.verdict.value} (threshold {threshold * 100:.0f}%)",
        "",
    ])
    return "\n".join(lines)
