"""
Command line entrypoint.

Single mode checks one riot id against one twitch login; batch mode reads a
participant list from a file or stdin and reports every row, skipping the
ones that cannot be analysed.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

import httpx

from shared.config import get_settings
from shared.errors import ConfigurationError, StreamCheckError
from shared.utils.blob_cache import BlobCache
from shared.utils.http_client import RetryingHTTPClient, create_async_client
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from streamcheck.config import CheckerSettings, get_checker_settings
from streamcheck.engine import EngineOptions, PlayerOutcome, StreamCheckEngine
from streamcheck.identity import parse_riot_id
from streamcheck.participants import parse_participants
from streamcheck.reporting import append_csv, format_summary
from streamcheck.sources.riot import RiotMatchClient
from streamcheck.sources.twitch import AppTokenCache, TwitchStreamClient
from streamcheck.window import WindowOptions, resolve_window

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser(defaults: CheckerSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stream-check",
        description="Report how many of a player's matches were played while live on Twitch.",
    )
    parser.add_argument("--riot-id", help="gameName#tagLine (single mode)")
    parser.add_argument("--twitch", help="Twitch login (single mode)")
    parser.add_argument("--input", help="Participant JSON file, '-' for stdin (batch mode)")
    parser.add_argument("--days", type=int, default=defaults.days)
    parser.add_argument("--start-time", help="Epoch seconds/ms or ISO-8601; defaults to event start")
    parser.add_argument("--end-time", help="Epoch seconds/ms or ISO-8601; defaults to event end")
    parser.add_argument("--event-year", type=int)
    parser.add_argument("--event-start")
    parser.add_argument("--event-end")
    parser.add_argument("--threshold", type=float, default=defaults.threshold)
    parser.add_argument("--buffer-hours", type=float, default=defaults.buffer_hours)
    parser.add_argument("--max-matches", type=int, default=defaults.max_matches)
    parser.add_argument("--concurrency", type=int, default=defaults.concurrency)
    parser.add_argument("--output-csv", default=defaults.output_csv, help="Empty string disables CSV output")
    parser.add_argument("--cache-dir", default=defaults.cache_dir)
    parser.add_argument("--no-cache", action="store_true", default=not defaults.use_cache)
    parser.add_argument("--verbose", action="store_true")
    return parser


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


async def run(args: argparse.Namespace, checker: CheckerSettings) -> int:
    settings = get_settings()
    missing = settings.missing_credentials()
    if missing:
        raise ConfigurationError("missing env vars: " + ", ".join(missing))

    analysis = resolve_window(
        WindowOptions(
            start_time=args.start_time,
            end_time=args.end_time,
            event_year=args.event_year,
            event_start=args.event_start,
            event_end=args.event_end,
            days=args.days,
        )
    )

    participants = None
    if args.input:
        participants = parse_participants(_read_input(args.input))
    identity = None if participants is not None else parse_riot_id(args.riot_id)

    cache = None if args.no_cache else BlobCache(args.cache_dir)
    options = EngineOptions(
        threshold=args.threshold,
        buffer_hours=args.buffer_hours,
        concurrency=max(1, args.concurrency),
        max_matches=args.max_matches,
        page_size=checker.page_size,
    )

    async with create_async_client() as client:
        http = RetryingHTTPClient(client, max_retries=checker.max_retries, backoff_ms=checker.backoff_ms)
        riot = RiotMatchClient(http, settings.riot_api_key.strip(), cache=cache)
        twitch = TwitchStreamClient(
            http,
            settings.twitch_client_id.strip(),
            settings.twitch_client_secret.strip(),
            cache=cache,
            tokens=AppTokenCache(),
        )
        engine = StreamCheckEngine(riot, twitch, options)

        def emit(outcome: PlayerOutcome) -> None:
            print(format_summary(outcome, options.threshold))
            append_csv(args.output_csv, outcome)

        if participants is not None:
            logger.info("batch_started", participants=len(participants))
            outcomes = await engine.run_batch(participants, analysis, on_outcome=emit)
            skipped = sum(1 for o in outcomes if o.report is None)
            logger.info("batch_finished", analyzed=len(outcomes) - skipped, skipped=skipped)
            return EXIT_OK

        report = await engine.analyze(identity, args.twitch.strip(), analysis.window)
        emit(PlayerOutcome(
            name=identity.riot_id,
            identity=identity,
            twitch_login=report.twitch_login,
            report=report,
        ))
        return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    checker = get_checker_settings()
    parser = build_parser(checker)
    args = parser.parse_args(argv)

    setup_logging("stream-check", level="DEBUG" if args.verbose else None)

    if not args.input and not (args.riot_id and args.twitch):
        parser.print_usage(sys.stderr)
        print("stream-check: error: provide --input, or both --riot-id and --twitch", file=sys.stderr)
        return EXIT_USAGE

    start_metrics_server()
    try:
        return asyncio.run(run(args, checker))
    except StreamCheckError as exc:
        logger.error("run_failed", error_type=type(exc).__name__, error=str(exc))
        return EXIT_FAILURE
    except httpx.HTTPError as exc:
        logger.error("http_failed", error_type=type(exc).__name__, error=str(exc))
        return EXIT_FAILURE
    except OSError as exc:
        logger.error("io_failed", error=str(exc))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning("run_cancelled")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
