"""
Stream check engine.
Per participant: resolve identities -> list matches and broadcasts -> classify.
Batch runs walk participants in order and turn per-participant failures into skips.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

import httpx

from shared.errors import StreamCheckError
from shared.models.domain import (
    AccountIdentity,
    AnalysisWindow,
    BroadcastInterval,
    ClassificationResult,
    MatchRecord,
    TimeWindow,
)
from shared.models.enums import RoutingRegion, Verdict
from shared.utils.logging import get_logger
from shared.utils.metrics import PLAYERS_PROCESSED

from streamcheck.classification import classify
from streamcheck.config import CheckerSettings, get_checker_settings
from streamcheck.identity import parse_riot_id
from streamcheck.normalization import to_match_record
from streamcheck.participants import Participant
from streamcheck.sources.riot import RiotMatchClient
from streamcheck.sources.twitch import TwitchStreamClient
from streamcheck.window import narrow_for_participant

logger = get_logger(__name__)

OutcomeCallback = Callable[["PlayerOutcome"], Optional[Awaitable[None]]]


@dataclass
class PlayerReport:
    identity: AccountIdentity
    twitch_login: str
    window: TimeWindow
    match_ids: list[str]
    matches: list[MatchRecord]
    intervals: list[BroadcastInterval]
    result: ClassificationResult


@dataclass
class PlayerOutcome:
    """A finished participant: either a report or the reason it was skipped."""
    name: str
    identity: Optional[AccountIdentity] = None
    twitch_login: Optional[str] = None
    report: Optional[PlayerReport] = None
    skip_reason: Optional[str] = None

    @property
    def verdict(self) -> Verdict:
        if self.report is None:
            return Verdict.SKIP
        return Verdict.PASS if self.report.result.passed else Verdict.FAIL

    @property
    def result(self) -> ClassificationResult:
        return self.report.result if self.report else ClassificationResult()


@dataclass
class _Skip:
    reason: str
    identity: Optional[AccountIdentity] = None
    twitch_login: Optional[str] = None


@dataclass
class EngineOptions:
    threshold: float = 0.5
    buffer_hours: float = 0.0
    concurrency: int = 1
    max_matches: Optional[int] = None
    page_size: int = 200

    @classmethod
    def from_settings(cls, settings: Optional[CheckerSettings] = None) -> "EngineOptions":
        settings = settings or get_checker_settings()
        return cls(
            threshold=settings.threshold,
            buffer_hours=settings.buffer_hours,
            concurrency=settings.concurrency,
            max_matches=settings.max_matches,
            page_size=settings.page_size,
        )


class StreamCheckEngine:
    """Runs the analysis for one participant or a batch of them."""

    def __init__(
        self,
        riot: RiotMatchClient,
        twitch: TwitchStreamClient,
        options: Optional[EngineOptions] = None,
    ) -> None:
        self._riot = riot
        self._twitch = twitch
        self._options = options or EngineOptions.from_settings()

    @property
    def options(self) -> EngineOptions:
        return self._options

    async def fetch_match_records(self, match_ids: list[str], routing: RoutingRegion) -> list[Optional[MatchRecord]]:
        """
        Fetch and normalize match details with a fixed-size worker pool.

        The result list is aligned with ``match_ids``; a match that 404s or
        has no start time leaves None at its index.
        """
        results: list[Optional[MatchRecord]] = [None] * len(match_ids)
        pending = iter(enumerate(match_ids))

        async def worker() -> None:
            for index, match_id in pending:
                detail = await self._riot.get_match_detail(match_id, routing)
                results[index] = to_match_record(match_id, detail)

        pool_size = min(max(1, self._options.concurrency), len(match_ids))
        workers = [asyncio.ensure_future(worker()) for _ in range(pool_size)]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        return results

    async def analyze(
        self,
        identity: AccountIdentity,
        twitch_login: str,
        window: TimeWindow,
    ) -> PlayerReport:
        """Full pipeline for one participant. Errors propagate."""
        log = logger.bind(riot_id=identity.riot_id, twitch=twitch_login)
        opts = self._options

        puuid = await self._riot.resolve_account_id(identity)
        match_ids = await self._riot.list_match_ids(
            puuid,
            identity.routing,
            window,
            max_matches=opts.max_matches,
            page_size=opts.page_size,
        )
        log.debug("match_ids_listed", count=len(match_ids))

        records = await self.fetch_match_records(match_ids, identity.routing)
        matches = [r for r in records if r is not None]

        user_id = await self._twitch.resolve_user_id(twitch_login)
        intervals = await self._twitch.list_broadcast_intervals(user_id, window, opts.buffer_hours)

        result = classify(matches, intervals, opts.buffer_hours, opts.threshold)
        log.info(
            "player_analyzed",
            matches=result.total,
            on_stream=result.on_stream,
            off_stream=result.off_stream,
            broadcasts=len(intervals),
            passed=result.passed,
        )
        return PlayerReport(
            identity=identity,
            twitch_login=twitch_login,
            window=window,
            match_ids=match_ids,
            matches=matches,
            intervals=intervals,
            result=result,
        )

    def _prepare(self, participant: Participant, analysis: AnalysisWindow) -> tuple[AccountIdentity, str, TimeWindow] | _Skip:
        if not participant.name or not participant.name.strip():
            return _Skip("missing name")
        try:
            identity = parse_riot_id(participant.name)
        except StreamCheckError as exc:
            return _Skip(f"invalid riot id: {exc}")
        login = participant.twitch_login
        if not login:
            return _Skip("no twitch link", identity=identity)
        window = narrow_for_participant(analysis, participant.elimination_day)
        if window is None:
            return _Skip("eliminated before analysis window", identity=identity, twitch_login=login)
        return identity, login, window

    async def check_participant(self, participant: Participant, analysis: AnalysisWindow) -> PlayerOutcome:
        """Analyse one batch row; every failure becomes a skip with a reason."""
        name = (participant.name or "").strip()
        prepared = self._prepare(participant, analysis)
        if isinstance(prepared, _Skip):
            logger.info("player_skipped", name=name, reason=prepared.reason)
            PLAYERS_PROCESSED.labels(outcome="skipped").inc()
            return PlayerOutcome(
                name=name,
                identity=prepared.identity,
                twitch_login=prepared.twitch_login,
                skip_reason=prepared.reason,
            )

        identity, login, window = prepared
        try:
            report = await self.analyze(identity, login, window)
        except (StreamCheckError, httpx.HTTPError, OSError) as exc:
            reason = str(exc) or type(exc).__name__
            logger.warning("player_failed", name=name, error_type=type(exc).__name__, reason=reason)
            PLAYERS_PROCESSED.labels(outcome="failed").inc()
            return PlayerOutcome(name=name, identity=identity, twitch_login=login, skip_reason=reason)

        PLAYERS_PROCESSED.labels(outcome="analyzed").inc()
        return PlayerOutcome(name=name, identity=identity, twitch_login=login, report=report)

    async def run_batch(
        self,
        participants: Iterable[Participant],
        analysis: AnalysisWindow,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> list[PlayerOutcome]:
        """Process participants one after another, reporting each as it finishes."""
        outcomes: list[PlayerOutcome] = []
        for participant in participants:
            outcome = await self.check_participant(participant, analysis)
            outcomes.append(outcome)
            if on_outcome is not None:
                maybe = on_outcome(outcome)
                if asyncio.iscoroutine(maybe):
                    await maybe
        return outcomes
