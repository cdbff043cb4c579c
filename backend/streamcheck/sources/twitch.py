"""
Stream backend client (Twitch Helix).
Holds an app access token, resolves logins to user ids and lists archived
broadcasts overlapping a window.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

import httpx

from shared.errors import InvalidResponseError, NotFoundError, TimeFormatError
from shared.models.domain import (
    BroadcastInterval,
    TimeWindow,
    TwitchToken,
    TwitchUser,
    TwitchUsersEnvelope,
    TwitchVideosPage,
)
from shared.utils.blob_cache import BlobCache, cache_key
from shared.utils.http_client import RetryingHTTPClient
from shared.utils.logging import get_logger

from streamcheck.classification import HOUR_MS
from streamcheck.sources.base import BackendClient
from streamcheck.timeparse import parse_iso_to_ms

logger = get_logger(__name__)

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
HELIX_BASE = "https://api.twitch.tv/helix"
VIDEOS_PAGE_SIZE = 100
TOKEN_REFRESH_MARGIN = timedelta(minutes=1)

_DURATION_UNITS = {"h": 3600, "m": 60, "s": 1}

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_duration(duration: str) -> int:
    """
    Parse a compact duration such as ``1h2m3s`` into seconds.

    Digits accumulate; ``h``/``m``/``s`` flush them at their scale; any other
    character drops the pending digits.
    """
    total = 0
    number = 0
    for ch in duration or "":
        if "0" <= ch <= "9":
            number = number * 10 + (ord(ch) - ord("0"))
            continue
        total += number * _DURATION_UNITS.get(ch, 0)
        number = 0
    return total


@dataclass
class CachedToken:
    value: str
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return bool(self.value) and now + TOKEN_REFRESH_MARGIN < self.expires_at


class AppTokenCache:
    """
    Single-slot app token holder.

    Pass one instance to every component that needs the token; the lock
    keeps concurrent callers from refreshing twice.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or _utcnow
        self._token: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    async def get(self, fetch: Callable[[], Awaitable[TwitchToken]]) -> str:
        async with self._lock:
            if self._token is not None and self._token.is_fresh(self._clock()):
                return self._token.value
            issued = await fetch()
            if not issued.access_token.strip():
                raise InvalidResponseError("twitch token missing from response")
            self._token = CachedToken(
                value=issued.access_token,
                expires_at=self._clock() + timedelta(seconds=max(0, issued.expires_in)),
            )
            return self._token.value


class TwitchStreamClient(BackendClient):
    """Twitch Helix client using the client-credentials grant."""

    def __init__(
        self,
        http: RetryingHTTPClient,
        client_id: str,
        client_secret: str,
        cache: Optional[BlobCache] = None,
        tokens: Optional[AppTokenCache] = None,
    ) -> None:
        super().__init__(http, cache)
        self._client_id = client_id
        self._client_secret = client_secret
        self._tokens = tokens or AppTokenCache()
        self._users = self._typed_cache("twitch_users", TwitchUsersEnvelope)
        self._intervals = self._typed_cache("vods", list[BroadcastInterval])

    @property
    def backend_name(self) -> str:
        return "twitch"

    async def _fetch_token(self) -> TwitchToken:
        logger.debug("twitch_token_request")
        params = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }
        response = await self._http.send(lambda: httpx.Request("POST", TOKEN_URL, params=params))
        self._ensure_success(response)
        return self._parse(response, TwitchToken)

    async def get_app_token(self) -> str:
        """Current app token, refreshed when within a minute of expiry."""
        return await self._tokens.get(self._fetch_token)

    def _helix_request(self, path: str, params: dict, token: str) -> httpx.Request:
        return httpx.Request(
            "GET",
            f"{HELIX_BASE}{path}",
            params=params,
            headers={"Client-ID": self._client_id, "Authorization": f"Bearer {token}"},
        )

    async def resolve_user(self, login: str) -> TwitchUser:
        """
        Look up a streamer by login.

        Raises:
            NotFoundError: If no user with a non-empty id comes back.
        """
        if not login or not login.strip():
            raise ValueError("twitch login required")
        login = login.strip()

        key = cache_key("twitchUsers", login)
        if self._users is not None:
            cached = self._users.read(key)
            if cached is not None and cached.data and cached.data[0].id.strip():
                logger.debug("twitch_user_cache_hit", login=login)
                return cached.data[0]

        token = await self.get_app_token()
        logger.debug("twitch_user_fetch", login=login)
        response = await self._http.send(lambda: self._helix_request("/users", {"login": login}, token))
        self._ensure_success(response)
        envelope = self._parse(response, TwitchUsersEnvelope)
        if not envelope.data or not envelope.data[0].id.strip():
            raise NotFoundError(f"twitch user not found for login {login}")

        if self._users is not None:
            self._users.write(key, envelope)
        return envelope.data[0]

    async def resolve_user_id(self, login: str) -> str:
        return (await self.resolve_user(login)).id

    async def list_broadcast_intervals(
        self,
        user_id: str,
        window: TimeWindow,
        buffer_hours: float,
    ) -> list[BroadcastInterval]:
        """
        Archived broadcasts that overlap ``window`` widened by ``buffer_hours``
        on both sides, sorted by start.
        """
        key = cache_key("vods", user_id, window.start_ms, window.end_ms, buffer_hours)
        if self._intervals is not None:
            cached = self._intervals.read(key)
            if cached is not None:
                logger.debug("vod_cache_hit", user_id=user_id, count=len(cached))
                return cached

        token = await self.get_app_token()
        buffer = int(buffer_hours * HOUR_MS)
        lower = window.start_ms - buffer
        upper = window.end_ms + buffer
        intervals: list[BroadcastInterval] = []
        cursor: Optional[str] = None

        while True:
            params: dict[str, object] = {"user_id": user_id, "type": "archive", "first": VIDEOS_PAGE_SIZE}
            if cursor:
                params["after"] = cursor
            response = await self._http.send(lambda: self._helix_request("/videos", params, token))
            self._ensure_success(response)
            page = self._parse(response, TwitchVideosPage)

            for video in page.data:
                if not video.created_at.strip():
                    continue
                try:
                    start_ms = parse_iso_to_ms(video.created_at)
                except TimeFormatError as exc:
                    raise InvalidResponseError(f"unreadable created_at on video {video.id}") from exc
                end_ms = start_ms + parse_duration(video.duration) * 1000
                if end_ms >= lower and start_ms <= upper:
                    intervals.append(BroadcastInterval(id=video.id or "", start_ms=start_ms, end_ms=end_ms))

            cursor = page.pagination.cursor if page.pagination else None
            if not cursor:
                break

        intervals.sort(key=lambda iv: iv.start_ms)
        logger.debug("vods_listed", user_id=user_id, kept=len(intervals))

        if self._intervals is not None:
            self._intervals.write(key, intervals)
        return intervals
