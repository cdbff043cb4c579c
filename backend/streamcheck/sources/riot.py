"""
Match backend client (Riot account + TFT match APIs).
Resolves riot ids to puuids, lists match ids in a window and fetches match details.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from shared.errors import InvalidResponseError, NotFoundError
from shared.models.domain import AccountIdentity, MatchDetail, RiotAccount, TimeWindow
from shared.models.enums import RoutingRegion
from shared.utils.blob_cache import BlobCache, cache_key
from shared.utils.http_client import RetryingHTTPClient
from shared.utils.logging import get_logger

from streamcheck.sources.base import BackendClient

logger = get_logger(__name__)

ACCOUNT_PATH = "/riot/account/v1/accounts/by-riot-id/{game_name}/{tag_line}"
MATCH_IDS_PATH = "/tft/match/v1/matches/by-puuid/{puuid}/ids"
MATCH_DETAIL_PATH = "/tft/match/v1/matches/{match_id}"

DEFAULT_PAGE_SIZE = 200

_MATCH_ID_LIST = TypeAdapter(list[str])


class RiotMatchClient(BackendClient):
    """Riot API client authenticated with the ``X-Riot-Token`` header."""

    def __init__(
        self,
        http: RetryingHTTPClient,
        api_key: str,
        cache: Optional[BlobCache] = None,
    ) -> None:
        super().__init__(http, cache)
        self._api_key = api_key
        self._accounts = self._typed_cache("puuid", RiotAccount)
        self._match_lists = self._typed_cache("match_lists", list[str])

    @property
    def backend_name(self) -> str:
        return "riot"

    def _request(self, routing: RoutingRegion, path: str, params: dict | None = None) -> httpx.Request:
        return httpx.Request(
            "GET",
            f"https://{routing.host}{path}",
            params=params,
            headers={"X-Riot-Token": self._api_key},
        )

    async def resolve_account_id(self, identity: AccountIdentity) -> str:
        """
        Resolve a riot id to its puuid.

        Raises:
            NotFoundError: If the backend does not know the riot id.
            InvalidResponseError: If a successful response carries no puuid.
        """
        key = cache_key("puuid", identity.routing.value.upper(), identity.game_name, identity.tag_line)
        if self._accounts is not None:
            cached = self._accounts.read(key)
            if cached is not None and cached.puuid:
                logger.debug("puuid_cache_hit", riot_id=identity.riot_id)
                return cached.puuid

        path = ACCOUNT_PATH.format(
            game_name=quote(identity.game_name, safe=""),
            tag_line=quote(identity.tag_line, safe=""),
        )
        logger.debug("puuid_resolve", riot_id=identity.riot_id, routing=identity.routing.value)
        response = await self._http.send(lambda: self._request(identity.routing, path))

        if response.status_code == 404:
            raise NotFoundError(f"riot id not found: {identity.riot_id}")
        self._ensure_success(response)
        account = self._parse(response, RiotAccount)
        if not account.puuid.strip():
            raise InvalidResponseError("puuid missing from riot response")

        if self._accounts is not None:
            self._accounts.write(key, account)
        return account.puuid

    async def list_match_ids(
        self,
        puuid: str,
        routing: RoutingRegion,
        window: TimeWindow,
        max_matches: Optional[int] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[str]:
        """
        List match ids played inside ``window``, newest first as the backend
        returns them.

        Pages with an offset/count cursor until a short page or the cap.
        """
        key = cache_key(
            "matchLists",
            routing.value.upper(),
            puuid,
            window.start_ms,
            window.end_ms,
            max_matches if max_matches is not None else "all",
        )
        if self._match_lists is not None:
            cached = self._match_lists.read(key)
            if cached:
                logger.debug("match_list_cache_hit", puuid=puuid, count=len(cached))
                if max_matches is not None and len(cached) > max_matches:
                    return cached[:max_matches]
                return cached

        ids: list[str] = []
        offset = 0
        page = max(1, page_size)
        start_sec = window.start_ms // 1000
        end_sec = window.end_ms // 1000
        path = MATCH_IDS_PATH.format(puuid=quote(puuid, safe=""))

        while True:
            if max_matches is not None and len(ids) >= max_matches:
                break
            count = min(page, max_matches - len(ids)) if max_matches is not None else page
            params = {"startTime": start_sec, "endTime": end_sec, "start": offset, "count": count}

            response = await self._http.send(lambda: self._request(routing, path, params))
            self._ensure_success(response)
            try:
                batch = _MATCH_ID_LIST.validate_json(response.content)
            except ValidationError as exc:
                raise InvalidResponseError("match id list is not a list of strings") from exc

            ids.extend(batch)
            logger.debug("match_ids_page", puuid=puuid, offset=offset, requested=count, received=len(batch))
            if len(batch) < count:
                break
            offset += count

        if max_matches is not None and len(ids) > max_matches:
            ids = ids[:max_matches]

        if self._match_lists is not None:
            self._match_lists.write(key, ids)
        return ids

    async def get_match_detail(self, match_id: str, routing: RoutingRegion) -> Optional[MatchDetail]:
        """Fetch one match; a 404 yields None. Never cached."""
        path = MATCH_DETAIL_PATH.format(match_id=quote(match_id, safe=""))
        response = await self._http.send(lambda: self._request(routing, path))
        if response.status_code == 404:
            logger.debug("match_not_found", match_id=match_id)
            return None
        self._ensure_success(response)
        return self._parse(response, MatchDetail)
