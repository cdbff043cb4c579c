"""Riot id parsing and routing region inference."""
from __future__ import annotations

from shared.errors import InputFormatError
from shared.models.domain import AccountIdentity
from shared.models.enums import RoutingRegion

ASIA_TAGS = frozenset({"KR", "JP"})
EUROPE_TAGS = frozenset({"EUNE", "EUW", "TR", "ME1", "RU"})
EUROPE_TAG_SUFFIXES = ("EUW2", "EUNE")
SEA_TAGS = frozenset({"OCE", "SG2", "TW2", "VN2"})


def infer_routing(tag_line: str) -> RoutingRegion:
    """Pick the regional host from a tag line; unknown tags route to the Americas."""
    upper = tag_line.strip().upper()
    if upper in ASIA_TAGS:
        return RoutingRegion.ASIA
    if upper in EUROPE_TAGS or upper.endswith(EUROPE_TAG_SUFFIXES):
        return RoutingRegion.EUROPE
    if upper in SEA_TAGS:
        return RoutingRegion.SEA
    return RoutingRegion.AMERICAS


def parse_riot_id(text: str) -> AccountIdentity:
    """Parse ``gameName#tagLine`` into an identity with its routing region."""
    if not text or not text.strip():
        raise InputFormatError("riot id is required")
    game_name, sep, tag_line = text.partition("#")
    game_name = game_name.strip()
    tag_line = tag_line.strip()
    if not sep:
        raise InputFormatError("riot id must be in format gameName#tagLine")
    if not game_name or not tag_line:
        raise InputFormatError("riot id must include gameName and tagLine")
    return AccountIdentity(
        game_name=game_name,
        tag_line=tag_line,
        routing=infer_routing(tag_line),
    )
