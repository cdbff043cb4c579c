"""Tests for riot id parsing and participant list ingestion."""
from __future__ import annotations

import json

import pytest

from shared.errors import InputFormatError
from shared.models.enums import RoutingRegion

from streamcheck.identity import infer_routing, parse_riot_id
from streamcheck.participants import parse_participants


# ── Riot ids ───────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "tag,routing",
    [
        ("KR", RoutingRegion.ASIA),
        ("jp", RoutingRegion.ASIA),
        ("EUW", RoutingRegion.EUROPE),
        ("EUNE", RoutingRegion.EUROPE),
        ("TR", RoutingRegion.EUROPE),
        ("ME1", RoutingRegion.EUROPE),
        ("RU", RoutingRegion.EUROPE),
        ("XEUW2", RoutingRegion.EUROPE),
        ("OCE", RoutingRegion.SEA),
        ("SG2", RoutingRegion.SEA),
        ("TW2", RoutingRegion.SEA),
        ("VN2", RoutingRegion.SEA),
        ("NA1", RoutingRegion.AMERICAS),
        ("3500", RoutingRegion.AMERICAS),
    ],
)
def test_infer_routing(tag: str, routing: RoutingRegion) -> None:
    assert infer_routing(tag) == routing


class TestParseRiotId:

    def test_splits_on_first_hash(self) -> None:
        identity = parse_riot_id(" Tree Otter # 3500 ")
        assert identity.game_name == "Tree Otter"
        assert identity.tag_line == "3500"
        assert identity.riot_id == "Tree Otter#3500"
        assert identity.routing is RoutingRegion.AMERICAS

    def test_routing_from_tag(self) -> None:
        assert parse_riot_id("Faker#KR").routing is RoutingRegion.ASIA

    @pytest.mark.parametrize("text", ["", "   ", "NoHash", "#NA1", "Name#", "  #  "])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(InputFormatError):
            parse_riot_id(text)


# ── Participants ───────────────────────────────────────────────────────

SAMPLE = [
    {
        "Name": "Tree Otter#3500",
        "Rank": 1,
        "Socials": [
            {"LinkUri": "https://x.com/treeotter"},
            {"LinkUri": "https://www.twitch.tv/TreeOtter"},
        ],
        "Eliminated": True,
        "DayEliminated": 2,
    },
    {"name": "NoStream#NA1", "socials": []},
]


class TestParseParticipants:

    def test_array_form(self) -> None:
        participants = parse_participants(json.dumps(SAMPLE))

        assert len(participants) == 2
        first = participants[0]
        assert first.name == "Tree Otter#3500"
        assert first.twitch_login == "treeotter"
        assert first.elimination_day == 2
        assert participants[1].twitch_login is None
        assert participants[1].elimination_day is None

    def test_envelope_form(self) -> None:
        participants = parse_participants(json.dumps({"Participants": SAMPLE}))
        assert [p.name for p in participants] == ["Tree Otter#3500", "NoStream#NA1"]

    def test_snake_case_keys(self) -> None:
        text = json.dumps([{"name": "a#b", "day_eliminated": 3, "socials": [{"link_uri": "twitch.tv/#!/old_school"}]}])
        participant = parse_participants(text)[0]
        assert participant.twitch_login == "old_school"
        assert participant.elimination_day == 3

    def test_not_eliminated_flag_wins(self) -> None:
        text = json.dumps([{"name": "a#b", "eliminated": False, "dayEliminated": 4}])
        assert parse_participants(text)[0].elimination_day is None

    def test_null_entries_dropped(self) -> None:
        assert len(parse_participants(json.dumps([None, {"name": "a#b"}]))) == 1

    @pytest.mark.parametrize("text", ["", "  ", "{oops", '"string"', '{"players": []}', "42"])
    def test_rejected_inputs(self, text: str) -> None:
        with pytest.raises(InputFormatError):
            parse_participants(text)
