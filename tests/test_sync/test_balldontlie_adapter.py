"""Tests for the balldontlie adapter.

Test Strategy:
1. Pure helpers: NBA season year, game status and clock formatting
2. resolve_player_id(): cached id, then name variants in order
3. Requests carry the raw key and the expected query (httpx.MockTransport)
4. Client errors surface as SourceError without retries
"""
from datetime import date, datetime

import httpx
import pytest

from app.core.exceptions import SourceError
from app.models import Athlete, SPORT_BASKETBALL
from app.services.sync.adapters.balldontlie_adapter import (
    BalldontlieAdapter,
    build_daily_update,
    current_game_minute,
    format_game_clock,
    map_game_status,
    map_injury_status,
    nba_season_year,
    season_label,
)

API_KEY = "bdl-test-key"


def _adapter(handler) -> BalldontlieAdapter:
    return BalldontlieAdapter(
        api_key=API_KEY,
        base_url="https://bdl.example/v1",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _sengun(**kwargs) -> Athlete:
    values = {"name": "Alperen Şengün", "slug": "alperen-sengun", "sport": SPORT_BASKETBALL,
              "team": "Houston Rockets"}
    values.update(kwargs)
    return Athlete(**values)


class TestHelpers:

    def test_season_year(self):
        assert nba_season_year(datetime(2024, 11, 3)) == 2024
        assert nba_season_year(datetime(2025, 3, 15)) == 2024
        assert nba_season_year(datetime(2025, 10, 1)) == 2025

    def test_season_label(self):
        assert season_label(2024) == "2024-25"
        assert season_label(2099) == "2099-00"

    @pytest.mark.parametrize("status,expected", [
        ("Final", "finished"),
        ("Halftime", "halftime"),
        ("3rd Qtr", "live"),
        ("OT", "live"),
        ("7:00 pm ET", "scheduled"),
        (None, "scheduled"),
    ])
    def test_game_status(self, status, expected):
        assert map_game_status(status) == expected

    def test_clock(self):
        assert format_game_clock("3rd Qtr", "5:42") == "Q3 · 5:42"
        assert format_game_clock("Halftime") == "Halftime"
        assert format_game_clock("2OT") == "OT2"
        assert format_game_clock("OT") == "OT"

    def test_current_minute(self):
        assert current_game_minute("3rd Qtr", "5:42") == 31
        assert current_game_minute("Halftime") == 24
        assert current_game_minute(None) == 0

    def test_injury_status(self):
        assert map_injury_status("Out") == "injured"
        assert map_injury_status("Questionable") == "doubtful"
        assert map_injury_status("Probable") == "minor"
        assert map_injury_status(None) == "healthy"

    def test_daily_update_from_home_game(self):
        record = build_daily_update({
            "min": "34:12",
            "pts": 26, "reb": 13, "ast": 7, "fgm": 11, "fga": 19,
            "team": {"id": 11},
            "game": {
                "date": "2025-01-15",
                "home_team_id": 11,
                "home_team_score": 120,
                "visitor_team_score": 109,
                "visitor_team": {"full_name": "Dallas Mavericks"},
            },
        })

        assert record.date == date(2025, 1, 15)
        assert record.played is True
        assert record.minutes_played == 34
        assert record.home_away == "home"
        assert record.opponent == "Dallas Mavericks"
        assert record.match_result == "120-109"
        assert record.stats.points == 26

    def test_daily_update_without_date(self):
        assert build_daily_update({"game": {}}) is None


class TestResolvePlayerId:

    @pytest.mark.asyncio
    async def test_cached_id_skips_network(self):
        def handler(request):
            raise AssertionError("no request expected")

        adapter = _adapter(handler)

        assert await adapter.resolve_player_id(_sengun(balldontlie_id=666)) == 666

    @pytest.mark.asyncio
    async def test_variants_tried_in_order(self):
        searched = []

        def handler(request: httpx.Request) -> httpx.Response:
            term = request.url.params["search"]
            searched.append(term)
            if term == "Sengun":
                return httpx.Response(200, json={"data": [
                    {"id": 999, "first_name": "Reggie", "last_name": "Jackson"},
                    {"id": 666, "first_name": "Alperen", "last_name": "Sengun"},
                ]})
            return httpx.Response(200, json={"data": []})

        adapter = _adapter(handler)
        player_id = await adapter.resolve_player_id(_sengun())

        assert player_id == 666
        assert searched == ["Alperen Şengün", "Şengün", "Alperen Sengun", "Sengun"]

    @pytest.mark.asyncio
    async def test_not_found(self):
        adapter = _adapter(lambda request: httpx.Response(200, json={"data": []}))

        assert await adapter.resolve_player_id(_sengun()) is None


class TestStatsRequests:

    @pytest.mark.asyncio
    async def test_season_averages_untouched(self):
        seen = {}
        averages = {"player_id": 666, "season": 2024, "pts": 19.1, "reb": 10.4, "min": "32:01"}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"data": [averages]})

        adapter = _adapter(handler)
        result = await adapter.fetch_season_averages(666, 2024)

        assert result == averages
        assert seen == {
            "path": "/v1/season_averages",
            "params": {"player_id": "666", "season": "2024"},
            "auth": API_KEY,
        }

    @pytest.mark.asyncio
    async def test_no_averages(self):
        adapter = _adapter(lambda request: httpx.Response(200, json={"data": []}))

        assert await adapter.fetch_season_averages(666, 2024) is None

    @pytest.mark.asyncio
    async def test_injury(self):
        adapter = _adapter(lambda request: httpx.Response(200, json={"data": [
            {"status": "Out", "comment": "Ankle sprain", "return_date": "Feb 1"},
        ]}))

        injury = await adapter.fetch_injury(666)

        assert injury == {"status": "Out", "comment": "Ankle sprain", "return_date": "Feb 1"}

    @pytest.mark.asyncio
    async def test_client_error_is_source_error(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404, json={"error": "not found"})

        adapter = _adapter(handler)

        with pytest.raises(SourceError):
            await adapter.fetch_season_averages(666, 2024)
        assert len(calls) == 1

    def test_missing_key(self):
        adapter = BalldontlieAdapter(api_key="")

        assert adapter.is_configured is False
