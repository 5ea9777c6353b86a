"""Tests for the API-Football adapter.

Test Strategy:
1. Pure helpers: fixture status, per-fixture stats (goalkeeper fields),
   player lookup by id then name, last-event text, live stat snapshot
2. resolve_player_id(): cached id, squad first, then name variants with a
   preference for Turkish nationality
3. fetch_recent_matches(): a fixture without the player's line becomes an
   explicit did-not-play record
4. fetch_upcoming_matches(): look-ahead horizon, in-progress kickoffs kept
5. Requests carry the x-apisports-key header; client errors are not retried
"""
from datetime import date, datetime, timedelta

import httpx
import pytest

from app.core.exceptions import SourceError
from app.models import Athlete, SPORT_FOOTBALL
from app.services.sync.adapters.api_football_adapter import (
    ApiFootballAdapter,
    build_live_stats,
    extract_fixture_stats,
    find_player_entry,
    format_last_event,
    map_fixture_status,
)

API_KEY = "af-test-key"
NOW = datetime(2025, 3, 1, 18, 0)


def _adapter(handler) -> ApiFootballAdapter:
    return ApiFootballAdapter(
        api_key=API_KEY,
        base_url="https://af.example",
        season=2024,
        request_delay=0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _arda(**kwargs) -> Athlete:
    values = {"name": "Arda Güler", "slug": "arda-guler", "sport": SPORT_FOOTBALL, "team": "Real Madrid"}
    values.update(kwargs)
    return Athlete(**values)


def _ok(response) -> httpx.Response:
    return httpx.Response(200, json={"errors": [], "response": response})


def _fixture(fixture_id, kickoff, short="FT", home=(541, "Real Madrid"), away=(547, "Girona"), goals=(2, 1)):
    return {
        "fixture": {"id": fixture_id, "date": kickoff, "status": {"short": short}},
        "league": {"name": "La Liga"},
        "teams": {"home": {"id": home[0], "name": home[1]}, "away": {"id": away[0], "name": away[1]}},
        "goals": {"home": goals[0], "away": goals[1]},
    }


class TestHelpers:

    @pytest.mark.parametrize("short,expected", [
        ("1H", "live"),
        ("ET", "live"),
        ("HT", "halftime"),
        ("FT", "finished"),
        ("PEN", "finished"),
        ("NS", "scheduled"),
        (None, "scheduled"),
    ])
    def test_fixture_status(self, short, expected):
        assert map_fixture_status(short) == expected

    def test_goalkeeper_clean_sheet(self):
        stats = extract_fixture_stats({"statistics": [{
            "games": {"minutes": 90, "rating": "7.4", "position": "G"},
            "goals": {"total": None, "conceded": 0, "saves": 4},
            "passes": {"total": 31, "accuracy": "84%"},
        }]})

        assert stats.saves == 4
        assert stats.goals_conceded == 0
        assert stats.clean_sheet is True
        assert stats.rating == 7.4
        assert stats.passes_accuracy == 84

    def test_goalkeeper_conceded(self):
        stats = extract_fixture_stats({"statistics": [{
            "games": {"minutes": 90, "position": "G"},
            "goals": {"conceded": 2, "saves": 1},
        }]})

        assert stats.goals_conceded == 2
        assert stats.clean_sheet is False

    def test_outfield_player_has_no_goalkeeper_fields(self):
        stats = extract_fixture_stats({"statistics": [{
            "games": {"minutes": 78, "rating": "8.1", "position": "M"},
            "goals": {"total": 1, "assists": 1},
            "shots": {"total": 4, "on": 2},
            "dribbles": {"attempts": 5, "success": 3},
        }]})

        assert stats.goals == 1
        assert stats.shots_on_target == 2
        assert stats.dribbles_success == 3
        assert "saves" not in stats.to_dict()

    def test_player_entry_by_id_first(self):
        players = [
            {"player": {"id": 7, "name": "A. Güler"}},
            {"player": {"id": 1001, "name": "Arda"}},
        ]

        assert find_player_entry(players, "Arda Güler", 1001)["player"]["id"] == 1001
        assert find_player_entry(players, "Arda Güler")["player"]["id"] == 7
        assert find_player_entry(players, "Kenan Yıldız", 42) is None

    @pytest.mark.parametrize("event,expected", [
        ({"type": "Goal", "player": {"name": "A. Güler"}, "time": {"elapsed": 24}}, "⚽ Goal! A. Güler (24')"),
        ({"type": "Card", "detail": "Yellow Card", "player": {"name": "Tchouaméni"}, "time": {"elapsed": 40}},
         "🟨 Tchouaméni (40')"),
        ({"type": "Card", "detail": "Red Card", "player": {"name": "Rüdiger"}, "time": {"elapsed": 81}},
         "🟥 Rüdiger (81')"),
        ({"type": "subst", "player": {"name": "A. Güler"}, "time": {"elapsed": 66}}, "🔄 A. Güler substituted (66')"),
        ({"type": "Var", "player": {"name": "A. Güler"}, "time": {"elapsed": 70}}, None),
    ])
    def test_last_event(self, event, expected):
        assert format_last_event([{"type": "Goal", "player": {"name": "Earlier"}}, event]) == expected

    def test_no_events(self):
        assert format_last_event([]) is None

    def test_live_stats(self):
        live = build_live_stats({"statistics": [{
            "games": {"minutes": 55, "rating": "7.0"},
            "goals": {"total": 1},
            "passes": {"total": 28, "accuracy": "78%"},
            "fouls": {"drawn": 3},
        }]})

        assert live["minutes"] == 55
        assert live["rating"] == 7.0
        assert live["goals"] == 1
        assert live["passAccuracy"] == 78
        assert live["foulsDrawn"] == 3
        assert live["redCards"] == 0


class TestResolvePlayerId:

    @pytest.mark.asyncio
    async def test_cached_id_skips_network(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert await _adapter(handler).resolve_player_id(_arda(api_football_id=1001)) == 1001

    @pytest.mark.asyncio
    async def test_found_in_squad(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            assert request.url.params["team"] == "541"
            return _ok([{"players": [
                {"id": 762, "name": "Vinícius Júnior"},
                {"id": 1001, "name": "A. Güler"},
            ]}])

        player_id = await _adapter(handler).resolve_player_id(_arda())

        assert player_id == 1001
        assert paths == ["/players/squads"]

    @pytest.mark.asyncio
    async def test_name_search_prefers_turkish_player(self):
        searched = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/players/squads":
                return _ok([{"players": [{"id": 762, "name": "Vinícius Júnior"}]}])
            term = request.url.params["search"]
            searched.append(term)
            assert request.url.params["season"] == "2024"
            if term == "Güler":
                return _ok([
                    {"player": {"id": 5, "name": "M. Güler", "nationality": "Germany"}},
                    {"player": {"id": 1001, "name": "Arda Güler", "nationality": "Turkey"}},
                ])
            return _ok([])

        player_id = await _adapter(handler).resolve_player_id(_arda())

        assert player_id == 1001
        assert searched == ["Arda Güler", "Güler"]

    @pytest.mark.asyncio
    async def test_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/players/squads":
                return _ok([])
            return _ok([])

        assert await _adapter(handler).resolve_player_id(_arda()) is None


class TestRecentMatches:

    @pytest.mark.asyncio
    async def test_missing_line_is_did_not_play(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/fixtures":
                assert request.url.params["last"] == "5"
                return _ok([
                    _fixture(10, "2025-02-22T20:00:00+00:00"),
                    _fixture(11, "2025-03-05T20:00:00+00:00", short="NS"),
                ])
            assert request.url.params["fixture"] == "10"
            return _ok([
                {"team": {"id": 547}, "players": [{"player": {"id": 1001, "name": "Arda Güler"}}]},
                {"team": {"id": 541}, "players": [
                    {"player": {"id": 762, "name": "Vinícius Júnior"}, "statistics": [{"games": {"minutes": 90}}]},
                ]},
            ])

        records = await _adapter(handler).fetch_recent_matches(_arda(), 1001, 541)

        assert len(records) == 1
        record = records[0]
        assert record.date == date(2025, 2, 22)
        assert record.played is False
        assert record.minutes_played == 0
        assert record.stats is None
        assert record.opponent == "Girona"
        assert record.home_away == "home"
        assert record.match_result == "2-1"

    @pytest.mark.asyncio
    async def test_played_match(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/fixtures":
                return _ok([_fixture(12, "2025-02-15T15:00:00+00:00", home=(529, "Barcelona"), away=(541, "Real Madrid"))])
            return _ok([{"team": {"id": 541}, "players": [{
                "player": {"id": 1001, "name": "A. Güler"},
                "statistics": [{"games": {"minutes": 64, "rating": "7.9"}, "goals": {"total": 1}}],
            }]}])

        record = (await _adapter(handler).fetch_recent_matches(_arda(), 1001, 541))[0]

        assert record.played is True
        assert record.home_away == "away"
        assert record.opponent == "Barcelona"
        assert record.minutes_played == 64
        assert record.rating == 7.9
        assert record.stats.goals == 1


class TestUpcomingMatches:

    @pytest.mark.asyncio
    async def test_look_ahead_filter(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["next"] == "10"
            return _ok([
                _fixture(20, "2025-03-01T17:30:00+00:00", short="1H"),
                _fixture(21, "2025-03-01T14:00:00+00:00", short="FT"),
                _fixture(22, "2025-03-03T20:00:00+00:00", short="NS", home=(530, "Atletico Madrid"), away=(541, "Real Madrid")),
                _fixture(23, "2025-03-12T20:00:00+00:00", short="NS"),
                _fixture(24, None, short="TBD"),
            ])

        matches = await _adapter(handler).fetch_upcoming_matches(541, now=NOW)

        assert [m.match_date for m in matches] == [
            NOW - timedelta(minutes=30),
            datetime(2025, 3, 3, 20, 0),
        ]
        assert matches[1].opponent == "Atletico Madrid"
        assert matches[1].home_away == "away"


class TestRequests:

    @pytest.mark.asyncio
    async def test_season_stats_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("x-apisports-key")
            seen["params"] = dict(request.url.params)
            return _ok([{"statistics": [{
                "league": {"name": "La Liga", "season": 2024},
                "games": {"appearences": 20, "lineups": 12, "minutes": 1100, "rating": "7.12"},
                "goals": {"total": 5, "assists": 3},
                "passes": {"accuracy": "86"},
            }]}])

        records = await _adapter(handler).fetch_season_stats(1001)

        assert seen == {"auth": API_KEY, "params": {"id": "1001", "season": "2024"}}
        assert records[0].season == "2024/25"
        assert records[0].competition == "La Liga"
        assert records[0].games_started == 12
        assert records[0].stats.goals == 5
        assert records[0].stats.passes_accuracy == 86

    @pytest.mark.asyncio
    async def test_payload_errors_yield_empty_result(self):
        adapter = _adapter(lambda request: httpx.Response(
            200, json={"errors": {"token": "Error/Missing application key"}, "response": []}
        ))

        assert await adapter.fetch_season_stats(1001) == []

    @pytest.mark.asyncio
    async def test_client_error_is_source_error(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(403, json={"message": "forbidden"})

        with pytest.raises(SourceError):
            await _adapter(handler).fetch_live_fixtures()
        assert len(calls) == 1

    def test_missing_key(self):
        adapter = ApiFootballAdapter(api_key="")

        assert adapter.is_configured is False
