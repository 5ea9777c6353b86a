"""Tests for the ESPN markdown extractors.

Test Strategy:
1. Hollinger leaderboard: header/separator lines ignored, links unwrapped
2. Hollinger single-row lookup by (Turkish or ASCII) name
3. Player page: splits, fantasy blurb, previous game, ranks
4. Missing patterns degrade to None / [] instead of raising
"""
import pytest

from app.services.sync.parsers.espn_markdown import (
    parse_fantasy_insight,
    parse_hollinger_leaderboard,
    parse_hollinger_row,
    parse_number,
    parse_player_page,
    parse_previous_game,
    parse_splits,
)

HOLLINGER_PAGE = """
# NBA Player Hollinger Statistics - 2024-25

| RK | PLAYER | GP | MPG | TS% | AST | TO | USG | ORR | DRR | REBR | PER | VA | EWA |
|----|--------|----|-----|-----|-----|----|-----|-----|-----|------|-----|----|-----|
| 1 | [Nikola Jokic](https://www.espn.com/nba/player/_/id/3112335), DEN | 50 | 36.4 | .651 | 33.1 | 11.0 | 30.2 | 9.8 | 30.1 | 20.3 | 32.0 | 640.1 | 21.3 |
| 14 | Alperen Sengun, HOU | 48 | 32.1 | .560 | 22.0 | 12.5 | 25.7 | 10.2 | 25.9 | 18.3 | 22.4 | 301.5 | 10.0 |
"""

FANTASY_TEXT = (
    "Sengun keeps stuffing the box score as the hub of the Houston offense "
    "and remains a top-five center option"
)

PLAYER_PAGE = f"""
## Alperen Sengun

99.1% Rostered
Position Rank: #3

### Previous Game
W 112-104 vs LAL
24 PTS 11 REB 6 AST +9

### Stats
| Split | GP | MIN | PTS | REB | AST | STL | BLK | FG% | 3P% | FT% |
|-------|----|-----|-----|-----|-----|-----|-----|-----|-----|-----|
| Last 10 | 10 | 33.2 | 21.4 | 10.8 | 5.1 | 1.2 | 0.9 | 49.8 | 31.0 | 72.5 |
| 2024-25 | 60 | 32.0 | 19.1 | 10.4 | 4.9 | 1.1 | 0.8 | 49.6 | 27.8 | 70.2 |

Fantasy Spin: {FANTASY_TEXT}
"""


class TestParseNumber:

    @pytest.mark.parametrize("text,expected", [
        ("32.1", 32.1),
        (".560", 0.56),
        ("58.1%", 58.1),
        ("-3", -3.0),
    ])
    def test_numbers(self, text, expected):
        assert parse_number(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", [None, "", "RK", "--"])
    def test_non_numbers(self, text):
        assert parse_number(text) is None


class TestHollinger:

    def test_leaderboard_rows(self):
        rows = parse_hollinger_leaderboard(HOLLINGER_PAGE)

        assert [row["rank"] for row in rows] == [1, 14]
        assert rows[0]["player_name"] == "Nikola Jokic"
        assert rows[0]["team"] == "DEN"

    def test_row_fields(self):
        row = parse_hollinger_leaderboard(HOLLINGER_PAGE)[1]

        assert row["player_name"] == "Alperen Sengun"
        assert row["team"] == "HOU"
        assert row["gp"] == 48
        assert row["mpg"] == pytest.approx(32.1)
        assert row["ts_pct"] == pytest.approx(0.56)
        assert row["usg"] == pytest.approx(25.7)
        assert row["per"] == pytest.approx(22.4)
        assert row["va"] == pytest.approx(301.5)
        assert row["ewa"] == pytest.approx(10.0)

    def test_single_row_by_turkish_name(self):
        row = parse_hollinger_row(HOLLINGER_PAGE, "Alperen Şengün")

        assert row is not None
        assert row["rank"] == 14

    def test_single_row_missing(self):
        assert parse_hollinger_row(HOLLINGER_PAGE, "Cedi Osman") is None

    def test_empty_page(self):
        assert parse_hollinger_leaderboard("") == []


class TestPlayerPage:

    def test_splits(self):
        splits = parse_splits(PLAYER_PAGE)

        assert [s["label"] for s in splits] == ["Last 10", "2024-25"]
        last_10 = splits[0]
        assert last_10["gp"] == 10
        assert last_10["pts"] == pytest.approx(21.4)
        assert last_10["ft_pct"] == pytest.approx(72.5)

    def test_previous_game(self):
        game = parse_previous_game(PLAYER_PAGE)

        assert game == {
            "date": None,
            "opponent": "LAL",
            "result": "W 112-104",
            "pts": 24,
            "reb": 11,
            "ast": 6,
            "plusMinus": 9,
            "isWin": True,
        }

    def test_away_loss(self):
        game = parse_previous_game("L 98-101 @ BOS\n18 PTS 9 REB 3 AST -4")

        assert game["opponent"] == "@BOS"
        assert game["isWin"] is False
        assert game["plusMinus"] == -4

    def test_fantasy_insight(self):
        assert parse_fantasy_insight(PLAYER_PAGE) == FANTASY_TEXT

    def test_full_page(self):
        parsed = parse_player_page(PLAYER_PAGE)

        assert parsed["position_rank"] == 3
        assert parsed["roster_pct"] == pytest.approx(99.1)
        assert len(parsed["splits"]) == 2
        assert parsed["previous_game"]["result"] == "W 112-104"

    def test_unrecognized_page(self):
        parsed = parse_player_page("# Page not found")

        assert parsed == {
            "previous_game": None,
            "splits": [],
            "fantasy_insight": None,
            "position_rank": None,
            "roster_pct": None,
        }
