"""balldontlie adapter for NBA stats, injuries and live games.

Data transformation:
- /season_averages      → one aggregate map per player per season, stored as-is
- /stats                → DailyUpdateRecord per game (minutes from "MM:SS")
- /injuries             → injured / doubtful / minor / healthy
- /games + /stats       → live game snapshot (clock, score, box line)

Season years follow the NBA calendar: a season starts in October, so
November 2024 and March 2025 both belong to season 2024 ("2024-25").
"""
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from app.core.config import settings
from app.core.exceptions import SourceError
from app.core.logging import get_logger
from app.models import Athlete
from app.services.core.base_api_adapter import BaseSourceAdapter, is_retryable_error
from app.services.core.circuit_breaker import balldontlie_breaker
from app.services.sync.stats_types import BasketballStats, DailyUpdateRecord, LiveMatchRecord
from app.services.sync.utils.dates import parse_iso_date, parse_iso_datetime
from app.services.sync.utils.name_matcher import match_player_name, search_variants

logger = get_logger(__name__)

# balldontlie team ids for tracked athletes' clubs
NBA_TEAM_IDS: Dict[str, int] = {
    "Houston Rockets": 11,
    "Rockets": 11,
}

INJURY_STATUS_MAP = {
    "Out": "injured",
    "Questionable": "doubtful",
    "Probable": "minor",
}

_QUARTER_RE = re.compile(r"(\d)(st|nd|rd|th)\s*(qtr|quarter)", re.IGNORECASE)
_OT_RE = re.compile(r"(\d)?.*ot", re.IGNORECASE)
_CLOCK_RE = re.compile(r"(\d+):(\d+)")


# ============================================================================
# PURE HELPERS
# ============================================================================

def nba_season_year(now: Optional[datetime] = None) -> int:
    """Season start year: current year from October on, previous year before."""
    now = now or datetime.utcnow()
    return now.year if now.month >= 10 else now.year - 1


def season_label(year: int) -> str:
    """NBA season label, e.g. 2024 → '2024-25'."""
    return f"{year}-{str(year + 1)[-2:]}"


def parse_minutes(value: Any) -> int:
    """Whole minutes from balldontlie's "MM:SS" (or numeric) minutes field."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(str(value).split(":")[0] or 0)
    except ValueError:
        return 0


def map_injury_status(status: Optional[str]) -> str:
    return INJURY_STATUS_MAP.get(status or "", "healthy")


def map_game_status(status: Optional[str]) -> str:
    """Map a balldontlie game status to scheduled/live/halftime/finished."""
    if not status:
        return "scheduled"
    s = status.lower()
    if s == "final":
        return "finished"
    if s in ("halftime", "half"):
        return "halftime"
    if "qtr" in s or "quarter" in s or "ot" in s or s == "in progress":
        return "live"
    # Tip-off times like "7:00 pm ET" are still scheduled
    return "scheduled"


def format_game_clock(status: Optional[str], time: Optional[str] = None) -> str:
    """Display clock, e.g. 'Q3 · 5:42', 'OT2', 'Halftime', 'Final'."""
    if not status:
        return ""
    s = status.lower()
    if s in ("halftime", "half"):
        return "Halftime"
    if s == "final":
        return "Final"

    time_str = f" · {time}" if time else ""
    quarter = _QUARTER_RE.search(status)
    if quarter:
        return f"Q{quarter.group(1)}{time_str}"

    if "ot" in s:
        ot = _OT_RE.search(status)
        ot_num = (ot.group(1) if ot else None) or "1"
        return f"OT{ot_num if ot_num != '1' else ''}{time_str}"

    return status


def current_game_minute(status: Optional[str], time: Optional[str] = None) -> int:
    """Approximate elapsed minute: 12-minute quarters, halftime = 24."""
    if not status:
        return 0
    quarter = _QUARTER_RE.search(status)
    if quarter:
        minute = (int(quarter.group(1)) - 1) * 12
        clock = _CLOCK_RE.search(time or "")
        if clock:
            minute += 12 - int(clock.group(1))
        return minute
    if "halftime" in status.lower():
        return 24
    return 0


def build_daily_update(stat: Dict[str, Any]) -> Optional[DailyUpdateRecord]:
    """Map one /stats row to a DailyUpdateRecord (None when the game has no date)."""
    game = stat.get("game") or {}
    match_day = parse_iso_date(game.get("date"))
    if match_day is None:
        return None

    team_id = (stat.get("team") or {}).get("id")
    home_id = game.get("home_team_id") or (game.get("home_team") or {}).get("id")
    is_home = team_id is not None and team_id == home_id
    opponent_team = game.get("visitor_team") if is_home else game.get("home_team")
    opponent = (opponent_team or {}).get("full_name") or (opponent_team or {}).get("name") or "Unknown"

    team_score = game.get("home_team_score") if is_home else game.get("visitor_team_score")
    opp_score = game.get("visitor_team_score") if is_home else game.get("home_team_score")
    minutes = parse_minutes(stat.get("min"))

    return DailyUpdateRecord(
        date=match_day,
        played=minutes > 0,
        opponent=opponent,
        competition="NBA",
        home_away="home" if is_home else "away",
        match_result=f"{team_score}-{opp_score}" if team_score is not None and opp_score is not None else None,
        minutes_played=minutes,
        stats=BasketballStats(
            points=stat.get("pts") or 0,
            rebounds=stat.get("reb") or 0,
            assists=stat.get("ast") or 0,
            steals=stat.get("stl") or 0,
            blocks=stat.get("blk") or 0,
            turnovers=stat.get("turnover") or 0,
            plus_minus=stat.get("plus_minus"),
            fg_made=stat.get("fgm") or 0,
            fg_attempted=stat.get("fga") or 0,
            fg_pct=stat.get("fg_pct"),
            fg3_made=stat.get("fg3m") or 0,
            fg3_attempted=stat.get("fg3a") or 0,
            fg3_pct=stat.get("fg3_pct"),
            ft_made=stat.get("ftm") or 0,
            ft_attempted=stat.get("fta") or 0,
            ft_pct=stat.get("ft_pct"),
            offensive_rebounds=stat.get("oreb") or 0,
            defensive_rebounds=stat.get("dreb") or 0,
            personal_fouls=stat.get("pf") or 0,
            fouls_drawn=stat.get("pfd"),
        ),
    )


def build_live_box(stat: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Compact live box line for the live-match card."""
    if not stat:
        return {}
    return {
        "points": stat.get("pts") or 0,
        "rebounds": stat.get("reb") or 0,
        "assists": stat.get("ast") or 0,
        "steals": stat.get("stl") or 0,
        "blocks": stat.get("blk") or 0,
        "minutes": stat.get("min") or "0",
        "fg": f"{stat.get('fgm') or 0}/{stat.get('fga') or 0}",
        "fg3": f"{stat.get('fg3m') or 0}/{stat.get('fg3a') or 0}",
        "ft": f"{stat.get('ftm') or 0}/{stat.get('fta') or 0}",
    }


class BalldontlieAdapter(BaseSourceAdapter):
    """
    Adapter for the balldontlie NBA API (v1).

    Authenticated with the raw key in the Authorization header.
    """

    source_name = "balldontlie"
    config_key_name = "BALLDONTLIE_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.BALLDONTLIE_API_KEY,
            base_url=base_url or settings.BALLDONTLIE_BASE_URL,
            client=client,
        )

    def _default_headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key or ""}

    @balldontlie_breaker
    async def _guarded_request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request_json(path, params)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(is_retryable_error),
        reraise=True,
    )
    async def _fetch_with_breaker(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._guarded_request(path, params)

    async def _get_data(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        data = await self._fetch_json(path, params)
        return data.get("data") or []

    # ========================================================================
    # Identity
    # ========================================================================

    async def resolve_player_id(self, athlete: Athlete) -> Optional[int]:
        """Cached id, else /players?search= over name variants matched with NameMatcher."""
        if athlete.balldontlie_id:
            return athlete.balldontlie_id

        for variant in search_variants(athlete.name):
            players = await self._get_data("/players", {"search": variant})
            for player in players:
                full_name = f"{player.get('first_name', '')} {player.get('last_name', '')}".strip()
                if match_player_name(full_name, athlete.name):
                    logger.info(f"Found balldontlie player {full_name} ({player.get('id')}) for {athlete.name}")
                    return player.get("id")

        logger.info(f"Could not find {athlete.name} in balldontlie")
        return None

    async def resolve_team_id(self, athlete: Athlete, player_id: int) -> Optional[int]:
        """Static map by team name, else the player's current team from /players/{id}."""
        if athlete.team in NBA_TEAM_IDS:
            return NBA_TEAM_IDS[athlete.team]
        data = await self._fetch_json(f"/players/{player_id}")
        player = data.get("data") or {}
        return (player.get("team") or {}).get("id")

    # ========================================================================
    # Stats
    # ========================================================================

    async def fetch_season_averages(self, player_id: int, season_year: int) -> Optional[Dict[str, Any]]:
        """Single aggregate call; the averages map is returned untouched."""
        rows = await self._get_data("/season_averages", {"player_id": player_id, "season": season_year})
        return rows[0] if rows else None

    async def fetch_recent_matches(self, player_id: int, season_year: int) -> List[DailyUpdateRecord]:
        rows = await self._get_data(
            "/stats", {"player_id": player_id, "season": season_year, "per_page": 100}
        )
        records = [build_daily_update(row) for row in rows]
        return [r for r in records if r is not None]

    async def fetch_injury(self, player_id: int) -> Optional[Dict[str, Any]]:
        """Most recent injury report entry, or None."""
        rows = await self._get_data("/injuries", {"player_ids[]": player_id})
        if not rows:
            return None
        injury = rows[0]
        return {
            "status": injury.get("status") or "unknown",
            "comment": injury.get("comment"),
            "return_date": injury.get("return_date"),
        }

    async def fetch_games(self, team_id: int, start: date, end: date) -> List[Dict[str, Any]]:
        return await self._get_data("/games", {
            "team_ids[]": team_id,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "per_page": 10,
        })

    async def fetch_game_stats(self, player_id: int, game_id: int) -> Optional[Dict[str, Any]]:
        rows = await self._get_data("/stats", {"player_ids[]": player_id, "game_ids[]": game_id})
        return rows[0] if rows else None

    async def fetch_live_game(
        self,
        player_id: Optional[int],
        team_id: int,
        now: Optional[datetime] = None,
    ) -> Optional[LiveMatchRecord]:
        """
        Live or halftime game for the team within yesterday..tomorrow.

        Returns:
            LiveMatchRecord, or None when no game is in progress
        """
        today = (now or datetime.utcnow()).date()
        games = await self.fetch_games(team_id, today - timedelta(days=1), today + timedelta(days=1))

        for game in games:
            status = map_game_status(game.get("status"))
            if status not in ("live", "halftime"):
                continue

            is_home = (game.get("home_team") or {}).get("id") == team_id
            opponent_team = (game.get("visitor_team") if is_home else game.get("home_team")) or {}

            box = None
            if player_id:
                try:
                    box = await self.fetch_game_stats(player_id, game.get("id"))
                except SourceError as e:
                    logger.warning(f"Could not fetch live player stats for game {game.get('id')}: {e}")

            return LiveMatchRecord(
                opponent=opponent_team.get("full_name") or "Unknown",
                competition="NBA",
                home_away="home" if is_home else "away",
                match_status=status,
                kickoff_time=parse_iso_datetime(game.get("datetime") or game.get("date")),
                current_minute=current_game_minute(game.get("status"), game.get("time")),
                home_score=game.get("home_team_score") or 0,
                away_score=game.get("visitor_team_score") or 0,
                athlete_stats=build_live_box(box),
                last_event=format_game_clock(game.get("status"), game.get("time")) or None,
            )
        return None
