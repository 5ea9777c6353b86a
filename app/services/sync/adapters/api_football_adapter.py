"""API-Football adapter for football stats, fixtures and live matches.

Data transformation:
- /players?id=&season=        → SeasonStatsRecord per competition
- /fixtures?team=&last=       → DailyUpdateRecord per completed fixture, with
                                the player's line from /fixtures/players
                                (explicit did-not-play record when absent)
- /fixtures?team=&next=       → UpcomingMatchRecord inside the look-ahead window
- /fixtures?live=all          → raw live fixtures, filtered by the orchestrator

Player ids are resolved lazily: cached id → team squad search → name search
over search_variants(), preferring Turkish nationality.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from app.core.config import settings
from app.core.logging import get_logger
from app.models import Athlete
from app.services.core.base_api_adapter import BaseSourceAdapter, is_retryable_error
from app.services.core.circuit_breaker import api_football_breaker
from app.services.sync.schedule_filter import window_bounds
from app.services.sync.stats_types import (
    DailyUpdateRecord, FootballStats, SeasonStatsRecord, UpcomingMatchRecord,
)
from app.services.sync.utils.dates import parse_iso_date, parse_iso_datetime
from app.services.sync.utils.name_matcher import (
    best_fuzzy_match, match_player_name, search_variants,
)

logger = get_logger(__name__)

# API-Football team ids for the clubs tracked athletes play for
TEAM_IDS: Dict[str, int] = {
    "Real Madrid": 541,
    "Juventus": 496,
    "Brighton": 51,
    "Brighton & Hove Albion": 51,
    "Lille": 79,
    "Eintracht Frankfurt": 169,
    "Udinese": 494,
    "Inter": 505,
    "Inter Milan": 505,
    "Cagliari": 490,
    "Bournemouth": 35,
    "AS Roma": 497,
    "Al-Ahli": 2932,
    "Al Ahli": 2932,
    "Al-Hilal": 2939,
    "Al Hilal": 2939,
    "Manchester United": 33,
    "Man United": 33,
    "VfB Stuttgart": 157,
    "Stuttgart": 157,
    "Borussia Dortmund": 165,
    "Dortmund": 165,
    "FC Porto": 212,
    "Porto": 212,
    "Pisa": 520,
    "Torino": 503,
    "Torino FC": 503,
}

LIVE_STATUSES = {"1H", "2H", "ET", "P"}
FINISHED_STATUSES = {"FT", "AET", "PEN"}


# ============================================================================
# PURE MAPPING HELPERS
# ============================================================================

def map_fixture_status(short: Optional[str]) -> str:
    """Map an API-Football short status to live/halftime/finished/scheduled."""
    if short in LIVE_STATUSES:
        return "live"
    if short == "HT":
        return "halftime"
    if short in FINISHED_STATUSES:
        return "finished"
    return "scheduled"


def season_label(year: int) -> str:
    """European season label, e.g. 2024 → '2024/25'."""
    return f"{year}/{str(year + 1)[-2:]}"


def format_last_event(events: List[Dict[str, Any]]) -> Optional[str]:
    """Display string for the most recent goal, card or substitution."""
    if not events:
        return None

    event = events[-1]
    event_type = event.get("type")
    player_name = (event.get("player") or {}).get("name") or "Unknown"
    minute = (event.get("time") or {}).get("elapsed") or ""

    if event_type == "Goal":
        return f"⚽ Goal! {player_name} ({minute}')"
    if event_type == "Card":
        card = "🟨" if event.get("detail") == "Yellow Card" else "🟥"
        return f"{card} {player_name} ({minute}')"
    if event_type == "subst":
        return f"🔄 {player_name} substituted ({minute}')"
    return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def build_live_stats(entry: Dict[str, Any]) -> Dict[str, Any]:
    """In-game stat snapshot for one /fixtures/players entry."""
    stats = (entry.get("statistics") or [{}])[0]
    games = stats.get("games") or {}
    goals = stats.get("goals") or {}
    shots = stats.get("shots") or {}
    passes = stats.get("passes") or {}
    tackles = stats.get("tackles") or {}
    fouls = stats.get("fouls") or {}
    cards = stats.get("cards") or {}

    return {
        "minutes": games.get("minutes") or 0,
        "rating": _to_float(games.get("rating")),
        "goals": goals.get("total") or 0,
        "assists": goals.get("assists") or 0,
        "shots": shots.get("total") or 0,
        "shotsOnTarget": shots.get("on") or 0,
        "passes": passes.get("total") or 0,
        "passAccuracy": _to_int(passes.get("accuracy")) or 0,
        "tackles": tackles.get("total") or 0,
        "interceptions": tackles.get("interceptions") or 0,
        "duelsWon": (stats.get("duels") or {}).get("won") or 0,
        "dribbles": (stats.get("dribbles") or {}).get("success") or 0,
        "foulsCommitted": fouls.get("committed") or 0,
        "foulsDrawn": fouls.get("drawn") or 0,
        "yellowCards": cards.get("yellow") or 0,
        "redCards": cards.get("red") or 0,
    }


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).rstrip("%")) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def extract_fixture_stats(entry: Dict[str, Any]) -> FootballStats:
    """Map one /fixtures/players entry to FootballStats (goalkeeper fields when position is G)."""
    stats = (entry.get("statistics") or [{}])[0]
    games = stats.get("games") or {}
    goals = stats.get("goals") or {}
    shots = stats.get("shots") or {}
    passes = stats.get("passes") or {}
    tackles = stats.get("tackles") or {}
    cards = stats.get("cards") or {}
    dribbles = stats.get("dribbles") or {}

    result = FootballStats(
        goals=goals.get("total") or 0,
        assists=goals.get("assists") or 0,
        minutes=games.get("minutes") or 0,
        yellow_cards=cards.get("yellow") or 0,
        red_cards=cards.get("red") or 0,
        rating=_to_float(games.get("rating")),
        shots_total=shots.get("total") or 0,
        shots_on_target=shots.get("on") or 0,
        passes_total=passes.get("total") or 0,
        passes_accuracy=_to_int(passes.get("accuracy")),
        key_passes=passes.get("key") or 0,
        tackles=tackles.get("total") or 0,
        interceptions=tackles.get("interceptions") or 0,
        dribbles_success=dribbles.get("success") or 0,
        dribbles_attempts=dribbles.get("attempts") or 0,
    )

    if games.get("position") == "G":
        conceded = goals.get("conceded") or 0
        result.saves = goals.get("saves") or 0
        result.goals_conceded = conceded
        result.clean_sheet = result.minutes > 0 and conceded == 0

    return result


def find_player_entry(
    players: List[Dict[str, Any]],
    athlete_name: str,
    player_id: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    """Locate a player's line in a fixture payload by id, then by name."""
    if player_id:
        for entry in players:
            if (entry.get("player") or {}).get("id") == player_id:
                return entry
    for entry in players:
        if match_player_name((entry.get("player") or {}).get("name"), athlete_name):
            return entry
    return None


class ApiFootballAdapter(BaseSourceAdapter):
    """
    Adapter for the API-Football v3 REST API.

    Authenticated with the x-apisports-key header.
    """

    source_name = "api_football"
    config_key_name = "API_FOOTBALL_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        season: Optional[int] = None,
        request_delay: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.API_FOOTBALL_KEY,
            base_url=base_url or settings.API_FOOTBALL_BASE_URL,
            request_delay=settings.FOOTBALL_REQUEST_DELAY if request_delay is None else request_delay,
            client=client,
        )
        self.season = season or settings.FOOTBALL_SEASON

    def _default_headers(self) -> Dict[str, str]:
        return {"x-apisports-key": self.api_key or ""}

    @api_football_breaker
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

    async def _get_response(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Fetch an endpoint and return its ``response`` list."""
        data = await self._fetch_json(path, params)
        if data.get("errors"):
            logger.warning(f"API-Football errors for {path}: {data['errors']}")
        return data.get("response") or []

    # ========================================================================
    # Identity resolution
    # ========================================================================

    async def resolve_team_id(self, team_name: Optional[str]) -> Optional[int]:
        """Static TEAM_IDS map first, then /teams?search=."""
        if not team_name:
            return None
        if team_name in TEAM_IDS:
            return TEAM_IDS[team_name]

        logger.info(f"No cached team ID for {team_name}, searching...")
        results = await self._get_response("/teams", {"search": team_name})
        if results:
            team_id = (results[0].get("team") or {}).get("id")
            logger.info(f"Found team ID {team_id} for {team_name}")
            return team_id
        return None

    async def find_player_in_squad(self, team_id: int, athlete_name: str) -> Optional[int]:
        """Look the athlete up in a team's current squad."""
        results = await self._get_response("/players/squads", {"team": team_id})
        squad = (results[0].get("players") if results else None) or []

        for player in squad:
            if match_player_name(player.get("name"), athlete_name):
                logger.info(f"Found {athlete_name} in squad of team {team_id}: {player.get('name')} ({player.get('id')})")
                return player.get("id")

        fuzzy = best_fuzzy_match(athlete_name, [(p.get("name") or "", p) for p in squad])
        if fuzzy:
            logger.info(f"Fuzzy-matched {athlete_name} to {fuzzy.get('name')} in team {team_id}")
            return fuzzy.get("id")

        logger.info(f"Player {athlete_name} not found in team {team_id} squad")
        return None

    async def search_player(self, athlete_name: str) -> Optional[int]:
        """Name search over progressively looser variants, preferring Turkish players."""
        for variant in search_variants(athlete_name):
            results = await self._get_response("/players", {"search": variant, "season": self.season})
            if not results:
                continue

            matching = [
                r for r in results
                if match_player_name((r.get("player") or {}).get("name"), athlete_name)
            ] or results

            for result in matching:
                if (result.get("player") or {}).get("nationality") == "Turkey":
                    return result["player"]["id"]
            return (matching[0].get("player") or {}).get("id")

        logger.info(f"Could not find player: {athlete_name}")
        return None

    async def resolve_player_id(self, athlete: Athlete) -> Optional[int]:
        """
        Resolve the athlete's API-Football id.

        Returns:
            Cached id, squad match, or name-search match; None if not found
        """
        if athlete.api_football_id:
            return athlete.api_football_id

        team_id = TEAM_IDS.get(athlete.team or "")
        if team_id:
            player_id = await self.find_player_in_squad(team_id, athlete.name)
            if player_id:
                return player_id

        return await self.search_player(athlete.name)

    # ========================================================================
    # Stats
    # ========================================================================

    async def fetch_season_stats(self, player_id: int, season: Optional[int] = None) -> List[SeasonStatsRecord]:
        """One SeasonStatsRecord per competition the player appeared in."""
        season = season or self.season
        results = await self._get_response("/players", {"id": player_id, "season": season})
        if not results:
            return []

        records = []
        for stat in results[0].get("statistics") or []:
            league = stat.get("league") or {}
            games = stat.get("games") or {}
            goals = stat.get("goals") or {}
            passes = stat.get("passes") or {}
            tackles = stat.get("tackles") or {}
            cards = stat.get("cards") or {}
            shots = stat.get("shots") or {}
            dribbles = stat.get("dribbles") or {}

            records.append(SeasonStatsRecord(
                season=season_label(league.get("season") or season),
                competition=league.get("name") or "Unknown",
                games_played=games.get("appearences") or 0,
                games_started=games.get("lineups") or 0,
                stats=FootballStats(
                    goals=goals.get("total") or 0,
                    assists=goals.get("assists") or 0,
                    minutes=games.get("minutes") or 0,
                    yellow_cards=cards.get("yellow") or 0,
                    red_cards=cards.get("red") or 0,
                    rating=_to_float(games.get("rating")),
                    shots_total=shots.get("total") or 0,
                    shots_on_target=shots.get("on") or 0,
                    passes_total=passes.get("total") or 0,
                    passes_accuracy=_to_int(passes.get("accuracy")) or 0,
                    key_passes=passes.get("key") or 0,
                    tackles=tackles.get("total") or 0,
                    interceptions=tackles.get("interceptions") or 0,
                    dribbles_success=dribbles.get("success") or 0,
                    dribbles_attempts=dribbles.get("attempts") or 0,
                ),
            ))
        return records

    async def fetch_fixture_players(self, fixture_id: int, team_id: int) -> List[Dict[str, Any]]:
        """Player lines of one team in one fixture."""
        results = await self._get_response("/fixtures/players", {"fixture": fixture_id})
        for team_block in results:
            if (team_block.get("team") or {}).get("id") == team_id:
                return team_block.get("players") or []
        return []

    async def fetch_fixture_events(self, fixture_id: int) -> List[Dict[str, Any]]:
        return await self._get_response("/fixtures/events", {"fixture": fixture_id})

    async def fetch_recent_matches(
        self,
        athlete: Athlete,
        player_id: Optional[int],
        team_id: int,
        last: int = 5,
    ) -> List[DailyUpdateRecord]:
        """
        DailyUpdateRecords for the team's recently completed fixtures.

        A fixture without a line for the player yields played=False,
        minutes_played=0 so the history has no silent gaps.
        """
        fixtures = await self._get_response("/fixtures", {"team": team_id, "last": last})

        records = []
        for fixture in fixtures:
            info = fixture.get("fixture") or {}
            short = (info.get("status") or {}).get("short")
            match_day = parse_iso_date(info.get("date"))
            if match_day is None or map_fixture_status(short) != "finished":
                continue

            teams = fixture.get("teams") or {}
            is_home = (teams.get("home") or {}).get("id") == team_id
            opponent = (teams.get("away") if is_home else teams.get("home")) or {}
            goals = fixture.get("goals") or {}

            players = await self.fetch_fixture_players(info.get("id"), team_id)
            entry = find_player_entry(players, athlete.name, player_id)
            stats = extract_fixture_stats(entry) if entry else None
            played = bool(stats and stats.minutes > 0)

            records.append(DailyUpdateRecord(
                date=match_day,
                played=played,
                opponent=opponent.get("name") or "Unknown",
                competition=(fixture.get("league") or {}).get("name") or "Unknown",
                home_away="home" if is_home else "away",
                match_result=f"{goals.get('home') or 0}-{goals.get('away') or 0}",
                minutes_played=stats.minutes if stats else 0,
                rating=stats.rating if played else None,
                stats=stats if played else None,
            ))
            await self.polite_delay()
        return records

    async def fetch_upcoming_matches(
        self,
        team_id: int,
        next_count: int = 10,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> List[UpcomingMatchRecord]:
        """
        Team fixtures kicking off within the next ``days`` days.

        Fixtures that kicked off inside the live window are kept so a match in
        progress stays visible to the live poller.
        """
        now = now or datetime.utcnow()
        earliest, _ = window_bounds(now)
        horizon = now + timedelta(days=days)
        fixtures = await self._get_response("/fixtures", {"team": team_id, "next": next_count})

        records = []
        for fixture in fixtures:
            kickoff = parse_iso_datetime((fixture.get("fixture") or {}).get("date"))
            if kickoff is None or kickoff < earliest or kickoff > horizon:
                continue
            teams = fixture.get("teams") or {}
            is_home = (teams.get("home") or {}).get("id") == team_id
            opponent = (teams.get("away") if is_home else teams.get("home")) or {}
            records.append(UpcomingMatchRecord(
                match_date=kickoff,
                opponent=opponent.get("name") or "Unknown",
                competition=(fixture.get("league") or {}).get("name") or "Unknown",
                home_away="home" if is_home else "away",
            ))
        return records

    async def fetch_live_fixtures(self) -> List[Dict[str, Any]]:
        """All fixtures currently in play."""
        return await self._get_response("/fixtures", {"live": "all"})
