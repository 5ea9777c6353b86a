"""
FotMob adapter: the public playerData endpoint used by fotmob.com itself.

No key is needed, but the endpoint rejects requests that do not look like
they come from the site, so every call carries browser headers.

One playerData payload yields three kinds of rows:
- careerHistory.careerItems.entries → SeasonStats (goals, assists, club)
- recentMatches                     → DailyUpdate (rating merged if the date exists)
- injuryHistory                     → InjuryHistory (inserted once per start date)
"""
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from app.core.config import settings
from app.core.exceptions import SourceError
from app.core.logging import get_logger
from app.models import Athlete
from app.services.core.base_api_adapter import BaseSourceAdapter, is_retryable_error
from app.services.core.circuit_breaker import fotmob_breaker
from app.services.sync.utils.dates import parse_iso_date

logger = get_logger(__name__)

FOTMOB_PLAYER_PAGE = "https://www.fotmob.com/players"

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Origin": "https://www.fotmob.com",
    "Referer": "https://www.fotmob.com/",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
}

# FotMob ids of the tracked roster, used until the athlete row has one
KNOWN_FOTMOB_IDS: Dict[str, int] = {
    "altay-bayindir": 802498,
    "arda-guler": 1316257,
    "atakan-karazor": 605911,
    "baris-alper-yilmaz": 1155108,
    "berke-ozer": 1002847,
    "can-uzun": 1241857,
    "deniz-gul": 1205988,
    "enes-unal": 574609,
    "ferdi-kadioglu": 869509,
    "hakan-calhanoglu": 275008,
    "kenan-yildiz": 1183977,
    "kerem-akturkoglu": 1039891,
    "merih-demiral": 619618,
    "orkun-kokcu": 848572,
    "semih-kilicsoy": 1421673,
    "yunus-akgun": 909712,
    "yusuf-akcicek": 1103482,
}


def fotmob_id_for(athlete: Athlete) -> Optional[int]:
    return athlete.fotmob_id or KNOWN_FOTMOB_IDS.get(athlete.slug)


def build_season_rows(player: Dict[str, Any]) -> List[Dict[str, Any]]:
    """SeasonStats values from the career table; entries without season or tournament are skipped."""
    entries = ((player.get("careerHistory") or {}).get("careerItems") or {}).get("entries") or []
    rows = []
    for entry in entries:
        if not entry.get("season") or not entry.get("tournamentName"):
            continue
        rows.append({
            "season": entry["season"],
            "competition": entry["tournamentName"],
            "games_played": entry.get("matches") or 0,
            "stats": {
                "goals": entry.get("goals") or 0,
                "assists": entry.get("assists") or 0,
                "team": entry.get("teamName"),
                "team_id": entry.get("teamId"),
                "source": "fotmob",
            },
        })
    return rows


def build_match_rows(player: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    DailyUpdate values for the recent-match list.

    The score is written from the athlete's side: "2-1" means their team
    scored two.
    """
    rows = []
    for match in player.get("recentMatches") or []:
        match_date = parse_iso_date((match.get("matchDate") or {}).get("utcTime"))
        if match_date is None:
            continue
        home_score = match.get("homeScore") or 0
        away_score = match.get("awayScore") or 0
        is_home = bool(match.get("isHome"))
        rows.append({
            "date": match_date,
            "opponent": match.get("opponentTeamName"),
            "competition": match.get("leagueName") or "Unknown",
            "home_away": "home" if is_home else "away",
            "match_result": f"{home_score}-{away_score}" if is_home else f"{away_score}-{home_score}",
            "played": True,
            "minutes_played": match.get("minutesPlayed") or None,
            "rating": match.get("playerRating") or None,
            "stats": {
                "goals": match.get("goals") or 0,
                "assists": match.get("assists") or 0,
                "fotmob_match_id": match.get("matchId"),
                "source": "fotmob",
            },
            "injury_status": "healthy",
        })
    return rows


def build_injury_rows(player: Dict[str, Any]) -> List[Dict[str, Any]]:
    """InjuryHistory values; an injury without an end date is current."""
    rows = []
    for injury in player.get("injuryHistory") or []:
        start = parse_iso_date(injury.get("startDate"))
        if start is None:
            continue
        end = parse_iso_date(injury.get("endDate"))
        rows.append({
            "injury_type": injury.get("injuryType") or "Unknown Injury",
            "start_date": start,
            "end_date": end,
            "games_missed": injury.get("gamesMissed") or None,
            "is_current": end is None,
            "source": "fotmob",
        })
    return rows


class FotmobAdapter(BaseSourceAdapter):
    """Adapter for FotMob player data."""

    source_name = "fotmob"

    def __init__(
        self,
        base_url: Optional[str] = None,
        request_delay: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            base_url=base_url or settings.FOTMOB_BASE_URL,
            request_delay=settings.FOTMOB_REQUEST_DELAY if request_delay is None else request_delay,
            client=client,
        )

    @property
    def is_configured(self) -> bool:
        return True

    def _default_headers(self) -> Dict[str, str]:
        return BROWSER_HEADERS

    @fotmob_breaker
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

    async def fetch_player(self, fotmob_id: int) -> Dict[str, Any]:
        """
        Full playerData payload for one player.

        Raises:
            SourceError: If the request fails or FotMob returns an empty
                payload (its answer to blocked requests)
        """
        logger.info(f"Fetching FotMob data for player id {fotmob_id}")
        data = await self._fetch_json("/playerData", {"id": fotmob_id})
        if not isinstance(data, dict) or not data.get("name"):
            raise SourceError(f"FotMob returned no player data for id {fotmob_id}")
        return data
