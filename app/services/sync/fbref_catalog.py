"""
FBref player catalog for the tracked footballers.

FBref has no API; advanced stats are scraped outside this service and pushed
to the /sync/fbref endpoints. The catalog pins each athlete slug to its FBref
player id so profile links can be written without a name search.
"""
from dataclasses import dataclass
from typing import Any, Dict, List

FBREF_PLAYERS_URL = "https://fbref.com/en/players"


@dataclass(frozen=True)
class FbrefPlayer:
    name: str
    slug: str
    fbref_id: str
    team: str
    league: str


FBREF_PLAYERS: List[FbrefPlayer] = [
    FbrefPlayer("Arda Güler", "arda-guler", "3741ca58", "Real Madrid", "La Liga"),
    FbrefPlayer("Kenan Yıldız", "kenan-yildiz", "d8cda243", "Juventus", "Serie A"),
    FbrefPlayer("Hakan Çalhanoğlu", "hakan-calhanoglu", "cd0fa27b", "Inter", "Serie A"),
    FbrefPlayer("Ferdi Kadıoğlu", "ferdi-kadioglu", "66c52a77", "Brighton", "Premier League"),
    FbrefPlayer("Can Uzun", "can-uzun", "1d0b134a", "Eintracht Frankfurt", "Bundesliga"),
    FbrefPlayer("Berke Özer", "berke-ozer", "0743d0ec", "Lille", "Ligue 1"),
    FbrefPlayer("Altay Bayındır", "altay-bayindir", "072e68ed", "Manchester United", "Premier League"),
    FbrefPlayer("Enes Ünal", "enes-unal", "8a559e2a", "Bournemouth", "Premier League"),
    FbrefPlayer("Merih Demiral", "merih-demiral", "b6260402", "Al-Ahli", "Saudi Pro League"),
    FbrefPlayer("Orkun Kökçü", "orkun-kokcu", "68f7de41", "Benfica", "Primeira Liga"),
    FbrefPlayer("Kerem Aktürkoğlu", "kerem-akturkoglu", "51b22e7a", "Benfica", "Primeira Liga"),
    FbrefPlayer("Semih Kılıçsoy", "semih-kilicsoy", "12b6abf6", "Beşiktaş", "Süper Lig"),
    FbrefPlayer("Yusuf Akçiçek", "yusuf-akcicek", "4c7f9a82", "Bayern Munich", "Bundesliga"),
    FbrefPlayer("Atakan Karazor", "atakan-karazor", "e6a8a1a0", "Stuttgart", "Bundesliga"),
    FbrefPlayer("Barış Alper Yılmaz", "baris-alper-yilmaz", "3e2bb7f0", "Galatasaray", "Süper Lig"),
    FbrefPlayer("Yunus Akgün", "yunus-akgun", "a15e4b2c", "Galatasaray", "Süper Lig"),
    FbrefPlayer("Deniz Gül", "deniz-gul", "6f59f35b", "Galatasaray", "Süper Lig"),
]


def fbref_url(fbref_id: str, name: str) -> str:
    """Profile URL; FBref only uses the trailing name segment for display."""
    return f"{FBREF_PLAYERS_URL}/{fbref_id}/{'-'.join(name.split())}"


def player_listing() -> List[Dict[str, Any]]:
    return [
        {
            "name": p.name,
            "slug": p.slug,
            "fbref_id": p.fbref_id,
            "team": p.team,
            "league": p.league,
            "fbref_url": fbref_url(p.fbref_id, p.name),
        }
        for p in FBREF_PLAYERS
    ]
