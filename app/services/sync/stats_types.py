"""
Typed records produced by the source adapters.

Adapters build these dataclasses from raw provider payloads; the orchestrator
converts them to plain column dicts (stats maps become open JSON) only when
they are written to storage.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Dict, Optional, Union


@dataclass
class FootballStats:
    goals: int = 0
    assists: int = 0
    minutes: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    rating: Optional[float] = None
    shots_total: int = 0
    shots_on_target: int = 0
    passes_total: int = 0
    passes_accuracy: Optional[int] = None
    key_passes: int = 0
    tackles: int = 0
    interceptions: int = 0
    dribbles_success: int = 0
    dribbles_attempts: int = 0
    # Goalkeepers only
    saves: Optional[int] = None
    goals_conceded: Optional[int] = None
    clean_sheet: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.saves is None and self.goals_conceded is None:
            for key in ("saves", "goals_conceded", "clean_sheet"):
                data.pop(key)
        return data


@dataclass
class BasketballStats:
    points: int = 0
    rebounds: int = 0
    assists: int = 0
    steals: int = 0
    blocks: int = 0
    turnovers: int = 0
    plus_minus: Optional[int] = None
    fg_made: int = 0
    fg_attempted: int = 0
    fg_pct: Optional[float] = None
    fg3_made: int = 0
    fg3_attempted: int = 0
    fg3_pct: Optional[float] = None
    ft_made: int = 0
    ft_attempted: int = 0
    ft_pct: Optional[float] = None
    offensive_rebounds: int = 0
    defensive_rebounds: int = 0
    personal_fouls: int = 0
    fouls_drawn: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SportStats = Union[FootballStats, BasketballStats]


@dataclass
class SeasonStatsRecord:
    season: str
    competition: str
    games_played: int = 0
    games_started: int = 0
    stats: Union[SportStats, Dict[str, Any]] = field(default_factory=dict)

    def to_row(self) -> Dict[str, Any]:
        stats = self.stats if isinstance(self.stats, dict) else self.stats.to_dict()
        return {
            "season": self.season,
            "competition": self.competition,
            "games_played": self.games_played,
            "games_started": self.games_started,
            "stats": stats,
        }


@dataclass
class DailyUpdateRecord:
    date: date
    played: bool
    opponent: Optional[str] = None
    competition: Optional[str] = None
    home_away: Optional[str] = None
    match_result: Optional[str] = None
    minutes_played: int = 0
    rating: Optional[float] = None
    stats: Optional[SportStats] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "played": self.played,
            "opponent": self.opponent,
            "competition": self.competition,
            "home_away": self.home_away,
            "match_result": self.match_result,
            "minutes_played": self.minutes_played,
            "rating": self.rating,
            "stats": self.stats.to_dict() if self.stats else {},
        }


@dataclass
class UpcomingMatchRecord:
    match_date: datetime
    opponent: str
    competition: str
    home_away: str

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LiveMatchRecord:
    opponent: str
    competition: str
    home_away: str
    match_status: str
    kickoff_time: Optional[datetime] = None
    current_minute: Optional[int] = None
    home_score: int = 0
    away_score: int = 0
    athlete_stats: Dict[str, Any] = field(default_factory=dict)
    last_event: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)
