"""
Stats Repository: daily updates, season stats, fixtures and rankings.

Write policies:
- DailyUpdate / SeasonStats: natural-key upsert (re-runs overwrite in place)
- UpcomingMatch: future fixtures replaced per athlete, in-progress ones kept
- EfficiencyRanking: delete-then-insert per athlete + month
- LiveMatch: upsert on athlete_id alone
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from app.models import (
    DailyUpdate, SeasonStats, UpcomingMatch, LiveMatch, EfficiencyRanking,
)
from app.repositories.base import BaseRepository

DAILY_UPDATE_KEY = ("athlete_id", "date")
SEASON_STATS_KEY = ("athlete_id", "season", "competition")
UPCOMING_MATCH_KEY = ("athlete_id", "match_date")
LIVE_MATCH_KEY = ("athlete_id",)

LIVE_STATUSES = ("live", "halftime")


class StatsRepository:
    """Data access for the per-athlete stats tables."""

    def __init__(self, db):
        self.db = db
        self.daily_updates = BaseRepository(DailyUpdate, db)
        self.season_stats = BaseRepository(SeasonStats, db)
        self.upcoming = BaseRepository(UpcomingMatch, db)
        self.live = BaseRepository(LiveMatch, db)
        self.rankings = BaseRepository(EfficiencyRanking, db)

    # ========================================================================
    # Daily updates / season stats
    # ========================================================================

    def upsert_daily_update(self, athlete_id: str, values: Dict[str, Any]) -> DailyUpdate:
        """Upsert one DailyUpdate keyed on (athlete_id, date)."""
        return self.daily_updates.upsert(DAILY_UPDATE_KEY, {"athlete_id": athlete_id, **values})

    def upsert_season_stats(self, athlete_id: str, values: Dict[str, Any]) -> SeasonStats:
        """Upsert one SeasonStats row keyed on (athlete_id, season, competition)."""
        return self.season_stats.upsert(SEASON_STATS_KEY, {"athlete_id": athlete_id, **values})

    def latest_daily_update(self, athlete_id: str) -> Optional[DailyUpdate]:
        """Most recent DailyUpdate by date."""
        rows = self.daily_updates.find_by(order_by="-date", limit=1, athlete_id=athlete_id)
        return rows[0] if rows else None

    def merge_match_rating(
        self, athlete_id: str, day: date, rating: Optional[float], extra_stats: Dict[str, Any]
    ) -> bool:
        """
        Fold a second source's rating into an existing DailyUpdate.

        Stats keys already on the row are kept unless ``extra_stats`` names
        them; a missing ``rating`` leaves the stored one.

        Returns:
            False if the athlete has no row for ``day``
        """
        row = self.daily_updates.find_one_by(athlete_id=athlete_id, date=day)
        if row is None:
            return False
        row.stats = {**(row.stats or {}), **extra_stats}
        if rating is not None:
            row.rating = rating
        self.db.flush()
        return True

    def update_latest_injury(self, athlete_id: str, status: str, details: Optional[str]) -> bool:
        """
        Apply an injury status to the athlete's most recent DailyUpdate.

        Returns:
            True if a row was updated
        """
        latest = self.latest_daily_update(athlete_id)
        if latest is None:
            return False
        latest.injury_status = status
        latest.injury_details = details
        self.db.flush()
        return True

    # ========================================================================
    # Upcoming matches
    # ========================================================================

    def replace_upcoming_matches(
        self, athlete_id: str, matches: Iterable[Dict[str, Any]], since: datetime
    ) -> int:
        """
        Replace an athlete's fixtures kicking off at or after ``since``.

        Earlier rows belong to matches that may still be in progress; they are
        kept (or updated in place when the source still lists them) until
        delete_past_upcoming() ages them out.

        Returns:
            Number of fixtures stored
        """
        self.upcoming.delete_where(UpcomingMatch.match_date >= since, athlete_id=athlete_id)
        stored = 0
        for match in matches:
            self.upcoming.upsert(UPCOMING_MATCH_KEY, {"athlete_id": athlete_id, **match})
            stored += 1
        return stored

    def delete_past_upcoming(self, cutoff: datetime) -> int:
        """Drop fixtures that kicked off before ``cutoff``."""
        return self.upcoming.delete_where(UpcomingMatch.match_date < cutoff)

    def upcoming_match_times(self, start: datetime, end: datetime) -> List[datetime]:
        """Kickoff times of stored fixtures inside [start, end]."""
        rows = (
            self.upcoming.query()
            .filter(UpcomingMatch.match_date >= start, UpcomingMatch.match_date <= end)
            .all()
        )
        return [row.match_date for row in rows]

    # ========================================================================
    # Live matches
    # ========================================================================

    def upsert_live_match(self, athlete_id: str, values: Dict[str, Any]) -> LiveMatch:
        """Upsert the single current-state LiveMatch row for an athlete."""
        return self.live.upsert(LIVE_MATCH_KEY, {"athlete_id": athlete_id, **values})

    def mark_live_finished(self, athlete_ids: Optional[List[str]] = None) -> int:
        """
        Age out rows still marked live/halftime to 'finished'.

        Args:
            athlete_ids: Restrict to these athletes (None = all)

        Returns:
            Number of rows updated
        """
        query = self.live.query().filter(LiveMatch.match_status.in_(LIVE_STATUSES))
        if athlete_ids is not None:
            query = query.filter(LiveMatch.athlete_id.in_(athlete_ids))
        rows = query.all()
        for row in rows:
            row.match_status = "finished"
        self.db.flush()
        return len(rows)

    # ========================================================================
    # Efficiency rankings
    # ========================================================================

    def replace_efficiency_rankings(
        self, athlete_id: str, month: date, rows: Iterable[Dict[str, Any]]
    ) -> int:
        """
        Replace the leaderboard snapshot for (athlete, month).

        Returns:
            Number of rows inserted
        """
        self.rankings.delete_where(athlete_id=athlete_id, month=month)
        created = self.rankings.create_many(
            [{"athlete_id": athlete_id, "month": month, **row} for row in rows]
        )
        self.db.flush()
        return len(created)
