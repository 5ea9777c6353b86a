"""
Advanced stats repository (FBref metrics and percentile rankings).

Both tables are written only by pushed imports and keyed so a re-push of the
same season or comparison group overwrites in place.
"""
from datetime import datetime
from typing import Any, Dict

from app.models import AdvancedStats, PercentileRanking
from app.repositories.base import BaseRepository

ADVANCED_STATS_KEY = ("athlete_id", "season", "competition")
PERCENTILE_KEY = ("athlete_id", "comparison_group", "period")


class AdvancedStatsRepository:

    def __init__(self, db):
        self.db = db
        self.advanced = BaseRepository(AdvancedStats, db)
        self.percentiles = BaseRepository(PercentileRanking, db)

    def upsert_advanced_stats(self, athlete_id: str, values: Dict[str, Any]) -> AdvancedStats:
        return self.advanced.upsert(
            ADVANCED_STATS_KEY,
            {"athlete_id": athlete_id, **values, "last_updated": datetime.utcnow()},
        )

    def upsert_percentiles(self, athlete_id: str, values: Dict[str, Any]) -> PercentileRanking:
        return self.percentiles.upsert(
            PERCENTILE_KEY,
            {"athlete_id": athlete_id, **values, "last_updated": datetime.utcnow()},
        )

    def counts(self) -> Dict[str, int]:
        return {
            "advanced_stats_records": self.advanced.query().count(),
            "percentile_records": self.percentiles.query().count(),
        }
