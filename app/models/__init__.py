"""
Models for the stats ingestion pipeline.

Usage:
    from app.models import Athlete, DailyUpdate, SyncLog
"""

from app.models.models import (
    Base,
    SPORT_FOOTBALL,
    SPORT_BASKETBALL,
    Athlete,
    UserRole,
    DailyUpdate,
    SeasonStats,
    UpcomingMatch,
    LiveMatch,
    TransferHistory,
    InjuryHistory,
    MarketValue,
    AdvancedStats,
    PercentileRanking,
    EfficiencyRanking,
    AthleteNews,
    SyncLog,
)

__all__ = [
    "Base",
    "SPORT_FOOTBALL",
    "SPORT_BASKETBALL",
    "Athlete",
    "UserRole",
    "DailyUpdate",
    "SeasonStats",
    "UpcomingMatch",
    "LiveMatch",
    "TransferHistory",
    "InjuryHistory",
    "MarketValue",
    "AdvancedStats",
    "PercentileRanking",
    "EfficiencyRanking",
    "AthleteNews",
    "SyncLog",
]
