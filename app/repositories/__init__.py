"""
Repository layer for data access.

Usage:
    from app.repositories import AthleteRepository, SyncLogRepository
    from app.core.database import SessionLocal

    db = SessionLocal()
    athletes = AthleteRepository(db).find_by_sport("football")
    db.close()
"""

from app.repositories.base import BaseRepository
from app.repositories.athlete_repository import AthleteRepository
from app.repositories.stats_repository import StatsRepository
from app.repositories.market_repository import MarketDataRepository
from app.repositories.news_repository import NewsRepository
from app.repositories.advanced_stats_repository import AdvancedStatsRepository
from app.repositories.sync_log_repository import SyncLogRepository

__all__ = [
    "BaseRepository",
    "AthleteRepository",
    "StatsRepository",
    "MarketDataRepository",
    "NewsRepository",
    "AdvancedStatsRepository",
    "SyncLogRepository",
]
