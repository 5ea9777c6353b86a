"""
Database models for the Turkish Stars stats pipeline.

Tracked athletes are read by every sync; the stats/match/history tables are
written by the syncs and read by the front end. Each table documents the
natural key its sync upserts on:

- DailyUpdate:        (athlete_id, date)
- SeasonStats:        (athlete_id, season, competition)
- UpcomingMatch:      (athlete_id, match_date); future rows replaced per athlete
- LiveMatch:          athlete_id (single current-state row)
- TransferHistory:    (athlete_id, transfer_date, from_club, to_club)
- InjuryHistory:      (athlete_id, injury_type, start_date)
- MarketValue:        (athlete_id, recorded_date)
- AdvancedStats:      (athlete_id, season, competition)
- PercentileRanking:  (athlete_id, comparison_group, period)
- EfficiencyRanking:  replaced per (athlete_id, month); unique player_name
- AthleteNews:        source_url
- SyncLog:            append-only
"""
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Float, Integer, BigInteger, DateTime, Date, ForeignKey,
    Boolean, Text, Index, UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

SPORT_FOOTBALL = "football"
SPORT_BASKETBALL = "basketball"


def _uuid() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ATHLETES
# =============================================================================

class Athlete(Base):
    """
    A tracked athlete.

    Per-source external ids are nullable and populated lazily the first time
    a name search succeeds, then reused so later syncs skip the search.
    """
    __tablename__ = "athlete_profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    sport = Column(String(20), nullable=False, index=True)  # 'football' | 'basketball'
    team = Column(String(255), nullable=True)
    league = Column(String(100), nullable=True)
    position = Column(String(50), nullable=True)

    # External ids (one per source)
    api_football_id = Column(Integer, nullable=True, unique=True)
    balldontlie_id = Column(Integer, nullable=True, unique=True)
    transfermarkt_id = Column(Integer, nullable=True, unique=True)
    espn_id = Column(Integer, nullable=True, unique=True)
    fotmob_id = Column(Integer, nullable=True, unique=True)
    fbref_id = Column(String(20), nullable=True, unique=True)
    fbref_url = Column(String(500), nullable=True)

    current_market_value = Column(BigInteger, nullable=True)
    market_value_currency = Column(String(3), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    daily_updates = relationship("DailyUpdate", back_populates="athlete", cascade="all, delete-orphan")
    season_stats = relationship("SeasonStats", back_populates="athlete", cascade="all, delete-orphan")
    upcoming_matches = relationship("UpcomingMatch", back_populates="athlete", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Athlete {self.name} ({self.sport}, {self.team})>"


class UserRole(Base):
    """Role grants for interactive (bearer token) callers."""
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'role', name='uq_user_role'),
    )


# =============================================================================
# STATS
# =============================================================================

class DailyUpdate(Base):
    """One row per athlete per calendar date."""
    __tablename__ = "athlete_daily_updates"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)

    played = Column(Boolean, nullable=False, default=False)
    opponent = Column(String(255), nullable=True)
    competition = Column(String(255), nullable=True)
    home_away = Column(String(4), nullable=True)  # 'home' | 'away'
    match_result = Column(String(20), nullable=True)  # "2-1"
    minutes_played = Column(Integer, nullable=True)
    rating = Column(Float, nullable=True)
    stats = Column(JSON, nullable=False, default=dict)
    injury_status = Column(String(20), nullable=True)  # healthy | minor | doubtful | injured
    injury_details = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    athlete = relationship("Athlete", back_populates="daily_updates")

    __table_args__ = (
        UniqueConstraint('athlete_id', 'date', name='uq_daily_update_athlete_date'),
        Index('ix_daily_updates_athlete_date', 'athlete_id', 'date'),
    )


class SeasonStats(Base):
    """
    Aggregated season stats per competition.

    Basketball rows also carry Hollinger rankings and ESPN page extras
    (splits, fantasy blurb, position rank, roster %).
    """
    __tablename__ = "athlete_season_stats"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    season = Column(String(10), nullable=False)  # "2024-25" / "2024/25"
    competition = Column(String(255), nullable=False)

    games_played = Column(Integer, nullable=True)
    games_started = Column(Integer, nullable=True)
    stats = Column(JSON, nullable=False, default=dict)
    rankings = Column(JSON, nullable=True)

    espn_splits = Column(JSON, nullable=True)
    espn_fantasy_insight = Column(Text, nullable=True)
    espn_position_rank = Column(Integer, nullable=True)
    espn_roster_pct = Column(Float, nullable=True)
    espn_previous_game = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    athlete = relationship("Athlete", back_populates="season_stats")

    __table_args__ = (
        UniqueConstraint('athlete_id', 'season', 'competition', name='uq_season_stats_key'),
    )


# =============================================================================
# MATCHES
# =============================================================================

class UpcomingMatch(Base):
    """Scheduled or in-progress fixture; future rows are replaced per athlete on every sync."""
    __tablename__ = "athlete_upcoming_matches"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    match_date = Column(DateTime, nullable=False, index=True)
    opponent = Column(String(255), nullable=True)
    competition = Column(String(255), nullable=True)
    home_away = Column(String(4), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    athlete = relationship("Athlete", back_populates="upcoming_matches")

    __table_args__ = (
        UniqueConstraint('athlete_id', 'match_date', name='uq_upcoming_match_key'),
    )


class LiveMatch(Base):
    """Latest live state of an athlete's current match (one row per athlete)."""
    __tablename__ = "athlete_live_matches"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    opponent = Column(String(255), nullable=True)
    competition = Column(String(255), nullable=True)
    home_away = Column(String(4), nullable=True)
    match_status = Column(String(20), nullable=False, default="scheduled", index=True)
    kickoff_time = Column(DateTime, nullable=True)
    current_minute = Column(Integer, nullable=True)
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    athlete_stats = Column(JSON, nullable=False, default=dict)
    last_event = Column(String(255), nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# MARKET DATA (Transfermarkt)
# =============================================================================

class TransferHistory(Base):
    __tablename__ = "athlete_transfer_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    transfer_date = Column(Date, nullable=False)
    from_club = Column(String(255), nullable=False)
    to_club = Column(String(255), nullable=False)
    from_club_logo_url = Column(String(500), nullable=True)
    to_club_logo_url = Column(String(500), nullable=True)
    transfer_fee = Column(BigInteger, nullable=True)
    fee_currency = Column(String(3), nullable=True, default="EUR")
    transfer_type = Column(String(20), nullable=True)  # transfer | loan | free
    season = Column(String(10), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('athlete_id', 'transfer_date', 'from_club', 'to_club', name='uq_transfer_key'),
    )


class InjuryHistory(Base):
    __tablename__ = "athlete_injury_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    injury_type = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    days_missed = Column(Integer, nullable=True)
    games_missed = Column(Integer, nullable=True)
    season = Column(String(10), nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    source = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('athlete_id', 'injury_type', 'start_date', name='uq_injury_key'),
    )


class MarketValue(Base):
    __tablename__ = "athlete_market_values"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    recorded_date = Column(Date, nullable=False)
    market_value = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    club_at_time = Column(String(255), nullable=True)
    source = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('athlete_id', 'recorded_date', name='uq_market_value_key'),
    )


# =============================================================================
# ADVANCED STATS (FBref)
# =============================================================================

class AdvancedStats(Base):
    """
    FBref advanced metrics (xG, progressive actions, ...) per season and
    competition, pushed by an external scraper.
    """
    __tablename__ = "athlete_advanced_stats"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    season = Column(String(10), nullable=False)
    competition = Column(String(255), nullable=False)
    stats = Column(JSON, nullable=False, default=dict)
    fbref_url = Column(String(500), nullable=True)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('athlete_id', 'season', 'competition', name='uq_advanced_stats_key'),
    )


class PercentileRanking(Base):
    """Scouting-report percentiles against positional peers."""
    __tablename__ = "athlete_percentile_rankings"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    comparison_group = Column(String(100), nullable=False)  # e.g. "Attacking Midfielders"
    period = Column(String(50), nullable=False)  # e.g. "Last 365 Days"
    minutes_played = Column(Integer, nullable=True)
    percentiles = Column(JSON, nullable=False, default=dict)
    source_url = Column(String(500), nullable=True)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('athlete_id', 'comparison_group', 'period', name='uq_percentile_ranking_key'),
    )


# =============================================================================
# RANKINGS / NEWS / AUDIT
# =============================================================================

class EfficiencyRanking(Base):
    """Monthly snapshot of the efficiency leaderboard around a featured athlete."""
    __tablename__ = "athlete_efficiency_rankings"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False)
    month = Column(Date, nullable=False)  # first day of month
    player_name = Column(String(255), nullable=False)
    team = Column(String(255), nullable=True)
    rank = Column(Integer, nullable=True)
    per = Column(Float, nullable=True)
    ts_pct = Column(Float, nullable=True)
    ws = Column(Float, nullable=True)
    efficiency_index = Column(Float, nullable=True)
    is_featured_athlete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('athlete_id', 'month', 'player_name', name='uq_efficiency_ranking_key'),
    )


class AthleteNews(Base):
    __tablename__ = "athlete_news"

    id = Column(String(36), primary_key=True, default=_uuid)
    athlete_id = Column(String(36), ForeignKey("athlete_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    source_url = Column(String(1000), nullable=False, unique=True)
    summary = Column(Text, nullable=True)
    source_name = Column(String(255), nullable=True)
    image_url = Column(String(1000), nullable=True)
    is_auto_crawled = Column(Boolean, nullable=False, default=True)
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class SyncLog(Base):
    """Append-only audit record of sync runs; the only input to cooldown checks."""
    __tablename__ = "sync_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    sync_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)  # success | partial | error
    details = Column(JSON, nullable=False, default=dict)
    synced_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_sync_logs_type_status_time', 'sync_type', 'status', 'synced_at'),
    )
