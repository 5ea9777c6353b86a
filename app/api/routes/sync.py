"""Sync API routes: manual/cron triggers, Transfermarkt and FBref push-ingest, logs and status.

Every trigger endpoint accepts either the scheduler's ``x-webhook-secret`` or
an admin bearer token, and runs through the orchestrator's cooldown check.
Error mapping (401/404/500) is done by the exception handlers in app.main.
"""
from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import AuthResult, get_auth_result, get_webhook_auth
from app.core.database import get_db
from app.core.logging import get_logger
from app.services.sync.fbref_catalog import player_listing
from app.services.sync.orchestrator import SyncOrchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


class TransfermarktIngestRequest(BaseModel):
    """Records pushed by the external Transfermarkt scraper."""

    athlete_slug: str
    data_type: str = Field(..., description="transfers, injuries or market_values")
    records: List[Dict[str, Any]] = Field(default_factory=list)


class AdvancedStatsUpsertRequest(BaseModel):
    athlete_slug: str
    season: str
    competition: str
    stats: Dict[str, Any] = Field(default_factory=dict)


class AdvancedStatsImportRequest(BaseModel):
    """Flat per-player records: slug, season, competition and any stat columns."""

    players: List[Dict[str, Any]] = Field(default_factory=list)


class PercentileUpsertRequest(BaseModel):
    athlete_slug: str
    comparison_group: str
    period: str
    minutes_played: Optional[int] = None
    percentiles: Dict[str, float] = Field(default_factory=dict)
    source_url: Optional[str] = None


async def get_orchestrator(db: Session = Depends(get_db)) -> AsyncIterator[SyncOrchestrator]:
    """Dependency to get a sync orchestrator; its HTTP clients close with the request."""
    orchestrator = SyncOrchestrator(db)
    try:
        yield orchestrator
    finally:
        await orchestrator.close()


async def _trigger(
    orchestrator: SyncOrchestrator, sync_type: str, auth: AuthResult, **kwargs
) -> Dict:
    logger.info(f"Sync {sync_type} requested ({auth.reason})")
    return await orchestrator.run(sync_type, auth_method=auth.reason, **kwargs)


@router.post("/football")
async def sync_football(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Season stats and recent matches for football athletes (API-Football)."""
    return await _trigger(orchestrator, "football_stats", auth)


@router.post("/basketball")
async def sync_basketball(
    season_year: Optional[int] = Query(None, description="NBA season start year, e.g. 2024"),
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Season averages, recent games and injury status for NBA athletes."""
    return await _trigger(orchestrator, "nba_stats", auth, season_year=season_year)


@router.post("/news")
async def sync_news(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Discover new news articles for every athlete."""
    return await _trigger(orchestrator, "news", auth)


@router.post("/hollinger")
async def sync_hollinger(
    month: Optional[date] = Query(None, description="Any date in the ranking month"),
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Hollinger rankings and the monthly efficiency leaderboard."""
    return await _trigger(orchestrator, "hollinger_stats", auth, month=month)


@router.post("/espn")
async def sync_espn(
    espn_id: Optional[int] = Query(None, description="ESPN player id"),
    athlete_slug: Optional[str] = Query(None, description="Target athlete slug"),
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """ESPN player-page extras for one athlete."""
    return await _trigger(
        orchestrator, "espn_player_stats", auth, espn_id=espn_id, athlete_slug=athlete_slug
    )


@router.post("/live")
async def sync_live(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Live football matches; skipped when no match is inside the time window."""
    return await _trigger(orchestrator, "live_matches", auth)


@router.post("/live-nba")
async def sync_live_nba(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Live NBA games."""
    return await _trigger(orchestrator, "live_nba_matches", auth)


@router.post("/schedule")
async def sync_schedule(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Upcoming fixtures for football athletes."""
    return await _trigger(orchestrator, "match_schedule", auth)


@router.post("/transfermarkt")
async def sync_transfermarkt(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Scrape transfer, injury and market-value history (slow, headless browser)."""
    return await _trigger(orchestrator, "transfermarkt", auth)


@router.post("/transfermarkt/ingest")
async def ingest_transfermarkt(
    payload: TransfermarktIngestRequest,
    auth: AuthResult = Depends(get_webhook_auth),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """
    Upsert records pushed by an external scraper (webhook secret only).

    Returns 404 for an unknown athlete slug and 400 for an unknown data type.
    """
    return orchestrator.ingest_transfermarkt(
        payload.athlete_slug, payload.data_type, payload.records
    )


@router.post("/fotmob")
async def sync_fotmob(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Career stats, match ratings and injuries for football athletes (FotMob)."""
    return await _trigger(orchestrator, "fotmob_data", auth)


@router.get("/fbref/status")
async def fbref_status(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Stored advanced-stats and percentile row counts."""
    return orchestrator.advanced_stats_status()


@router.get("/fbref/players")
async def fbref_players() -> Dict:
    """FBref ids and profile URLs of the tracked footballers."""
    return {"players": player_listing()}


@router.post("/fbref/upsert")
async def fbref_upsert(
    payload: AdvancedStatsUpsertRequest,
    auth: AuthResult = Depends(get_webhook_auth),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Upsert one athlete's advanced stats (404 for an unknown slug)."""
    return orchestrator.upsert_advanced_stats(
        payload.athlete_slug, payload.season, payload.competition, payload.stats
    )


@router.post("/fbref/import")
async def fbref_import(
    payload: AdvancedStatsImportRequest,
    auth: AuthResult = Depends(get_webhook_auth),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Bulk import; invalid records are listed in ``errors`` and skipped."""
    return orchestrator.import_advanced_stats(payload.players)


@router.post("/fbref/percentiles")
async def fbref_percentiles(
    payload: PercentileUpsertRequest,
    auth: AuthResult = Depends(get_webhook_auth),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Upsert one scouting-report percentile block."""
    values = payload.model_dump(exclude={"athlete_slug"})
    return orchestrator.upsert_percentiles(payload.athlete_slug, values)


@router.post("/fbref/sync-ids")
async def fbref_sync_ids(
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Write catalog FBref ids and profile URLs onto the athlete rows."""
    return orchestrator.sync_fbref_ids()


@router.get("/logs")
async def get_sync_logs(
    limit: int = Query(20, ge=1, le=200),
    sync_type: Optional[str] = Query(None, description="Filter by sync-type"),
    auth: AuthResult = Depends(get_auth_result),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Latest sync log rows, newest first."""
    logs = orchestrator.get_recent_logs(limit=limit, sync_type=sync_type)
    return {"count": len(logs), "logs": logs}


@router.get("/status")
async def get_sync_status(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """
    Sync health dashboard.

    Returns per sync-type last status/run and remaining cooldown, plus the
    circuit breaker states.
    """
    return orchestrator.get_sync_status()
