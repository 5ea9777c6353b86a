"""Sync orchestrator for the athlete stats pipeline.

This orchestrator coordinates, per sync-type:
- Selection of the tracked athletes the sync applies to
- Per-athlete fetch → transform → natural-key upsert, isolated so one
  failing athlete never aborts the batch
- One SyncLog row per invocation (success / partial / error)
- Cooldown checks and an in-process guard against concurrent runs

Sync types and recommended schedule (see app.core.scheduler):
- live_matches:       every 5 min (self-skips outside match windows)
- live_nba_matches:   every 5 min
- match_schedule:     every 6 h
- news:               every 2 h
- football_stats:     daily 05:00
- nba_stats:          daily 05:30
- hollinger_stats:    daily 06:00
- espn_player_stats:  daily 06:30
- fotmob_data:        daily 07:00
- transfermarkt:      weekly, Monday 03:00
"""
import asyncio
import time
from collections import Counter
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AthleteNotFoundError, ConfigurationError, StorageError, SyncError,
)
from app.core.logging import get_logger, sync_context
from app.core.metrics import record_athlete_failure, record_sync_run
from app.models import Athlete, SPORT_BASKETBALL, SPORT_FOOTBALL
from app.repositories import (
    AdvancedStatsRepository, AthleteRepository, MarketDataRepository, NewsRepository,
    StatsRepository, SyncLogRepository,
)
from app.services.core.circuit_breaker import get_all_breaker_states
from app.services.sync.adapters.api_football_adapter import (
    ApiFootballAdapter, TEAM_IDS, build_live_stats, find_player_entry, format_last_event,
    map_fixture_status,
)
from app.services.sync.adapters.balldontlie_adapter import (
    BalldontlieAdapter, map_injury_status, nba_season_year, season_label,
)
from app.services.sync.adapters.espn_adapter import EspnAdapter
from app.services.sync.adapters.fotmob_adapter import (
    FotmobAdapter, build_injury_rows, build_match_rows, build_season_rows, fotmob_id_for,
)
from app.services.sync.adapters.news_search_adapter import NewsSearchAdapter
from app.services.sync.adapters.transfermarkt_adapter import (
    TransfermarktAdapter, transfermarkt_id_for,
)
from app.services.sync.cooldown import check_cooldown
from app.services.sync.fbref_catalog import FBREF_PLAYERS, fbref_url
from app.services.sync.schedule_filter import is_any_match_in_window, window_bounds
from app.services.sync.utils.dates import first_of_month, parse_iso_date, parse_iso_datetime
from app.services.sync.utils.name_matcher import match_player_name

logger = get_logger(__name__)

MAX_LOGGED_ERRORS = 10
HOLLINGER_LEADERBOARD_SIZE = 10

# Handler outcome for athletes the source does not know
NOT_FOUND = "not_found"

NO_MATCHES_REASON = "No matches scheduled in current time window"

INGEST_TYPES = ("transfers", "injuries", "market_values")

ADVANCED_STATS_KEY_FIELDS = ("slug", "athlete_slug", "season", "competition")

AthleteHandler = Callable[[Athlete, Counter], Awaitable[Optional[str]]]


class SyncOrchestrator:
    """
    Coordinates sync jobs between the external sources and storage.

    This is the main entry point for the sync layer: routes and scheduler
    jobs call ``run()`` (cooldown-checked) or an individual ``sync_*``.
    Adapters are created lazily unless injected.
    """

    OPERATIONS: Dict[str, str] = {
        "football_stats": "sync_football_stats",
        "nba_stats": "sync_nba_stats",
        "news": "sync_news",
        "hollinger_stats": "sync_hollinger",
        "espn_player_stats": "sync_espn_player_stats",
        "match_schedule": "sync_match_schedule",
        "live_matches": "sync_live_matches",
        "live_nba_matches": "sync_live_nba_matches",
        "transfermarkt": "sync_transfermarkt",
        "fotmob_data": "sync_fotmob_data",
    }

    # One lock per sync-type for the whole process
    _locks: Dict[str, asyncio.Lock] = {}

    def __init__(
        self,
        db: Session,
        api_football: Optional[ApiFootballAdapter] = None,
        balldontlie: Optional[BalldontlieAdapter] = None,
        news: Optional[NewsSearchAdapter] = None,
        espn: Optional[EspnAdapter] = None,
        transfermarkt: Optional[TransfermarktAdapter] = None,
        fotmob: Optional[FotmobAdapter] = None,
    ):
        """
        Initialize the sync orchestrator.

        Args:
            db: SQLAlchemy database session
            api_football / balldontlie / news / espn / transfermarkt / fotmob:
                Optional adapter instances (tests inject fakes)
        """
        self.db = db
        self.athletes = AthleteRepository(db)
        self.stats = StatsRepository(db)
        self.market = MarketDataRepository(db)
        self.news_repo = NewsRepository(db)
        self.advanced = AdvancedStatsRepository(db)
        self.logs = SyncLogRepository(db)

        self._api_football = api_football
        self._balldontlie = balldontlie
        self._news = news
        self._espn = espn
        self._transfermarkt = transfermarkt
        self._fotmob = fotmob
        self._owned: List[Any] = []

    # ========================================================================
    # Lazy adapters
    # ========================================================================

    def _own(self, adapter):
        self._owned.append(adapter)
        return adapter

    @property
    def api_football(self) -> ApiFootballAdapter:
        if self._api_football is None:
            self._api_football = self._own(ApiFootballAdapter())
        return self._api_football

    @property
    def balldontlie(self) -> BalldontlieAdapter:
        if self._balldontlie is None:
            self._balldontlie = self._own(BalldontlieAdapter())
        return self._balldontlie

    @property
    def news(self) -> NewsSearchAdapter:
        if self._news is None:
            self._news = self._own(NewsSearchAdapter())
        return self._news

    @property
    def espn(self) -> EspnAdapter:
        if self._espn is None:
            self._espn = self._own(EspnAdapter())
        return self._espn

    @property
    def transfermarkt(self) -> TransfermarktAdapter:
        if self._transfermarkt is None:
            self._transfermarkt = TransfermarktAdapter()
        return self._transfermarkt

    @property
    def fotmob(self) -> FotmobAdapter:
        if self._fotmob is None:
            self._fotmob = self._own(FotmobAdapter())
        return self._fotmob

    async def close(self) -> None:
        """Close HTTP clients of adapters this orchestrator created."""
        for adapter in self._owned:
            await adapter.close()
        self._owned = []

    # ========================================================================
    # Batch template
    # ========================================================================

    @contextmanager
    def _fatal_errors(self, sync_type: str, auth_method: str) -> Iterator[None]:
        """
        Record an 'error' SyncLog row for failures outside the per-athlete loop.

        Database errors are re-raised as StorageError; if the log row itself
        cannot be written, the failure is only logged.
        """
        try:
            yield
        except SyncError as e:
            self._record_fatal(sync_type, auth_method, e)
            raise
        except SQLAlchemyError as e:
            error = StorageError(f"Database error during {sync_type}: {e}")
            self._record_fatal(sync_type, auth_method, error)
            raise error from e

    def _record_fatal(self, sync_type: str, auth_method: str, error: SyncError) -> None:
        self.db.rollback()
        logger.error(f"{sync_type} failed: {error}")
        record_sync_run(sync_type, "error", 0)
        try:
            self.logs.append(sync_type, "error", {
                "error": str(error),
                "auth_method": auth_method,
            })
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not write error log for {sync_type}: {e}")

    async def _run_batch(
        self,
        sync_type: str,
        athletes: List[Athlete],
        handler: AthleteHandler,
        auth_method: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Run ``handler`` for every athlete and write exactly one SyncLog row.

        Each athlete's writes are committed on success and rolled back on
        failure. The handler returns NOT_FOUND for athletes the source does
        not know and may add counters to the shared ``totals``.

        Returns:
            Result dict with counts, the first 10 errors and duration_ms
        """
        started = time.monotonic()
        totals: Counter = Counter()
        errors: List[str] = []
        processed = succeeded = not_found = 0

        logger.info(f"Starting {sync_type} for {len(athletes)} athletes")
        for athlete in athletes:
            name = athlete.name
            processed += 1
            try:
                outcome = await handler(athlete, totals)
                self.db.commit()
            except ConfigurationError:
                self.db.rollback()
                raise
            except Exception as e:
                self.db.rollback()
                errors.append(f"{name}: {e}")
                record_athlete_failure(sync_type)
                logger.error(f"Error processing {name}: {e}")
                continue

            if outcome == NOT_FOUND:
                not_found += 1
            else:
                succeeded += 1

        duration_ms = int((time.monotonic() - started) * 1000)
        status = "partial" if errors else "success"
        details = {
            "processed": processed,
            "succeeded": succeeded,
            "not_found": not_found,
            **dict(totals),
            **(extra or {}),
            "errors": errors[:MAX_LOGGED_ERRORS],
            "error_count": len(errors),
            "duration_ms": duration_ms,
            "auth_method": auth_method,
        }
        self.logs.append(sync_type, status, details)
        record_sync_run(sync_type, status, duration_ms)

        logger.info(
            f"Finished {sync_type}: {succeeded}/{processed} succeeded, "
            f"{not_found} not found, {len(errors)} errors in {duration_ms}ms"
        )
        return {"success": True, "sync_type": sync_type, "status": status, **details}

    # ========================================================================
    # Football
    # ========================================================================

    async def sync_football_stats(self, auth_method: str = "manual") -> Dict[str, Any]:
        """
        Season stats per competition plus the last five fixtures per footballer.

        Sync-type: football_stats
        """
        sync_type = "football_stats"
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.api_football
            adapter.require_configured()
            athletes = self.athletes.find_by_sport(SPORT_FOOTBALL)

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                player_id = await adapter.resolve_player_id(athlete)
                if not player_id:
                    logger.warning(f"Could not resolve API-Football id for {athlete.name}")
                    return NOT_FOUND
                if athlete.api_football_id != player_id:
                    self.athletes.set_external_id(athlete, "api_football_id", player_id)

                for record in await adapter.fetch_season_stats(player_id):
                    self.stats.upsert_season_stats(athlete.id, record.to_row())
                    totals["season_stats"] += 1

                team_id = await adapter.resolve_team_id(athlete.team)
                if team_id:
                    for record in await adapter.fetch_recent_matches(athlete, player_id, team_id):
                        self.stats.upsert_daily_update(athlete.id, record.to_row())
                        totals["daily_updates"] += 1
                await adapter.polite_delay()
                return None

            return await self._run_batch(sync_type, athletes, handle, auth_method)

    async def sync_match_schedule(
        self, auth_method: str = "manual", now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Replace each footballer's upcoming fixtures (next 7 days).

        Fixtures that kicked off before the live window are purged first;
        matches inside it may still be in progress and stay. Sync-type: match_schedule
        """
        sync_type = "match_schedule"
        now = now or datetime.utcnow()
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.api_football
            adapter.require_configured()
            window_start, _ = window_bounds(now)
            purged = self.stats.delete_past_upcoming(window_start)
            self.db.commit()
            athletes = self.athletes.find_by_sport(SPORT_FOOTBALL)

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                team_id = await adapter.resolve_team_id(athlete.team)
                if not team_id:
                    return NOT_FOUND
                matches = await adapter.fetch_upcoming_matches(team_id, now=now)
                totals["matches_stored"] += self.stats.replace_upcoming_matches(
                    athlete.id, [m.to_row() for m in matches], since=now
                )
                await adapter.polite_delay()
                return None

            return await self._run_batch(
                sync_type, athletes, handle, auth_method, extra={"past_purged": purged}
            )

    async def sync_live_matches(
        self, auth_method: str = "manual", now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Poll live football fixtures for the tracked athletes' teams.

        Skips without calling the live API when no stored fixture kicks off
        inside [now - 2h, now + 1h]. An athlete whose team has no live fixture
        has any row still marked live aged to 'finished'. Sync-type: live_matches
        """
        sync_type = "live_matches"
        now = now or datetime.utcnow()
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            start, end = window_bounds(now)
            if not is_any_match_in_window(now, self.stats.upcoming_match_times(start, end)):
                logger.info(f"No matches scheduled between {start.isoformat()} and {end.isoformat()} - skipping")
                return {
                    "success": True,
                    "skipped": True,
                    "reason": NO_MATCHES_REASON,
                    "checkedWindow": {"from": start.isoformat(), "to": end.isoformat()},
                }

            adapter = self.api_football
            adapter.require_configured()
            athletes = self.athletes.find_by_sport(SPORT_FOOTBALL)
            team_ids = {TEAM_IDS[a.team] for a in athletes if a.team in TEAM_IDS}

            live_fixtures = await adapter.fetch_live_fixtures()
            relevant: Dict[int, Dict[str, Any]] = {}
            for fixture in live_fixtures:
                teams = fixture.get("teams") or {}
                for side in ("home", "away"):
                    team_id = (teams.get(side) or {}).get("id")
                    if team_id in team_ids:
                        relevant[team_id] = fixture
            logger.info(f"{len(relevant)} relevant of {len(live_fixtures)} live fixtures")

            fixture_cache: Dict[Any, Any] = {}

            async def fixture_details(fixture_id: int, team_id: int, status: str):
                key = (fixture_id, team_id)
                if key not in fixture_cache:
                    players = []
                    if status in ("live", "halftime"):
                        players = await adapter.fetch_fixture_players(fixture_id, team_id)
                    events = await adapter.fetch_fixture_events(fixture_id)
                    fixture_cache[key] = (players, format_last_event(events))
                return fixture_cache[key]

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                team_id = TEAM_IDS.get(athlete.team or "")
                fixture = relevant.get(team_id)
                if fixture is None:
                    totals["stale_marked_finished"] += self.stats.mark_live_finished([athlete.id])
                    return None

                info = fixture.get("fixture") or {}
                status_info = info.get("status") or {}
                status = map_fixture_status(status_info.get("short"))
                teams = fixture.get("teams") or {}
                is_home = (teams.get("home") or {}).get("id") == team_id
                opponent = (teams.get("away") if is_home else teams.get("home")) or {}
                goals = fixture.get("goals") or {}

                players, last_event = await fixture_details(info.get("id"), team_id, status)
                entry = find_player_entry(players, athlete.name, athlete.api_football_id)

                self.stats.upsert_live_match(athlete.id, {
                    "opponent": opponent.get("name") or "Unknown",
                    "competition": (fixture.get("league") or {}).get("name") or "Unknown",
                    "home_away": "home" if is_home else "away",
                    "match_status": status,
                    "kickoff_time": parse_iso_datetime(info.get("date")),
                    "current_minute": status_info.get("elapsed") or 0,
                    "home_score": goals.get("home") or 0,
                    "away_score": goals.get("away") or 0,
                    "athlete_stats": build_live_stats(entry) if entry else {},
                    "last_event": last_event,
                    "updated_at": datetime.utcnow(),
                })
                totals["live_matches"] += 1
                return None

            return await self._run_batch(
                sync_type, athletes, handle, auth_method,
                extra={
                    "total_live_fixtures": len(live_fixtures),
                    "relevant_fixtures": len(relevant),
                },
            )

    # ========================================================================
    # Basketball
    # ========================================================================

    async def _resolve_balldontlie(self, athlete: Athlete) -> Optional[int]:
        player_id = await self.balldontlie.resolve_player_id(athlete)
        if player_id and athlete.balldontlie_id != player_id:
            self.athletes.set_external_id(athlete, "balldontlie_id", player_id)
        return player_id

    async def sync_nba_stats(
        self, auth_method: str = "manual", season_year: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Season averages, game logs and injury status per basketball athlete.

        Averages are stored as-is under (athlete, 'YYYY-YY', 'NBA').
        Sync-type: nba_stats
        """
        sync_type = "nba_stats"
        season_year = season_year or nba_season_year()
        season = season_label(season_year)
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.balldontlie
            adapter.require_configured()
            athletes = self.athletes.find_by_sport(SPORT_BASKETBALL)

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                player_id = await self._resolve_balldontlie(athlete)
                if not player_id:
                    return NOT_FOUND

                averages = await adapter.fetch_season_averages(player_id, season_year)
                if averages:
                    self.stats.upsert_season_stats(athlete.id, {
                        "season": season,
                        "competition": "NBA",
                        "games_played": averages.get("games_played") or 0,
                        "stats": averages,
                    })
                    totals["season_stats"] += 1

                for record in await adapter.fetch_recent_matches(player_id, season_year):
                    self.stats.upsert_daily_update(athlete.id, record.to_row())
                    totals["daily_updates"] += 1

                injury = await adapter.fetch_injury(player_id)
                status = map_injury_status(injury["status"]) if injury else "healthy"
                details = injury.get("comment") if injury else None
                if self.stats.update_latest_injury(athlete.id, status, details):
                    totals["injury_updates"] += 1
                return None

            return await self._run_batch(
                sync_type, athletes, handle, auth_method, extra={"season": season}
            )

    async def sync_live_nba_matches(
        self, auth_method: str = "manual", now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Live game state for basketball athletes; rows still marked live are
        aged to 'finished' once no game is in progress. Sync-type: live_nba_matches
        """
        sync_type = "live_nba_matches"
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.balldontlie
            adapter.require_configured()
            athletes = self.athletes.find_by_sport(SPORT_BASKETBALL)

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                player_id = await self._resolve_balldontlie(athlete)
                if not player_id:
                    return NOT_FOUND
                team_id = await adapter.resolve_team_id(athlete, player_id)
                if not team_id:
                    return NOT_FOUND

                live = await adapter.fetch_live_game(player_id, team_id, now=now)
                if live is None:
                    totals["stale_marked_finished"] += self.stats.mark_live_finished([athlete.id])
                    return None

                self.stats.upsert_live_match(athlete.id, {**live.to_row(), "updated_at": datetime.utcnow()})
                totals["live_matches"] += 1
                return None

            return await self._run_batch(sync_type, athletes, handle, auth_method)

    async def sync_hollinger(
        self, auth_method: str = "manual", month: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Hollinger rankings onto the season stats row plus a monthly
        efficiency-leaderboard snapshot. Sync-type: hollinger_stats
        """
        sync_type = "hollinger_stats"
        month = first_of_month(month or datetime.utcnow().date())
        season = season_label(nba_season_year())
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.espn
            adapter.require_configured()
            athletes = self.athletes.find_by_sport(SPORT_BASKETBALL)

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                data = await adapter.fetch_hollinger(athlete.name)
                row = data["athlete"]
                self.stats.upsert_season_stats(athlete.id, {
                    "season": season,
                    "competition": "NBA",
                    "rankings": {**row, "updated_at": datetime.utcnow().isoformat()},
                })

                snapshot = data["leaderboard"][:HOLLINGER_LEADERBOARD_SIZE]
                if not any(match_player_name(r["player_name"], athlete.name) for r in snapshot):
                    snapshot.append(row)

                rows, seen = [], set()
                for entry in snapshot:
                    if entry["player_name"] in seen:
                        continue
                    seen.add(entry["player_name"])
                    rows.append({
                        "player_name": entry["player_name"],
                        "team": entry.get("team"),
                        "rank": entry.get("rank"),
                        "per": entry.get("per"),
                        "ts_pct": entry.get("ts_pct"),
                        "ws": None,
                        "efficiency_index": entry.get("va"),
                        "is_featured_athlete": match_player_name(entry["player_name"], athlete.name),
                    })
                totals["rankings_stored"] += self.stats.replace_efficiency_rankings(athlete.id, month, rows)
                return None

            return await self._run_batch(
                sync_type, athletes, handle, auth_method,
                extra={"month": month.isoformat(), "season": season},
            )

    async def sync_espn_player_stats(
        self,
        auth_method: str = "manual",
        espn_id: Optional[int] = None,
        athlete_slug: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        ESPN player-page extras (splits, fantasy blurb, previous game, ranks)
        for one athlete. Sync-type: espn_player_stats

        Raises:
            AthleteNotFoundError: If no athlete has the slug
        """
        sync_type = "espn_player_stats"
        slug = athlete_slug or settings.ESPN_DEFAULT_ATHLETE_SLUG
        season = season_label(nba_season_year())
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.espn
            adapter.require_configured()
            athlete = self.athletes.find_by_slug(slug)
            if athlete is None:
                raise AthleteNotFoundError(f"Athlete not found: {slug}")
            target_id = espn_id or athlete.espn_id or settings.ESPN_DEFAULT_PLAYER_ID

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                parsed = await adapter.fetch_player_page(target_id)
                if athlete.espn_id != target_id:
                    self.athletes.set_external_id(athlete, "espn_id", target_id)
                self.stats.upsert_season_stats(athlete.id, {
                    "season": season,
                    "competition": "NBA",
                    "espn_splits": parsed["splits"] or None,
                    "espn_fantasy_insight": parsed["fantasy_insight"],
                    "espn_position_rank": parsed["position_rank"],
                    "espn_roster_pct": parsed["roster_pct"],
                    "espn_previous_game": parsed["previous_game"],
                })
                totals["splits"] += len(parsed["splits"])
                return None

            return await self._run_batch(
                sync_type, [athlete], handle, auth_method, extra={"espn_id": target_id}
            )

    # ========================================================================
    # News
    # ========================================================================

    async def sync_news(self, auth_method: str = "manual") -> Dict[str, Any]:
        """
        Discover news articles for every athlete, skipping urls already stored.

        Sync-type: news
        """
        sync_type = "news"
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.news
            adapter.require_configured()
            athletes = self.athletes.find_by_sport()
            seen = self.news_repo.existing_urls()

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                for item in await adapter.search_news(athlete):
                    if item.url in seen:
                        totals["duplicates_skipped"] += 1
                        continue
                    self.news_repo.create(
                        athlete_id=athlete.id,
                        title=item.title[:500],
                        source_url=item.url,
                        summary=item.summary,
                        source_name=item.source_name,
                        image_url=item.image_url,
                        is_auto_crawled=True,
                        published_at=datetime.utcnow(),
                    )
                    seen.add(item.url)
                    totals["articles_added"] += 1
                await adapter.polite_delay()
                return None

            return await self._run_batch(sync_type, athletes, handle, auth_method)

    # ========================================================================
    # Transfermarkt
    # ========================================================================

    def _store_market_data(self, athlete: Athlete, data: Dict[str, Any], totals: Counter) -> None:
        for transfer in data.get("transfers") or []:
            self.market.upsert_transfer(athlete.id, transfer)
            totals["transfers"] += 1
        for injury in data.get("injuries") or []:
            self.market.upsert_injury(athlete.id, injury)
            totals["injuries"] += 1
        for value in data.get("market_values") or []:
            self.market.upsert_market_value(athlete.id, value)
            totals["market_values"] += 1

        current = data.get("current_value")
        if current is None and data.get("market_values"):
            current = max(data["market_values"], key=lambda v: v["recorded_date"])["market_value"]
        if current is not None:
            self.athletes.set_market_value(athlete, current)

    async def sync_transfermarkt(self, auth_method: str = "manual") -> Dict[str, Any]:
        """
        Scrape transfer, injury and market-value history for footballers.

        One browser serves the whole batch and is closed when it ends.
        Sync-type: transfermarkt
        """
        sync_type = "transfermarkt"
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            athletes = self.athletes.find_by_sport(SPORT_FOOTBALL)
            scraper = self.transfermarkt
            try:
                await scraper.start()

                async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                    tm_id = transfermarkt_id_for(athlete)
                    if not tm_id:
                        return NOT_FOUND
                    if athlete.transfermarkt_id != tm_id:
                        self.athletes.set_external_id(athlete, "transfermarkt_id", tm_id)
                    data = await scraper.scrape_athlete(athlete)
                    self._store_market_data(athlete, data, totals)
                    await scraper.human_delay()
                    return None

                return await self._run_batch(sync_type, athletes, handle, auth_method)
            finally:
                await scraper.close()

    def ingest_transfermarkt(
        self, athlete_slug: str, data_type: str, records: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Upsert Transfermarkt records pushed by an external scraper.

        Args:
            athlete_slug: Target athlete
            data_type: 'transfers', 'injuries' or 'market_values'
            records: Raw record dicts (ISO date strings)

        Raises:
            AthleteNotFoundError: If no athlete has the slug
            ValueError: If data_type is unknown
        """
        if data_type not in INGEST_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        athlete = self.athletes.find_by_slug(athlete_slug)
        if athlete is None:
            raise AthleteNotFoundError(f"Athlete not found: {athlete_slug}")

        inserted = 0
        errors: List[str] = []
        values: List[Dict[str, Any]] = []
        for i, record in enumerate(records):
            try:
                values.append(_ingest_row(data_type, record))
            except (KeyError, ValueError) as e:
                errors.append(f"record {i}: {e}")

        for row in values:
            if data_type == "transfers":
                self.market.upsert_transfer(athlete.id, row)
            elif data_type == "injuries":
                self.market.upsert_injury(athlete.id, row)
            else:
                self.market.upsert_market_value(athlete.id, row)
            inserted += 1

        if data_type == "market_values" and values:
            latest = max(values, key=lambda v: v["recorded_date"])
            self.athletes.set_market_value(athlete, latest["market_value"])

        self.db.commit()
        logger.info(f"Ingested {inserted} {data_type} for {athlete.name} ({len(errors)} rejected)")
        return {
            "success": True,
            "athlete": athlete.name,
            "type": data_type,
            "inserted": inserted,
            "errors": errors,
        }

    # ========================================================================
    # FotMob
    # ========================================================================

    async def sync_fotmob_data(self, auth_method: str = "manual") -> Dict[str, Any]:
        """
        Career season stats, recent-match ratings and injuries from FotMob.

        A recent match on a date that already has a DailyUpdate only adds
        the FotMob rating and match id to it; other dates get a full row.
        Injuries are inserted once per start date and never overwritten.
        Sync-type: fotmob_data
        """
        sync_type = "fotmob_data"
        with sync_context(sync_type), self._fatal_errors(sync_type, auth_method):
            adapter = self.fotmob
            athletes = self.athletes.find_by_sport(SPORT_FOOTBALL)

            async def handle(athlete: Athlete, totals: Counter) -> Optional[str]:
                fotmob_id = fotmob_id_for(athlete)
                if not fotmob_id:
                    return NOT_FOUND
                if athlete.fotmob_id != fotmob_id:
                    self.athletes.set_external_id(athlete, "fotmob_id", fotmob_id)

                player = await adapter.fetch_player(fotmob_id)
                for row in build_season_rows(player):
                    self.stats.upsert_season_stats(athlete.id, row)
                    totals["season_stats"] += 1
                for row in build_match_rows(player):
                    merged = self.stats.merge_match_rating(athlete.id, row["date"], row["rating"], {
                        "fotmob_rating": row["rating"],
                        "fotmob_match_id": row["stats"]["fotmob_match_id"],
                    })
                    if not merged:
                        self.stats.upsert_daily_update(athlete.id, row)
                    totals["daily_updates"] += 1
                for row in build_injury_rows(player):
                    if self.market.add_injury_if_new(athlete.id, row):
                        totals["injuries"] += 1
                await adapter.polite_delay()
                return None

            return await self._run_batch(sync_type, athletes, handle, auth_method)

    # ========================================================================
    # FBref (pushed advanced stats)
    # ========================================================================

    def _require_athlete(self, slug: str) -> Athlete:
        athlete = self.athletes.find_by_slug(slug)
        if athlete is None:
            raise AthleteNotFoundError(f"Athlete not found: {slug}")
        return athlete

    def _store_advanced_stats(
        self, athlete: Athlete, season: str, competition: str, stats: Dict[str, Any]
    ) -> None:
        self.advanced.upsert_advanced_stats(athlete.id, {
            "season": season,
            "competition": competition,
            "stats": stats,
            "fbref_url": athlete.fbref_url,
        })

    def upsert_advanced_stats(
        self, athlete_slug: str, season: str, competition: str, stats: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Upsert one athlete's advanced stats for a season and competition.

        Raises:
            AthleteNotFoundError: If no athlete has the slug
        """
        athlete = self._require_athlete(athlete_slug)
        self._store_advanced_stats(athlete, season, competition, stats)
        self.db.commit()
        logger.info(f"Stored advanced stats for {athlete.name} ({season}, {competition})")
        return {"success": True, "athlete": athlete.name, "season": season, "competition": competition}

    def import_advanced_stats(self, players: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Bulk upsert of flat per-player stat records.

        Each record names its athlete by ``slug`` next to ``season`` and
        ``competition``; every other key is stored as a stat. Records that
        fail validation are reported and skipped.
        """
        imported = 0
        errors: List[str] = []
        for i, player in enumerate(players):
            slug = player.get("slug")
            missing = [key for key in ("slug", "season", "competition") if not player.get(key)]
            if missing:
                errors.append(f"{slug or f'record {i}'}: missing {', '.join(missing)}")
                continue
            athlete = self.athletes.find_by_slug(slug)
            if athlete is None:
                errors.append(f"{slug}: Athlete not found")
                continue
            stats = {k: v for k, v in player.items() if k not in ADVANCED_STATS_KEY_FIELDS}
            self._store_advanced_stats(athlete, player["season"], player["competition"], stats)
            imported += 1

        self.db.commit()
        logger.info(f"Imported advanced stats for {imported} players ({len(errors)} rejected)")
        return {"success": True, "imported": imported, "errors": errors}

    def upsert_percentiles(self, athlete_slug: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Upsert one scouting-report percentile block.

        Raises:
            AthleteNotFoundError: If no athlete has the slug
        """
        athlete = self._require_athlete(athlete_slug)
        self.advanced.upsert_percentiles(athlete.id, values)
        self.db.commit()
        return {
            "success": True,
            "athlete": athlete.name,
            "comparison_group": values["comparison_group"],
            "period": values["period"],
        }

    def advanced_stats_status(self) -> Dict[str, Any]:
        return {"status": "ok", "players_configured": len(FBREF_PLAYERS), **self.advanced.counts()}

    def sync_fbref_ids(self) -> Dict[str, Any]:
        """Write the catalog's FBref id and profile URL onto each tracked athlete."""
        updated = 0
        missing: List[str] = []
        for player in FBREF_PLAYERS:
            athlete = self.athletes.find_by_slug(player.slug)
            if athlete is None:
                missing.append(player.slug)
                continue
            self.athletes.set_fbref_link(athlete, player.fbref_id, fbref_url(player.fbref_id, player.name))
            updated += 1
        self.db.commit()
        logger.info(f"Synced {updated} FBref ids ({len(missing)} slugs not tracked)")
        return {"success": True, "updated": updated, "missing": missing}

    # ========================================================================
    # Dispatch / status
    # ========================================================================

    async def run(self, sync_type: str, auth_method: str = "manual", **kwargs) -> Dict[str, Any]:
        """
        Run a sync-type unless it is in cooldown or already running.

        Returns:
            The sync result, or {"success": True, "skipped": True, "reason": ...}

        Raises:
            ValueError: If sync_type is unknown
        """
        if sync_type not in self.OPERATIONS:
            raise ValueError(f"Unknown sync type: {sync_type}")

        lock = self._locks.setdefault(sync_type, asyncio.Lock())
        if lock.locked():
            logger.info(f"{sync_type} already running - skipping")
            return {"success": True, "skipped": True, "reason": "already running"}

        async with lock:
            with self._fatal_errors(sync_type, auth_method):
                cooldown = check_cooldown(self.db, sync_type, settings.cooldown_for(sync_type))
            if not cooldown.can_run:
                return {
                    "success": True,
                    "skipped": True,
                    "reason": "cooldown",
                    "waitSeconds": cooldown.wait_seconds,
                    "lastRun": cooldown.last_run.isoformat() if cooldown.last_run else None,
                }
            operation = getattr(self, self.OPERATIONS[sync_type])
            return await operation(auth_method=auth_method, **kwargs)

    def get_recent_logs(self, limit: int = 20, sync_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Latest SyncLog rows, newest first."""
        return [_log_to_dict(row) for row in self.logs.recent(limit=limit, sync_type=sync_type)]

    def get_sync_status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Per sync-type health: last run, last success and remaining cooldown.

        Health is 'healthy' when no sync-type's latest run is an error,
        'degraded' otherwise.
        """
        now = now or datetime.utcnow()
        sync_types: Dict[str, Any] = {}
        failing = 0

        for sync_type in self.OPERATIONS:
            last = self.logs.latest_for(sync_type)
            last_success = self.logs.latest_success(sync_type)
            cooldown = settings.cooldown_for(sync_type)
            remaining = 0
            if last_success is not None and cooldown > 0:
                elapsed = (now - last_success.synced_at).total_seconds()
                remaining = max(0, int(cooldown - elapsed))
            if last is not None and last.status == "error":
                failing += 1

            sync_types[sync_type] = {
                "last_status": last.status if last else None,
                "last_run": last.synced_at.isoformat() if last else None,
                "last_success": last_success.synced_at.isoformat() if last_success else None,
                "cooldown_seconds": cooldown,
                "cooldown_remaining": remaining,
            }

        return {
            "health": "healthy" if failing == 0 else "degraded",
            "sync_types": sync_types,
            "circuit_breakers": get_all_breaker_states(),
            "checked_at": now.isoformat(),
        }


# ============================================================================
# HELPERS
# ============================================================================

def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_iso_date(value)
    return None


def _required_date(record: Dict[str, Any], *keys: str) -> date:
    for key in keys:
        parsed = _as_date(record.get(key))
        if parsed is not None:
            return parsed
    raise ValueError(f"missing or invalid {keys[0]}")


def _ingest_row(data_type: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """Column values for one pushed record."""
    if data_type == "transfers":
        return {
            "transfer_date": _required_date(record, "transfer_date"),
            "from_club": record["from_club"],
            "to_club": record["to_club"],
            "transfer_fee": record.get("transfer_fee"),
            "transfer_type": record.get("transfer_type") or "transfer",
            "season": record.get("season"),
        }
    if data_type == "injuries":
        return {
            "injury_type": record["injury_type"],
            "start_date": _required_date(record, "start_date"),
            "end_date": _as_date(record.get("end_date")),
            "days_missed": record.get("days_out", record.get("days_missed")),
            "games_missed": record.get("games_missed"),
            "season": record.get("season"),
            "is_current": bool(record.get("is_current")),
        }
    if record.get("market_value") is None:
        raise ValueError("missing market_value")
    return {
        "recorded_date": _required_date(record, "value_date", "recorded_date"),
        "market_value": int(record["market_value"]),
        "currency": "EUR",
    }


def _log_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "sync_type": row.sync_type,
        "status": row.status,
        "details": row.details,
        "synced_at": row.synced_at.isoformat() if row.synced_at else None,
    }
