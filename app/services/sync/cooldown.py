"""
Cooldown guard for sync invocations.

A sync-type may run again only after its configured interval has elapsed
since its last *successful* run. Partial and failed runs do not start the
cooldown, so a broken source is retried on the next trigger.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.repositories.sync_log_repository import SyncLogRepository

logger = get_logger(__name__)


@dataclass
class CooldownResult:
    can_run: bool
    last_run: Optional[datetime] = None
    wait_seconds: int = 0


def check_cooldown(
    db: Session,
    sync_type: str,
    cooldown_seconds: int,
    now: Optional[datetime] = None,
) -> CooldownResult:
    """
    Check whether a sync-type is allowed to run.

    Args:
        db: Database session
        sync_type: Sync-type name (e.g. "news")
        cooldown_seconds: Minimum seconds between successful runs
        now: Reference time (defaults to utcnow)

    Returns:
        CooldownResult; wait_seconds is the remaining wait rounded up
    """
    now = now or datetime.utcnow()

    try:
        last = SyncLogRepository(db).latest_success(sync_type)
    except SQLAlchemyError as e:
        # Storage problems must not block ingestion
        logger.error(f"Cooldown check failed for {sync_type}, allowing run: {e}")
        db.rollback()
        return CooldownResult(can_run=True)

    if last is None or cooldown_seconds <= 0:
        return CooldownResult(can_run=True, last_run=last.synced_at if last else None)

    elapsed = (now - last.synced_at).total_seconds()
    if elapsed < cooldown_seconds:
        wait = math.ceil(cooldown_seconds - elapsed)
        logger.info(f"{sync_type} in cooldown, {wait}s remaining")
        return CooldownResult(can_run=False, last_run=last.synced_at, wait_seconds=wait)

    return CooldownResult(can_run=True, last_run=last.synced_at)
