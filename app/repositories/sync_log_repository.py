"""
Sync log repository.

The sync_logs table is append-only: rows are written once per sync invocation
and read by the cooldown guard and the admin status endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import desc

from app.models import SyncLog
from app.repositories.base import BaseRepository


class SyncLogRepository(BaseRepository[SyncLog]):
    """Repository for sync audit records."""

    def __init__(self, db):
        super().__init__(SyncLog, db)

    def latest_success(self, sync_type: str) -> Optional[SyncLog]:
        """Most recent successful run of a sync-type."""
        return (
            self.query()
            .filter(SyncLog.sync_type == sync_type, SyncLog.status == "success")
            .order_by(desc(SyncLog.synced_at))
            .first()
        )

    def latest_for(self, sync_type: str) -> Optional[SyncLog]:
        """Most recent run of a sync-type regardless of status."""
        return (
            self.query()
            .filter(SyncLog.sync_type == sync_type)
            .order_by(desc(SyncLog.synced_at))
            .first()
        )

    def recent(self, limit: int = 20, sync_type: Optional[str] = None) -> List[SyncLog]:
        """Latest log rows, newest first."""
        query = self.query()
        if sync_type:
            query = query.filter(SyncLog.sync_type == sync_type)
        return query.order_by(desc(SyncLog.synced_at)).limit(limit).all()

    def append(
        self,
        sync_type: str,
        status: str,
        details: Dict[str, Any],
        synced_at: Optional[datetime] = None,
    ) -> SyncLog:
        """Append one log row and commit it."""
        row = self.create(
            sync_type=sync_type,
            status=status,
            details=details,
            synced_at=synced_at or datetime.utcnow(),
        )
        self.save()
        return row
