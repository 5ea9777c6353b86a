"""
Exception taxonomy for the sync pipeline.

ConfigurationError, StorageError and UnauthorizedError stop a sync invocation
early. SourceError and ScrapeError are caught per athlete and aggregated into the
sync log; cooldowns are not errors at all (reported as skipped results).
"""
from typing import Optional


class SyncError(Exception):
    """Base class for sync pipeline errors."""


class ConfigurationError(SyncError):
    """A required API key, secret or storage connection is missing."""


class StorageError(SyncError):
    """The database failed outside the per-athlete loop."""


class UnauthorizedError(SyncError):
    """Caller presented a missing or invalid credential."""

    def __init__(self, reason: str, user_id: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.user_id = user_id


class SourceError(SyncError):
    """An external source failed for a single athlete or request."""


class ScrapeError(SourceError):
    """A scraped page yielded zero extractable records."""


class AthleteNotFoundError(SyncError):
    """No athlete matches the given slug or id."""
