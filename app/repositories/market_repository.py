"""
Market data repository (transfers, injuries, market values).

Every write is a natural-key upsert so re-scraping the same page is a no-op.
"""
from typing import Any, Dict

from app.models import TransferHistory, InjuryHistory, MarketValue
from app.repositories.base import BaseRepository

TRANSFER_KEY = ("athlete_id", "transfer_date", "from_club", "to_club")
INJURY_KEY = ("athlete_id", "injury_type", "start_date")
MARKET_VALUE_KEY = ("athlete_id", "recorded_date")


class MarketDataRepository:
    """Upserts for scraped Transfermarkt history."""

    def __init__(self, db):
        self.db = db
        self.transfers = BaseRepository(TransferHistory, db)
        self.injuries = BaseRepository(InjuryHistory, db)
        self.market_values = BaseRepository(MarketValue, db)

    def upsert_transfer(self, athlete_id: str, values: Dict[str, Any]) -> TransferHistory:
        return self.transfers.upsert(TRANSFER_KEY, {"athlete_id": athlete_id, **values})

    def upsert_injury(self, athlete_id: str, values: Dict[str, Any]) -> InjuryHistory:
        return self.injuries.upsert(INJURY_KEY, {"athlete_id": athlete_id, **values})

    def add_injury_if_new(self, athlete_id: str, values: Dict[str, Any]) -> bool:
        """
        Insert an injury unless one already starts on the same date.

        Sources name the same injury differently, so the start date alone
        identifies it here.

        Returns:
            True if a row was inserted
        """
        if self.injuries.find_one_by(athlete_id=athlete_id, start_date=values["start_date"]):
            return False
        self.injuries.create(athlete_id=athlete_id, **values)
        self.db.flush()
        return True

    def upsert_market_value(self, athlete_id: str, values: Dict[str, Any]) -> MarketValue:
        return self.market_values.upsert(MARKET_VALUE_KEY, {"athlete_id": athlete_id, **values})
