"""
Athlete Repository for tracked athlete profiles.

Usage:
    repo = AthleteRepository(db)
    footballers = repo.find_by_sport("football")
    sengun = repo.find_by_slug("alperen-sengun")
    repo.set_external_id(athlete, "balldontlie_id", 666786)
"""
from typing import Optional, List

from app.core.logging import get_logger
from app.models import Athlete, UserRole
from app.repositories.base import BaseRepository

logger = get_logger(__name__)

EXTERNAL_ID_FIELDS = ("api_football_id", "balldontlie_id", "transfermarkt_id", "espn_id", "fotmob_id")


class AthleteRepository(BaseRepository[Athlete]):
    """Repository for athlete profile data access."""

    def __init__(self, db):
        super().__init__(Athlete, db)

    def find_by_slug(self, slug: str) -> Optional[Athlete]:
        """Find an athlete by URL slug."""
        return self.find_one_by(slug=slug)

    def find_by_sport(self, sport: Optional[str] = None) -> List[Athlete]:
        """
        Get tracked athletes, optionally restricted to one sport.

        Args:
            sport: 'football', 'basketball' or None for all

        Returns:
            Athletes ordered by name
        """
        if sport:
            return self.find_by(order_by="name", sport=sport)
        return self.find_by(order_by="name")

    def set_external_id(self, athlete: Athlete, field: str, value: int) -> Athlete:
        """
        Cache a resolved external id on the athlete so later syncs skip the search.

        Args:
            athlete: Athlete to update
            field: One of EXTERNAL_ID_FIELDS
            value: External id returned by the source

        Raises:
            ValueError: If field is not an external id column
        """
        if field not in EXTERNAL_ID_FIELDS:
            raise ValueError(f"Unknown external id field: {field}")

        setattr(athlete, field, value)
        self.db.flush()
        logger.info(f"Saved {field}={value} for {athlete.name}")
        return athlete

    def set_fbref_link(self, athlete: Athlete, fbref_id: str, fbref_url: str) -> Athlete:
        """Pin the athlete's FBref profile (string id, unlike the integer source ids)."""
        athlete.fbref_id = fbref_id
        athlete.fbref_url = fbref_url
        self.db.flush()
        return athlete

    def set_market_value(self, athlete: Athlete, value: int, currency: str = "EUR") -> Athlete:
        """Update the athlete's current market value."""
        athlete.current_market_value = value
        athlete.market_value_currency = currency
        self.db.flush()
        return athlete

    def has_role(self, user_id: str, role: str) -> bool:
        """Check whether a user id has been granted a role."""
        return self.db.query(UserRole).filter_by(user_id=user_id, role=role).first() is not None
