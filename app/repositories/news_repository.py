"""News repository for auto-crawled athlete articles."""
from typing import Set

from app.models import AthleteNews
from app.repositories.base import BaseRepository


class NewsRepository(BaseRepository[AthleteNews]):
    """Repository for athlete news rows, de-duplicated on source_url."""

    def __init__(self, db):
        super().__init__(AthleteNews, db)

    def existing_urls(self) -> Set[str]:
        """All stored source urls."""
        return {url for (url,) in self.db.query(AthleteNews.source_url).all()}
