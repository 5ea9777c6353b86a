"""Source adapters for the external sports data providers.

Each adapter turns one provider's payloads into the typed records of
app.services.sync.stats_types for the sync orchestrator.

Available adapters:
- ApiFootballAdapter: API-Football v3 (football stats, fixtures, live)
- BalldontlieAdapter: balldontlie v1 (NBA averages, games, injuries, live)
- NewsSearchAdapter: Google Custom Search (athlete news)
- EspnAdapter / FirecrawlClient: ESPN pages rendered to markdown
- TransfermarktAdapter: headless-browser scraping of Transfermarkt
- FotmobAdapter: FotMob player data (career, match ratings, injuries)
"""
from app.services.sync.adapters.api_football_adapter import ApiFootballAdapter
from app.services.sync.adapters.balldontlie_adapter import BalldontlieAdapter
from app.services.sync.adapters.news_search_adapter import NewsSearchAdapter, NewsItem
from app.services.sync.adapters.espn_adapter import EspnAdapter, FirecrawlClient
from app.services.sync.adapters.transfermarkt_adapter import TransfermarktAdapter
from app.services.sync.adapters.fotmob_adapter import FotmobAdapter

__all__ = [
    "ApiFootballAdapter",
    "BalldontlieAdapter",
    "NewsSearchAdapter",
    "NewsItem",
    "EspnAdapter",
    "FirecrawlClient",
    "TransfermarktAdapter",
    "FotmobAdapter",
]
