"""ESPN adapter: Hollinger leaderboard and player pages via Firecrawl.

ESPN pages are rendered to markdown by the Firecrawl scrape API and then run
through the extraction rules in app.services.sync.parsers.espn_markdown.
"""
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from app.core.config import settings
from app.core.exceptions import ScrapeError, SourceError
from app.core.logging import get_logger
from app.services.core.base_api_adapter import BaseSourceAdapter, is_retryable_error, HTTP_EXCEPTIONS
from app.services.core.circuit_breaker import CircuitBreakerError, firecrawl_breaker
from app.services.sync.parsers.espn_markdown import (
    parse_hollinger_leaderboard, parse_hollinger_row, parse_player_page,
)

logger = get_logger(__name__)

ESPN_PLAYER_URL = "https://www.espn.com/nba/player/_/id/{espn_id}"


class FirecrawlClient(BaseSourceAdapter):
    """Thin client for POST /v1/scrape returning page markdown."""

    source_name = "firecrawl"
    config_key_name = "FIRECRAWL_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.FIRECRAWL_API_KEY,
            base_url=base_url or settings.FIRECRAWL_BASE_URL,
            timeout=60.0,
            client=client,
        )

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key or ''}",
            "Content-Type": "application/json",
        }

    @firecrawl_breaker
    async def _guarded_scrape(self, body: Dict[str, Any]) -> Any:
        return await self._request_json("/v1/scrape", method="POST", json=body)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(is_retryable_error),
        reraise=True,
    )
    async def _scrape_with_retry(self, body: Dict[str, Any]) -> Any:
        return await self._guarded_scrape(body)

    async def scrape_markdown(self, url: str, only_main_content: bool = False) -> str:
        """
        Render a page to markdown.

        Raises:
            SourceError: On API failure or when no markdown comes back
        """
        body: Dict[str, Any] = {"url": url, "formats": ["markdown"]}
        if only_main_content:
            body["onlyMainContent"] = True

        try:
            result = await self._scrape_with_retry(body)
        except CircuitBreakerError as e:
            raise SourceError("firecrawl unavailable (circuit open)") from e
        except HTTP_EXCEPTIONS as e:
            raise SourceError(f"Firecrawl API error: {e}") from e

        markdown = (result.get("data") or {}).get("markdown")
        if not result.get("success") or not markdown:
            raise SourceError(f"Failed to scrape {url}")
        return markdown


class EspnAdapter:
    """
    Scrapes ESPN pages and applies the markdown extraction rules.

    Attributes:
        firecrawl: FirecrawlClient used to render pages
    """

    def __init__(self, firecrawl: Optional[FirecrawlClient] = None):
        self.firecrawl = firecrawl or FirecrawlClient()

    @property
    def is_configured(self) -> bool:
        return self.firecrawl.is_configured

    def require_configured(self) -> None:
        self.firecrawl.require_configured()

    async def fetch_hollinger(self, athlete_name: str) -> Dict[str, Any]:
        """
        Hollinger leaderboard plus the athlete's own row.

        Returns:
            {"athlete": row, "leaderboard": [rows]}

        Raises:
            ScrapeError: If the athlete's row cannot be recovered
        """
        markdown = await self.firecrawl.scrape_markdown(settings.HOLLINGER_URL)
        row = parse_hollinger_row(markdown, athlete_name)
        if row is None:
            logger.warning(f"Could not find {athlete_name} in Hollinger stats. Preview: {markdown[:500]}")
            raise ScrapeError(f"Could not find {athlete_name} in Hollinger stats")
        return {"athlete": row, "leaderboard": parse_hollinger_leaderboard(markdown)}

    async def fetch_player_page(self, espn_id: int) -> Dict[str, Any]:
        """
        Splits, fantasy insight, previous game and ranks from a player page.

        Raises:
            ScrapeError: If not a single field could be extracted
        """
        url = ESPN_PLAYER_URL.format(espn_id=espn_id)
        logger.info(f"Fetching ESPN player stats from: {url}")
        markdown = await self.firecrawl.scrape_markdown(url, only_main_content=True)

        parsed = parse_player_page(markdown)
        if not any(parsed.values()):
            raise ScrapeError(f"No stats recoverable from {url}")
        return parsed

    async def close(self) -> None:
        await self.firecrawl.close()
