"""Google Custom Search adapter for athlete news discovery."""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger
from app.models import Athlete, SPORT_BASKETBALL
from app.services.core.base_api_adapter import BaseSourceAdapter, is_retryable_error
from app.services.core.circuit_breaker import google_cse_breaker

logger = get_logger(__name__)

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
RESULTS_PER_ATHLETE = 5


@dataclass
class NewsItem:
    title: str
    url: str
    summary: Optional[str]
    source_name: str
    image_url: Optional[str] = None


def build_query(athlete: Athlete) -> str:
    """Exact-name query scoped by team and sport."""
    context = "NBA basketball" if athlete.sport == SPORT_BASKETBALL else "football soccer"
    return f'"{athlete.name}" {athlete.team or ""} {context} news'.replace("  ", " ")


def extract_image(item: Dict[str, Any]) -> Optional[str]:
    """Thumbnail from the CSE pagemap (cse_image first, then og:image)."""
    pagemap = item.get("pagemap") or {}
    images = pagemap.get("cse_image") or []
    if images and images[0].get("src"):
        return images[0]["src"]
    metatags = pagemap.get("metatags") or []
    if metatags and metatags[0].get("og:image"):
        return metatags[0]["og:image"]
    return None


def source_name_for(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


class NewsSearchAdapter(BaseSourceAdapter):
    """Adapter for the Google Custom Search JSON API."""

    source_name = "google_cse"
    config_key_name = "GOOGLE_CSE_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        cx: Optional[str] = None,
        request_delay: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.GOOGLE_CSE_API_KEY,
            base_url=GOOGLE_CSE_URL,
            request_delay=settings.NEWS_REQUEST_DELAY if request_delay is None else request_delay,
            client=client,
        )
        self.cx = cx if cx is not None else settings.GOOGLE_CSE_CX

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.cx)

    def require_configured(self) -> None:
        if not self.api_key:
            super().require_configured()
        if not self.cx:
            raise ConfigurationError("GOOGLE_CSE_CX not configured")

    @google_cse_breaker
    async def _guarded_request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request_json(path, params)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(is_retryable_error),
        reraise=True,
    )
    async def _fetch_with_breaker(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._guarded_request(path, params)

    async def search_news(self, athlete: Athlete) -> List[NewsItem]:
        """
        Latest articles mentioning the athlete, newest first.

        Raises:
            SourceError: If the search API call fails
        """
        query = build_query(athlete)
        logger.info(f"Searching news for: {query}")
        data = await self._fetch_json("", {
            "key": self.api_key,
            "cx": self.cx,
            "q": query,
            "num": RESULTS_PER_ATHLETE,
            "sort": "date",
        })

        items = []
        for item in data.get("items") or []:
            link = item.get("link")
            if not link or not item.get("title"):
                continue
            items.append(NewsItem(
                title=item["title"],
                url=link,
                summary=item.get("snippet"),
                source_name=source_name_for(link),
                image_url=extract_image(item),
            ))
        return items
