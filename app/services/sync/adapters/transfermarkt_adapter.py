"""Transfermarkt adapter: headless-browser scraping of player history pages.

One Chromium instance is launched per scrape cycle and every page visit is
serialized through it; the browser is closed in ``finally`` so a failure
mid-cycle never leaks the process. Between page visits the adapter waits a
randomized 3-7 seconds.

Per athlete, three pages are visited:
- /{slug}/transfers/spieler/{id}        → transfer rows
- /{slug}/verletzungen/spieler/{id}     → injury rows
- /{slug}/marktwertverlauf/spieler/{id} → market-value rows + current value
"""
import asyncio
import random
from typing import Any, Dict, Optional

from playwright.async_api import async_playwright, Error as PlaywrightError

from app.core.config import settings
from app.core.exceptions import ScrapeError, SourceError
from app.core.logging import get_logger
from app.core.metrics import record_external_request
from app.models import Athlete
from app.services.sync.parsers.transfermarkt import (
    parse_current_value, parse_injury_rows, parse_market_value_rows, parse_transfer_rows,
)

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Transfermarkt ids of the tracked roster, used until the athlete row has one
KNOWN_TRANSFERMARKT_IDS: Dict[str, int] = {
    "altay-bayindir": 336077,
    "arda-guler": 861410,
    "atakan-karazor": 232320,
    "berke-ozer": 481886,
    "can-uzun": 886655,
    "deniz-gul": 1063292,
    "enes-unal": 251106,
    "ferdi-kadioglu": 346498,
    "hakan-calhanoglu": 35251,
    "isak-vural": 989621,
    "kenan-yildiz": 798650,
    "merih-demiral": 340879,
    "salih-ozcan": 244940,
    "semih-kilicsoy": 875334,
    "yusuf-akcicek": 1100642,
    "zeki-celik": 251075,
}


def transfermarkt_id_for(athlete: Athlete) -> Optional[int]:
    return athlete.transfermarkt_id or KNOWN_TRANSFERMARKT_IDS.get(athlete.slug)


class TransfermarktAdapter:
    """
    Playwright-driven scraper for Transfermarkt player pages.

    Usage:
        async with TransfermarktAdapter() as scraper:
            data = await scraper.scrape_athlete(athlete)
    """

    source_name = "transfermarkt"

    def __init__(
        self,
        base_url: Optional[str] = None,
        headless: Optional[bool] = None,
        min_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.TRANSFERMARKT_BASE_URL).rstrip("/")
        self.headless = settings.TRANSFERMARKT_HEADLESS if headless is None else headless
        self.min_delay = settings.TRANSFERMARKT_MIN_DELAY if min_delay is None else min_delay
        self.max_delay = settings.TRANSFERMARKT_MAX_DELAY if max_delay is None else max_delay
        self._playwright = None
        self._browser = None
        self._page = None

    async def __aenter__(self) -> "TransfermarktAdapter":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """
        Launch the browser for one scrape cycle.

        Raises:
            SourceError: If Chromium cannot be launched
        """
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
            )
            context = await self._browser.new_context(
                user_agent=USER_AGENT,
                viewport={"width": 1920, "height": 1080},
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
            self._page = await context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise SourceError(f"Could not launch browser: {e}") from e
        logger.info("Transfermarkt browser launched")

    async def close(self) -> None:
        """Close the browser; safe to call when start() failed halfway."""
        try:
            if self._browser is not None:
                await self._browser.close()
        finally:
            self._browser = None
            self._page = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
            logger.info("Transfermarkt browser closed")

    async def human_delay(self) -> None:
        await asyncio.sleep(random.uniform(self.min_delay, self.max_delay))

    async def _get_html(self, url: str) -> str:
        """
        Navigate to a page and return its rendered HTML.

        Raises:
            SourceError: On navigation failure
        """
        if self._page is None:
            raise SourceError("Transfermarkt browser not started")

        logger.info(f"Scraping: {url}")
        try:
            await self._page.goto(url, wait_until="networkidle", timeout=30000)
            try:
                await self._page.wait_for_selector(".grid-view", timeout=10000)
            except PlaywrightError:
                logger.debug(f"No .grid-view table on {url}")
            html = await self._page.content()
        except PlaywrightError as e:
            record_external_request(self.source_name, ok=False)
            raise SourceError(f"Failed to load {url}: {e}") from e
        record_external_request(self.source_name, ok=True)
        return html

    async def _get_html_or_none(self, url: str) -> Optional[str]:
        """Load one history page; a failed page yields None so the others still count."""
        try:
            return await self._get_html(url)
        except SourceError as e:
            logger.warning(f"Skipping page, {e}")
            return None

    def _url(self, athlete: Athlete, section: str, tm_id: int) -> str:
        return f"{self.base_url}/{athlete.slug}/{section}/spieler/{tm_id}"

    async def scrape_athlete(self, athlete: Athlete) -> Dict[str, Any]:
        """
        Scrape transfers, injuries and market values for one athlete.

        Returns:
            {"transfers": [...], "injuries": [...], "market_values": [...],
             "current_value": int | None}

        Raises:
            ScrapeError: If no record at all could be recovered
        """
        tm_id = transfermarkt_id_for(athlete)
        if not tm_id:
            raise ScrapeError(f"No Transfermarkt id for {athlete.name}")

        transfers_html = await self._get_html_or_none(self._url(athlete, "transfers", tm_id))
        transfers = parse_transfer_rows(transfers_html) if transfers_html else []
        await self.human_delay()

        injuries_html = await self._get_html_or_none(self._url(athlete, "verletzungen", tm_id))
        injuries = parse_injury_rows(injuries_html) if injuries_html else []
        await self.human_delay()

        values_html = await self._get_html_or_none(self._url(athlete, "marktwertverlauf", tm_id))
        market_values = parse_market_value_rows(values_html) if values_html else []
        current_value = parse_current_value(values_html) if values_html else None

        logger.info(
            f"{athlete.name}: {len(transfers)} transfers, {len(injuries)} injuries, "
            f"{len(market_values)} market values"
        )
        if not (transfers or injuries or market_values or current_value):
            raise ScrapeError(f"No Transfermarkt records recoverable for {athlete.name}")

        return {
            "transfers": transfers,
            "injuries": injuries,
            "market_values": market_values,
            "current_value": current_value,
        }
