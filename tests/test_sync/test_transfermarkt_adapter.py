"""Tests for the Transfermarkt scraping adapter.

Test Strategy:
1. scrape_athlete() with page loads stubbed (no browser is launched)
2. One failed page keeps the records recovered from the others
3. Zero recoverable records across all pages is a ScrapeError
"""
from datetime import date

import pytest

from app.core.exceptions import ScrapeError, SourceError
from app.models import Athlete, SPORT_FOOTBALL
from app.services.sync.adapters.transfermarkt_adapter import TransfermarktAdapter

BASE_URL = "https://tm.example"

TRANSFERS_PAGE = """
<div class="grid-view"><table>
  <tr class="odd">
    <td>23/24</td><td>Jul 6, 2023</td>
    <td><a href="/fb">Fenerbahce</a></td><td><a href="/rm">Real Madrid</a></td>
    <td>€20.00m</td>
  </tr>
</table></div>
"""

INJURIES_PAGE = """
<div class="grid-view"><table>
  <tr class="odd">
    <td>24/25</td><td>Hamstring injury</td><td>Jan 10, 2025</td><td>-</td><td>12 days</td><td>3</td>
  </tr>
</table></div>
"""

VALUES_PAGE = """
<div class="tm-player-market-value-development__current-value">€45.00m</div>
<div class="grid-view"><table>
  <tr class="odd"><td>Dec 1, 2024</td><td>€45.00m</td><td>Real Madrid</td></tr>
</table></div>
"""

EMPTY_PAGE = "<html><body><div class='grid-view'><table></table></div></body></html>"


def _arda(**kwargs) -> Athlete:
    values = {"name": "Arda Güler", "slug": "arda-guler", "sport": SPORT_FOOTBALL}
    values.update(kwargs)
    return Athlete(**values)


def _scraper(pages) -> TransfermarktAdapter:
    """
    Adapter whose page loads come from ``pages``: section name to HTML, or
    to an exception to raise for that page.
    """
    scraper = TransfermarktAdapter(base_url=BASE_URL, min_delay=0, max_delay=0)
    scraper.visited = []

    async def get_html(url: str) -> str:
        scraper.visited.append(url)
        section = url[len(BASE_URL):].split("/")[2]
        page = pages[section]
        if isinstance(page, Exception):
            raise page
        return page

    scraper._get_html = get_html
    return scraper


class TestScrapeAthlete:

    @pytest.mark.asyncio
    async def test_all_pages(self):
        scraper = _scraper({
            "transfers": TRANSFERS_PAGE,
            "verletzungen": INJURIES_PAGE,
            "marktwertverlauf": VALUES_PAGE,
        })

        data = await scraper.scrape_athlete(_arda())

        assert scraper.visited == [
            f"{BASE_URL}/arda-guler/transfers/spieler/861410",
            f"{BASE_URL}/arda-guler/verletzungen/spieler/861410",
            f"{BASE_URL}/arda-guler/marktwertverlauf/spieler/861410",
        ]
        assert data["transfers"][0]["to_club"] == "Real Madrid"
        assert data["injuries"][0]["is_current"] is True
        assert data["market_values"][0]["recorded_date"] == date(2024, 12, 1)
        assert data["current_value"] == 45_000_000

    @pytest.mark.asyncio
    async def test_failed_page_keeps_other_records(self):
        scraper = _scraper({
            "transfers": TRANSFERS_PAGE,
            "verletzungen": SourceError("timeout on injuries page"),
            "marktwertverlauf": VALUES_PAGE,
        })

        data = await scraper.scrape_athlete(_arda())

        assert len(scraper.visited) == 3
        assert len(data["transfers"]) == 1
        assert data["transfers"][0]["transfer_fee"] == 20_000_000
        assert data["injuries"] == []
        assert len(data["market_values"]) == 1

    @pytest.mark.asyncio
    async def test_failed_value_page_has_no_current_value(self):
        scraper = _scraper({
            "transfers": TRANSFERS_PAGE,
            "verletzungen": INJURIES_PAGE,
            "marktwertverlauf": SourceError("navigation failed"),
        })

        data = await scraper.scrape_athlete(_arda())

        assert data["market_values"] == []
        assert data["current_value"] is None
        assert len(data["injuries"]) == 1

    @pytest.mark.asyncio
    async def test_every_page_failed(self):
        error = SourceError("navigation failed")
        scraper = _scraper({"transfers": error, "verletzungen": error, "marktwertverlauf": error})

        with pytest.raises(ScrapeError):
            await scraper.scrape_athlete(_arda())

    @pytest.mark.asyncio
    async def test_empty_pages(self):
        scraper = _scraper({
            "transfers": EMPTY_PAGE,
            "verletzungen": EMPTY_PAGE,
            "marktwertverlauf": EMPTY_PAGE,
        })

        with pytest.raises(ScrapeError):
            await scraper.scrape_athlete(_arda())

    @pytest.mark.asyncio
    async def test_stored_id_wins_over_known_roster(self):
        scraper = _scraper({
            "transfers": TRANSFERS_PAGE,
            "verletzungen": EMPTY_PAGE,
            "marktwertverlauf": EMPTY_PAGE,
        })

        await scraper.scrape_athlete(_arda(transfermarkt_id=123))

        assert scraper.visited[0] == f"{BASE_URL}/arda-guler/transfers/spieler/123"

    @pytest.mark.asyncio
    async def test_unknown_athlete_has_no_page_visits(self):
        scraper = _scraper({})

        with pytest.raises(ScrapeError):
            await scraper.scrape_athlete(_arda(name="Someone Else", slug="someone-else"))
        assert scraper.visited == []


class TestBrowserLifecycle:

    @pytest.mark.asyncio
    async def test_page_load_requires_started_browser(self):
        scraper = TransfermarktAdapter(base_url=BASE_URL)

        with pytest.raises(SourceError):
            await scraper._get_html(f"{BASE_URL}/arda-guler/transfers/spieler/861410")

    @pytest.mark.asyncio
    async def test_close_without_start(self):
        scraper = TransfermarktAdapter(base_url=BASE_URL)

        await scraper.close()

        assert scraper._browser is None
