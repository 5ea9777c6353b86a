"""Tests for the Google Custom Search news adapter.

Test Strategy:
1. Query building per sport; source names and thumbnails from CSE items
2. search_news() request parameters and item mapping (httpx.MockTransport)
3. Both the API key and the engine id are required
"""
import httpx
import pytest

from app.core.exceptions import ConfigurationError, SourceError
from app.models import Athlete, SPORT_BASKETBALL, SPORT_FOOTBALL
from app.services.sync.adapters.news_search_adapter import (
    NewsSearchAdapter,
    build_query,
    extract_image,
    source_name_for,
)


def _adapter(handler) -> NewsSearchAdapter:
    return NewsSearchAdapter(
        api_key="cse-key",
        cx="engine-id",
        request_delay=0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _arda() -> Athlete:
    return Athlete(name="Arda Güler", slug="arda-guler", sport=SPORT_FOOTBALL, team="Real Madrid")


class TestHelpers:

    def test_football_query(self):
        assert build_query(_arda()) == '"Arda Güler" Real Madrid football soccer news'

    def test_basketball_query_without_team(self):
        athlete = Athlete(name="Alperen Şengün", slug="alperen-sengun", sport=SPORT_BASKETBALL)

        assert build_query(athlete) == '"Alperen Şengün" NBA basketball news'

    def test_source_name(self):
        assert source_name_for("https://www.marca.com/futbol/real-madrid.html") == "marca.com"
        assert source_name_for("https://as.com/futbol/") == "as.com"

    def test_image_preference(self):
        assert extract_image({"pagemap": {
            "cse_image": [{"src": "https://img.example/cse.jpg"}],
            "metatags": [{"og:image": "https://img.example/og.jpg"}],
        }}) == "https://img.example/cse.jpg"
        assert extract_image({"pagemap": {
            "metatags": [{"og:image": "https://img.example/og.jpg"}],
        }}) == "https://img.example/og.jpg"
        assert extract_image({}) is None


class TestSearchNews:

    @pytest.mark.asyncio
    async def test_request_and_mapping(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["host"] = request.url.host
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"items": [
                {
                    "title": "Güler scores again",
                    "link": "https://www.marca.com/futbol/guler.html",
                    "snippet": "A brace at the Bernabéu",
                    "pagemap": {"cse_image": [{"src": "https://img.example/guler.jpg"}]},
                },
                {"title": "No link"},
                {"link": "https://as.com/untitled"},
            ]})

        items = await _adapter(handler).search_news(_arda())

        assert seen["host"] == "www.googleapis.com"
        assert seen["params"] == {
            "key": "cse-key",
            "cx": "engine-id",
            "q": '"Arda Güler" Real Madrid football soccer news',
            "num": "5",
            "sort": "date",
        }
        assert len(items) == 1
        assert items[0].title == "Güler scores again"
        assert items[0].source_name == "marca.com"
        assert items[0].summary == "A brace at the Bernabéu"
        assert items[0].image_url == "https://img.example/guler.jpg"

    @pytest.mark.asyncio
    async def test_no_results(self):
        adapter = _adapter(lambda request: httpx.Response(200, json={"searchInformation": {"totalResults": "0"}}))

        assert await adapter.search_news(_arda()) == []

    @pytest.mark.asyncio
    async def test_quota_error_is_source_error(self):
        adapter = _adapter(lambda request: httpx.Response(403, json={"error": {"message": "quota"}}))

        with pytest.raises(SourceError):
            await adapter.search_news(_arda())


class TestConfiguration:

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="GOOGLE_CSE_API_KEY"):
            NewsSearchAdapter(api_key="", cx="engine-id").require_configured()

    def test_missing_engine_id(self):
        adapter = NewsSearchAdapter(api_key="cse-key", cx="")

        assert adapter.is_configured is False
        with pytest.raises(ConfigurationError, match="GOOGLE_CSE_CX"):
            adapter.require_configured()
