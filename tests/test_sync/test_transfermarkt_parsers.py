"""Tests for the Transfermarkt HTML extractors.

Test Strategy:
1. Scalar parsers: market values, dates, fees, day counts
2. Row tables (.grid-view .odd/.even): transfers, injuries, value history
3. Rows without a usable date are dropped, not half-parsed
"""
from datetime import date

import pytest

from app.services.sync.parsers.transfermarkt import (
    parse_current_value,
    parse_date,
    parse_days,
    parse_fee,
    parse_injury_rows,
    parse_market_value,
    parse_market_value_rows,
    parse_transfer_rows,
)

TRANSFERS_HTML = """
<div class="grid-view">
  <table>
    <thead><tr><th>Season</th><th>Date</th><th>Left</th><th>Joined</th><th>Fee</th></tr></thead>
    <tbody>
      <tr class="odd">
        <td>23/24</td>
        <td>Jul 6, 2023</td>
        <td><img src="https://tmssl.example/fenerbahce.png" alt="Fenerbahce"><a href="/fb">Fenerbahce</a></td>
        <td><img src="https://tmssl.example/real.png" alt="Real Madrid"><a href="/rm">Real Madrid</a></td>
        <td>€20.00m</td>
      </tr>
      <tr class="even">
        <td>21/22</td>
        <td>Jul 1, 2021</td>
        <td><a href="/u19">Fenerbahce U19</a></td>
        <td><img src="https://tmssl.example/fenerbahce.png" alt="Fenerbahce"></td>
        <td>-</td>
      </tr>
      <tr class="odd">
        <td>20/21</td>
        <td>unknown</td>
        <td>A</td>
        <td>B</td>
        <td>?</td>
      </tr>
    </tbody>
  </table>
</div>
"""

INJURIES_HTML = """
<div class="grid-view">
  <table>
    <tr class="odd">
      <td>24/25</td><td>Hamstring injury</td><td>Jan 10, 2025</td><td>-</td><td>12 days</td><td>3</td>
    </tr>
    <tr class="even">
      <td>23/24</td><td>Meniscus tear</td><td>Aug 15, 2023</td><td>Oct 20, 2023</td><td>66 days</td><td>11</td>
    </tr>
  </table>
</div>
"""

MARKET_VALUES_HTML = """
<div class="tm-player-market-value-development__current-value">€45.00m</div>
<div class="grid-view">
  <table>
    <tr class="odd"><td>Dec 1, 2024</td><td>€45.00m</td><td>Real Madrid</td></tr>
    <tr class="even"><td>Jun 1, 2023</td><td>€800k</td><td>Fenerbahce</td></tr>
    <tr class="odd"><td>May 1, 2022</td><td>-</td><td>Fenerbahce</td></tr>
  </table>
</div>
"""


class TestScalarParsers:

    @pytest.mark.parametrize("text,expected", [
        ("€45.00m", 45_000_000),
        ("€800k", 800_000),
        ("€1.20bn", 1_200_000_000),
        ("€500Th.", 500_000),
        ("€2,50m", 2_500_000),
    ])
    def test_market_values(self, text, expected):
        assert parse_market_value(text) == expected

    @pytest.mark.parametrize("text", [None, "", "-", "N/A", "€"])
    def test_missing_market_values(self, text):
        assert parse_market_value(text) is None

    @pytest.mark.parametrize("text,expected", [
        ("Jul 1, 2023", date(2023, 7, 1)),
        ("July 1, 2023", date(2023, 7, 1)),
        ("01.07.2023", date(2023, 7, 1)),
        ("2023-07-01", date(2023, 7, 1)),
        ("1 Jul 2023", date(2023, 7, 1)),
    ])
    def test_dates(self, text, expected):
        assert parse_date(text) == expected

    def test_unparseable_date(self):
        assert parse_date("unknown") is None
        assert parse_date("-") is None

    @pytest.mark.parametrize("text,expected", [
        ("€20.00m", (20_000_000, "transfer")),
        ("free transfer", (None, "free")),
        ("-", (None, "free")),
        ("loan transfer", (None, "loan")),
        ("End of loan", (None, "loan")),
    ])
    def test_fees(self, text, expected):
        assert parse_fee(text) == expected

    def test_days(self):
        assert parse_days("34 days") == 34
        assert parse_days("?") is None


class TestTransferRows:

    def test_valid_rows_only(self):
        records = parse_transfer_rows(TRANSFERS_HTML)

        assert len(records) == 2

    def test_transfer_fields(self):
        record = parse_transfer_rows(TRANSFERS_HTML)[0]

        assert record["season"] == "23/24"
        assert record["transfer_date"] == date(2023, 7, 6)
        assert record["from_club"] == "Fenerbahce"
        assert record["to_club"] == "Real Madrid"
        assert record["to_club_logo_url"] == "https://tmssl.example/real.png"
        assert record["transfer_fee"] == 20_000_000
        assert record["transfer_type"] == "transfer"
        assert record["fee_currency"] == "EUR"

    def test_club_name_from_crest_alt(self):
        record = parse_transfer_rows(TRANSFERS_HTML)[1]

        assert record["from_club"] == "Fenerbahce U19"
        assert record["to_club"] == "Fenerbahce"
        assert record["transfer_type"] == "free"


class TestInjuryRows:

    def test_current_injury(self):
        current, past = parse_injury_rows(INJURIES_HTML)

        assert current["injury_type"] == "Hamstring injury"
        assert current["start_date"] == date(2025, 1, 10)
        assert current["end_date"] is None
        assert current["is_current"] is True
        assert current["days_missed"] == 12
        assert current["games_missed"] == 3

        assert past["end_date"] == date(2023, 10, 20)
        assert past["is_current"] is False
        assert past["days_missed"] == 66


class TestMarketValues:

    def test_history_rows(self):
        records = parse_market_value_rows(MARKET_VALUES_HTML)

        assert [(r["recorded_date"], r["market_value"]) for r in records] == [
            (date(2024, 12, 1), 45_000_000),
            (date(2023, 6, 1), 800_000),
        ]
        assert records[0]["club_at_time"] == "Real Madrid"

    def test_current_value(self):
        assert parse_current_value(MARKET_VALUES_HTML) == 45_000_000

    def test_current_value_missing(self):
        assert parse_current_value("<html><body></body></html>") is None
