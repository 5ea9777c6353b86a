"""Extraction rules for Transfermarkt transfer, injury and market-value pages.

Pages are fetched with a headless browser; this module only sees the rendered
HTML. Row tables use the ``.grid-view`` widget with alternating ``.odd`` /
``.even`` rows.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

ROW_SELECTOR = ".grid-view .odd, .grid-view .even"
CURRENT_VALUE_SELECTOR = ".tm-player-market-value-development__current-value"

DATE_FORMATS = (
    "%b %d, %Y",    # Jul 1, 2023
    "%B %d, %Y",    # July 1, 2023
    "%d.%m.%Y",     # 01.07.2023
    "%d/%m/%Y",     # 01/07/2023
    "%m/%d/%Y",     # 07/01/2023
    "%Y-%m-%d",     # 2023-07-01
    "%d %b %Y",     # 1 Jul 2023
)


def parse_market_value(text: Optional[str]) -> Optional[int]:
    """
    Euro amount from a market-value string.

    Examples:
        >>> parse_market_value("€45.00m")
        45000000
        >>> parse_market_value("€800k")
        800000
        >>> parse_market_value("-") is None
        True
    """
    if not text:
        return None
    text = text.strip()
    if text in ("-", "N/A", ""):
        return None

    cleaned = re.sub(r"[€£$]", "", text).strip().lower()
    multiplier = 1
    if "bn" in cleaned:
        multiplier = 1_000_000_000
        cleaned = cleaned.replace("bn", "")
    elif "m" in cleaned:
        multiplier = 1_000_000
        cleaned = cleaned.replace("m", "")
    elif "k" in cleaned or "th" in cleaned:
        multiplier = 1000
        cleaned = re.sub(r"k|th\.?", "", cleaned)

    match = re.search(r"\d+(?:[.,]\d+)?", cleaned)
    if not match:
        return None
    return int(round(float(match.group(0).replace(",", ".")) * multiplier))


def parse_date(text: Optional[str]) -> Optional[date]:
    """Calendar date from the formats Transfermarkt renders, else None."""
    if not text:
        return None
    text = " ".join(text.split())
    if text in ("-", ""):
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_fee(text: Optional[str]) -> Tuple[Optional[int], str]:
    """
    (fee, transfer_type) from a fee cell.

    'free transfer' → (None, 'free'); 'loan' / 'End of loan' → (None, 'loan');
    '€45.00m' → (45000000, 'transfer').
    """
    lowered = (text or "").strip().lower()
    if "loan" in lowered:
        return None, "loan"
    if not lowered or lowered == "-" or "free" in lowered:
        return None, "free"
    return parse_market_value(text), "transfer"


def parse_days(text: Optional[str]) -> Optional[int]:
    """Leading integer of a '34 days' style cell."""
    if not text:
        return None
    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else None


# ============================================================================
# TABLE ROWS
# ============================================================================

def _rows(html: str):
    soup = BeautifulSoup(html, "html.parser")
    return [row.find_all("td") for row in soup.select(ROW_SELECTOR)]


def _text(cell) -> str:
    return cell.get_text(" ", strip=True) if cell is not None else ""


def _club(cell) -> Tuple[str, Optional[str]]:
    """Club name (link text preferred) and crest url of a club cell."""
    link = cell.find("a")
    name = _text(link) if link is not None and _text(link) else _text(cell)
    img = cell.find("img")
    logo = None
    if img is not None:
        logo = img.get("src") or img.get("data-src")
        if not name:
            name = img.get("alt") or img.get("title") or ""
    return name, logo


def parse_transfer_rows(html: str) -> List[Dict[str, Any]]:
    """Transfer records with a valid date (season, date, from, to, fee)."""
    records = []
    for cells in _rows(html):
        if len(cells) < 5:
            continue
        transfer_date = parse_date(_text(cells[1]))
        if transfer_date is None:
            continue
        from_club, from_logo = _club(cells[2])
        to_club, to_logo = _club(cells[3])
        fee, transfer_type = parse_fee(_text(cells[4]))
        records.append({
            "season": _text(cells[0]) or None,
            "transfer_date": transfer_date,
            "from_club": from_club,
            "from_club_logo_url": from_logo,
            "to_club": to_club,
            "to_club_logo_url": to_logo,
            "transfer_fee": fee,
            "fee_currency": "EUR",
            "transfer_type": transfer_type,
        })
    return records


def parse_injury_rows(html: str) -> List[Dict[str, Any]]:
    """Injury records with a valid start date."""
    records = []
    for cells in _rows(html):
        if len(cells) < 5:
            continue
        start = parse_date(_text(cells[2]))
        if start is None:
            continue
        until = _text(cells[3])
        records.append({
            "season": _text(cells[0]) or None,
            "injury_type": _text(cells[1]),
            "start_date": start,
            "end_date": parse_date(until),
            "days_missed": parse_days(_text(cells[4])),
            "games_missed": parse_days(_text(cells[5])) if len(cells) > 5 else None,
            "is_current": not until or until == "-",
            "source": "transfermarkt",
        })
    return records


def parse_market_value_rows(html: str) -> List[Dict[str, Any]]:
    """Market-value history points with both a valid date and value."""
    records = []
    for cells in _rows(html):
        if len(cells) < 2:
            continue
        recorded = parse_date(_text(cells[0]))
        value = parse_market_value(_text(cells[1]))
        if recorded is None or value is None:
            continue
        records.append({
            "recorded_date": recorded,
            "market_value": value,
            "currency": "EUR",
            "club_at_time": _text(cells[2]) if len(cells) > 2 else None,
            "source": "transfermarkt",
        })
    return records


def parse_current_value(html: str) -> Optional[int]:
    """Headline current market value, or None."""
    soup = BeautifulSoup(html, "html.parser")
    element = soup.select_one(CURRENT_VALUE_SELECTOR)
    return parse_market_value(_text(element)) if element is not None else None
