"""Extraction rules for ESPN pages rendered to markdown by Firecrawl.

Two pages are parsed:
- Hollinger statistics leaderboard (pipe table, one player per line)
- NBA player page (splits table, fantasy blurb, previous game, ranks)

Each rule is a standalone function returning None / [] when its pattern is
absent, so one layout change costs one field rather than the whole page.
"""
import re
from typing import Any, Dict, List, Optional

from app.services.sync.utils.name_matcher import match_player_name, normalize_name

# Hollinger table columns:
# RK | PLAYER | GP | MPG | TS% | AST | TO | USG | ORR | DRR | REBR | PER | VA | EWA
MIN_HOLLINGER_CELLS = 12

SPLIT_COLUMNS = ("gp", "min", "pts", "reb", "ast", "stl", "blk", "fg_pct", "three_pct", "ft_pct")
SPLIT_LABEL_RE = re.compile(r"(This Game|Last 10|L10|\d{4}-\d{2}|Season|Road|Home|vs\.?\s+\w+)", re.IGNORECASE)
_FIVE_NUMBERS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*\|\s*(\d+(?:\.\d+)?)\s*\|\s*(\d+(?:\.\d+)?)\s*\|\s*(\d+(?:\.\d+)?)\s*\|\s*(\d+(?:\.\d+)?)")

_FANTASY_SPIN_RE = re.compile(r"Spin\s*[:\-]?\s*([^#\n]{50,500})", re.IGNORECASE)
_FANTASY_FALLBACK_RE = re.compile(r"fantasy[^.]*\.\s*([^#\n]{50,300})", re.IGNORECASE)
_PREVIOUS_GAME_RE = re.compile(r"([WL])\s*(\d+)[–-](\d+)\s*(vs|@)\s*(\w+)", re.IGNORECASE)
_POSITION_RANK_RES = (
    re.compile(r"Position Rank[:\s]*#?(\d+)", re.IGNORECASE),
    re.compile(r"#(\d+)\s*C\b", re.IGNORECASE),
    re.compile(r"C\s*#(\d+)", re.IGNORECASE),
)
_ROSTER_PCT_RES = (
    re.compile(r"(\d+(?:\.\d+)?)\s*%\s*(?:Roster|Rostered)", re.IGNORECASE),
    re.compile(r"Roster[^%]*?(\d+(?:\.\d+)?)\s*%", re.IGNORECASE),
)


def parse_number(text: Optional[str]) -> Optional[float]:
    """Number inside a table cell ('.612' and '58.1%' included), else None."""
    if not text:
        return None
    cleaned = re.sub(r"[^0-9.\-]", "", text)
    if cleaned.startswith("."):
        cleaned = "0" + cleaned
    try:
        return float(cleaned)
    except ValueError:
        return None


def _int_or_none(text: Optional[str]) -> Optional[int]:
    value = parse_number(text)
    return int(value) if value is not None else None


def _cells(line: str) -> List[str]:
    return [cell.strip() for cell in line.split("|") if cell.strip()]


# ============================================================================
# HOLLINGER
# ============================================================================

def _hollinger_row_from_cells(cells: List[str]) -> Dict[str, Any]:
    player_cell = cells[1]
    name, _, team = player_cell.partition(",")
    # Player cells are often markdown links: [Alperen Sengun](https://...)
    name = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", name).strip()
    return {
        "rank": _int_or_none(cells[0]),
        "player_name": name,
        "team": team.strip() or None,
        "gp": _int_or_none(cells[2]),
        "mpg": parse_number(cells[3]),
        "ts_pct": parse_number(cells[4]),
        "usg": parse_number(cells[7]),
        "per": parse_number(cells[-3]),
        "va": parse_number(cells[-2]),
        "ewa": parse_number(cells[-1]),
    }


def parse_hollinger_leaderboard(markdown: str) -> List[Dict[str, Any]]:
    """Every player row of the Hollinger table (rows with a numeric rank)."""
    rows = []
    for line in markdown.splitlines():
        cells = _cells(line)
        if len(cells) < MIN_HOLLINGER_CELLS or _int_or_none(cells[0]) is None:
            continue
        if not re.match(r"^\d+$", cells[0]):
            continue
        rows.append(_hollinger_row_from_cells(cells))
    return rows


def parse_hollinger_row(markdown: str, player_name: str) -> Optional[Dict[str, Any]]:
    """
    The Hollinger line for one player, or None.

    Tries the pipe table first, then a whitespace-tolerant regex for pages
    where the table lost its separators.
    """
    surname = normalize_name(player_name).split()[-1] if player_name else ""

    for line in markdown.splitlines():
        if surname and surname not in normalize_name(line):
            continue
        cells = _cells(line)
        if len(cells) >= MIN_HOLLINGER_CELLS:
            row = _hollinger_row_from_cells(cells)
            if match_player_name(row["player_name"], player_name):
                return row

    pattern = re.compile(
        r"(\d+)\s+\|?\s*" + re.escape(player_name) + r"[^|\d]*\|?"
        + r"\s*(\d+)\s*\|?" + r"\s*([\d.]+)\s*\|?" * 11,
        re.IGNORECASE,
    )
    match = pattern.search(markdown)
    if match:
        groups = match.groups()
        return {
            "rank": int(groups[0]),
            "player_name": player_name,
            "team": None,
            "gp": int(groups[1]),
            "mpg": parse_number(groups[2]),
            "ts_pct": parse_number(groups[3]),
            "usg": parse_number(groups[6]),
            "per": parse_number(groups[10]),
            "va": parse_number(groups[11]),
            "ewa": parse_number(groups[12]),
        }
    return None


# ============================================================================
# PLAYER PAGE
# ============================================================================

def parse_splits(markdown: str) -> List[Dict[str, Any]]:
    """Rows of the stat splits table (This Game, Last 10, season, Home, Road, vs X)."""
    splits = []
    for line in markdown.splitlines():
        label_match = SPLIT_LABEL_RE.search(line)
        if not label_match or not _FIVE_NUMBERS_RE.search(line):
            continue

        cells = _cells(line)
        label_idx = next((i for i, c in enumerate(cells) if label_match.group(1) in c), None)
        if label_idx is None:
            continue
        values = cells[label_idx + 1:]

        split: Dict[str, Any] = {"label": label_match.group(1)}
        for i, column in enumerate(SPLIT_COLUMNS):
            split[column] = parse_number(values[i]) if i < len(values) else None
        splits.append(split)
    return splits


def parse_fantasy_insight(markdown: str) -> Optional[str]:
    for pattern in (_FANTASY_SPIN_RE, _FANTASY_FALLBACK_RE):
        match = pattern.search(markdown)
        if match:
            return match.group(1).strip()
    return None


def parse_previous_game(markdown: str) -> Optional[Dict[str, Any]]:
    """Result line like 'W 112-104 vs LAL' plus the box numbers right after it."""
    match = _PREVIOUS_GAME_RE.search(markdown)
    if not match:
        return None

    is_win = match.group(1).upper() == "W"
    section = markdown[match.start():match.start() + 500]

    def _stat(label: str) -> Optional[int]:
        found = re.search(rf"(\d+)\s*{label}", section, re.IGNORECASE) or \
            re.search(rf"{label}\s*(\d+)", section, re.IGNORECASE)
        return int(found.group(1)) if found else None

    plus_minus = re.search(r"(?<![\d–-])([+-]\d+)", section[len(match.group(0)):])
    opponent = match.group(5)
    return {
        "date": None,
        "opponent": opponent if match.group(4).lower() == "vs" else f"@{opponent}",
        "result": f"{'W' if is_win else 'L'} {match.group(2)}-{match.group(3)}",
        "pts": _stat("PTS"),
        "reb": _stat("REB"),
        "ast": _stat("AST"),
        "plusMinus": int(plus_minus.group(1)) if plus_minus else None,
        "isWin": is_win,
    }


def parse_position_rank(markdown: str) -> Optional[int]:
    for pattern in _POSITION_RANK_RES:
        match = pattern.search(markdown)
        if match:
            return int(match.group(1))
    return None


def parse_roster_pct(markdown: str) -> Optional[float]:
    for pattern in _ROSTER_PCT_RES:
        match = pattern.search(markdown)
        if match:
            return float(match.group(1))
    return None


def parse_player_page(markdown: str) -> Dict[str, Any]:
    """Apply every player-page rule; missing patterns come back as None/[]."""
    return {
        "previous_game": parse_previous_game(markdown),
        "splits": parse_splits(markdown),
        "fantasy_insight": parse_fantasy_insight(markdown),
        "position_rank": parse_position_rank(markdown),
        "roster_pct": parse_roster_pct(markdown),
    }
