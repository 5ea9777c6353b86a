"""Name matching utilities for athlete names across stats providers.

Providers spell Turkish names inconsistently:
- Turkish letters: "Kenan Yıldız" → "kenan yildiz"
- Dotted capital I: "İrfan Can Kahveci" → "irfan can kahveci"
- Other diacritics: "Luka Dončić" → "luka doncic"
- Abbreviated first names: "A. Güler" vs "Arda Güler"
"""
import re
import unicodedata
from typing import Dict, Iterable, List, Optional, Tuple

# Turkish-specific letters that NFD decomposition does not fold (ı has no
# combining form) or folds differently from the ASCII spelling providers use.
TURKISH_FOLD = str.maketrans({
    "ğ": "g", "Ğ": "g",
    "ü": "u", "Ü": "u",
    "ş": "s", "Ş": "s",
    "ı": "i", "I": "i",
    "İ": "i",
    "ö": "o", "Ö": "o",
    "ç": "c", "Ç": "c",
})

# Minimum length for a shared token to count as a surname match
MIN_TOKEN_LENGTH = 4

# Alternate spellings seen in API-Football / balldontlie search results
KNOWN_ALIASES: Dict[str, List[str]] = {
    "Arda Güler": ["Arda Guler", "Guler", "Güler"],
    "Kenan Yıldız": ["Kenan Yildiz", "Yildiz", "Yıldız"],
    "Ferdi Kadıoğlu": ["Ferdi Kadioglu", "Kadioglu", "Kadıoğlu"],
    "Can Uzun": ["Uzun"],
    "Berke Özer": ["Berke Ozer", "Ozer", "Özer"],
    "Alperen Şengün": ["Alperen Sengun", "Sengun"],
    "Semih Kılıçsoy": ["Semih Kilicsoy", "Kilicsoy"],
}


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a name for comparison.

    Steps:
    1. Fold Turkish letters (before lowercasing so İ/I are handled)
    2. Strip remaining diacritics via NFD decomposition
    3. Lowercase, drop punctuation, collapse whitespace

    Examples:
        >>> normalize_name("Kenan Yıldız")
        'kenan yildiz'
        >>> normalize_name("Alperen Şengün")
        'alperen sengun'
    """
    if not name:
        return ""

    name = name.translate(TURKISH_FOLD)
    name = unicodedata.normalize("NFD", name)
    name = "".join(c for c in name if unicodedata.category(c) != "Mn")
    name = name.lower()
    name = re.sub(r"[^\w\s]", " ", name)
    return " ".join(name.split())


def match_player_name(api_name: Optional[str], athlete_name: Optional[str]) -> bool:
    """
    Decide whether a provider's player name refers to a tracked athlete.

    True when either normalized name contains the other, or when they share
    a token longer than three characters (typically the surname).

    Examples:
        >>> match_player_name("A. Güler", "Arda Güler")
        True
        >>> match_player_name("Kenan Yildiz", "Kenan Yıldız")
        True
    """
    api_norm = normalize_name(api_name)
    athlete_norm = normalize_name(athlete_name)
    if not api_norm or not athlete_norm:
        return False

    if api_norm in athlete_norm or athlete_norm in api_norm:
        return True

    athlete_tokens = set(athlete_norm.split())
    return any(
        token in athlete_tokens and len(token) >= MIN_TOKEN_LENGTH
        for token in api_norm.split()
    )


def _ascii_fold(name: str) -> str:
    """Fold Turkish letters and diacritics but keep case and punctuation."""
    folded = name.translate(str.maketrans({
        "ğ": "g", "Ğ": "G", "ü": "u", "Ü": "U", "ş": "s", "Ş": "S",
        "ı": "i", "İ": "I", "ö": "o", "Ö": "O", "ç": "c", "Ç": "C",
    }))
    folded = unicodedata.normalize("NFD", folded)
    return "".join(c for c in folded if unicodedata.category(c) != "Mn")


def search_variants(name: str) -> List[str]:
    """
    Ordered, de-duplicated search strings for a provider name search.

    Order: full name, last name, ASCII-folded full name, ASCII-folded last
    name, then any known aliases.
    """
    if not name:
        return []

    candidates: List[str] = [name]
    parts = name.split()
    if len(parts) > 1:
        candidates.append(parts[-1])
    folded = _ascii_fold(name)
    candidates.append(folded)
    folded_parts = folded.split()
    if len(folded_parts) > 1:
        candidates.append(folded_parts[-1])
    candidates.extend(KNOWN_ALIASES.get(name, []))

    seen = set()
    variants = []
    for candidate in candidates:
        if candidate and candidate not in seen:
            seen.add(candidate)
            variants.append(candidate)
    return variants


def best_fuzzy_match(
    name: str,
    choices: Iterable[Tuple[str, object]],
    score_cutoff: int = 85,
) -> Optional[object]:
    """
    Fuzzy fallback for names the token rules miss (e.g. transliterations).

    Args:
        name: Athlete name to look up
        choices: (candidate_name, payload) pairs
        score_cutoff: Minimum WRatio score (0-100)

    Returns:
        Payload of the best candidate or None
    """
    from rapidfuzz import fuzz, process

    indexed = {normalize_name(candidate): payload for candidate, payload in choices}
    if not indexed:
        return None

    best = process.extractOne(
        normalize_name(name),
        list(indexed.keys()),
        scorer=fuzz.WRatio,
        score_cutoff=score_cutoff,
    )
    if best:
        return indexed[best[0]]
    return None
