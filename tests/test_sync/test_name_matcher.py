"""Tests for athlete name matching across providers.

Test Strategy:
1. normalize_name(): Turkish letters, diacritics, punctuation
2. match_player_name(): containment and shared-surname rules
3. search_variants(): order and de-duplication
4. best_fuzzy_match(): rapidfuzz fallback with cutoff
"""
import pytest

from app.services.sync.utils.name_matcher import (
    best_fuzzy_match,
    match_player_name,
    normalize_name,
    search_variants,
)


class TestNormalizeName:

    @pytest.mark.parametrize("raw,expected", [
        ("Kenan Yıldız", "kenan yildiz"),
        ("Alperen Şengün", "alperen sengun"),
        ("İrfan Can Kahveci", "irfan can kahveci"),
        ("Ferdi Kadıoğlu", "ferdi kadioglu"),
        ("Luka Dončić", "luka doncic"),
        ("A. Güler", "a guler"),
        ("  Hakan   Çalhanoğlu ", "hakan calhanoglu"),
    ])
    def test_folds_to_ascii_lowercase(self, raw, expected):
        assert normalize_name(raw) == expected

    def test_empty(self):
        assert normalize_name(None) == ""
        assert normalize_name("") == ""


class TestMatchPlayerName:

    def test_abbreviated_first_name(self):
        assert match_player_name("A. Güler", "Arda Guler") is True

    def test_different_players(self):
        assert match_player_name("Arda Güler", "Kenan Yıldız") is False

    def test_surname_only(self):
        assert match_player_name("Semih Kılıçsoy", "Kilicsoy") is True

    def test_ascii_spelling_matches_turkish(self):
        assert match_player_name("Alperen Sengun", "Alperen Şengün") is True

    def test_short_shared_token_is_not_enough(self):
        # "Can" is three letters, below the surname threshold
        assert match_player_name("Can Bartu", "Can Uzun") is False

    def test_empty_names_never_match(self):
        assert match_player_name("", "Arda Güler") is False
        assert match_player_name("Arda Güler", None) is False


class TestSearchVariants:

    def test_order_and_aliases(self):
        variants = search_variants("Arda Güler")

        assert variants[:4] == ["Arda Güler", "Güler", "Arda Guler", "Guler"]
        assert len(variants) == len(set(variants))

    def test_single_token_name(self):
        assert search_variants("Uzun") == ["Uzun"]

    def test_empty(self):
        assert search_variants("") == []


class TestBestFuzzyMatch:

    def test_transliteration_found(self):
        choices = [("Alperen Sengun", 666), ("Amen Thompson", 777)]

        assert best_fuzzy_match("Alperen Şengün", choices) == 666

    def test_below_cutoff_returns_none(self):
        assert best_fuzzy_match("Arda Güler", [("Jalen Green", 1)]) is None

    def test_no_choices(self):
        assert best_fuzzy_match("Arda Güler", []) is None
