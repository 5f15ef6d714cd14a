"""Tests for typo suggestions, autocomplete and recent searches."""

import pytest

from animal_atlas.search.suggestions import (
    RecentSearches,
    autocomplete,
    did_you_mean,
    levenshtein,
)
from animal_atlas.utils.cache.cache import RECENT_SEARCHES_KEY

POPULAR = ["Lion", "Tiger", "Elephant", "Giraffe", "Zebra"]


class TestLevenshtein:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("lion", "lion", 0),
            ("Lion", "LION", 0),
            ("lion", "loin", 2),
            ("tigr", "tiger", 1),
            ("", "zebra", 5),
            ("kitten", "sitting", 3),
        ],
    )
    def test_distance(self, a, b, expected):
        """Should count insertions, deletions and substitutions case-insensitively."""
        assert levenshtein(a, b) == expected
        assert levenshtein(b, a) == expected


class TestDidYouMean:
    """Test typo suggestions."""

    def test_close_match(self):
        """Should suggest a name one or two edits away."""
        assert did_you_mean("Elefant", POPULAR) == "Elephant"
        assert did_you_mean("tigr", POPULAR) == "Tiger"

    def test_exact_match_gets_no_suggestion(self):
        """Should not suggest the term itself."""
        assert did_you_mean("lion", POPULAR) is None

    def test_too_far(self):
        """Should not suggest anything three or more edits away."""
        assert did_you_mean("Hippopotamus", POPULAR) is None

    def test_short_terms_ignored(self):
        """Should not suggest for terms under three characters."""
        assert did_you_mean("Li", POPULAR) is None
        assert did_you_mean("", POPULAR) is None

    def test_earliest_candidate_wins_ties(self):
        """Should prefer the earlier candidate at equal distance."""
        assert did_you_mean("cat", ["bat", "rat"]) == "bat"


class TestAutocomplete:
    """Test autocomplete."""

    def test_sources_in_order(self):
        """Should draw from recent searches before popular animals."""
        recent = ["Snow Leopard"]
        popular = ["Leopard", "Clouded Leopard", "Lion"]

        assert autocomplete("leo", [recent, popular]) == [
            "Snow Leopard",
            "Leopard",
            "Clouded Leopard",
        ]

    def test_distinct_and_limited(self):
        """Should drop case-insensitive duplicates and stop at the limit."""
        suggestions = autocomplete("e", [["Eagle", "eagle"], ["Elephant", "Eel", "Emu"]], limit=3)

        assert suggestions == ["Eagle", "Elephant", "Eel"]

    def test_blank_term(self):
        assert autocomplete("  ", [POPULAR]) == []


class TestRecentSearches:
    """Test the recent searches list."""

    def test_most_recent_first(self, cache):
        """Should put the latest term first and move repeated terms to the front."""
        recent = RecentSearches(cache)
        recent.add("Lion")
        recent.add("Tiger")

        assert recent.add("lion") == ["lion", "Tiger"]
        assert recent.get() == ["lion", "Tiger"]

    def test_limit(self, cache):
        """Should keep only the most recent terms."""
        recent = RecentSearches(cache, limit=2)
        for term in ("Lion", "Tiger", "Bear"):
            recent.add(term)

        assert recent.get() == ["Bear", "Tiger"]

    def test_blank_terms_ignored(self, cache):
        recent = RecentSearches(cache)
        recent.add("Lion")

        assert recent.add("   ") == ["Lion"]

    def test_survives_cache_clear(self, cache):
        """Should keep the history when the cache is cleared."""
        recent = RecentSearches(cache)
        recent.add("Lion")
        cache.set("animal_data_lion", {"name": "Lion"}, 60_000)

        cache.evict_all()

        assert recent.get() == ["Lion"]

    def test_corrupted_value(self, cache, backend):
        """Should treat unreadable history as empty."""
        backend.set_item(RECENT_SEARCHES_KEY, "not json")

        assert RecentSearches(cache).get() == []

    def test_clear(self, cache):
        recent = RecentSearches(cache)
        recent.add("Lion")

        recent.clear()

        assert recent.get() == []
