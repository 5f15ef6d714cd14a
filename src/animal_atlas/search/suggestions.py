"""Typo suggestions, autocomplete and the recent-searches list."""

import json
import logging
from collections.abc import Iterable

from animal_atlas.utils.cache import Cache
from animal_atlas.utils.cache.cache import RECENT_SEARCHES_KEY

logger = logging.getLogger(__name__)

MAX_SUGGESTION_DISTANCE = 2
MIN_SUGGESTION_LENGTH = 3


def levenshtein(a: str, b: str) -> int:
    """Case-insensitive edit distance (insertions, deletions, substitutions)."""
    a, b = a.lower(), b.lower()
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def did_you_mean(term: str, candidates: Iterable[str]) -> str | None:
    """Closest candidate one or two edits away from term.

    Terms shorter than three characters and exact matches get no suggestion.
    The earliest candidate wins ties.

    Args:
        term: What the user typed
        candidates: Known names, in priority order

    Returns:
        The suggested name, or None
    """
    if not term or len(term.strip()) < MIN_SUGGESTION_LENGTH:
        return None

    best, best_distance = None, MAX_SUGGESTION_DISTANCE + 1
    for candidate in candidates:
        distance = levenshtein(term.strip(), candidate)
        if 0 < distance < best_distance:
            best, best_distance = candidate, distance
    return best


def autocomplete(term: str, sources: Iterable[Iterable[str]], limit: int = 5) -> list[str]:
    """Names containing term, drawn from each source in order.

    Args:
        term: Partial name
        sources: Name lists in priority order, e.g. recent searches then popular animals
        limit: Maximum number of suggestions

    Returns:
        Distinct suggestions (case-insensitive), at most limit
    """
    query = (term or "").strip().lower()
    if not query:
        return []

    suggestions: list[str] = []
    seen: set[str] = set()
    for names in sources:
        for name in names:
            if query in name.lower() and name.lower() not in seen:
                seen.add(name.lower())
                suggestions.append(name)
                if len(suggestions) >= limit:
                    return suggestions
    return suggestions


class RecentSearches:
    """Most-recent-first search history kept under a preserved storage key.

    The list is stored as a raw JSON array rather than a cache entry, so it
    never expires and cache clears leave it alone.
    """

    def __init__(self, cache: Cache, limit: int = 10, key: str = RECENT_SEARCHES_KEY):
        self.cache = cache
        self.limit = limit
        self.key = key

    def get(self) -> list[str]:
        raw = self.cache.get_raw(self.key)
        if not raw:
            return []
        try:
            terms = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring corrupted recent searches")
            return []
        if not isinstance(terms, list):
            return []
        return [term for term in terms if isinstance(term, str)]

    def add(self, term: str) -> list[str]:
        """Move term to the front, dropping any case-insensitive duplicate.

        Returns:
            The updated list
        """
        if not term or not term.strip():
            return self.get()

        term = term.strip()
        others = [t for t in self.get() if t.lower() != term.lower()]
        updated = [term, *others][: self.limit]
        self.cache.set_raw(self.key, json.dumps(updated))
        return updated

    def clear(self) -> None:
        self.cache.delete(self.key)
