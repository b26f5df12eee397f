# repario/services/similarity.py
"""
Approximate customer-name matching used to warn about near-duplicates.

Matching runs over the full per-user customer list on every check. Call sites
only depend on `NameMatcher`, so an indexed matcher can replace
`LevenshteinMatcher` without touching them.
"""

from collections.abc import Mapping
from typing import Any, Iterable, List, Protocol

from rapidfuzz.distance import Levenshtein

SIMILARITY_THRESHOLD = 0.8


def normalize_name(name: str) -> str:
    return (name or "").strip().lower()


def levenshtein_distance(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def name_similarity(a: str, b: str) -> float:
    """(max_len - edit_distance) / max_len over trimmed, lowercased names."""
    s1, s2 = normalize_name(a), normalize_name(b)
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    longest = max(len(s1), len(s2))
    # not normalized_similarity: 1 - d/n can land one ulp under the threshold
    return (longest - Levenshtein.distance(s1, s2)) / longest


class NameMatcher(Protocol):
    def find_similar(self, name: str, candidates: Iterable[Any]) -> List[Any]:
        ...


class LevenshteinMatcher:
    """Flags candidates at or above `threshold`, never exact matches."""

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD) -> None:
        self.threshold = threshold

    def find_similar(self, name: str, candidates: Iterable[Any]) -> List[Any]:
        target = normalize_name(name)
        similar = []
        for candidate in candidates:
            candidate_name = candidate["name"] if isinstance(candidate, Mapping) else candidate
            if normalize_name(candidate_name) == target:
                continue
            if name_similarity(target, candidate_name) >= self.threshold:
                similar.append(candidate)
        return similar


def get_name_matcher() -> NameMatcher:
    return LevenshteinMatcher()
