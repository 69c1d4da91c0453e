"""
Query — Filtering Ideas for Listing

Filters combine with AND:
    tags      idea carries at least one of the tags
    progress  idea's stage equals every requested stage
    id        exact id
    title     fuzzy word match (Levenshtein distance on title words)

Fuzzy title matching compares words only; words shorter than
``min_length`` on either side are ignored, so "a" or "of" never match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from projavu.types import Idea, IdeaProgress


# ---------------------------------------------------------------------------
# Edit distance
# ---------------------------------------------------------------------------


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character edits turning a into b."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,               # deletion
                current[j - 1] + 1,            # insertion
                previous[j - 1] + (ca != cb),  # substitution
            ))
        previous = current
    return previous[-1]


def fuzzy_title_match(
    title: str,
    words: Iterable[str],
    max_distance: int = 2,
    min_length: int = 3,
) -> bool:
    """True if some title word is within max_distance edits of some query word."""
    queries = [w.lower() for w in words if len(w) >= min_length]
    for word in title.lower().split():
        if len(word) < min_length:
            continue
        for q in queries:
            if levenshtein(q, word) <= max_distance:
                return True
    return False


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


@dataclass
class IdeaFilter:
    """Listing criteria.  Empty criteria match every idea."""

    tags: List[str] = field(default_factory=list)
    progress: List[IdeaProgress] = field(default_factory=list)
    id: Optional[int] = None
    title_words: List[str] = field(default_factory=list)
    max_distance: int = 2
    min_length: int = 3

    def matches(self, idea: Idea) -> bool:
        if self.tags and not set(self.tags) & set(idea.tags):
            return False
        if any(idea.progress != p for p in self.progress):
            return False
        if self.id is not None and idea.id != self.id:
            return False
        if self.title_words and not fuzzy_title_match(
            idea.title, self.title_words, self.max_distance, self.min_length,
        ):
            return False
        return True


@dataclass
class FilterResult:
    """Ideas that passed the filter, and how many were examined."""

    matched: List[Idea] = field(default_factory=list)
    total: int = 0


def filter_ideas(ideas: Iterable[Idea], flt: IdeaFilter) -> FilterResult:
    """Run every idea through flt, counting all of them."""
    result = FilterResult()
    for idea in ideas:
        result.total += 1
        if flt.matches(idea):
            result.matched.append(idea)
    return result
