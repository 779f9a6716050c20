"""
Filter/sort pipeline for the record browser.

Maps (source records, zero-value toggle, search query) to the ordered sequence of
rows the table shows. Everything here is pure: the view is recomputed on every
change and never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from math import ceil
from typing import Any, Callable, Iterable, List, Optional, Sequence


ValueFn = Callable[[Any], float]
TextFn = Callable[[Any], str]


def record_id(record: Any) -> str:
    """Stable identifier of a record (attribute `id` or mapping key "id")."""
    if isinstance(record, dict):
        return str(record.get("id") or "")
    return str(getattr(record, "id", "") or "")


class FuzzyMatcher:
    """
    Substring/subsequence tolerant fuzzy scorer.

    A query matches a text when every whitespace-separated word of the query
    appears in the text as an in-order subsequence. Higher scores are better:
    contiguous substrings beat scattered subsequences, and matches at a word
    boundary beat matches mid-word.
    """

    def score(self, query: str, text: str) -> Optional[float]:
        """
        Score `query` against `text`.

        Args:
            query: Raw search query (case-insensitive)
            text: Searchable text of a record (expected lowercase)

        Returns:
            Relevance score, or None when there is no match
        """
        words = (query or "").lower().split()
        if not words:
            return None
        haystack = (text or "").lower()
        total = 0.0
        for word in words:
            word_score = self._score_word(word, haystack)
            if word_score is None:
                return None
            total += word_score
        return total / len(words)

    def matches(self, query: str, text: str) -> bool:
        return self.score(query, text) is not None

    def _score_word(self, word: str, text: str) -> Optional[float]:
        # 1. Contiguous substring
        pos = text.find(word)
        if pos >= 0:
            boundary = pos == 0 or not text[pos - 1].isalnum()
            base = 1.0 if boundary else 0.9
            # Shorter texts rank a hit slightly higher.
            return base + 0.05 * (len(word) / max(len(text), 1))

        # 2. In-order subsequence
        span = self._subsequence_span(word, text)
        if span is None:
            return None
        start, end = span
        compactness = len(word) / (end - start)
        seq_score = SequenceMatcher(None, word, text[start:end]).ratio()
        return 0.5 * compactness + 0.3 * seq_score

    @staticmethod
    def _subsequence_span(word: str, text: str) -> Optional[tuple[int, int]]:
        """Tightest (start, end) window holding `word` as a subsequence, or None."""
        best: Optional[tuple[int, int]] = None
        start = text.find(word[0])
        while start >= 0:
            i = start
            for ch in word[1:]:
                i = text.find(ch, i + 1)
                if i < 0:
                    return best
            end = i + 1
            if best is None or (end - start) < (best[1] - best[0]):
                best = (start, end)
            start = text.find(word[0], start + 1)
        return best


@dataclass(frozen=True)
class ViewRow:
    """One visible row: the record plus values derived for it."""

    record: Any
    value: float
    score: Optional[float] = None

    @property
    def id(self) -> str:
        return record_id(self.record)


def compute_view(
    records: Iterable[Any],
    query: str,
    hide_zero: bool,
    *,
    value_fn: ValueFn,
    text_fn: TextFn,
    matcher: Optional[FuzzyMatcher] = None,
) -> List[ViewRow]:
    """
    Apply zero-value exclusion, fuzzy inclusion and sorting.

    Args:
        records: Full source record list
        query: Search query; blank means no search
        hide_zero: Drop rows whose computed value is <= 0
        value_fn: Computed value projection used for filtering and default order
        text_fn: Searchable text projection
        matcher: Fuzzy scorer (defaults to FuzzyMatcher)

    Returns:
        Ordered list of ViewRow
    """
    matcher = matcher or FuzzyMatcher()
    q = (query or "").strip()

    rows: List[ViewRow] = []
    for rec in records:
        value = float(value_fn(rec))
        if hide_zero and value <= 0:
            continue
        score: Optional[float] = None
        if q:
            score = matcher.score(q, text_fn(rec))
            if score is None:
                continue
        rows.append(ViewRow(record=rec, value=value, score=score))

    # sorted() is stable, so ties keep source order.
    if q:
        return sorted(rows, key=lambda r: r.score or 0.0, reverse=True)
    return sorted(rows, key=lambda r: r.value, reverse=True)


def page_count(total: int, per_page: int) -> int:
    if per_page <= 0:
        return 0
    return ceil(total / per_page)


def paginate(rows: Sequence[ViewRow], page: int, per_page: int) -> List[ViewRow]:
    """Slice one page out of the view (empty list when out of range)."""
    if per_page <= 0 or page < 0:
        return []
    return list(rows[page * per_page:(page + 1) * per_page])


__all__ = [
    "FuzzyMatcher",
    "ViewRow",
    "compute_view",
    "page_count",
    "paginate",
    "record_id",
]
