"""
Tests for the filter/sort pipeline.

Tests cover:
- Fuzzy scoring (substring, subsequence, multi-word, no match)
- Zero-value exclusion
- Query inclusion and relevance ordering
- Stable default ordering by computed value
- Paging helpers
"""

import pytest

from billbrowse.core.pipeline import FuzzyMatcher, compute_view, page_count, paginate, record_id

from tests.browser_harness import Rec, make_records, rec_text, rec_value


@pytest.fixture
def matcher():
    return FuzzyMatcher()


class TestFuzzyMatcher:
    def test_substring_matches(self, matcher):
        assert matcher.score("ada", "ada lovelace ada@example.com cus_1") is not None

    def test_subsequence_matches(self, matcher):
        assert matcher.score("alce", "ada lovelace") is not None

    def test_no_match_returns_none(self, matcher):
        assert matcher.score("zzz", "ada lovelace") is None
        assert not matcher.matches("zzz", "ada lovelace")

    def test_blank_query_is_not_a_match(self, matcher):
        assert matcher.score("   ", "anything") is None

    def test_case_insensitive(self, matcher):
        assert matcher.score("ADA", "ada lovelace") is not None

    def test_every_word_must_match(self, matcher):
        assert matcher.score("ada love", "ada lovelace") is not None
        assert matcher.score("ada zork", "ada lovelace") is None

    def test_substring_beats_subsequence(self, matcher):
        contiguous = matcher.score("love", "ada lovelace")
        scattered = matcher.score("lvce", "ada lovelace")
        assert contiguous is not None and scattered is not None
        assert contiguous > scattered

    def test_word_boundary_beats_mid_word(self, matcher):
        boundary = matcher.score("ace", "ace ventura")
        mid_word = matcher.score("ace", "grace hopper")
        assert boundary > mid_word


class TestComputeView:
    def test_default_order_is_descending_value(self):
        recs = make_records(5, values=[1, 5, 3, 4, 2])
        rows = compute_view(recs, "", False, value_fn=rec_value, text_fn=rec_text)
        assert [r.value for r in rows] == [5, 4, 3, 2, 1]

    def test_ties_keep_source_order(self):
        recs = make_records(4, values=[2, 2, 2, 2])
        rows = compute_view(recs, "", False, value_fn=rec_value, text_fn=rec_text)
        assert [r.id for r in rows] == ["r01", "r02", "r03", "r04"]

    def test_hide_zero_drops_zero_and_negative(self):
        recs = make_records(4, values=[3, 0, -1, 0.5])
        rows = compute_view(recs, "", True, value_fn=rec_value, text_fn=rec_text)
        assert [r.id for r in rows] == ["r01", "r04"]
        assert all(r.value > 0 for r in rows)

    def test_hide_zero_off_keeps_everything(self):
        recs = make_records(4, values=[3, 0, -1, 0.5])
        rows = compute_view(recs, "", False, value_fn=rec_value, text_fn=rec_text)
        assert len(rows) == len(recs)

    def test_query_filters_and_all_rows_match(self):
        recs = [
            Rec("a1", "Ada Lovelace", 1),
            Rec("b2", "Bob Byte", 9),
            Rec("c3", "Adam Smith", 3),
        ]
        matcher = FuzzyMatcher()
        rows = compute_view(recs, "ada", False, value_fn=rec_value, text_fn=rec_text, matcher=matcher)
        assert {r.id for r in rows} == {"a1", "c3"}
        assert all(matcher.matches("ada", rec_text(r.record)) for r in rows)

    def test_query_orders_by_descending_score(self):
        recs = [
            Rec("x1", "Grace Hopper", 100),
            Rec("x2", "Ace Ventura", 1),
        ]
        rows = compute_view(recs, "ace", False, value_fn=rec_value, text_fn=rec_text)
        scores = [r.score for r in rows]
        assert scores == sorted(scores, reverse=True)
        # Relevance wins over computed value while a query is active.
        assert rows[0].id == "x2"

    def test_query_combines_with_hide_zero(self):
        recs = [Rec("a1", "Ada", 0), Rec("a2", "Adam", 2)]
        rows = compute_view(recs, "ada", True, value_fn=rec_value, text_fn=rec_text)
        assert [r.id for r in rows] == ["a2"]

    def test_view_never_exceeds_source(self):
        recs = make_records(10, values=[0, 1] * 5)
        for query in ("", "customer", "01", "nope"):
            for hide_zero in (False, True):
                rows = compute_view(recs, query, hide_zero, value_fn=rec_value, text_fn=rec_text)
                assert len(rows) <= len(recs)


class TestPaging:
    def test_page_count(self):
        assert page_count(0, 8) == 0
        assert page_count(8, 8) == 1
        assert page_count(12, 8) == 2
        assert page_count(5, 0) == 0

    def test_paginate(self):
        rows = compute_view(make_records(12), "", False, value_fn=rec_value, text_fn=rec_text)
        assert [r.id for r in paginate(rows, 1, 8)] == ["r09", "r10", "r11", "r12"]
        assert paginate(rows, 5, 8) == []
        assert paginate(rows, -1, 8) == []


def test_record_id_accepts_mappings_and_objects():
    assert record_id({"id": "abc"}) == "abc"
    assert record_id(Rec("r1", "x", 0)) == "r1"
    assert record_id(object()) == ""
