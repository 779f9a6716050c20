"""Tests for cursor clamping, paging and the persistent multi-select set."""

import pytest

from billbrowse.core.selection import SelectionManager


@pytest.fixture
def sel():
    s = SelectionManager()
    s.observe([f"id{i}" for i in range(20)])
    return s


class TestCursor:
    @pytest.mark.parametrize(
        "moves,page_length,expected",
        [
            ([1, 1, 1], 8, 3),
            ([5, 5], 8, 7),
            ([-1], 8, 0),
            ([3, -10], 8, 0),
            ([4], 0, 0),
            ([4], 1, 0),
        ],
    )
    def test_cursor_stays_in_range(self, sel, moves, page_length, expected):
        for delta in moves:
            sel.move_cursor(delta, page_length)
            assert 0 <= sel.cursor <= max(page_length - 1, 0)
        assert sel.cursor == expected

    def test_clamp_after_page_shrinks(self, sel):
        sel.move_cursor(6, 8)
        sel.clamp_cursor(3)
        assert sel.cursor == 2
        sel.clamp_cursor(0)
        assert sel.cursor == 0

    def test_set_page_resets_cursor_and_clamps(self, sel):
        sel.move_cursor(4, 8)
        assert sel.set_page(1, 2) is True
        assert (sel.page, sel.cursor) == (1, 0)

        assert sel.set_page(5, 2) is False
        assert sel.page == 1

        sel.set_page(-3, 2)
        assert sel.page == 0

    def test_set_page_with_no_pages(self, sel):
        sel.set_page(2, 0)
        assert (sel.page, sel.cursor) == (0, 0)


class TestMultiSelect:
    def test_toggle_current_requires_observed_id(self):
        s = SelectionManager()
        s.observe(["a"])
        s.toggle_current(["ghost"])
        assert s.selected_ids == frozenset()
        s.toggle_current(["a"])
        assert s.selected_ids == {"a"}

    def test_toggle_current_uses_cursor(self, sel):
        page = ["id0", "id1", "id2"]
        sel.move_cursor(2, len(page))
        sel.toggle_current(page)
        assert sel.selected_ids == {"id2"}
        sel.toggle_current(page)
        assert sel.selected_ids == frozenset()

    def test_toggle_current_on_empty_page_is_noop(self, sel):
        sel.toggle_current([])
        assert sel.selected_ids == frozenset()

    def test_toggle_all_visible_selects_then_deselects(self, sel):
        page = ["id0", "id1", "id2"]
        sel.toggle_all_visible(page)
        assert sel.selected_ids == set(page)
        sel.toggle_all_visible(page)
        assert sel.selected_ids == frozenset()

    def test_toggle_all_visible_fills_partial_page(self, sel):
        page = ["id0", "id1", "id2"]
        sel.toggle_current(page)
        sel.toggle_all_visible(page)
        assert sel.selected_ids == set(page)

    @pytest.mark.parametrize("preselect", [[], ["id0", "id1", "id2"]])
    def test_toggle_all_visible_twice_restores_page(self, sel, preselect):
        page = ["id0", "id1", "id2"]
        if preselect:
            sel.toggle_all_visible(preselect)
        before = sel.selected_ids
        sel.toggle_all_visible(page)
        sel.toggle_all_visible(page)
        assert sel.selected_ids == before

    def test_toggle_all_visible_leaves_other_pages_alone(self, sel):
        sel.toggle_all_visible(["id10", "id11"])
        sel.toggle_all_visible(["id0", "id1"])
        sel.toggle_all_visible(["id0", "id1"])
        assert sel.selected_ids == {"id10", "id11"}

    def test_selection_survives_paging(self, sel):
        sel.toggle_all_visible(["id0", "id1"])
        sel.set_page(1, 3)
        sel.reset_position()
        assert sel.selected_ids == {"id0", "id1"}

    def test_leaving_multi_select_clears_selection(self, sel):
        sel.toggle_multi_select()
        sel.toggle_all_visible(["id0", "id1"])
        sel.toggle_multi_select()
        assert sel.multi_select is False
        assert sel.selected_ids == frozenset()

    def test_exit_multi_select(self, sel):
        sel.toggle_multi_select()
        sel.toggle_all_visible(["id3"])
        sel.exit_multi_select()
        assert not sel.multi_select
        assert not sel.is_selected("id3")
