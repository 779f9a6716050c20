"""Cursor, paging and multi-select tracking for the record table."""

from __future__ import annotations

from typing import FrozenSet, Iterable, Sequence, Set


class SelectionManager:
    """
    Owns the cursor position within the current page and the persistent
    multi-select set.

    `selected_ids` survives paging and filter changes. It only changes through
    explicit toggles, select-all and clears, and it can only ever hold ids that
    were observed in the source list.
    """

    def __init__(self) -> None:
        self.page: int = 0
        self.cursor: int = 0
        self.multi_select: bool = False
        self._selected: Set[str] = set()
        self._observed: Set[str] = set()

    @property
    def selected_ids(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    def is_selected(self, item_id: str) -> bool:
        return item_id in self._selected

    def observe(self, ids: Iterable[str]) -> None:
        """Record ids seen in the source list (selection may only reference these)."""
        self._observed.update(i for i in ids if i)

    def move_cursor(self, delta: int, page_length: int) -> None:
        self.cursor = self._clamp(self.cursor + delta, page_length)

    def clamp_cursor(self, page_length: int) -> None:
        self.cursor = self._clamp(self.cursor, page_length)

    def set_page(self, page: int, page_total: int) -> bool:
        """
        Jump to `page` (clamped to existing pages) and reset the cursor.

        Returns:
            True if the page changed
        """
        target = max(0, min(page, max(page_total - 1, 0)))
        changed = target != self.page
        self.page = target
        self.cursor = 0
        return changed

    def reset_position(self) -> None:
        """Back to first page, first row (used on filter/query changes)."""
        self.page = 0
        self.cursor = 0

    def toggle_multi_select(self) -> None:
        self.multi_select = not self.multi_select
        if not self.multi_select:
            self._selected.clear()

    def exit_multi_select(self) -> None:
        self.multi_select = False
        self._selected.clear()

    def toggle_current(self, page_ids: Sequence[str]) -> None:
        """Add/remove the id under the cursor."""
        if not page_ids or not (0 <= self.cursor < len(page_ids)):
            return
        item_id = page_ids[self.cursor]
        if item_id in self._selected:
            self._selected.discard(item_id)
        elif item_id in self._observed:
            self._selected.add(item_id)

    def toggle_all_visible(self, page_ids: Sequence[str]) -> None:
        """
        Select every id on the current page, or deselect them all if they are
        already selected. Ids on other pages are never touched.
        """
        ids = [i for i in page_ids if i in self._observed]
        if not ids:
            return
        if all(i in self._selected for i in ids):
            self._selected.difference_update(ids)
        else:
            self._selected.update(ids)

    def clear_selection(self) -> None:
        self._selected.clear()

    @staticmethod
    def _clamp(index: int, page_length: int) -> int:
        if page_length <= 0:
            return 0
        return max(0, min(index, page_length - 1))


__all__ = ["SelectionManager"]
