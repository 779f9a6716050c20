"""
RecordBrowser: composition root of the browser state machine.

Ties the filter pipeline, selection manager, action menu, batch orchestrator
and input router together, and exposes one `BrowserSnapshot` per render for
the presentation layer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from billbrowse.core.actions import ActionDescriptor, ActionResult
from billbrowse.core.batch import BatchOrchestrator, ItemState, ItemStatus
from billbrowse.core.menu import DEFAULT_ERROR_DISMISS_SECONDS, ActionMenuController, BatchTarget, SingleTarget
from billbrowse.core.pipeline import (
    FuzzyMatcher,
    TextFn,
    ValueFn,
    ViewRow,
    compute_view,
    page_count,
    paginate,
    record_id,
)
from billbrowse.core.router import InputRouter, KeyEvent, ModalContext, RouteOutcome
from billbrowse.core.selection import SelectionManager

logger = logging.getLogger(__name__)


DEFAULT_ITEMS_PER_PAGE = 8


@dataclass(frozen=True)
class PageRow:
    record: Any
    value: float
    is_cursor: bool
    is_selected: bool

    @property
    def id(self) -> str:
        return record_id(self.record)


@dataclass(frozen=True)
class MenuView:
    labels: Tuple[str, ...]
    index: int
    executing: bool
    executing_action_id: Optional[str]
    status_message: Optional[str]
    batch_count: int


@dataclass(frozen=True)
class BatchRow:
    id: str
    record: Any
    status: ItemStatus


@dataclass(frozen=True)
class BatchView:
    rows: Tuple[BatchRow, ...]
    counts: Dict[ItemState, int]
    finished: bool
    abort_message: Optional[str]


@dataclass(frozen=True)
class BrowserSnapshot:
    rows: Tuple[PageRow, ...]
    page: int
    page_total: int
    filtered_count: int
    total_count: int
    context: ModalContext
    query: str
    hide_zero: bool
    multi_select: bool
    selected_count: int
    current: Optional[ViewRow] = None
    menu: Optional[MenuView] = None
    batch: Optional[BatchView] = None
    result_content: Any = None
    pending_tasks: int = field(default=0)


class RecordBrowser:
    """Interactive record-browser state machine, independent of any UI toolkit."""

    def __init__(
        self,
        records: Iterable[Any],
        actions: Sequence[ActionDescriptor],
        *,
        value_fn: ValueFn,
        text_fn: TextFn,
        items_per_page: int = DEFAULT_ITEMS_PER_PAGE,
        hide_zero: bool = False,
        error_dismiss_seconds: float = DEFAULT_ERROR_DISMISS_SECONDS,
        matcher: Optional[FuzzyMatcher] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.value_fn = value_fn
        self.text_fn = text_fn
        self.items_per_page = int(items_per_page) if items_per_page and items_per_page > 0 else DEFAULT_ITEMS_PER_PAGE
        self.hide_zero = bool(hide_zero)
        self.query: str = ""
        self.matcher = matcher or FuzzyMatcher()
        self.result: Optional[ActionResult] = None
        self._on_change = on_change
        self._context = ModalContext.NONE
        self._records: List[Any] = []
        self._records_by_id: Dict[str, Any] = {}
        self._observed_order: List[str] = []
        self._version = 0
        self._view_cache: Optional[Tuple[Tuple[int, str, bool], List[ViewRow]]] = None
        self._pending: List[Any] = []

        self.selection = SelectionManager()
        self.orchestrator = BatchOrchestrator(on_change=self._notify)
        self.menu = ActionMenuController(
            actions,
            self.orchestrator,
            error_dismiss_seconds=error_dismiss_seconds,
            on_result=self._show_result,
            on_batch_start=self._show_batch_progress,
            on_closed=self._menu_closed,
            on_change=self._notify,
        )
        self.router = InputRouter(self)
        self.set_records(records)

    # ----- source data / view -----

    def set_records(self, records: Iterable[Any]) -> None:
        """Replace the source list. Selection persists; cursor is re-clamped."""
        self._records = list(records)
        new_ids = []
        for rec in self._records:
            rid = record_id(rec)
            if not rid:
                continue
            if rid not in self._records_by_id:
                self._observed_order.append(rid)
            self._records_by_id[rid] = rec
            new_ids.append(rid)
        self.selection.observe(new_ids)
        self._version += 1
        if self.selection.page > max(self.page_total - 1, 0):
            self.selection.set_page(self.page_total - 1, self.page_total)
        self.selection.clamp_cursor(len(self.page_rows))
        self._notify()

    @property
    def records(self) -> List[Any]:
        return list(self._records)

    @property
    def view(self) -> List[ViewRow]:
        key = (self._version, self.query, self.hide_zero)
        if self._view_cache is None or self._view_cache[0] != key:
            rows = compute_view(
                self._records,
                self.query,
                self.hide_zero,
                value_fn=self.value_fn,
                text_fn=self.text_fn,
                matcher=self.matcher,
            )
            self._view_cache = (key, rows)
        return self._view_cache[1]

    @property
    def page_total(self) -> int:
        return page_count(len(self.view), self.items_per_page)

    @property
    def page_rows(self) -> List[ViewRow]:
        return paginate(self.view, self.selection.page, self.items_per_page)

    @property
    def page_ids(self) -> List[str]:
        return [r.id for r in self.page_rows]

    @property
    def current_row(self) -> Optional[ViewRow]:
        rows = self.page_rows
        if 0 <= self.selection.cursor < len(rows):
            return rows[self.selection.cursor]
        return None

    # ----- context -----

    @property
    def context(self) -> ModalContext:
        return self._context

    def _set_context(self, context: ModalContext) -> None:
        if context is not self._context:
            logger.debug("Modal context %s -> %s", self._context.value, context.value)
        self._context = context

    def close_overlay(self, context: ModalContext) -> None:
        if self._context is context:
            self._set_context(ModalContext.NONE)

    def dispatch(self, event: KeyEvent) -> RouteOutcome:
        """Route one key event; the single entry point for keyboard input."""
        outcome = self.router.dispatch(event)
        logger.debug("Key %s/%r in %s -> %s", event.kind.value, event.char, self._context.value, outcome.value)
        return outcome

    # ----- base navigation -----

    def move_cursor(self, delta: int) -> None:
        self.selection.move_cursor(delta, len(self.page_rows))

    def next_page(self) -> None:
        self.selection.set_page(self.selection.page + 1, self.page_total)

    def prev_page(self) -> None:
        self.selection.set_page(self.selection.page - 1, self.page_total)

    def toggle_multi_select(self) -> None:
        self.selection.toggle_multi_select()

    def toggle_current_selection(self) -> Optional[RouteOutcome]:
        if not self.selection.multi_select:
            return RouteOutcome.IGNORED
        self.selection.toggle_current(self.page_ids)
        return None

    def toggle_all_visible(self) -> Optional[RouteOutcome]:
        if not self.selection.multi_select:
            return RouteOutcome.IGNORED
        self.selection.toggle_all_visible(self.page_ids)
        return None

    def toggle_hide_zero(self) -> None:
        self.hide_zero = not self.hide_zero
        self.selection.reset_position()

    def open_detail(self) -> Optional[RouteOutcome]:
        if self.current_row is None:
            return RouteOutcome.IGNORED
        self._set_context(ModalContext.FULL_SCREEN_DETAIL)
        return None

    def open_help(self) -> None:
        self._set_context(ModalContext.HELP)

    # ----- search -----

    def begin_search(self) -> None:
        self.query = ""
        self.selection.reset_position()
        self._set_context(ModalContext.SEARCH_INPUT)

    def set_query(self, query: str) -> None:
        """Live query update from the text-entry widget."""
        if query == self.query:
            return
        self.query = query or ""
        self.selection.reset_position()

    def cancel_search(self) -> None:
        self.query = ""
        self.selection.reset_position()
        self.close_overlay(ModalContext.SEARCH_INPUT)

    def clear_search(self) -> None:
        self.query = ""
        self.selection.reset_position()

    # ----- action menu / execution -----

    def open_menu(self) -> Optional[RouteOutcome]:
        if self.current_row is None:
            return RouteOutcome.IGNORED
        self.menu.open()
        self._set_context(ModalContext.ACTION_MENU)
        return None

    def close_menu(self) -> None:
        self.menu.close()

    def batch_ids(self) -> List[str]:
        """Selected ids in display order, then any selected ids not currently visible."""
        selected = self.selection.selected_ids
        ordered = [r.id for r in self.view if r.id in selected]
        seen = set(ordered)
        ordered.extend(i for i in self._observed_order if i in selected and i not in seen)
        return ordered

    def execute_selected_action(self) -> None:
        if self.selection.multi_select and self.selection.selected_ids:
            ids = self.batch_ids()
            target: Union[BatchTarget, SingleTarget] = BatchTarget(
                ids=tuple(ids),
                records=tuple(self._records_by_id.get(i) for i in ids),
            )
        else:
            row = self.current_row
            if row is None:
                return
            target = SingleTarget(record_id=row.id, record=row.record)
        work = self.menu.execute_selected(target)
        if work is not None:
            self._spawn(work)

    def _show_result(self, result: ActionResult) -> None:
        self.result = result
        self._set_context(ModalContext.RESULT_DIALOG)

    def close_result_dialog(self) -> None:
        self.result = None
        self.close_overlay(ModalContext.RESULT_DIALOG)

    def _show_batch_progress(self) -> None:
        self._set_context(ModalContext.BATCH_PROGRESS)

    def close_batch_progress(self) -> None:
        """Drop the status map and the selection; running handlers are not cancelled."""
        self.orchestrator.close()
        self.selection.exit_multi_select()
        self.close_overlay(ModalContext.BATCH_PROGRESS)

    def _menu_closed(self) -> None:
        self.close_overlay(ModalContext.ACTION_MENU)

    # ----- async plumbing -----

    def _spawn(self, work: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: keep the coroutine for settle().
            self._pending.append(work)
            return
        task = loop.create_task(work)
        self._pending.append(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Task[Any]") -> None:
        try:
            self._pending.remove(task)
        except ValueError:
            pass
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background action task failed: %s", exc, exc_info=exc)
        self._notify()

    async def settle(self) -> None:
        """Wait for every spawned execution to finish."""
        while self._pending:
            work = self._pending.pop(0)
            await work

    def set_listener(self, on_change: Optional[Callable[[], None]]) -> None:
        """Replace the change listener (the presentation layer's re-render hook)."""
        self._on_change = on_change

    def dispose(self) -> None:
        """Teardown: cancel the menu's dismiss timer and detach listeners."""
        self.menu.dispose()
        self._on_change = None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()

    # ----- presentation -----

    def batch_view(self) -> Optional[BatchView]:
        session = self.orchestrator.active
        if session is None:
            return None
        statuses = session.statuses
        rows = tuple(BatchRow(id=i, record=self._records_by_id.get(i), status=statuses[i]) for i in session.ids)
        return BatchView(
            rows=rows,
            counts=session.counts(),
            finished=session.finished,
            abort_message=session.abort.message if session.abort is not None else None,
        )

    def snapshot(self) -> BrowserSnapshot:
        page_rows = self.page_rows
        selected = self.selection.selected_ids
        rows = tuple(
            PageRow(
                record=r.record,
                value=r.value,
                is_cursor=index == self.selection.cursor,
                is_selected=r.id in selected,
            )
            for index, r in enumerate(page_rows)
        )
        menu_view = None
        if self.menu.is_open:
            menu_view = MenuView(
                labels=tuple(a.label for a in self.menu.actions),
                index=self.menu.index,
                executing=self.menu.is_executing,
                executing_action_id=self.menu.executing_action_id,
                status_message=self.menu.status_message,
                batch_count=len(selected) if self.selection.multi_select else 0,
            )
        return BrowserSnapshot(
            rows=rows,
            page=self.selection.page,
            page_total=self.page_total,
            filtered_count=len(self.view),
            total_count=len(self._records),
            context=self._context,
            query=self.query,
            hide_zero=self.hide_zero,
            multi_select=self.selection.multi_select,
            selected_count=len(selected),
            current=self.current_row,
            menu=menu_view,
            batch=self.batch_view(),
            result_content=self.result.content if self.result is not None else None,
            pending_tasks=len(self._pending),
        )


__all__ = [
    "BatchRow",
    "BatchView",
    "BrowserSnapshot",
    "DEFAULT_ITEMS_PER_PAGE",
    "MenuView",
    "PageRow",
    "RecordBrowser",
]
