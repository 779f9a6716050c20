from __future__ import annotations

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Header, Static

from billbrowse.core.browser import BrowserSnapshot, RecordBrowser
from billbrowse.core.router import ModalContext, RouteOutcome
from billbrowse.tui.debug import DebugLogger
from billbrowse.tui.keys import classify_key
from billbrowse.tui.models import HELP_TEXT, OVERLAY_FOR_CONTEXT, WidgetIds
from billbrowse.tui.presenter import CustomerPresenter
from billbrowse.tui.tables import TableManager
from billbrowse.tui.widgets import ContextFooter, CustomerTable, Overlay, SearchBox

logger = logging.getLogger(__name__)


class BrowserApp(App):
    """
    Full-screen customer browser.

    All state lives in the `RecordBrowser`; this app only classifies keys,
    hands them to the browser's router, and re-renders from a snapshot.
    """

    CSS_PATH = "theme.tcss"
    TITLE = "billbrowse"
    # Nothing takes focus; every key reaches on_key.
    AUTO_FOCUS = None

    def __init__(
        self,
        browser: RecordBrowser,
        presenter: CustomerPresenter,
        *,
        subtitle: str = "",
        show_details: bool = True,
    ) -> None:
        super().__init__()
        self.browser = browser
        self.presenter = presenter
        self.show_details = show_details
        self.sub_title = subtitle
        self.tables = TableManager(self)
        self._debug = DebugLogger(self)
        self._last_context: ModalContext = browser.context

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Vertical(classes="main"):
            yield Static("", id=WidgetIds.STATUS, classes="muted")
            yield SearchBox(id=WidgetIds.SEARCH_BOX, classes="search")
            yield CustomerTable(id=WidgetIds.CUSTOMER_TABLE)
            yield Static("", id=WidgetIds.DETAILS_PANEL, classes="details")
        yield Overlay(id=WidgetIds.DETAIL_OVERLAY, title="Customer")
        yield Overlay(id=WidgetIds.MENU_OVERLAY, title="Actions")
        yield Overlay(id=WidgetIds.RESULT_OVERLAY, title="Result")
        yield Overlay(id=WidgetIds.HELP_OVERLAY, title="Help")
        yield Overlay(id=WidgetIds.BATCH_OVERLAY, title="Batch")
        yield ContextFooter(id=WidgetIds.FOOTER, classes="footer")

    def on_mount(self) -> None:
        self.tables.setup_columns()
        self.browser.set_listener(self.refresh_view)
        self.refresh_view()

    def on_unmount(self) -> None:
        self.browser.dispose()
        self._debug.close()

    def on_key(self, event) -> None:  # type: ignore[override]
        key_event = classify_key(str(getattr(event, "key", "") or ""), getattr(event, "character", None))
        if key_event is None:
            return
        event.stop()
        event.prevent_default()

        context = self.browser.context
        outcome = self.browser.dispatch(key_event)
        if outcome is RouteOutcome.SWALLOWED:
            edited = SearchBox.feed(key_event, self.browser.query)
            if edited is not None:
                self.browser.set_query(edited)

        self._debug.log(
            event="key",
            data={
                "key": str(getattr(event, "key", "")),
                "kind": key_event.kind.value,
                "char": key_event.char,
                "context": context.value,
                "outcome": outcome.value,
            },
        )
        if outcome is RouteOutcome.QUIT:
            self.exit()
            return
        self.refresh_view()

    # ----- rendering -----

    def refresh_view(self) -> None:
        if not self.is_running:
            return
        snap = self.browser.snapshot()
        self.tables.refresh(snap)
        self._render_status(snap)
        self._render_details(snap)
        self._render_overlays(snap)
        self.query_one(f"#{WidgetIds.SEARCH_BOX}", SearchBox).set_state(
            query=snap.query, active=snap.context is ModalContext.SEARCH_INPUT
        )
        self.query_one(f"#{WidgetIds.FOOTER}", ContextFooter).set_context(snap.context)
        if snap.context is not self._last_context:
            self._debug.log(event="context", data={"from": self._last_context.value, "to": snap.context.value})
            self._last_context = snap.context

    def _render_status(self, snap: BrowserSnapshot) -> None:
        parts = [
            f"Page {snap.page + 1}/{snap.page_total}",
            f"{snap.filtered_count} of {snap.total_count} customers",
        ]
        if snap.hide_zero:
            parts.append("hiding zero-value")
        if snap.multi_select:
            parts.append(f"[bold yellow]multi-select: {snap.selected_count} selected[/]")
        if snap.pending_tasks:
            parts.append("[yellow]running…[/]")
        self.query_one(f"#{WidgetIds.STATUS}", Static).update(" · ".join(parts))

    def _render_details(self, snap: BrowserSnapshot) -> None:
        panel = self.query_one(f"#{WidgetIds.DETAILS_PANEL}", Static)
        panel.display = self.show_details
        if self.show_details:
            record = snap.current.record if snap.current is not None else None
            panel.update(self.presenter.details(record))

    def _render_overlays(self, snap: BrowserSnapshot) -> None:
        # An open overlay takes the main area; search keeps the table visible.
        self.query_one(".main").display = snap.context not in OVERLAY_FOR_CONTEXT
        for context, widget_id in OVERLAY_FOR_CONTEXT.items():
            overlay = self.query_one(f"#{widget_id}", Overlay)
            if snap.context is not context:
                overlay.close()
                continue
            overlay.show(self._overlay_content(context, snap))

    def _overlay_content(self, context: ModalContext, snap: BrowserSnapshot):
        record = snap.current.record if snap.current is not None else None
        if context is ModalContext.FULL_SCREEN_DETAIL:
            return self.presenter.details(record, style="default")
        if context is ModalContext.HELP:
            return Text.from_markup(HELP_TEXT)
        if context is ModalContext.RESULT_DIALOG:
            content = snap.result_content
            return content if content is not None else Text("(no content)", style="dim")
        if context is ModalContext.ACTION_MENU and snap.menu is not None:
            label = self.presenter.label(record) if record is not None else ""
            return self.presenter.menu_panel(snap.menu, target_label=label)
        if context is ModalContext.BATCH_PROGRESS and snap.batch is not None:
            return self.presenter.batch_panel(snap.batch)
        return Text("")

    @property
    def debug_events(self) -> list:
        return self._debug.events


def run_browser(browser: RecordBrowser, presenter: CustomerPresenter, *, subtitle: str = "", show_details: bool = True) -> None:
    """Run the browser app until the user quits."""
    BrowserApp(browser, presenter, subtitle=subtitle, show_details=show_details).run()


__all__ = ["BrowserApp", "run_browser"]
