"""
Tests for modal input routing.

Each key event must reach exactly one consumer: the highest-precedence active
overlay, with base table navigation last.
"""

import asyncio

from billbrowse.core.router import KeyEvent, KeyKind, ModalContext, RouteOutcome
from billbrowse.tui.widgets import SearchBox

from tests.browser_harness import Rec, ScriptedHandler, action, key, make_browser, make_records, press, visible_ids

NAMED = [
    Rec(id="r01", name="John Smith", value=5.0),
    Rec(id="r02", name="Quinn Hamilton", value=4.0),
    Rec(id="r03", name="Mary Major", value=3.0),
]


def _type(browser, text):
    """Type `text` the way the app does: route each key, then let the search box edit the query."""
    outcomes = []
    for ch in text:
        event = KeyEvent(kind=KeyKind.BACKSPACE) if ch == "\b" else key(ch)
        outcome = browser.dispatch(event)
        if outcome is RouteOutcome.SWALLOWED:
            edited = SearchBox.feed(event, browser.query)
            if edited is not None:
                browser.set_query(edited)
        outcomes.append(outcome)
    return outcomes


def test_precedence_order():
    order = [
        ModalContext.BATCH_PROGRESS,
        ModalContext.HELP,
        ModalContext.RESULT_DIALOG,
        ModalContext.FULL_SCREEN_DETAIL,
        ModalContext.SEARCH_INPUT,
        ModalContext.ACTION_MENU,
        ModalContext.NONE,
    ]
    assert sorted(ModalContext, key=lambda c: c.precedence) == order


def test_key_event_letter_is_lowercased():
    assert KeyEvent.character("Q").letter == "q"
    assert KeyEvent(kind=KeyKind.UP).letter == ""


class TestBase:
    def test_quit(self):
        browser = make_browser(make_records(3))
        assert press(browser, "q") == [RouteOutcome.QUIT]
        assert press(browser, "Q") == [RouteOutcome.QUIT]

    def test_unknown_key_is_ignored(self):
        browser = make_browser(make_records(3))
        assert press(browser, "z", "tab") == [RouteOutcome.IGNORED, RouteOutcome.IGNORED]

    def test_arrows_and_letters_page(self):
        browser = make_browser(make_records(20))
        press(browser, "right")
        assert browser.selection.page == 1
        press(browser, "n")
        assert browser.selection.page == 2
        press(browser, "n")
        assert browser.selection.page == 2
        press(browser, "p", "left")
        assert browser.selection.page == 0

    def test_selection_keys_need_multi_select(self):
        browser = make_browser(make_records(3))
        assert press(browser, "s", "a") == [RouteOutcome.IGNORED, RouteOutcome.IGNORED]
        press(browser, "m", "s")
        assert browser.selection.selected_ids == {"r01"}

    def test_hide_zero_toggle_resets_position(self):
        browser = make_browser(make_records(12, values=[0] * 6 + [1] * 6))
        press(browser, "n", "down")
        press(browser, "i")
        assert browser.hide_zero
        assert (browser.selection.page, browser.selection.cursor) == (0, 0)
        assert len(browser.view) == 6

    def test_detail_needs_a_row(self):
        browser = make_browser([])
        assert press(browser, "l") == [RouteOutcome.IGNORED]
        assert browser.context is ModalContext.NONE

    def test_enter_on_empty_view_does_not_open_menu(self):
        browser = make_browser([], [action(ScriptedHandler())])
        assert press(browser, "enter") == [RouteOutcome.IGNORED]
        assert not browser.menu.is_open


class TestOverlays:
    def test_help_closes_on_escape_or_h(self):
        browser = make_browser(make_records(3))
        press(browser, "h")
        assert browser.context is ModalContext.HELP
        assert press(browser, "down", "q") == [RouteOutcome.IGNORED, RouteOutcome.IGNORED]
        press(browser, "h")
        assert browser.context is ModalContext.NONE
        press(browser, "h", "escape")
        assert browser.context is ModalContext.NONE

    def test_detail_swallows_everything_but_escape(self):
        browser = make_browser(make_records(3))
        press(browser, "l")
        assert browser.context is ModalContext.FULL_SCREEN_DETAIL
        press(browser, "down", "n", "m")
        assert browser.selection.cursor == 0
        assert not browser.selection.multi_select
        press(browser, "escape")
        assert browser.context is ModalContext.NONE

    def test_menu_navigation(self):
        browser = make_browser(make_records(3), [action(ScriptedHandler(), id="one"), action(ScriptedHandler(), id="two")])
        press(browser, "enter")
        assert browser.context is ModalContext.ACTION_MENU
        press(browser, "down", "down")
        assert browser.menu.index == 1
        assert browser.selection.cursor == 0
        assert press(browser, "q") == [RouteOutcome.IGNORED]
        press(browser, "escape")
        assert browser.context is ModalContext.NONE
        assert not browser.menu.is_open


class TestSearch:
    def test_typing_is_left_to_the_text_box(self):
        browser = make_browser(make_records(12))
        press(browser, "f")
        assert browser.context is ModalContext.SEARCH_INPUT
        assert press(browser, "x", "s", "a", "c", "backspace", "tab") == [RouteOutcome.SWALLOWED] * 6
        assert not browser.selection.multi_select

    def test_command_letters_are_typed_into_query(self):
        browser = make_browser(NAMED)
        press(browser, "f")
        outcomes = _type(browser, "john smith")
        assert outcomes == [RouteOutcome.SWALLOWED] * len("john smith")
        assert browser.query == "john smith"
        assert browser.context is ModalContext.SEARCH_INPUT
        assert browser.selection.page == 0
        assert not browser.selection.multi_select
        assert not browser.hide_zero
        assert visible_ids(browser) == ["r01"]

    def test_q_is_typed_not_quit(self):
        browser = make_browser(NAMED)
        press(browser, "f")
        assert RouteOutcome.QUIT not in _type(browser, "Quinn")
        assert browser.query == "Quinn"
        assert visible_ids(browser) == ["r02"]

    def test_backspace_edits_typed_query(self):
        browser = make_browser(NAMED)
        press(browser, "f")
        _type(browser, "maryx")
        assert visible_ids(browser) == []
        _type(browser, "\b")
        assert browser.query == "mary"
        assert visible_ids(browser) == ["r03"]

    def test_arrows_and_enter_still_navigate(self):
        browser = make_browser(NAMED, [action(ScriptedHandler())])
        press(browser, "f")
        _type(browser, "m")
        assert len(visible_ids(browser)) == 3
        assert press(browser, "down") == [RouteOutcome.HANDLED]
        assert browser.selection.cursor == 1
        press(browser, "enter")
        assert browser.context is ModalContext.ACTION_MENU
        assert browser.query == "m"

    def test_escape_clears_query(self):
        browser = make_browser(make_records(12))
        press(browser, "f")
        browser.set_query("customer 1")
        assert len(browser.view) < 12
        press(browser, "escape")
        assert browser.query == ""
        assert browser.context is ModalContext.NONE
        assert len(browser.view) == 12

    def test_enter_opens_menu_for_filtered_row(self):
        browser = make_browser(make_records(12), [action(ScriptedHandler())])
        press(browser, "f")
        browser.set_query("r07")
        assert visible_ids(browser) == ["r07"]
        press(browser, "enter")
        assert browser.context is ModalContext.ACTION_MENU
        assert browser.query == "r07"

    def test_clear_search_key_in_base(self):
        browser = make_browser(make_records(12))
        browser.set_query("r07")
        assert browser.context is ModalContext.NONE
        press(browser, "c")
        assert browser.query == ""
        assert len(browser.view) == 12


def test_executing_menu_locks_input():
    async def _run():
        gate = asyncio.Event()
        handler = ScriptedHandler(gate=gate)
        browser = make_browser(make_records(3), [action(handler), action(ScriptedHandler(), id="other")])
        press(browser, "enter", "enter")
        await asyncio.sleep(0)
        assert browser.menu.is_executing

        outcomes = press(browser, "up", "down", "enter", "escape", "q")
        assert outcomes == [RouteOutcome.IGNORED] * 5
        assert browser.menu.index == 0
        assert browser.context is ModalContext.ACTION_MENU

        gate.set()
        await browser.settle()
        assert handler.calls == ["r01"]
        assert browser.context is ModalContext.NONE

    asyncio.run(_run())


def test_batch_progress_ignores_everything_but_escape():
    async def _run():
        gate = asyncio.Event()
        handler = ScriptedHandler(gate=gate)
        browser = make_browser(make_records(3), [action(handler)])
        press(browser, "m", "a", "enter", "enter")
        assert browser.context is ModalContext.BATCH_PROGRESS
        assert press(browser, "down", "q", "h") == [RouteOutcome.IGNORED] * 3
        press(browser, "escape")
        assert browser.context is ModalContext.NONE
        gate.set()
        await browser.settle()

    asyncio.run(_run())
