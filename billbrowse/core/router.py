"""
Modal input router.

Exactly one modal context owns the keyboard at any time. The active context is
a single tagged value (`ModalContext`), so "which overlay wins" is a property
of the data rather than a convention between booleans. Every key event is
routed to one consumer only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, Optional

if TYPE_CHECKING:
    from billbrowse.core.browser import RecordBrowser


class KeyKind(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    CONFIRM = "confirm"
    ESCAPE = "escape"
    TAB = "tab"
    BACKSPACE = "backspace"
    CHARACTER = "character"


@dataclass(frozen=True)
class KeyEvent:
    kind: KeyKind
    char: str = ""

    @classmethod
    def character(cls, char: str) -> "KeyEvent":
        return cls(kind=KeyKind.CHARACTER, char=char)

    @property
    def letter(self) -> str:
        """Lowercased character for CHARACTER events, "" otherwise."""
        if self.kind is KeyKind.CHARACTER:
            return self.char.lower()
        return ""


class ModalContext(str, Enum):
    """Input-owning overlays, declared highest precedence first."""

    BATCH_PROGRESS = "batch_progress"
    HELP = "help"
    RESULT_DIALOG = "result_dialog"
    FULL_SCREEN_DETAIL = "full_screen_detail"
    SEARCH_INPUT = "search_input"
    ACTION_MENU = "action_menu"
    NONE = "none"

    @property
    def precedence(self) -> int:
        """0 is highest; NONE (base table navigation) is lowest."""
        return list(ModalContext).index(self)


class RouteOutcome(str, Enum):
    HANDLED = "handled"
    IGNORED = "ignored"
    # Left for the search text-entry widget to consume.
    SWALLOWED = "swallowed"
    QUIT = "quit"


HELP_KEY = "h"
QUIT_KEY = "q"

# Keys that keep navigating while the search box is focused. Printable
# characters never do: they always belong to the query.
SEARCH_PASSTHROUGH_KINDS: FrozenSet[KeyKind] = frozenset(
    {KeyKind.UP, KeyKind.DOWN, KeyKind.LEFT, KeyKind.RIGHT, KeyKind.CONFIRM}
)


class InputRouter:
    """Dispatches one classified key event against the browser's active context."""

    def __init__(self, browser: "RecordBrowser") -> None:
        self.browser = browser
        self._by_context: Dict[ModalContext, Callable[[KeyEvent], RouteOutcome]] = {
            ModalContext.BATCH_PROGRESS: self._batch_progress,
            ModalContext.HELP: self._help,
            ModalContext.RESULT_DIALOG: self._result_dialog,
            ModalContext.FULL_SCREEN_DETAIL: self._full_screen_detail,
            ModalContext.SEARCH_INPUT: self._search_input,
            ModalContext.ACTION_MENU: self._action_menu,
            ModalContext.NONE: self._base,
        }
        self._base_letters: Dict[str, Callable[[], Optional[RouteOutcome]]] = {
            "m": browser.toggle_multi_select,
            "s": browser.toggle_current_selection,
            "a": browser.toggle_all_visible,
            "l": browser.open_detail,
            "i": browser.toggle_hide_zero,
            "f": browser.begin_search,
            "c": browser.clear_search,
            "n": browser.next_page,
            "p": browser.prev_page,
            HELP_KEY: browser.open_help,
        }
        self._base_kinds: Dict[KeyKind, Callable[[], Optional[RouteOutcome]]] = {
            KeyKind.UP: lambda: browser.move_cursor(-1),
            KeyKind.DOWN: lambda: browser.move_cursor(1),
            KeyKind.LEFT: browser.prev_page,
            KeyKind.RIGHT: browser.next_page,
            KeyKind.CONFIRM: browser.open_menu,
        }

    def dispatch(self, event: KeyEvent) -> RouteOutcome:
        return self._by_context[self.browser.context](event)

    def _batch_progress(self, event: KeyEvent) -> RouteOutcome:
        if event.kind is KeyKind.ESCAPE:
            self.browser.close_batch_progress()
            return RouteOutcome.HANDLED
        return RouteOutcome.IGNORED

    def _help(self, event: KeyEvent) -> RouteOutcome:
        if event.kind is KeyKind.ESCAPE or event.letter == HELP_KEY:
            self.browser.close_overlay(ModalContext.HELP)
            return RouteOutcome.HANDLED
        return RouteOutcome.IGNORED

    def _result_dialog(self, event: KeyEvent) -> RouteOutcome:
        if event.kind is KeyKind.ESCAPE:
            self.browser.close_result_dialog()
            return RouteOutcome.HANDLED
        return RouteOutcome.IGNORED

    def _full_screen_detail(self, event: KeyEvent) -> RouteOutcome:
        if event.kind is KeyKind.ESCAPE:
            self.browser.close_overlay(ModalContext.FULL_SCREEN_DETAIL)
            return RouteOutcome.HANDLED
        return RouteOutcome.IGNORED

    def _search_input(self, event: KeyEvent) -> RouteOutcome:
        if event.kind is KeyKind.ESCAPE:
            self.browser.cancel_search()
            return RouteOutcome.HANDLED
        if event.kind in SEARCH_PASSTHROUGH_KINDS:
            return self._base(event)
        return RouteOutcome.SWALLOWED

    def _action_menu(self, event: KeyEvent) -> RouteOutcome:
        menu = self.browser.menu
        if menu.is_executing:
            return RouteOutcome.IGNORED
        if event.kind is KeyKind.UP:
            menu.move(-1)
        elif event.kind is KeyKind.DOWN:
            menu.move(1)
        elif event.kind is KeyKind.CONFIRM:
            self.browser.execute_selected_action()
        elif event.kind is KeyKind.ESCAPE:
            self.browser.close_menu()
        else:
            return RouteOutcome.IGNORED
        return RouteOutcome.HANDLED

    def _base(self, event: KeyEvent) -> RouteOutcome:
        if event.letter == QUIT_KEY:
            return RouteOutcome.QUIT
        handler = self._base_letters.get(event.letter) if event.letter else self._base_kinds.get(event.kind)
        if handler is None:
            return RouteOutcome.IGNORED
        outcome = handler()
        return outcome if outcome is not None else RouteOutcome.HANDLED


__all__ = [
    "InputRouter",
    "KeyEvent",
    "KeyKind",
    "ModalContext",
    "RouteOutcome",
    "SEARCH_PASSTHROUGH_KINDS",
]
