"""Custom Textual widgets for the browser TUI."""

from typing import Optional

from rich.console import RenderableType
from rich.markup import escape
from textual.app import ComposeResult
from textual.containers import Container, VerticalScroll
from textual.widgets import DataTable, Static

from billbrowse.core.router import KeyEvent, KeyKind, ModalContext
from billbrowse.tui.models import CONTEXT_SHORTCUTS


class CustomerTable(DataTable):
    """Row-cursor table driven entirely by the browser state; never takes focus."""

    can_focus = False

    def __init__(self, **kwargs) -> None:
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)


class Overlay(Container):
    """Popup overlay inside the main screen, shown while it carries the "open" class."""

    def __init__(self, *, id: str, title: str = "") -> None:
        super().__init__(id=id, classes="overlay")
        self.border_title = title

    def compose(self) -> ComposeResult:
        with VerticalScroll(classes="overlay_dialog"):
            yield Static("", id=f"{self.id}_body")

    @property
    def is_open(self) -> bool:
        return self.has_class("open")

    def show(self, content: RenderableType) -> None:
        self.query_one(f"#{self.id}_body", Static).update(content)
        if not self.is_open:
            self.add_class("open")

    def close(self) -> None:
        self.remove_class("open")


class SearchBox(Static):
    """Display-only search line; consumes the keys the router leaves for text entry."""

    def __init__(self, **kwargs) -> None:
        super().__init__("", **kwargs)
        self.query_text = ""
        self.active = False

    @staticmethod
    def feed(event: KeyEvent, query: str) -> Optional[str]:
        """
        Apply a swallowed key to `query`.

        Returns:
            The edited query, or None if the key does not edit text
        """
        if event.kind is KeyKind.BACKSPACE:
            return query[:-1]
        if event.kind is KeyKind.CHARACTER:
            return query + event.char
        return None

    def set_state(self, *, query: str, active: bool) -> None:
        self.query_text = query
        self.active = active
        self.set_class(active or bool(query), "open")
        self.refresh()

    def render(self) -> str:
        cursor = "▏" if self.active else ""
        hint = "" if self.active else "  [dim](c to clear)[/]"
        return f"[bold]🔍 Search:[/] {escape(self.query_text)}{cursor}{hint}"


class ContextFooter(Static):
    """Dynamic footer showing the shortcuts of the active modal context."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.context: ModalContext = ModalContext.NONE

    def set_context(self, context: ModalContext) -> None:
        if context is not self.context:
            self.context = context
            self.refresh()

    def render(self) -> str:
        shortcuts = CONTEXT_SHORTCUTS.get(self.context, [])
        return "  ".join(f"[bold]{key}[/] {desc}" for key, desc in shortcuts)


__all__ = [
    "ContextFooter",
    "CustomerTable",
    "Overlay",
    "SearchBox",
]
