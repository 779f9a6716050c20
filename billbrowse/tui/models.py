"""Widget ids and static text for the browser TUI."""

from billbrowse.core.router import ModalContext


class WidgetIds:
    """Widget ID constants for stable test API."""

    STATUS = "status"
    CUSTOMER_TABLE = "customer_table"
    DETAILS_PANEL = "details_panel"
    SEARCH_BOX = "search_box"
    FOOTER = "footer"

    # Overlays
    DETAIL_OVERLAY = "detail_overlay"
    HELP_OVERLAY = "help_overlay"
    RESULT_OVERLAY = "result_overlay"
    MENU_OVERLAY = "menu_overlay"
    BATCH_OVERLAY = "batch_overlay"


# Overlay widget shown for each modal context (NONE and SEARCH_INPUT have none).
OVERLAY_FOR_CONTEXT = {
    ModalContext.FULL_SCREEN_DETAIL: WidgetIds.DETAIL_OVERLAY,
    ModalContext.HELP: WidgetIds.HELP_OVERLAY,
    ModalContext.RESULT_DIALOG: WidgetIds.RESULT_OVERLAY,
    ModalContext.ACTION_MENU: WidgetIds.MENU_OVERLAY,
    ModalContext.BATCH_PROGRESS: WidgetIds.BATCH_OVERLAY,
}

CONTEXT_SHORTCUTS = {
    ModalContext.NONE: [
        ("↑↓", "Navigate"),
        ("←→/n/p", "Page"),
        ("Enter", "Actions"),
        ("f", "Search"),
        ("c", "Clear search"),
        ("m", "Multi-select"),
        ("s/a", "Select / all"),
        ("l", "Details"),
        ("i", "Hide zero"),
        ("h", "Help"),
        ("q", "Quit"),
    ],
    ModalContext.SEARCH_INPUT: [
        ("type", "Filter"),
        ("↑↓", "Navigate"),
        ("Enter", "Actions"),
        ("Esc", "Cancel search"),
    ],
    ModalContext.ACTION_MENU: [
        ("↑↓", "Choose"),
        ("Enter", "Run"),
        ("Esc", "Close"),
    ],
    ModalContext.FULL_SCREEN_DETAIL: [("Esc", "Close")],
    ModalContext.RESULT_DIALOG: [("Esc", "Close")],
    ModalContext.HELP: [("Esc/h", "Close")],
    ModalContext.BATCH_PROGRESS: [("Esc", "Close (running handlers continue)")],
}

HELP_TEXT = """\
[bold]Navigation[/]
  ↑ ↓          move the cursor
  ← → / n p    previous / next page
  Enter        open the action menu for the highlighted customer

[bold]Search & filters[/]
  f            start a fuzzy search (Esc cancels)
  c            clear the search
  i            hide / show customers with zero value

[bold]Selection[/]
  m            toggle multi-select mode
  s            select / unselect the highlighted customer
  a            select / unselect every customer on this page
  Enter        run an action on the whole selection

[bold]Views[/]
  l            full-screen customer details
  h            this help
  q            quit
"""


__all__ = [
    "CONTEXT_SHORTCUTS",
    "HELP_TEXT",
    "OVERLAY_FOR_CONTEXT",
    "WidgetIds",
]
