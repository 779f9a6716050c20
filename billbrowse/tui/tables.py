"""Table operations for the browser TUI."""

from typing import TYPE_CHECKING

from billbrowse.core.browser import BrowserSnapshot
from billbrowse.tui.models import WidgetIds
from billbrowse.tui.widgets import CustomerTable

if TYPE_CHECKING:
    from billbrowse.tui.app import BrowserApp


class TableManager:
    """Keeps the customer DataTable in step with browser snapshots."""

    def __init__(self, app: "BrowserApp") -> None:
        """Initialize table manager.

        Args:
            app: The BrowserApp instance (for accessing the presenter and widgets)
        """
        self.app: "BrowserApp" = app

    @property
    def table(self) -> CustomerTable:
        return self.app.query_one(f"#{WidgetIds.CUSTOMER_TABLE}", CustomerTable)

    def setup_columns(self) -> None:
        table = self.table
        table.clear(columns=True)
        table.add_columns(*self.app.presenter.columns())

    def refresh(self, snapshot: BrowserSnapshot) -> None:
        """Rebuild the visible page and place the row cursor."""
        table = self.table
        table.clear()
        for row in snapshot.rows:
            table.add_row(*self.app.presenter.row_cells(row, multi_select=snapshot.multi_select), key=row.id)
        cursor = next((i for i, r in enumerate(snapshot.rows) if r.is_cursor), None)
        if cursor is not None:
            table.move_cursor(row=cursor, animate=False)


__all__ = ["TableManager"]
