"""Customer-specific cells and panels for the browser TUI."""

from __future__ import annotations

from typing import Any, List, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from billbrowse.billing.credits import CreditSystem, get_customer_credits
from billbrowse.billing.records import Customer, PriceLookup, plan_price
from billbrowse.billing.render import customer_details
from billbrowse.core.batch import ItemState
from billbrowse.core.browser import BatchView, MenuView, PageRow

STATE_STYLES = {
    ItemState.PENDING: ("⏳", "dim"),
    ItemState.IN_PROGRESS: ("🔄", "yellow"),
    ItemState.COMPLETED: ("✅", "green"),
    ItemState.FAILED: ("❌", "red"),
}


def _clip(text: Optional[str], width: int) -> str:
    value = text or "N/A"
    return value if len(value) <= width else value[: width - 1] + "…"


class CustomerPresenter:
    """Turns customers and browser snapshot parts into rich renderables."""

    def __init__(self, prices: PriceLookup, credit_system: CreditSystem, details_style: str = "default") -> None:
        self.prices = prices
        self.credit_system = credit_system
        self.details_style = details_style

    def columns(self) -> List[str]:
        return [
            " ",
            "ID",
            "Name",
            "Email",
            "Plan ($)",
            self.credit_system.primary.display_name,
            "Total ($)",
            "Stripe",
            "Env",
        ]

    def row_cells(self, row: PageRow, *, multi_select: bool) -> List[Any]:
        customer: Customer = row.record
        credits = get_customer_credits(customer, self.credit_system)
        marker = "▸" if row.is_cursor else " "
        if multi_select:
            marker += "●" if row.is_selected else "○"
        style = "bold" if row.is_cursor else ""
        if row.is_selected:
            style = (style + " green").strip()
        return [
            Text(marker, style="cyan"),
            Text(_clip(customer.id, 11), style=style),
            Text(_clip(customer.name, 18), style=style),
            Text(_clip(customer.email, 25), style=style),
            Text(f"{plan_price(customer.active_plan, self.prices):.2f}", justify="right"),
            Text(credits.primary.formatted, justify="right", style="yellow"),
            Text(f"{row.value:.2f}", justify="right", style="green"),
            "✓" if customer.stripe_id else "✗",
            _clip(customer.env or "unknown", 5),
        ]

    def label(self, record: Any) -> str:
        return getattr(record, "display_name", None) or str(getattr(record, "id", record))

    def details(self, record: Any, style: Optional[str] = None) -> RenderableType:
        if record is None:
            return Text("No customer selected", style="dim")
        return customer_details(
            record,
            plan_price=plan_price(record.active_plan, self.prices),
            credit_system=self.credit_system,
            style=style or self.details_style,
        )

    def menu_panel(self, menu: MenuView, *, target_label: str) -> RenderableType:
        lines: List[RenderableType] = []
        if menu.batch_count:
            lines.append(Text(f"{menu.batch_count} customers selected", style="bold yellow"))
        else:
            lines.append(Text(target_label, style="bold"))
        for index, label in enumerate(menu.labels):
            active = index == menu.index
            text = Text(("→ " if active else "  ") + label, style="bold cyan" if active else "")
            lines.append(text)
        if menu.executing:
            lines.append(Text(menu.status_message or "Running…", style="yellow"))
        elif menu.status_message:
            style = "red" if menu.status_message.startswith("Error") else "yellow"
            lines.append(Text(menu.status_message, style=style))
        return Panel(Group(*lines), title="Actions", border_style="cyan")

    def batch_panel(self, batch: BatchView) -> RenderableType:
        tbl = Table(header_style="bold yellow", expand=True)
        tbl.add_column("", width=2)
        tbl.add_column("Customer")
        tbl.add_column("Status")
        tbl.add_column("Message", style="dim")
        for row in batch.rows:
            icon, style = STATE_STYLES[row.status.state]
            name = self.label(row.record) if row.record is not None else row.id
            tbl.add_row(icon, name, Text(row.status.state.value.replace("_", " "), style=style), row.status.message or "")
        counts = batch.counts
        summary = Text.assemble(
            ("Completed: ", "bold"),
            (str(counts[ItemState.COMPLETED]), "green"),
            "  ",
            ("Failed: ", "bold"),
            (str(counts[ItemState.FAILED]), "red"),
            "  ",
            ("In progress: ", "bold"),
            (str(counts[ItemState.IN_PROGRESS]), "yellow"),
            "  ",
            ("Pending: ", "bold"),
            str(counts[ItemState.PENDING]),
        )
        parts: List[RenderableType] = [tbl, summary]
        if batch.abort_message:
            parts.append(Text(f"Batch aborted: {batch.abort_message}", style="bold red"))
        elif batch.finished:
            parts.append(Text("Batch finished", style="bold green"))
        parts.append(Text("Press Esc to close (running handlers continue)", style="dim"))
        return Panel(Group(*parts), title="Batch Progress", border_style="yellow")


__all__ = ["CustomerPresenter", "STATE_STYLES"]
