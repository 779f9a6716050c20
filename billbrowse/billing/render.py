"""Rich renderables for customers, raw record fields, and plan summaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from billbrowse.billing.credits import CreditSystem, get_customer_credits
from billbrowse.billing.records import Customer, OverallSummary, PlanGroup, parse_timestamp

DETAIL_STYLES = ("default", "compact")


def _fmt_date(value: Any) -> str:
    dt = parse_timestamp(value)
    return dt.strftime("%Y-%m-%d %H:%M") if dt else "N/A"


def _fmt_money(value: Any) -> str:
    return f"${value}" if value else "N/A"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    formatter: Optional[Callable[[Any], str]] = None
    important: bool = False


DEFAULT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("id", "ID", important=True),
    FieldSpec("user_id", "User ID", important=True),
    FieldSpec("org_id", "Organization ID"),
    FieldSpec("name", "Name", important=True),
    FieldSpec("email", "Email", important=True),
    FieldSpec("created_at", "Created", _fmt_date),
    FieldSpec("updated_at", "Updated", _fmt_date),
    FieldSpec("spend_limit", "Spend Limit", _fmt_money),
    FieldSpec("max_spend_limit", "Max Spend", _fmt_money),
    FieldSpec("credit", "Credits", lambda v: f"${v}" if v else "$0"),
)

_MAX_VALUE_LEN = 50


def format_value(value: Any, formatter: Optional[Callable[[Any], str]] = None) -> str:
    if formatter is not None:
        return formatter(value)
    if value is None:
        return "N/A"
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, (dict, list)):
        return f"<{type(value).__name__}: {len(value)} items>"
    text = str(value)
    if len(text) > _MAX_VALUE_LEN:
        return text[: _MAX_VALUE_LEN - 3] + "..."
    return text


def record_field_table(
    data: Mapping[str, Any],
    *,
    title: str = "Record",
    fields: Sequence[FieldSpec] = DEFAULT_FIELDS,
    max_items: Optional[int] = None,
) -> RenderableType:
    """
    Two-column field/value table. Important fields come first.

    With `max_items`, the table is truncated and a "more fields" note added.
    """
    if not isinstance(data, Mapping) or not data:
        return Text("No data available", style="dim")
    by_key: Dict[str, FieldSpec] = {f.key: f for f in fields}
    entries = list(data.items())
    important = [(k, v) for k, v in entries if k in by_key and by_key[k].important]
    others = [(k, v) for k, v in entries if not (k in by_key and by_key[k].important)]
    ordered = important + others
    shown = ordered if max_items is None else ordered[:max_items]

    tbl = Table(title=title, show_header=True, header_style="bold cyan", box=None, title_justify="left")
    tbl.add_column("Field", style="yellow", no_wrap=True)
    tbl.add_column("Value", style="white")
    for key, value in shown:
        spec = by_key.get(key)
        label = spec.label if spec else key
        style = "bold cyan" if spec and spec.important else "dim"
        tbl.add_row(label, Text(format_value(value, spec.formatter if spec else None), style=style))
    hidden = len(ordered) - len(shown)
    if hidden > 0:
        return Group(tbl, Text(f"... and {hidden} more fields", style="dim"))
    return tbl


def customer_details(
    customer: Customer,
    *,
    plan_price: float,
    credit_system: CreditSystem,
    style: str = "default",
) -> RenderableType:
    credits = get_customer_credits(customer, credit_system)
    if style == "compact":
        left = Text.assemble((customer.display_name, "bold blue"), "\n", (customer.id, "dim"))
        right = Text.assemble(
            f"{customer.plan_name} - ",
            (f"${plan_price:.2f}/mo", "green"),
            f"\n{credits.primary.config.display_name}: ",
            (credits.primary.formatted, "yellow"),
        )
        grid = Table.grid(expand=True)
        grid.add_column()
        grid.add_column(justify="right")
        grid.add_row(left, right)
        return Panel(grid, border_style="blue")

    info = Table.grid(padding=(0, 2))
    info.add_column(style="yellow", no_wrap=True)
    info.add_column()
    info.add_column(style="yellow", no_wrap=True)
    info.add_column()
    created = customer.created_at.strftime("%Y-%m-%d") if customer.created_at else "Unknown"
    right_rows: List[Tuple[str, str]] = [
        ("Stripe ID:", "✓ Connected" if customer.stripe_id else "✗ Not Connected"),
        ("Plan:", customer.plan_name),
        ("Plan Price:", f"${plan_price:.2f}/month"),
        (f"{credits.primary.config.display_name}:", credits.primary.formatted),
    ]
    right_rows.extend((f"{c.config.display_name}:", c.formatted) for c in credits.secondary)
    left_rows: List[Tuple[str, str]] = [
        ("ID:", customer.id),
        ("Name:", customer.name or "N/A"),
        ("Email:", customer.email or "N/A"),
        ("Environment:", customer.env or "Unknown"),
        ("Created:", created),
    ]
    for i in range(max(len(left_rows), len(right_rows))):
        lk, lv = left_rows[i] if i < len(left_rows) else ("", "")
        rk, rv = right_rows[i] if i < len(right_rows) else ("", "")
        info.add_row(lk, lv, rk, rv)

    parts: List[RenderableType] = [info]
    plan = customer.active_plan
    if plan:
        lines = [f"• Status: {plan.get('status')}", f"• Plan ID: {plan.get('id')}"]
        subscribed = parse_timestamp(plan.get("created_at"))
        if subscribed:
            lines.append(f"• Subscribed: {subscribed:%Y-%m-%d}")
        parts.append(Text("\nPlan Details:\n" + "\n".join(lines), style="dim"))
    parts.append(Text(f"\nTotal Monthly Value: ${plan_price + credits.total:.2f}", style="green"))
    return Panel(Group(*parts), title="Customer Details", title_align="left", border_style="cyan")


def plans_table(groups: Sequence[PlanGroup], *, now: Optional[datetime] = None) -> Table:
    total = sum(g.customer_count for g in groups) or 1
    tbl = Table(title="Plans", header_style="bold cyan")
    tbl.add_column("Plan", style="bold")
    tbl.add_column("Customers", justify="right")
    tbl.add_column("Share", justify="right")
    tbl.add_column("Price", justify="right", style="green")
    tbl.add_column("Subscriptions", justify="right", style="green")
    tbl.add_column("Credits", justify="right", style="yellow")
    tbl.add_column("Avg / Customer", justify="right")
    tbl.add_column("Stripe", justify="right")
    tbl.add_column("Recent", justify="right", style="blue")
    for g in groups:
        tbl.add_row(
            g.name,
            str(g.customer_count),
            f"{g.customer_count / total * 100:.1f}%",
            f"${g.plan_price:.2f}",
            f"${g.total_subscription_revenue:.2f}",
            f"${g.total_credits:.2f}",
            f"${g.avg_revenue_per_customer:.2f}",
            str(g.stripe_connected),
            str(g.recent_signups(now)),
        )
    return tbl


def summary_table(summary: OverallSummary) -> Table:
    tbl = Table.grid(padding=(0, 2))
    tbl.add_column(style="bold")
    tbl.add_column(justify="right")
    tbl.add_row("Customers", str(summary.total_customers))
    tbl.add_row("Plans", str(summary.plan_count))
    tbl.add_row("Subscription revenue", f"${summary.total_subscription_revenue:.2f}/month")
    tbl.add_row("Credits used", f"${summary.total_credits:.2f}")
    tbl.add_row("Total revenue", f"${summary.total_revenue:.2f}")
    return tbl


__all__ = [
    "DEFAULT_FIELDS",
    "DETAIL_STYLES",
    "FieldSpec",
    "customer_details",
    "format_value",
    "plans_table",
    "record_field_table",
    "summary_table",
]
