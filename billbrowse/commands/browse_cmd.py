"""
Browse command: open the full-screen customer browser over one plan group.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from billbrowse.billing.records import (
    Customer,
    Dataset,
    customer_text,
    find_group,
    group_by_plan,
    load_dataset,
    make_value_fn,
)
from billbrowse.config import BrowserConfig, load_config
from billbrowse.core.browser import RecordBrowser
from billbrowse.core.errors import BillbrowseError, DatasetError

console = Console()

ALL_PLANS = "all"


@dataclass
class BrowseSession:
    """Everything the TUI needs for one run."""

    browser: RecordBrowser
    config: BrowserConfig
    dataset: Dataset
    title: str


def select_customers(dataset: Dataset, config: BrowserConfig, plan: Optional[str]) -> tuple[str, List[Customer]]:
    """
    Pick the customers to browse.

    Args:
        plan: Plan group name, "all", or None for the largest group

    Raises:
        DatasetError: If the dataset is empty or the plan does not exist
    """
    if not dataset.customers:
        raise DatasetError("Dataset has no customers")
    if plan and plan.strip().lower() == ALL_PLANS:
        return "All customers", list(dataset.customers)
    groups = group_by_plan(dataset.customers, dataset.prices, config.credit_system)
    if not plan:
        return groups[0].name, list(groups[0].customers)
    group = find_group(groups, plan)
    if group is None:
        available = ", ".join(g.name for g in groups)
        raise DatasetError(f"No plan named '{plan}' (available: {available})")
    return group.name, list(group.customers)


def build_session(dataset: Dataset, config: BrowserConfig, plan: Optional[str] = None) -> BrowseSession:
    title, customers = select_customers(dataset, config, plan)
    browser = RecordBrowser(
        customers,
        config.build_actions(),
        value_fn=make_value_fn(dataset.prices, config.credit_system),
        text_fn=customer_text,
        items_per_page=config.items_per_page,
        hide_zero=config.hide_zero_by_default,
        error_dismiss_seconds=config.error_dismiss_seconds,
    )
    return BrowseSession(browser=browser, config=config, dataset=dataset, title=title)


def browse(
    dataset_path: Path = typer.Argument(..., help="Customer dataset (.json, .yaml or .yml)"),
    plan: Optional[str] = typer.Option(None, "--plan", "-p", help="Plan to browse, or 'all' (default: largest plan)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: ./billbrowse.yaml)"),
) -> None:
    """Launch the interactive customer browser."""
    try:
        config = load_config(config_file)
        session = build_session(load_dataset(dataset_path), config, plan)
    except BillbrowseError as e:
        console.print(f"[bold red]❌ Error:[/] {e}")
        raise typer.Exit(1)

    try:
        from billbrowse.tui.app import run_browser
        from billbrowse.tui.presenter import CustomerPresenter
    except ImportError as e:  # pragma: no cover
        raise typer.Exit(f"Failed to import TUI dependencies: {e}")

    presenter = CustomerPresenter(session.dataset.prices, config.credit_system, config.details)
    run_browser(
        session.browser,
        presenter,
        subtitle=f"{session.title} · {len(session.browser.records)} customers",
    )
