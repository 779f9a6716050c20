"""Plans command: per-plan revenue and credit overview."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from billbrowse.billing.records import group_by_plan, load_dataset, overall_summary
from billbrowse.billing.render import plans_table, summary_table
from billbrowse.config import load_config
from billbrowse.core.errors import BillbrowseError

console = Console()


def plans(
    dataset_path: Path = typer.Argument(..., help="Customer dataset (.json, .yaml or .yml)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: ./billbrowse.yaml)"),
) -> None:
    """Show customers grouped by active plan."""
    try:
        config = load_config(config_file)
        dataset = load_dataset(dataset_path)
    except BillbrowseError as e:
        console.print(f"[bold red]❌ Error:[/] {e}")
        raise typer.Exit(1)

    groups = group_by_plan(dataset.customers, dataset.prices, config.credit_system)
    if not groups:
        console.print("[yellow]No customers in dataset[/]")
        return
    console.print(plans_table(groups))
    console.print()
    console.print(summary_table(overall_summary(groups)))
