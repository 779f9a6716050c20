#!/usr/bin/env python3
"""
billbrowse - interactive billing customer browser
Main CLI entry point
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from billbrowse.commands import browse_cmd, config_cmd, plans_cmd

app = typer.Typer(
    name="billbrowse",
    help="Browse billing customers, run actions on them one at a time or in batches",
    no_args_is_help=True,
    add_completion=True,
)

app.command(name="browse", help="Launch the full-screen customer browser")(browse_cmd.browse)
app.command(name="plans", help="Show customers grouped by plan")(plans_cmd.plans)

app.add_typer(config_cmd.app, name="config", help="Manage configuration settings")


def configure_logging(log_file: Optional[Path], level: str) -> None:
    """Send log records to `log_file`; the terminal belongs to the TUI."""
    if log_file is None:
        return
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level '{level}'", param_hint="--log-level")
    logging.basicConfig(
        filename=str(log_file),
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def callback(
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Write logs to this file"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level for --log-file"),
) -> None:
    """
    billbrowse - interactive billing customer browser

    Commands:
      browse   - Page, search and select customers; run configured actions
      plans    - Per-plan customer, revenue and credit overview
      config   - Show, export or validate configuration
    """
    configure_logging(log_file, log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
