"""Config command for billbrowse CLI."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from billbrowse.config import PRESETS, BrowserConfig, load_config, validate_config
from billbrowse.core.errors import BillbrowseError

app = typer.Typer()
console = Console()


@app.command("show")
def show(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: ./billbrowse.yaml)"),
):
    """Show the effective configuration."""
    try:
        cfg = load_config(config_file)
    except BillbrowseError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    summary = cfg.get_summary()

    console.print("\n[bold]Current Configuration:[/]")
    console.print(f"  Source: [cyan]{summary['source']}[/]")
    console.print(f"  Preset: [cyan]{summary['preset']}[/]")
    console.print(f"  Items per page: [cyan]{summary['items_per_page']}[/]")
    console.print(f"  Hide zero-value by default: [cyan]{'Yes' if summary['hide_zero_by_default'] else 'No'}[/]")
    credits = summary["credit_system"]
    if summary["secondary_credits"]:
        credits += f" (+ {', '.join(summary['secondary_credits'])})"
    console.print(f"  Credit system: [cyan]{credits}[/]")
    console.print(f"  Details view: [cyan]{summary['details']}[/]")
    console.print(f"  Dashboard URL: [cyan]{summary['dashboard_url']}[/]")
    console.print(f"  Error dismiss: [cyan]{summary['error_dismiss_seconds']}s[/]")

    console.print("\n[bold]Actions:[/]")
    for spec in cfg.actions:
        batch = " [dim](batch)[/]" if spec.get("batch_handler") else ""
        console.print(f"  • {spec['label']} [dim]({spec['id']} → {spec['handler']})[/]{batch}")
    console.print(f"\n[dim]Presets: {', '.join(PRESETS)}[/]\n")


@app.command("export")
def export(
    output_path: Path = typer.Option(Path("billbrowse.yaml"), "--output", "-o", help="Where to write the template"),
    preset: str = typer.Option("default", "--preset", help="Preset to export"),
):
    """Export configuration template."""
    try:
        cfg = BrowserConfig(preset=preset)
    except BillbrowseError as e:
        console.print(f"[bold red]❌ Error:[/] {e}")
        raise typer.Exit(1)
    cfg.export_template(output_path)
    console.print(f"[bold green]✔[/] Configuration template exported to [underline]{output_path}[/]")
    console.print("[dim]Edit this file to customize actions, credits and paging[/]")


@app.command("validate")
def validate(config_file: Path = typer.Argument(..., help="Config file to validate")):
    """Validate a configuration file, including its action handlers."""
    try:
        cfg = validate_config(config_file)
    except BillbrowseError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    console.print(f"[bold green]✔[/] Configuration file is valid: [underline]{config_file}[/]")
    console.print(f"  Preset: {cfg.preset}")
    console.print(f"  Actions: {', '.join(a['id'] for a in cfg.actions)}")
