"""Config command for the woodlot CLI."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from woodlot.core.config import ImportConfig, load_config
from woodlot.core.errors import ConfigError

app = typer.Typer(no_args_is_help=True)
console = Console()


def _on_off(value: bool) -> str:
    return "Enabled" if value else "Disabled"


@app.command("show")
def show(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file to read"),
) -> None:
    """Show current configuration."""
    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    summary = cfg.get_config_summary()

    console.print("\n[bold]Current Configuration:[/]")
    console.print(f"  Source: [cyan]{summary['source'] or '(defaults)'}[/]")
    console.print(f"  Active user: [cyan]{summary['active_user'] or '(not set)'}[/]")
    console.print(f"  Tracks target: [cyan]{summary['tracks_target']}[/]")
    console.print(f"  Time zone: [cyan]{summary['time_zone']}[/]")
    console.print(f"  Heuristics: [cyan]{_on_off(summary['use_heuristics'])}[/]")
    console.print(f"  Only points: [cyan]{_on_off(summary['only_points'])}[/]")
    console.print()


@app.command("export")
def export(
    output_path: Path = typer.Option(Path("woodlot_config.yaml"), "--output", "-o", help="Where to write the template"),
) -> None:
    """Export configuration template."""
    ImportConfig().export_template(output_path)
    console.print(f"[bold green]✔[/] Configuration template exported to [underline]{output_path}[/]")
    console.print("[dim]Edit this file to set your import defaults[/]")


@app.command("validate")
def validate(config_file: Path = typer.Argument(..., help="Config file to validate")) -> None:
    """Validate a configuration file."""
    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    console.print(f"[bold green]✔[/] Configuration file is valid: [underline]{config_file}[/]")
    summary = cfg.get_config_summary()
    console.print(f"  Tracks target: {summary['tracks_target']}")
    console.print(f"  Time zone: {summary['time_zone']}")
