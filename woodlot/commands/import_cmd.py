"""Import command for the woodlot CLI."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from woodlot.core.config import is_valid_time_zone, load_config
from woodlot.core.errors import ConfigError, MissingActiveUserError
from woodlot.core.importer import run_onx_import_with_dialog
from woodlot.core.layers import default_catalog
from woodlot.core.report import load_report, report_summary
from woodlot.core.trace import TraceWriter, summarize_trace
from woodlot.io.project_files import LocalProjectFiles
from woodlot.model import ImportReport
from woodlot.utils.utils import configure_logging, format_file_size, split_paths

console = Console()


class TracksTargetChoice(str, Enum):
    trails = "trails"
    animal_paths = "animal_paths"


def _prompt_files(filters: List[Dict[str, Any]]) -> List[str]:
    exts = ", ".join(f".{e}" for f in filters for e in f.get("extensions", []))
    entered = typer.prompt(
        f"Export file(s) to import ({exts}; empty to cancel)",
        default="",
        show_default=False,
    )
    return split_paths(entered)


def _print_selected(paths: List[str]) -> None:
    console.print("\n[bold]Importing:[/]")
    for p in paths:
        path = Path(p)
        size = f" [dim]({format_file_size(path.stat().st_size)})[/]" if path.is_file() else " [red](not found)[/]"
        console.print(f"  • {path.name}{size}")


def print_report(report: ImportReport, rel: str) -> None:
    summary = report_summary(report)
    catalog = default_catalog()

    if summary["by_layer"]:
        table = Table(title="Imported features", show_header=True, header_style="bold cyan")
        table.add_column("Layer")
        table.add_column("Count", justify="right")
        for layer_id, count in summary["by_layer"].items():
            layer = catalog.get(layer_id)
            table.add_row(layer.label if layer else layer_id, str(count))
        console.print(table)

    console.print(f"\n[bold]Imported:[/] [green]{summary['imported']}[/]")
    console.print(f"[bold]Duplicates skipped:[/] {summary['duplicates']}")
    console.print(f"[bold]Unknown:[/] {summary['unknown']}")
    for u in report.unknown[:10]:
        console.print(f"  [yellow]?[/] {u.name or '(unnamed)'} [dim]({u.geometry_type}: {u.reason})[/]")
    if len(report.unknown) > 10:
        console.print(f"  [dim]... and {len(report.unknown) - 10} more (see report)[/]")
    if report.errors:
        console.print(f"[bold red]Errors:[/] {summary['errors']}")
        for e in report.errors:
            console.print(f"  [red]✗[/] {Path(e.file).name}: {e.error}")
    for w in report.warnings:
        console.print(f"[yellow]⚠️  {w}[/]")
    console.print(f"\n[bold green]✔[/] Report written to [underline]{rel}[/]")


def import_command(
    project_dir: Path = typer.Argument(
        ..., exists=True, file_okay=False, dir_okay=True, help="Woodlot project directory"
    ),
    files: Optional[List[Path]] = typer.Argument(
        None, help="onX .kml/.gpx exports (prompted for if omitted)"
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Active user recorded on imported features"),
    tracks_target: Optional[TracksTargetChoice] = typer.Option(
        None, "--tracks-target", help="Layer for unclassified tracks"
    ),
    time_zone: Optional[str] = typer.Option(None, "--time-zone", help="IANA zone for hunt times"),
    heuristics: Optional[bool] = typer.Option(
        None, "--heuristics/--no-heuristics", help="Classify names without an explicit prefix"
    ),
    only_points: Optional[bool] = typer.Option(
        None, "--only-points/--all-geometries", help="Import only Point features"
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (woodlot_config.yaml)"),
    trace: Optional[Path] = typer.Option(None, "--trace", help="Write a JSONL trace of the run"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Import onX Backcountry KML/GPX exports into a project's layers."""
    configure_logging(verbose)

    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)

    tz = time_zone or cfg.effective_time_zone
    if not is_valid_time_zone(tz):
        console.print(f"[bold red]❌ Unknown time zone:[/] {tz}")
        raise typer.Exit(1)

    def choose_files(filters: List[Dict[str, Any]]) -> List[str]:
        chosen = [str(f) for f in files] if files else _prompt_files(filters)
        if chosen:
            _print_selected(chosen)
        return chosen

    writer = TraceWriter(trace) if trace else None
    try:
        rel = run_onx_import_with_dialog(
            str(project_dir),
            choose_files=choose_files,
            active_user=(user or cfg.active_user or "").strip(),
            tracks_target=tracks_target.value if tracks_target else cfg.tracks_target,
            time_zone=tz,
            use_heuristics=cfg.use_heuristics if heuristics is None else heuristics,
            only_points=cfg.only_points if only_points is None else only_points,
            trace=writer,
        )
    except MissingActiveUserError:
        console.print("[bold red]❌ An active user is required.[/] Pass --user or set active_user in the config.")
        raise typer.Exit(1)
    finally:
        if writer is not None:
            writer.close()

    if rel is None:
        console.print("[yellow]Import cancelled.[/]")
        return

    report = load_report(LocalProjectFiles(), str(project_dir), rel)
    print_report(report, rel)
    if writer is not None:
        decisions = ", ".join(f"{n} {name}" for name, n in summarize_trace(writer.path).items())
        console.print(f"[dim]Trace: {writer.path} ({writer.count} events; {decisions or 'no decisions'})[/]")
