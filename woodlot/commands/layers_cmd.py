"""Layer catalog and self-test commands for the woodlot CLI."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from woodlot.core.classifier import KEYWORD_RULES
from woodlot.core.layers import default_catalog
from woodlot.core.selftest import run_onx_mapping_tests

console = Console()


def _keywords_by_layer() -> dict:
    out: dict = {}
    for rule in KEYWORD_RULES:
        targets = {t for _g, t in rule.by_geometry}
        if rule.default:
            targets.add(rule.default)
        for t in targets:
            out.setdefault(t, []).extend(rule.keywords)
    return out


def layers() -> None:
    """List the map layers imports can write to."""
    keywords = _keywords_by_layer()
    table = Table(title="Woodlot layers", show_header=True, header_style="bold cyan")
    table.add_column("Id")
    table.add_column("Label")
    table.add_column("Geometry")
    table.add_column("File", style="dim")
    table.add_column("onX prefixes")
    for layer in default_catalog().values():
        table.add_row(
            layer.id,
            layer.label,
            layer.geometry,
            layer.document_path,
            ", ".join(f"{k}:" for k in keywords.get(layer.id, [])),
        )
    console.print(table)


def selftest() -> None:
    """Run the built-in classification checks."""
    result = run_onx_mapping_tests()
    for f in result.failed:
        console.print(f"[red]✗[/] {f.name}: {f.reason}")
    if result.ok:
        console.print(f"[bold green]✔[/] {result.passed} classification checks passed")
        return
    console.print(f"[bold red]{len(result.failed)} failed[/], {result.passed} passed")
    raise typer.Exit(1)
