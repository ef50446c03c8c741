#!/usr/bin/env python3
"""
Woodlot - onX Backcountry import pipeline
Main CLI entry point
"""

from __future__ import annotations

import typer

# Import command modules
from woodlot.commands import config_cmd, import_cmd, layers_cmd

app = typer.Typer(
    name="woodlot",
    help="Import onX Backcountry exports into woodlot map layers",
    no_args_is_help=True,
    add_completion=True,
)

app.command(name="import", help="Import onX KML/GPX exports into a project")(import_cmd.import_command)
app.command(name="layers", help="List the layer catalog")(layers_cmd.layers)
app.command(name="selftest", help="Run the built-in classification checks")(layers_cmd.selftest)

# Register command groups
app.add_typer(config_cmd.app, name="config", help="Manage configuration settings")


@app.callback()
def callback() -> None:
    """
    Woodlot - onX Backcountry import pipeline

    Primary workflow:
      import PROJECT_DIR [FILES]  - Classify onX exports into typed layers

    Utilities:
      layers                      - Show layers and the onX name prefixes that target them
      selftest                    - Sanity-check classification
      config                      - Manage configuration settings
    """
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
