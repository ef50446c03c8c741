"""Woodlot - onX Backcountry import pipeline for land and wildlife maps."""

__version__ = "1.0.0"
__description__ = "Import onX KML/GPX exports into typed woodlot map layers"

from woodlot.cli import app, main

__all__ = ["app", "main", "__version__"]
