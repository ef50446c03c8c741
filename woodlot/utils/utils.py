"""
Utility functions for the woodlot CLI: logging setup and file helpers.
"""

import logging
import shlex
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False, *, console: Optional[Console] = None) -> None:
    """
    Route the `woodlot` loggers through rich.

    WARNING and above by default; DEBUG with verbose. Safe to call more than
    once per process (the CLI test runner does): the handler is replaced,
    not stacked.
    """
    logger = logging.getLogger("woodlot")
    for h in list(logger.handlers):
        if isinstance(h, RichHandler):
            logger.removeHandler(h)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def format_file_size(size_bytes: int) -> str:
    """
    Format a file size in bytes to a human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "2.4 MB", "156 KB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def split_paths(text: str) -> List[str]:
    """
    Split a prompted list of paths.

    Accepts whitespace or comma separated paths; quoted paths may contain spaces.
    """
    out: List[str] = []
    for token in shlex.split(text or ""):
        out.extend(p for p in token.split(",") if p.strip())
    return [p.strip() for p in out]
