"""Unit tests for woodlot.utils.utils module."""

import io
import logging

from rich.console import Console
from rich.logging import RichHandler

from woodlot.utils.utils import configure_logging, format_file_size, split_paths


class TestFormatFileSize:
    """Tests for format_file_size function."""

    def test_bytes(self):
        """Small sizes shown in bytes."""
        assert format_file_size(100) == "100 B"
        assert format_file_size(0) == "0 B"

    def test_kilobytes(self):
        """KB range."""
        assert format_file_size(1024) == "1.0 KB"
        assert format_file_size(2048) == "2.0 KB"

    def test_megabytes(self):
        """MB range."""
        assert format_file_size(1024 * 1024) == "1.0 MB"
        assert format_file_size(2 * 1024 * 1024) == "2.0 MB"


class TestSplitPaths:
    """Tests for split_paths function."""

    def test_empty(self):
        assert split_paths("") == []
        assert split_paths("   ") == []

    def test_whitespace_and_commas(self):
        assert split_paths("a.kml b.gpx,c.kml") == ["a.kml", "b.gpx", "c.kml"]
        assert split_paths("a.kml, b.gpx") == ["a.kml", "b.gpx"]

    def test_quoted_paths_keep_spaces(self):
        assert split_paths('"My Exports/north ridge.kml" b.gpx') == ["My Exports/north ridge.kml", "b.gpx"]


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def _rich_handlers(self):
        return [h for h in logging.getLogger("woodlot").handlers if isinstance(h, RichHandler)]

    def test_levels(self):
        configure_logging(False)
        assert logging.getLogger("woodlot").level == logging.WARNING
        configure_logging(True)
        assert logging.getLogger("woodlot").level == logging.DEBUG

    def test_repeated_calls_do_not_stack_handlers(self):
        configure_logging()
        configure_logging()
        assert len(self._rich_handlers()) == 1

    def test_messages_reach_the_console(self):
        buf = io.StringIO()
        configure_logging(console=Console(file=buf, width=200))
        logging.getLogger("woodlot.core.importer").warning("Unsupported file: %s", "notes.txt")
        assert "Unsupported file: notes.txt" in buf.getvalue()
