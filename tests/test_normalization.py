"""
Tests for normalization utilities.

Tests cover:
- Entity decoding (single, double-escaped)
- ISO timestamp parsing with 'Z' and naive values
- JavaScript-compatible number rendering used by signatures
- First-number extraction from free text
"""

from datetime import timezone

import pytest

from woodlot.core.normalization import (
    first_number,
    format_js_number,
    normalize_entities,
    normalize_name,
    parse_iso8601,
)


def test_single_escaped_entities():
    assert normalize_entities("Joe&apos;s Camp &amp; Trail") == "Joe's Camp & Trail"


def test_double_escaped_entities():
    assert normalize_entities("&amp;apos;quoted&amp;apos;") == "'quoted'"


def test_normalize_name_strips_and_handles_none():
    assert normalize_name("  Stand: climber \n") == "Stand: climber"
    assert normalize_name(None) == ""


def test_parse_iso8601_z_suffix_is_utc():
    dt = parse_iso8601("2024-11-03T07:15:00Z")
    assert dt is not None
    assert dt.utcoffset().total_seconds() == 0
    assert (dt.hour, dt.minute) == (7, 15)


def test_parse_iso8601_naive_is_taken_as_utc():
    dt = parse_iso8601("2025-01-01T12:00:00")
    assert dt.tzinfo == timezone.utc


@pytest.mark.parametrize("value", [None, "", "yesterday", "2024-13-45T00:00:00Z"])
def test_parse_iso8601_invalid_returns_none(value):
    assert parse_iso8601(value) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        (45.0, "45"),
        (45.5, "45.5"),
        (-120.1234567, "-120.123457"),
        (-0.0, "0"),
        (0.0000001, "0"),
        (1e-06, "0.000001"),
        (0.00012, "0.00012"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
        (float("nan"), "NaN"),
    ],
)
def test_format_js_number(value, expected):
    assert format_js_number(value) == expected


def test_first_number_keeps_integers_integral():
    assert first_number("8in") == 8
    assert isinstance(first_number("8in"), int)
    assert first_number("acorn 4/5") == 4
    assert first_number("about 10.5 inches") == 10.5
    assert first_number("no digits") is None
    assert first_number("") is None
