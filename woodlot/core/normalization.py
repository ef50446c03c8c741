"""
Shared normalization utilities.

These exist to make parsing and signatures robust across:
- XML entities and HTML entities (including double-escaped sequences like '&amp;apos;')
- ISO-8601 timestamps with a trailing 'Z'
- Floating-point noise in coordinates written by another runtime
"""

from __future__ import annotations

import html
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional, Union


_NUMBER_RE = re.compile(r"(\d+(\.\d+)?)")


def normalize_entities(text: Optional[str]) -> str:
    """
    Decode XML/HTML entities in a stable way.

    We intentionally run unescape more than once because onX exports contain
    inputs like '&amp;apos;' (double-escaped apostrophe).
    """
    if text is None:
        return ""

    s = str(text)
    for _ in range(2):
        s2 = html.unescape(s)
        if s2 == s:
            break
        s = s2
    return s


def normalize_name(text: Optional[str]) -> str:
    """Normalize a display name (decode entities, strip surrounding whitespace)."""
    return normalize_entities(text).strip()


def parse_iso8601(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (GPX <time>, import timestamps).

    Naive values are taken as UTC. Returns None if parsing fails.
    """
    if not value:
        return None
    s = str(value).strip()
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_js_number(value: Any, digits: int = 6) -> str:
    """
    Round to `digits` decimals and render the way a JavaScript number prints.

    Signatures are compared against documents that may have been written by the
    desktop app, so 45.0 must render as "45" and -0.0 as "0".
    """
    f = float(value)
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "Infinity" if f > 0 else "-Infinity"
    r = round(f, digits)
    if r == int(r):
        return str(int(r))
    # Fixed point: repr() would switch to exponent form below 1e-4.
    return f"{r:.{digits}f}".rstrip("0").rstrip(".")


def first_number(text: str) -> Optional[Union[int, float]]:
    """
    Extract the first numeric token from free text ("8in" -> 8, "4/5" -> 4).

    Integers stay integers so they serialize as `8`, not `8.0`.
    """
    m = _NUMBER_RE.search(text or "")
    if not m:
        return None
    if m.group(2):
        return float(m.group(1))
    return int(m.group(1))
