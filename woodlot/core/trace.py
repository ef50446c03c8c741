"""
Machine-parseable tracing for import runs.

Trace files are JSON Lines (one JSON object per line), one event per parsed
feature and per pipeline decision (skip, unknown, duplicate, write, error).
Every event carries a `seq` number and a `ts` timestamp; `seq` lines two runs
over the same export up for diffing.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

# Events that record what happened to one feature, in report order.
DECISION_EVENTS = ("import.write", "import.duplicate", "import.unknown", "import.skip", "import.error")


def _default(o: Any) -> Any:
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    return str(o)


class TraceWriter:
    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self._path.open("w", encoding="utf-8")
        self._count = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def count(self) -> int:
        return self._count

    def emit(self, event: Dict[str, Any]) -> None:
        event = {"seq": self._count, **event}
        event.setdefault("ts", datetime.now(timezone.utc).isoformat())
        self._fh.write(json.dumps(event, ensure_ascii=False, default=_default) + "\n")
        self._fh.flush()
        self._count += 1

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def __enter__(self) -> "TraceWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def read_trace(path: str | Path, event: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Iterate a trace file's events, optionally only those named `event`."""
    with Path(path).open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            ev = json.loads(line)
            if event is None or ev.get("event") == event:
                yield ev


def summarize_trace(path: str | Path) -> Dict[str, int]:
    """
    Per-feature decision counts recorded in a trace, keyed by the short
    decision name ("write", "duplicate", ...). Decisions that never occurred
    are left out.
    """
    seen = Counter(ev.get("event") for ev in read_trace(path))
    return {name.split(".", 1)[1]: seen[name] for name in DECISION_EVENTS if seen[name]}
