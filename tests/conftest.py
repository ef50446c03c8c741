from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from woodlot.io.project_files import LocalProjectFiles
from woodlot.model import ImportOptions


class _Trace:
    def __init__(self) -> None:
        self.events: List[dict] = []

    def emit(self, event: dict) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [e.get("event") for e in self.events]


class NonAtomicFiles(LocalProjectFiles):
    """Local files without the optional atomic write."""

    atomic_write_text_file = None  # type: ignore[assignment]


class FailingAtomicFiles(LocalProjectFiles):
    def __init__(self) -> None:
        self.atomic_calls = 0

    def atomic_write_text_file(self, project_dir: str, relative_path: str, text: str) -> bool:
        self.atomic_calls += 1
        raise OSError("rename not permitted")


@pytest.fixture
def trace() -> _Trace:
    return _Trace()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    p = tmp_path / "project"
    (p / "data").mkdir(parents=True)
    return p


@pytest.fixture
def make_options(project: Path):
    def _make(input_files=(), **overrides: Any) -> ImportOptions:
        values: Dict[str, Any] = dict(
            project_dir=str(project),
            input_files=[str(f) for f in input_files],
            tracks_target="trails",
            time_zone="America/New_York",
            use_heuristics=True,
            active_user="Sam",
            import_timestamp="2025-01-01T12:00:00.000Z",
            only_points=False,
        )
        values.update(overrides)
        return ImportOptions(**values)

    return _make


def read_layer(project: Path, layer_file: str) -> dict:
    return json.loads((project / "data" / layer_file).read_text(encoding="utf-8"))


KML_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
{body}
  </Document>
</kml>
"""


def kml(body: str) -> str:
    return KML_TEMPLATE.format(body=body)


def point_placemark(name: str, lon: float, lat: float, desc: str = "") -> str:
    d = f"<description>{desc}</description>" if desc else ""
    return (
        f"<Placemark><name>{name}</name>{d}"
        f"<Point><coordinates>{lon},{lat},0</coordinates></Point></Placemark>"
    )
