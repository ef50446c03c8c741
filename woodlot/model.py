"""
Canonical in-memory data model for the onX import pipeline.

Features travel through the pipeline as plain GeoJSON mappings because that is
what ends up on disk in the per-layer documents. The dataclasses below wrap
those mappings with the extra context each stage needs:

- ParsedFeature: one placemark/track/waypoint as read from an export file
- MappedFeature: a classified feature, ready for dedup and write
- ImportOptions: knobs for a single import run
- ImportReport: accumulated outcome of a run (persisted as JSON)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


GeometryType = Literal["Point", "LineString", "Polygon"]
TracksTarget = Literal["trails", "animal_paths"]

TRACKS_TARGETS: tuple[str, ...] = ("trails", "animal_paths")

Geometry = Dict[str, Any]
Feature = Dict[str, Any]


def geometry_type(geometry: Optional[Geometry]) -> str:
    """Return the GeoJSON geometry type, or "Unknown" for missing/odd input."""
    if not isinstance(geometry, dict):
        return "Unknown"
    return str(geometry.get("type") or "Unknown")


@dataclass
class ParsedFeature:
    """
    Intermediate record produced by a format parser.

    `props` carries source-specific extras. Notable keys:
    - folder_hint: nearest enclosing KML folder name
    - time: GPX waypoint/track timestamp (ISO-8601)
    """

    name: str
    geometry: Geometry
    desc: Optional[str] = None
    props: Dict[str, Any] = field(default_factory=dict)

    @property
    def geometry_type(self) -> str:
        return geometry_type(self.geometry)


@dataclass
class MappedFeature:
    layer_id: str
    feature: Feature
    signature: str
    # Which classification tier matched (prefix, folder, name, geometry).
    tier: Optional[str] = None


@dataclass
class ImportOptions:
    project_dir: str
    input_files: List[str]
    tracks_target: str
    time_zone: str
    use_heuristics: bool
    active_user: str
    import_timestamp: str
    only_points: bool = False


@dataclass
class UnknownEntry:
    name: str
    reason: str
    geometry_type: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "reason": self.reason, "geometryType": self.geometry_type}


@dataclass
class ErrorEntry:
    file: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.file, "error": self.error}


@dataclass
class ImportReport:
    """
    Outcome of one import run.

    Serialized with the camelCase keys the desktop application reads
    (`countsByLayer`, `unknown[].geometryType`, ...).
    """

    counts_by_layer: Dict[str, int] = field(default_factory=dict)
    duplicates: int = 0
    unknown: List[UnknownEntry] = field(default_factory=list)
    errors: List[ErrorEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return sum(self.counts_by_layer.values())

    def add_imported(self, layer_id: str) -> None:
        self.counts_by_layer[layer_id] = self.counts_by_layer.get(layer_id, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "countsByLayer": dict(self.counts_by_layer),
            "duplicates": self.duplicates,
            "unknown": [u.to_dict() for u in self.unknown],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportReport":
        return cls(
            counts_by_layer={str(k): int(v) for k, v in (data.get("countsByLayer") or {}).items()},
            duplicates=int(data.get("duplicates") or 0),
            unknown=[
                UnknownEntry(
                    name=str(u.get("name", "")),
                    reason=str(u.get("reason", "")),
                    geometry_type=str(u.get("geometryType", "Unknown")),
                )
                for u in data.get("unknown") or []
            ],
            errors=[
                ErrorEntry(file=str(e.get("file", "")), error=str(e.get("error", "")))
                for e in data.get("errors") or []
            ],
            warnings=[str(w) for w in data.get("warnings") or []],
        )
