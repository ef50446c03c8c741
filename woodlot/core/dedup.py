"""
Deduplication utilities.

Primary goal: make re-importing the same onX export a no-op. onX assigns new
ids on every export, so identity is content-addressed: a signature built from
the geometry type, a few rounded coordinates and the lower-cased name.

Signatures intentionally use only line endpoints / the first polygon vertex.
Re-exports of the same trail often differ in vertex density, so comparing full
paths would miss duplicates. The cost is that two distinct same-named trails
with the same endpoints collapse into one.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List

from woodlot.core.normalization import format_js_number
from woodlot.io.project_files import ProjectFiles
from woodlot.model import Feature, MappedFeature


logger = logging.getLogger(__name__)


def _coord(values: Iterable[Any]) -> str:
    return ",".join(format_js_number(v) for v in values)


def _name_key(feature: Feature) -> str:
    props = feature.get("properties") or {}
    return str(props.get("name") or "").lower()


def build_signature(feature: Feature) -> str:
    """
    Deterministic dedup key for a GeoJSON feature.

    Formats:
      pt:<x>,<y>:<name>
      line:<first>-<last>:<name>   (line:<name> with fewer than two vertices)
      poly:<first vertex of outer ring>:<name>
      geom:<type>:<name>           (anything else)

    Coordinates are rounded to 6 decimals (~0.1 m).
    """
    name = _name_key(feature)
    geometry = feature.get("geometry") or {}
    kind = geometry.get("type")

    if kind == "Point":
        x, y = list(geometry["coordinates"])[:2]
        return f"pt:{_coord((x, y))}:{name}"

    if kind == "LineString":
        coords: List[Any] = list(geometry.get("coordinates") or [])
        if len(coords) < 2:
            return f"line:{name}"
        return f"line:{_coord(coords[0])}-{_coord(coords[-1])}:{name}"

    if kind == "Polygon":
        rings = geometry.get("coordinates") or []
        ring = rings[0] if rings else []
        first = ring[0] if ring else []
        return f"poly:{_coord(first)}:{name}"

    return f"geom:{kind}:{name}"


def signature_of_existing(feature: Any) -> str:
    """
    Signature for a feature read back from a layer document.

    Stored documents may have been hand-edited, so a feature whose geometry does
    not have the expected shape gets the `geom:` fallback instead of raising.
    """
    if not isinstance(feature, dict):
        return "geom:None:"
    try:
        return build_signature(feature)
    except (TypeError, ValueError, KeyError, IndexError, AttributeError, OverflowError):
        geometry = feature.get("geometry")
        kind = geometry.get("type") if isinstance(geometry, dict) else None
        try:
            name = _name_key(feature)
        except AttributeError:
            name = ""
        return f"geom:{kind}:{name}"


def is_duplicate(
    files: ProjectFiles,
    project_dir: str,
    layer_file: str,
    mapped: MappedFeature,
) -> bool:
    """
    True if `data/<layer_file>` already holds a feature with the same signature.

    Any failure reading or decoding the document counts as "no duplicates".
    """
    try:
        text = files.read_text_file(project_dir, f"data/{layer_file}")
        fc = json.loads(text or '{"type":"FeatureCollection","features":[]}')
    except Exception as e:
        logger.debug("Dedup read of data/%s failed, assuming empty: %s", layer_file, e)
        return False

    existing = fc.get("features") if isinstance(fc, dict) else None
    for f in existing or []:
        if signature_of_existing(f) == mapped.signature:
            return True
    return False
