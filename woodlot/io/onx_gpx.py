"""
OnX Backcountry GPX adapter.

Reads an OnX-exported GPX file into a list of ParsedFeature records.

Notes:
- <desc> is kept verbatim; it becomes the feature's notes.
- OnX GPX export structure can vary (tracks vs routes), so we read <trk> and <rte>.
- Waypoint <time> is carried as `props["time"]`; the classifier uses it for hunts.
"""

from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from woodlot.core.errors import GpxParseError
from woodlot.core.normalization import normalize_name
from woodlot.model import ParsedFeature


_WPT_TEXT_FIELDS = ("name", "desc", "cmt", "sym", "type", "time")
_TRACK_TEXT_FIELDS = ("name", "desc", "cmt", "type")


def _local(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _child_text(elem: ET.Element, local_name: str) -> Optional[str]:
    for c in elem:
        if _local(c.tag) == local_name:
            return c.text if c.text is not None else ""
    return None


def _point_coords(pt: ET.Element) -> Optional[List[float]]:
    try:
        lat = float(pt.attrib.get("lat"))
        lon = float(pt.attrib.get("lon"))
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    coord = [lon, lat]
    ele = _child_text(pt, "ele")
    if ele:
        try:
            alt = float(ele)
        except ValueError:
            alt = None
        if alt is not None and math.isfinite(alt):
            coord.append(alt)
    return coord


def _text_props(elem: ET.Element, fields: Tuple[str, ...]) -> Dict[str, Any]:
    props: Dict[str, Any] = {}
    for f in fields:
        value = _child_text(elem, f)
        if value is not None:
            props[f] = value.strip() if f == "time" else value
    return props


def _track_like(elem: ET.Element, point_tags: Tuple[str, ...]) -> Optional[Tuple[List[List[float]], List[str]]]:
    coords: List[List[float]] = []
    times: List[str] = []
    for pt in elem.iter():
        if _local(pt.tag) not in point_tags:
            continue
        c = _point_coords(pt)
        if c is None:
            continue
        coords.append(c)
        t = _child_text(pt, "time")
        if t:
            times.append(t.strip())
    if not coords:
        return None
    return coords, times


def _read_path(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def parse_onx_gpx(
    path: str | Path,
    *,
    read_text: Optional[Callable[[str], str]] = None,
    trace: Any = None,
) -> List[ParsedFeature]:
    """
    Read an OnX GPX export.

    Args:
      path: path to GPX
      read_text: collaborator returning the raw file text (defaults to local read)
      trace: optional TraceWriter-like object with `emit(event: dict)` method

    Raises:
      GpxParseError: If the file is empty or not a valid GPX document
    """
    reader = read_text or _read_path
    xml = reader(str(path)).lstrip("\ufeff")

    if not xml.strip():
        raise GpxParseError(f"GPX file is empty: {path}")

    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise GpxParseError(f"Invalid GPX file (XML parse error): {e}\nFile: {path}") from e

    if _local(root.tag).lower() != "gpx":
        raise GpxParseError(
            f"File does not appear to be a GPX file (root element: {root.tag})\nFile: {path}"
        )

    out: List[ParsedFeature] = []

    def emit(props: Dict[str, Any], geometry: Dict[str, Any], kind: str, idx: int) -> None:
        name = normalize_name(props.get("name", ""))
        out.append(
            ParsedFeature(name=name, desc=props.get("desc"), geometry=geometry, props=props)
        )
        if trace is not None:
            trace.emit(
                {
                    "event": "input.gpx.feature",
                    "kind": kind,
                    "idx": idx,
                    "geom": geometry["type"],
                    "name": name,
                }
            )

    # Waypoints
    for idx, wpt in enumerate(c for c in root if _local(c.tag) == "wpt"):
        coord = _point_coords(wpt)
        if coord is None:
            continue
        emit(_text_props(wpt, _WPT_TEXT_FIELDS), {"type": "Point", "coordinates": coord}, "wpt", idx)

    # Tracks and routes
    for kind, point_tags in (("trk", ("trkpt",)), ("rte", ("rtept",))):
        for idx, elem in enumerate(c for c in root if _local(c.tag) == kind):
            found = _track_like(elem, point_tags)
            if found is None:
                continue
            coords, times = found
            props = _text_props(elem, _TRACK_TEXT_FIELDS)
            if times:
                props["time"] = times[0]
                if len(times) == len(coords):
                    props["coordinate_times"] = times
            emit(props, {"type": "LineString", "coordinates": coords}, kind, idx)

    return out
