"""
OnX Backcountry KML adapter.

Reads an OnX-exported KML file into a list of ParsedFeature records.

Important observations:
- OnX KML structure varies between app versions. Some exports are clean
  KML 2.2 documents, some drop the namespace, some are not well-formed XML
  at all (unescaped ampersands in names).
- Metadata lives in <ExtendedData> fields like name, notes, id, icon, color.
- Folder names, when present, are a useful classification hint, so we index
  every placemark name to its nearest enclosing <Folder> name.

Extraction cascades so a file with a recoverable name+coordinate pair never
hard-fails:
1. XML -> GeoJSON-like transform over every <Placemark>
2. transform found nothing -> regex scan for Point placemarks
3. XML did not parse -> the same regex scan on the raw text
"""

from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from woodlot.core.errors import KmlParseError
from woodlot.core.normalization import normalize_name
from woodlot.model import Geometry, ParsedFeature


_GEOMETRY_TAGS = ("Point", "LineString", "Polygon", "MultiGeometry")

_PLACEMARK_POINT_RE = re.compile(
    r"<Placemark[\s\S]*?<name>([\s\S]*?)</name>[\s\S]*?<Point>[\s\S]*?"
    r"<coordinates>\s*([-0-9.]+),\s*([-0-9.]+)[^<]*</coordinates>[\s\S]*?</Placemark>",
    re.IGNORECASE,
)


def _local(tag: Any) -> str:
    """Strip any '{namespace}' prefix from an element tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, local_name: str) -> Iterable[ET.Element]:
    return (c for c in elem if _local(c.tag) == local_name)


def _child(elem: ET.Element, local_name: str) -> Optional[ET.Element]:
    return next(iter(_children(elem, local_name)), None)


def _descendant(elem: ET.Element, local_name: str) -> Optional[ET.Element]:
    for e in elem.iter():
        if e is not elem and _local(e.tag) == local_name:
            return e
    return None


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text


def _parse_kml_coords_list(text: str) -> List[List[float]]:
    """
    Parse KML coordinate lists.

    KML coordinates are: lon,lat[,alt] separated by whitespace/newlines.
    Skips malformed or non-finite tuples and continues processing.
    """
    text = (text or "").strip()
    if not text:
        return []
    pts: List[List[float]] = []
    for token in text.split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            coord = [float(parts[0]), float(parts[1])]
            if len(parts) >= 3 and parts[2] != "":
                coord.append(float(parts[2]))
        except ValueError:
            continue
        if not all(math.isfinite(v) for v in coord):
            continue
        pts.append(coord)
    return pts


def _geometry_from(elem: ET.Element) -> Optional[Geometry]:
    kind = _local(elem.tag)

    if kind == "Point":
        pts = _parse_kml_coords_list(_text(_descendant(elem, "coordinates")))
        if not pts:
            return None
        return {"type": "Point", "coordinates": pts[0]}

    if kind == "LineString":
        pts = _parse_kml_coords_list(_text(_descendant(elem, "coordinates")))
        if not pts:
            return None
        return {"type": "LineString", "coordinates": pts}

    if kind == "Polygon":
        rings: List[List[List[float]]] = []
        for boundary in ("outerBoundaryIs", "innerBoundaryIs"):
            for b in _children(elem, boundary):
                ring = _parse_kml_coords_list(_text(_descendant(b, "coordinates")))
                if ring:
                    rings.append(ring)
        if not rings:
            return None
        return {"type": "Polygon", "coordinates": rings}

    if kind == "MultiGeometry":
        parts = [g for g in (_geometry_from(c) for c in elem) if g is not None]
        if not parts:
            return None
        return {"type": "GeometryCollection", "geometries": parts}

    return None


def _placemark_geometry(pm: ET.Element) -> Optional[Geometry]:
    for child in pm:
        if _local(child.tag) in _GEOMETRY_TAGS:
            return _geometry_from(child)
    return None


def _parse_extended_data(pm: ET.Element) -> Dict[str, str]:
    kv: Dict[str, str] = {}
    ext = _child(pm, "ExtendedData")
    if ext is None:
        return kv
    for d in ext.iter():
        kind = _local(d.tag)
        key = d.attrib.get("name")
        if not key:
            continue
        if kind == "Data":
            kv[key.strip().lower()] = _text(_child(d, "value")).strip()
        elif kind == "SimpleData":
            kv[key.strip().lower()] = _text(d).strip()
    return kv


def _placemark_properties(pm: ET.Element) -> Dict[str, Any]:
    props: Dict[str, Any] = dict(_parse_extended_data(pm))
    name_elem = _child(pm, "name")
    if name_elem is not None:
        props["name"] = _text(name_elem)
    desc_elem = _child(pm, "description")
    if desc_elem is not None:
        props["description"] = _text(desc_elem)
    style_url = _text(_child(pm, "styleUrl")).strip()
    if style_url:
        props["styleUrl"] = style_url
    return props


def _folder_index(root: ET.Element) -> Dict[str, str]:
    """Map placemark name -> nearest enclosing Folder name."""
    parents = {child: parent for parent in root.iter() for child in parent}
    index: Dict[str, str] = {}
    for pm in root.iter():
        if _local(pm.tag) != "Placemark":
            continue
        n = _text(_child(pm, "name")).strip()
        if not n:
            continue
        parent = parents.get(pm)
        while parent is not None:
            if _local(parent.tag) == "Folder":
                fn = _text(_child(parent, "name")).strip()
                if fn:
                    index[n] = fn
                    break
            parent = parents.get(parent)
    return index


def scan_point_placemarks(xml: str) -> List[ParsedFeature]:
    """
    Permissive regex scan for `<Placemark>` blocks with a name and a Point.

    Only used when the XML transform is unusable. Produces minimal features:
    no description, no folder hint.
    """
    out: List[ParsedFeature] = []
    for m in _PLACEMARK_POINT_RE.finditer(xml or ""):
        try:
            lon = float(m.group(2))
            lat = float(m.group(3))
        except ValueError:
            continue
        out.append(
            ParsedFeature(
                name=normalize_name(m.group(1)),
                desc="",
                geometry={"type": "Point", "coordinates": [lon, lat]},
                props={},
            )
        )
    return out


def _read_path(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def parse_onx_kml(
    path: str | Path,
    *,
    read_text: Optional[Callable[[str], str]] = None,
    trace: Any = None,
) -> List[ParsedFeature]:
    """
    Read an OnX KML export.

    Args:
      path: path to the KML file
      read_text: collaborator returning the raw file text (defaults to local read)
      trace: optional TraceWriter-like object with `emit(event: dict)` method

    Raises:
      KmlParseError: the XML is unusable and the regex scan recovered nothing
    """
    reader = read_text or _read_path
    xml = reader(str(path)).lstrip("\ufeff")

    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        out = scan_point_placemarks(xml)
        if trace is not None:
            trace.emit(
                {
                    "event": "input.kml.fallback",
                    "path": str(path),
                    "reason": f"xml parse error: {e}",
                    "recovered": len(out),
                }
            )
        if not out:
            raise KmlParseError(f"Failed to parse KML: {path}") from e
        return out

    # Folder hints are optional; never let them break parsing.
    try:
        folders = _folder_index(root)
    except Exception:
        folders = {}

    out: List[ParsedFeature] = []
    for idx, pm in enumerate(el for el in root.iter() if _local(el.tag) == "Placemark"):
        geometry = _placemark_geometry(pm)
        if geometry is None:
            continue
        props = _placemark_properties(pm)
        name = normalize_name(props.get("name", ""))
        props["folder_hint"] = folders.get(_text(_child(pm, "name")).strip())
        out.append(
            ParsedFeature(
                name=name,
                desc=props.get("description"),
                geometry=geometry,
                props=props,
            )
        )
        if trace is not None:
            trace.emit(
                {
                    "event": "input.kml.placemark",
                    "idx": idx,
                    "geom": geometry["type"],
                    "name": name,
                    "folder_hint": props["folder_hint"],
                }
            )

    if not out:
        out = scan_point_placemarks(xml)
        if trace is not None:
            trace.emit(
                {
                    "event": "input.kml.fallback",
                    "path": str(path),
                    "reason": "no placemarks with geometry",
                    "recovered": len(out),
                }
            )

    return out
