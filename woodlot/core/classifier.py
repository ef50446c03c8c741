"""
onX feature classification.

Turns one ParsedFeature into a MappedFeature for a woodlot layer, or None when
nothing matches. Names come from a consumer GPS app and are typed by hand, so
resolution runs in tiers, first match wins:

1. prefix     exact keyword before the first ':'  ("Scrape: fresh")
2. folder     keyword inside the KML folder name  (heuristics only)
3. name       keyword anywhere in the name        (heuristics only)
4. geometry   LineString -> tracks target, Polygon -> open_woods

A prefix match skips the heuristic tiers entirely. A keyword whose layer
cannot hold the feature's geometry counts as "no match" for that tier.

A `bed:` prefix on a Polygon goes to bedding_areas, otherwise to beds_points.
The desktop app files every `bed:` under beds_points regardless of geometry;
outlined beds land in bedding_areas here instead.

Per-layer properties are derived from the tail (text after the first ':')
by a builder registered for each layer. A builder returning None means the
layer rejects the geometry.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from datetime import timezone
from typing import Any, Callable, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from woodlot.core.dedup import build_signature
from woodlot.core.normalization import first_number, parse_iso8601
from woodlot.model import ImportOptions, MappedFeature, ParsedFeature, geometry_type


@dataclass(frozen=True)
class KeywordRule:
    """
    keywords -> layer, optionally depending on geometry type.

    `by_geometry` wins over `default`; a rule with no entry for the geometry
    and no default resolves to None (geometry rejected).
    """

    keywords: Tuple[str, ...]
    default: Optional[str] = None
    by_geometry: Tuple[Tuple[str, str], ...] = ()

    def resolve(self, geom_type: str) -> Optional[str]:
        return dict(self.by_geometry).get(geom_type, self.default)


# Priority order. "bedding" must precede "bed" for substring matching.
KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("stand",), "stands", (("Polygon", "tree_stands"),)),
    KeywordRule(("spot",), "stands"),
    KeywordRule(("scrape",), "scrapes"),
    KeywordRule(("rub",), "rubs"),
    KeywordRule(("tree",), "trees_points"),
    KeywordRule(("trail",), None, (("LineString", "trails"),)),
    KeywordRule(("bedding",), "beds_points", (("Polygon", "bedding_areas"),)),
    KeywordRule(("bed",), "beds_points", (("Polygon", "bedding_areas"),)),
    KeywordRule(("flat", "acorn"), None, (("Polygon", "acorn_flats"),)),
    KeywordRule(("open",), None, (("Polygon", "open_woods"),)),
    KeywordRule(("rock",), "big_rocks"),
    KeywordRule(("cliff",), None, (("LineString", "cliffs"),)),
    KeywordRule(("ravine",), None, (("LineString", "ravines"),)),
    KeywordRule(("stream", "creek"), None, (("LineString", "streams"),)),
    KeywordRule(("hunt",), "hunts"),
    KeywordRule(("sighting",), "animal_sightings"),
)


PropertyBuilder = Callable[[str, str], Optional[Dict[str, Any]]]


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _first_in(tail: str, options: Tuple[str, ...]) -> Optional[str]:
    for opt in options:
        if opt in tail:
            return opt
    return None


def _only(geom: str, *allowed: str) -> bool:
    return geom in allowed


def _stands(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return _compact({"stand_type": _first_in(tail, ("climber", "shanty", "blind", "saddle"))})


def _tree_stands(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if not _only(geom, "Polygon"):
        return None
    return _stands(tail, geom)


def _scrapes(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return _compact({"freshness": _first_in(tail, ("fresh", "recent"))})


def _rubs(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return _compact({"diameter_in": first_number(tail)})


def _trees_points(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return {"species": re.sub(r"\s+", "_", tail)}


def _trails(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if not _only(geom, "LineString"):
        return None
    return {
        "trail_type": "atv" if "atv" in tail else "deer" if "deer" in tail else "foot",
        "prominence": "faint" if "faint" in tail else "main",
    }


def _bedding_areas(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if not _only(geom, "Polygon"):
        return None
    return _compact({"cover_type": "hemlocks" if "hemlock" in tail else None})


def _acorn_flats(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if not _only(geom, "Polygon"):
        return None
    return _compact({"acorn_density_0_5": first_number(tail)})


def _open_woods(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if not _only(geom, "Polygon"):
        return None
    return _compact({"openness_1_5": first_number(tail)})


def _big_rocks(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return _compact({"rock_type": "boulder" if "boulder" in tail else None})


def _lines_only(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return {} if _only(geom, "LineString") else None


def _animal_paths(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if not _only(geom, "LineString"):
        return None
    return {"confidence": "observed"}


def _plain(tail: str, geom: str) -> Optional[Dict[str, Any]]:
    return {}


PROPERTY_BUILDERS: Dict[str, PropertyBuilder] = {
    "stands": _stands,
    "tree_stands": _tree_stands,
    "scrapes": _scrapes,
    "rubs": _rubs,
    "trees_points": _trees_points,
    "trails": _trails,
    "bedding_areas": _bedding_areas,
    "beds_points": _plain,
    "acorn_flats": _acorn_flats,
    "open_woods": _open_woods,
    "big_rocks": _big_rocks,
    "cliffs": _lines_only,
    "ravines": _lines_only,
    "streams": _lines_only,
    "hunts": _plain,
    "animal_sightings": _plain,
    "animal_paths": _animal_paths,
}


def split_name(name: str) -> Tuple[str, str]:
    """Lower-case, trim, and split on the first ':' into (prefix, tail)."""
    lowered = (name or "").lower().strip()
    prefix, _sep, tail = lowered.partition(":")
    return prefix.strip(), tail.strip()


def _build(layer_id: Optional[str], tail: str, geom: str) -> Optional[Dict[str, Any]]:
    if layer_id is None:
        return None
    builder = PROPERTY_BUILDERS.get(layer_id, _plain)
    return builder(tail, geom)


def match_prefix(prefix: str, geom: str) -> Optional[str]:
    """Prefix tier: exact keyword match, tolerant of a plural 's'."""
    p = prefix[:-1] if prefix.endswith("s") else prefix
    for rule in KEYWORD_RULES:
        if p in rule.keywords:
            return rule.resolve(geom)
    return None


def match_substring(text: str, geom: str) -> Optional[str]:
    """Heuristic tiers: the first rule with a keyword inside `text` decides."""
    if not text:
        return None
    for rule in KEYWORD_RULES:
        if any(k in text for k in rule.keywords):
            return rule.resolve(geom)
    return None


def _geometry_fallback(geom: str, tracks_target: str) -> Optional[str]:
    if geom == "LineString":
        return "animal_paths" if tracks_target == "animal_paths" else "trails"
    if geom == "Polygon":
        return "open_woods"
    return None


def resolve_layer(
    parsed: ParsedFeature, options: ImportOptions
) -> Optional[Tuple[str, str, Dict[str, Any]]]:
    """
    Pick the target layer.

    Returns (layer_id, tier, derived_properties), or None when unclassifiable.
    """
    geom = geometry_type(parsed.geometry)
    prefix, tail = split_name(parsed.name)

    layer = match_prefix(prefix, geom)
    props = _build(layer, tail, geom)
    if layer is not None and props is not None:
        return layer, "prefix", props

    if not options.use_heuristics:
        return None

    folder_hint = str((parsed.props or {}).get("folder_hint") or "").lower()
    lowered = (parsed.name or "").lower().strip()
    candidates = (
        ("folder", lambda: match_substring(folder_hint, geom)),
        ("name", lambda: match_substring(lowered, geom)),
        ("geometry", lambda: _geometry_fallback(geom, options.tracks_target)),
    )
    for tier, pick in candidates:
        layer = pick()
        props = _build(layer, tail, geom)
        if layer is not None and props is not None:
            return layer, tier, props
    return None


def local_date_time(raw_time: Any, time_zone: str) -> Optional[Tuple[str, str]]:
    """
    Convert a timestamp to ("YYYY-MM-DD", "HH:MM") on the wall clock of `time_zone`.

    Returns None for unparseable times or unknown zones.
    """
    dt = parse_iso8601(str(raw_time or "").strip())
    if dt is None:
        return None
    try:
        local = dt.astimezone(ZoneInfo(time_zone))
    except (KeyError, ValueError, OSError, OverflowError):
        return None
    return local.strftime("%Y-%m-%d"), local.strftime("%H:%M")


def _import_date(import_timestamp: str) -> str:
    dt = parse_iso8601(import_timestamp)
    if dt is None:
        return (import_timestamp or "")[:10]
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d")


def map_onx_to_schema(parsed: ParsedFeature, options: ImportOptions) -> Optional[MappedFeature]:
    """
    Classify one parsed onX feature.

    Returns None when no tier resolves a layer (or heuristics are disabled and
    the prefix tier did not match).
    """
    resolved = resolve_layer(parsed, options)
    if resolved is None:
        return None
    layer_id, tier, derived = resolved

    props: Dict[str, Any] = dict(derived)
    props["notes"] = parsed.desc or ""

    if layer_id == "hunts":
        raw_time = (parsed.props or {}).get("time")
        if raw_time:
            local = local_date_time(raw_time, options.time_zone)
            if local is not None:
                props["date"], props["start_time"] = local

    if not props.get("name"):
        props["name"] = parsed.name or ""
    if not props.get("date"):
        props["date"] = _import_date(options.import_timestamp)
    props["imported_by"] = options.active_user
    props["imported_at"] = options.import_timestamp
    if not props.get("created_by"):
        props["created_by"] = options.active_user
    if not props.get("created_at"):
        props["created_at"] = options.import_timestamp

    feature = {
        "type": "Feature",
        "geometry": copy.deepcopy(parsed.geometry),
        "properties": props,
    }
    return MappedFeature(
        layer_id=layer_id,
        feature=feature,
        signature=build_signature(feature),
        tier=tier,
    )
