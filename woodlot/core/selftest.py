"""
Built-in classification self-test.

A fixed set of representative onX names run through the classifier, with no
file I/O. Used by `woodlot selftest` as a quick sanity check on an installed
copy (e.g. that the zone database is available for hunt times).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from woodlot.core.classifier import map_onx_to_schema
from woodlot.core.dedup import build_signature
from woodlot.model import ImportOptions, ParsedFeature


_POINT = {"type": "Point", "coordinates": [0, 0]}
_LINE = {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}
_POLY = {"type": "Polygon", "coordinates": [[[0, 0], [1, 1], [1, 0], [0, 0]]]}


@dataclass
class SelfTestCase:
    name: str
    parsed: ParsedFeature
    expect_layer: Optional[str]
    expect_props: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SelfTestFailure:
    name: str
    reason: str


@dataclass
class SelfTestResult:
    passed: int
    failed: List[SelfTestFailure]

    @property
    def ok(self) -> bool:
        return not self.failed


SELFTEST_OPTIONS = ImportOptions(
    project_dir="/dev/null",
    input_files=[],
    tracks_target="trails",
    time_zone="America/New_York",
    use_heuristics=True,
    active_user="Tester",
    import_timestamp="2025-01-01T12:00:00Z",
    only_points=False,
)


def _case(name: str, geometry: Dict[str, Any], layer: Optional[str], **props: Any) -> SelfTestCase:
    return SelfTestCase(
        name=f"{name} -> {layer}",
        parsed=ParsedFeature(name=name, desc="", geometry=dict(geometry)),
        expect_layer=layer,
        expect_props=props,
    )


SELFTEST_CASES: List[SelfTestCase] = [
    _case("stand: climber", _POINT, "stands", stand_type="climber"),
    _case("scrape: fresh", _POINT, "scrapes", freshness="fresh"),
    _case("rub: 8in", _POINT, "rubs", diameter_in=8),
    _case("trail: deer main", _LINE, "trails", trail_type="deer", prominence="main"),
    _case("bedding: hemlock", _POLY, "bedding_areas", cover_type="hemlocks"),
    _case("flat: acorn 4/5", _POLY, "acorn_flats", acorn_density_0_5=4),
    _case("open: 3", _POLY, "open_woods", openness_1_5=3),
    _case("tree: white oak", _POINT, "trees_points", species="white_oak"),
    _case("Big rock by the creek", _POINT, "big_rocks"),
    _case("waypoint 12", _POINT, None),
]


def run_onx_mapping_tests(cases: Optional[List[SelfTestCase]] = None) -> SelfTestResult:
    failures: List[SelfTestFailure] = []
    passed = 0
    for t in cases if cases is not None else SELFTEST_CASES:
        reason = _check(t)
        if reason is None:
            passed += 1
        else:
            failures.append(SelfTestFailure(name=t.name, reason=reason))
    return SelfTestResult(passed=passed, failed=failures)


def _check(t: SelfTestCase) -> Optional[str]:
    mapped = map_onx_to_schema(t.parsed, SELFTEST_OPTIONS)
    if t.expect_layer is None:
        if mapped is not None:
            return f"Expected no layer, got {mapped.layer_id}"
        return None
    if mapped is None:
        return f"Expected {t.expect_layer}, got nothing"
    if mapped.layer_id != t.expect_layer:
        return f"Expected {t.expect_layer}, got {mapped.layer_id}"

    props = mapped.feature.get("properties") or {}
    for k, v in t.expect_props.items():
        if props.get(k) != v:
            return f"Expected property {k}={v!r}, got {props.get(k)!r}"
    if props.get("name") != t.parsed.name:
        return f"Expected name {t.parsed.name!r}, got {props.get('name')!r}"
    if not build_signature(mapped.feature):
        return "Signature not generated"
    return None
