"""
End-to-end tests for the onX import pipeline (parse -> classify -> dedup -> write).

Tests cover:
- Per-layer writes and report counts
- Idempotent re-import and duplicates within one run
- Points-only filtering
- File-level failures (unsupported, unparseable, missing) not aborting the run
- Per-feature failures recorded against the source file
- Trace events
"""

import logging
from pathlib import Path

import pytest

from conftest import _Trace, kml, point_placemark, read_layer
from woodlot.core.importer import PHOTOS_WARNING, REASON_UNCLASSIFIED, import_onx
from woodlot.core.layers import parse_layer_catalog


SAMPLE_KML = kml(
    point_placemark("Scrape: fresh", -120.5, 45.5, desc="under the big oak")
    + point_placemark("Rub: 8in", -120.6, 45.6)
    + point_placemark("waypoint 12", -120.7, 45.7)
    + """
    <Placemark><name>Trail: deer main</name>
      <LineString><coordinates>-120.0,45.0 -120.1,45.1 -120.2,45.2</coordinates></LineString></Placemark>
"""
)

HUNT_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx xmlns="http://www.topografix.com/GPX/1/1" version="1.1">
  <wpt lat="45.5" lon="-120.5">
    <time>2024-11-03T07:15:00Z</time>
    <name>Hunt: opener</name>
  </wpt>
</gpx>
"""


@pytest.fixture
def sample_kml(tmp_path: Path) -> Path:
    p = tmp_path / "onx_export.kml"
    p.write_text(SAMPLE_KML, encoding="utf-8")
    return p


def _names(project: Path, layer_file: str):
    return [f["properties"]["name"] for f in read_layer(project, layer_file)["features"]]


def test_import_writes_each_layer(project: Path, sample_kml: Path, make_options):
    report = import_onx(make_options([sample_kml]))

    assert report.counts_by_layer == {"scrapes": 1, "rubs": 1, "trails": 1}
    assert report.duplicates == 0
    assert [(u.name, u.reason, u.geometry_type) for u in report.unknown] == [
        ("waypoint 12", REASON_UNCLASSIFIED, "Point")
    ]
    assert report.errors == []
    assert report.warnings == [PHOTOS_WARNING]

    assert _names(project, "scrapes.geojson") == ["Scrape: fresh"]
    assert _names(project, "rubs.geojson") == ["Rub: 8in"]
    assert _names(project, "trails.geojson") == ["Trail: deer main"]

    scrape = read_layer(project, "scrapes.geojson")["features"][0]
    assert scrape["properties"]["freshness"] == "fresh"
    assert scrape["properties"]["notes"] == "under the big oak"
    assert scrape["properties"]["imported_by"] == "Sam"
    assert scrape["geometry"] == {"type": "Point", "coordinates": [-120.5, 45.5, 0.0]}


def test_reimport_is_a_no_op(project: Path, sample_kml: Path, make_options):
    import_onx(make_options([sample_kml]))
    before = (project / "data" / "scrapes.geojson").read_text(encoding="utf-8")

    report = import_onx(make_options([sample_kml], import_timestamp="2025-02-01T08:00:00.000Z"))

    assert report.counts_by_layer == {}
    assert report.duplicates == 3
    assert len(report.unknown) == 1
    assert (project / "data" / "scrapes.geojson").read_text(encoding="utf-8") == before


def test_duplicates_within_one_run(project: Path, tmp_path: Path, make_options):
    p = tmp_path / "twice.kml"
    p.write_text(kml(point_placemark("Rock", 1, 2) + point_placemark("ROCK", 1, 2)), encoding="utf-8")

    report = import_onx(make_options([p]))

    assert report.counts_by_layer == {"big_rocks": 1}
    assert report.duplicates == 1
    assert _names(project, "big_rocks.geojson") == ["Rock"]


def test_every_feature_is_accounted_for(sample_kml: Path, make_options):
    report = import_onx(make_options([sample_kml]))
    assert report.imported_count + report.duplicates + len(report.unknown) + len(report.errors) == 4


def test_only_points_skips_other_geometries(project: Path, sample_kml: Path, make_options):
    report = import_onx(make_options([sample_kml], only_points=True))

    assert report.counts_by_layer == {"scrapes": 1, "rubs": 1}
    assert not (project / "data" / "trails.geojson").exists()
    # Skipped features are not reported as unknown.
    assert [u.name for u in report.unknown] == ["waypoint 12"]


def test_heuristics_off_reports_unprefixed_names(sample_kml: Path, tmp_path: Path, make_options):
    p = tmp_path / "loose.kml"
    p.write_text(kml(point_placemark("big rock", 1, 2)), encoding="utf-8")
    report = import_onx(make_options([p], use_heuristics=False))
    assert report.counts_by_layer == {}
    assert [u.name for u in report.unknown] == ["big rock"]


def test_tracks_target_routes_unnamed_tracks(project: Path, tmp_path: Path, make_options):
    p = tmp_path / "tracks.kml"
    p.write_text(
        kml(
            "<Placemark><name>Saturday walk</name>"
            "<LineString><coordinates>0,0 1,1</coordinates></LineString></Placemark>"
        ),
        encoding="utf-8",
    )
    report = import_onx(make_options([p], tracks_target="animal_paths"))
    assert report.counts_by_layer == {"animal_paths": 1}
    assert read_layer(project, "animal_paths.geojson")["features"][0]["properties"]["confidence"] == "observed"


def test_gpx_hunt_uses_configured_time_zone(project: Path, tmp_path: Path, make_options):
    p = tmp_path / "hunts.gpx"
    p.write_text(HUNT_GPX, encoding="utf-8")

    report = import_onx(make_options([p], time_zone="America/New_York"))

    assert report.counts_by_layer == {"hunts": 1}
    props = read_layer(project, "hunts.geojson")["features"][0]["properties"]
    assert (props["date"], props["start_time"]) == ("2024-11-03", "02:15")


def test_uppercase_extension_is_accepted(project: Path, tmp_path: Path, make_options):
    p = tmp_path / "EXPORT.KML"
    p.write_text(kml(point_placemark("Scrape: fresh", 1, 2)), encoding="utf-8")
    assert import_onx(make_options([p])).counts_by_layer == {"scrapes": 1}


def test_unsupported_file_is_a_warning(sample_kml: Path, tmp_path: Path, make_options, caplog):
    other = tmp_path / "notes.txt"
    other.write_text("hello", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="woodlot"):
        report = import_onx(make_options([other, sample_kml]))

    assert report.warnings == [PHOTOS_WARNING, f"Unsupported file: {other}"]
    assert report.imported_count == 3
    assert "Unsupported file" in caplog.text


def test_unparseable_and_missing_files_are_errors(sample_kml: Path, tmp_path: Path, make_options):
    bad = tmp_path / "bad.gpx"
    bad.write_text("", encoding="utf-8")
    missing = tmp_path / "gone.kml"

    report = import_onx(make_options([bad, missing, sample_kml]))

    assert [e.file for e in report.errors] == [str(bad), str(missing)]
    assert "empty" in report.errors[0].error
    assert report.errors[1].error
    assert report.imported_count == 3


def test_layer_missing_from_catalog_is_unknown(tmp_path: Path, make_options):
    catalog = parse_layer_catalog(
        {"version": 1, "layers": {"rubs": {"file": "rubs.geojson", "geometry": "Point"}}}
    )
    p = tmp_path / "two.kml"
    p.write_text(kml(point_placemark("Scrape: fresh", 1, 2) + point_placemark("Rub: 3", 1, 3)), encoding="utf-8")

    report = import_onx(make_options([p]), catalog=catalog)

    assert report.counts_by_layer == {"rubs": 1}
    assert [(u.name, u.reason, u.geometry_type) for u in report.unknown] == [
        ("Scrape: fresh", "no layer config for scrapes", "Point")
    ]


def test_corrupt_layer_document_is_a_feature_error(project: Path, sample_kml: Path, make_options):
    scrapes = project / "data" / "scrapes.geojson"
    scrapes.write_text("{broken", encoding="utf-8")

    report = import_onx(make_options([sample_kml]))

    assert [e.file for e in report.errors] == [str(sample_kml)]
    assert "not valid JSON" in report.errors[0].error
    assert report.counts_by_layer == {"rubs": 1, "trails": 1}
    assert scrapes.read_text(encoding="utf-8") == "{broken"


def test_out_of_range_stored_coordinate_does_not_block_imports(project: Path, sample_kml: Path, make_options):
    (project / "data" / "scrapes.geojson").write_text(
        '{"type":"FeatureCollection","features":[{"type":"Feature",'
        '"geometry":{"type":"Point","coordinates":[1e400,0]},"properties":{"name":"Scrape: fresh"}}]}',
        encoding="utf-8",
    )

    report = import_onx(make_options([sample_kml]))

    assert report.errors == []
    assert report.counts_by_layer == {"scrapes": 1, "rubs": 1, "trails": 1}
    assert _names(project, "scrapes.geojson") == ["Scrape: fresh", "Scrape: fresh"]


def test_trace_records_pipeline_decisions(sample_kml: Path, make_options, trace: _Trace):
    import_onx(make_options([sample_kml]), trace=trace)
    names = trace.names()

    assert names.count("input.kml.placemark") == 4
    assert names.count("import.file") == 1
    assert names.count("import.write") == 3
    assert names.count("import.unknown") == 1

    writes = [e for e in trace.events if e["event"] == "import.write"]
    assert {e["layer"] for e in writes} == {"scrapes", "rubs", "trails"}
    assert all(e["tier"] == "prefix" for e in writes)

    trace.events.clear()
    import_onx(make_options([sample_kml]), trace=trace)
    assert trace.names().count("import.duplicate") == 3


def test_trace_records_skips_and_errors(project: Path, sample_kml: Path, tmp_path: Path, make_options, trace: _Trace):
    bad = tmp_path / "bad.gpx"
    bad.write_text("", encoding="utf-8")

    import_onx(make_options([bad, sample_kml], only_points=True), trace=trace)

    errors = [e for e in trace.events if e["event"] == "import.error"]
    assert [(e["file"], e["stage"]) for e in errors] == [(str(bad), "parse")]
    skips = [e for e in trace.events if e["event"] == "import.skip"]
    assert [(e["name"], e["geom"]) for e in skips] == [("Trail: deer main", "LineString")]
