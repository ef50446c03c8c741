"""
onX import orchestration.

Pipeline per run:
1. parse every input file (KML/GPX by extension); file-level failures go to
   the report and the run continues with the other files
2. for each parsed feature, in input order: optional points-only filter,
   classify, look up the layer, dedup against the stored layer document,
   append
3. anything that goes wrong for a single feature is recorded against its
   source file; the run never aborts halfway

Features are processed strictly one after the other, so every read-modify-write
of a layer document finishes before the next one starts.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from woodlot.core.classifier import map_onx_to_schema
from woodlot.core.config import local_time_zone
from woodlot.core.dedup import is_duplicate
from woodlot.core.errors import MissingActiveUserError
from woodlot.core.layers import LayerCatalog, default_catalog
from woodlot.core.report import iso_utc, write_report
from woodlot.core.writer import append_to_layer
from woodlot.io.onx_gpx import parse_onx_gpx
from woodlot.io.onx_kml import parse_onx_kml
from woodlot.io.project_files import LocalProjectFiles, ProjectFiles
from woodlot.model import (
    ErrorEntry,
    ImportOptions,
    ImportReport,
    ParsedFeature,
    UnknownEntry,
)


logger = logging.getLogger(__name__)

PHOTOS_WARNING = "Photos are not included in onX exports"
REASON_UNCLASSIFIED = "no prefix or unsupported geometry"

FILE_FILTERS: List[Dict[str, Any]] = [{"name": "onX Exports", "extensions": ["kml", "gpx"]}]

ChooseFiles = Callable[[List[Dict[str, Any]]], Optional[Sequence[str]]]
ReloadLayers = Callable[[List[str]], Any]

_PARSERS = {
    ".kml": parse_onx_kml,
    ".gpx": parse_onx_gpx,
}


def _error_text(e: BaseException) -> str:
    return str(e) or e.__class__.__name__


def _parse_inputs(
    input_files: Iterable[str],
    files: ProjectFiles,
    report: ImportReport,
    trace: Any,
) -> List[Tuple[str, ParsedFeature]]:
    parsed_all: List[Tuple[str, ParsedFeature]] = []
    for path in input_files:
        parser = _PARSERS.get(Path(path).suffix.lower())
        if parser is None:
            report.warnings.append(f"Unsupported file: {path}")
            logger.warning("Unsupported file: %s", path)
            continue
        try:
            features = parser(path, read_text=files.read_external_file, trace=trace)
        except Exception as e:
            report.errors.append(ErrorEntry(file=path, error=_error_text(e)))
            logger.warning("Failed to read %s: %s", path, e)
            if trace is not None:
                trace.emit({"event": "import.error", "file": path, "stage": "parse", "error": _error_text(e)})
            continue
        logger.info("Read %d feature(s) from %s", len(features), path)
        if trace is not None:
            trace.emit({"event": "import.file", "file": path, "features": len(features)})
        parsed_all.extend((path, pf) for pf in features)
    return parsed_all


def _import_feature(
    path: str,
    pf: ParsedFeature,
    options: ImportOptions,
    files: ProjectFiles,
    catalog: LayerCatalog,
    report: ImportReport,
    trace: Any,
) -> None:
    geom = pf.geometry_type

    if options.only_points and geom != "Point":
        logger.debug("Skipping non-point %r (%s)", pf.name, geom)
        if trace is not None:
            trace.emit({"event": "import.skip", "file": path, "name": pf.name, "geom": geom})
        return

    mapped = map_onx_to_schema(pf, options)
    if mapped is None:
        reason = REASON_UNCLASSIFIED
    elif mapped.layer_id not in catalog:
        reason = f"no layer config for {mapped.layer_id}"
    else:
        reason = None
    if reason is not None:
        report.unknown.append(UnknownEntry(name=pf.name or "", reason=reason, geometry_type=geom))
        logger.debug("Unknown %r: %s", pf.name, reason)
        if trace is not None:
            trace.emit({"event": "import.unknown", "file": path, "name": pf.name, "geom": geom, "reason": reason})
        return

    layer = catalog[mapped.layer_id]
    if is_duplicate(files, options.project_dir, layer.file, mapped):
        report.duplicates += 1
        logger.debug("Duplicate %r in %s", pf.name, layer.id)
        if trace is not None:
            trace.emit(
                {"event": "import.duplicate", "file": path, "layer": layer.id, "signature": mapped.signature}
            )
        return

    append_to_layer(files, options.project_dir, layer.file, mapped.feature)
    report.add_imported(layer.id)
    logger.debug("Imported %r into %s (%s)", pf.name, layer.id, mapped.tier)
    if trace is not None:
        trace.emit(
            {
                "event": "import.write",
                "file": path,
                "layer": layer.id,
                "tier": mapped.tier,
                "name": pf.name,
                "signature": mapped.signature,
            }
        )


def import_onx(
    options: ImportOptions,
    *,
    files: Optional[ProjectFiles] = None,
    catalog: Optional[LayerCatalog] = None,
    trace: Any = None,
) -> ImportReport:
    """
    Import onX exports into the project's layer documents.

    Args:
      options: run options (project, inputs, classification knobs, user, timestamp)
      files: project file collaborator (defaults to the local filesystem)
      catalog: layer catalog (defaults to the bundled catalog)
      trace: optional TraceWriter-like object with `emit(event: dict)` method

    Returns:
      The run's ImportReport. Nothing is raised for bad input; every problem is
      recorded in the report.
    """
    files = files or LocalProjectFiles()
    catalog = catalog if catalog is not None else default_catalog()
    report = ImportReport(warnings=[PHOTOS_WARNING])

    parsed_all = _parse_inputs(options.input_files, files, report, trace)

    for path, pf in parsed_all:
        try:
            _import_feature(path, pf, options, files, catalog, report, trace)
        except Exception as e:
            report.errors.append(ErrorEntry(file=path, error=_error_text(e)))
            logger.warning("Failed to import %r from %s: %s", pf.name, path, e)
            if trace is not None:
                trace.emit(
                    {"event": "import.error", "file": path, "stage": "feature", "name": pf.name, "error": _error_text(e)}
                )

    logger.info(
        "Import finished: %d imported, %d duplicate(s), %d unknown, %d error(s)",
        report.imported_count,
        report.duplicates,
        len(report.unknown),
        len(report.errors),
    )
    return report


def run_onx_import_with_dialog(
    project_dir: str,
    *,
    choose_files: ChooseFiles,
    active_user: Optional[str],
    tracks_target: str = "trails",
    time_zone: Optional[str] = None,
    use_heuristics: bool = True,
    only_points: bool = False,
    files: Optional[ProjectFiles] = None,
    catalog: Optional[LayerCatalog] = None,
    reload_layers: Optional[ReloadLayers] = None,
    trace: Any = None,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Interactive entry point: pick files, import, write the report.

    Returns:
      The report's project-relative path, or None if the user picked nothing.

    Raises:
      MissingActiveUserError: no active user was given
    """
    inputs = choose_files(FILE_FILTERS)
    if not inputs:
        logger.info("Import cancelled: no files selected")
        return None
    if not active_user:
        raise MissingActiveUserError("Active user required for import")

    files = files or LocalProjectFiles()
    options = ImportOptions(
        project_dir=project_dir,
        input_files=list(inputs),
        tracks_target=tracks_target or "trails",
        time_zone=time_zone or local_time_zone(),
        use_heuristics=use_heuristics,
        active_user=active_user,
        import_timestamp=iso_utc(now),
        only_points=only_points,
    )
    report = import_onx(options, files=files, catalog=catalog, trace=trace)
    rel = write_report(files, project_dir, report, now=now)
    logger.info("Import report written to %s", rel)

    if reload_layers is not None:
        try:
            reload_layers(sorted(report.counts_by_layer))
        except Exception as e:
            logger.warning("Layer reload callback failed: %s", e)
    return rel
