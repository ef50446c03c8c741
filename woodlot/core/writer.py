"""
Per-layer document writer.

Each layer lives in one GeoJSON FeatureCollection at `data/<layer file>`.
Appending is a read-modify-write of the whole document.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from woodlot.core.errors import LayerDocumentError
from woodlot.io.project_files import ProjectFiles
from woodlot.model import Feature


logger = logging.getLogger(__name__)


def _empty_collection() -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


def load_layer_document(files: ProjectFiles, project_dir: str, layer_file: str) -> Dict[str, Any]:
    """
    Read `data/<layer_file>` as a FeatureCollection.

    A document that cannot be read (usually: absent) yields an empty collection.

    Raises:
      LayerDocumentError: the document exists but is not a FeatureCollection
    """
    rel = f"data/{layer_file}"
    try:
        text = files.read_text_file(project_dir, rel)
    except Exception as e:
        logger.debug("No readable layer document at %s (%s); starting a new one", rel, e)
        return _empty_collection()

    if not (text or "").strip():
        return _empty_collection()

    try:
        fc = json.loads(text)
    except json.JSONDecodeError as e:
        raise LayerDocumentError(f"Layer document {rel} is not valid JSON: {e}") from e

    if not isinstance(fc, dict) or not isinstance(fc.get("features"), list):
        raise LayerDocumentError(f"Layer document {rel} is not a FeatureCollection")
    return fc


def write_layer_document(
    files: ProjectFiles, project_dir: str, layer_file: str, fc: Dict[str, Any]
) -> None:
    """Serialize and persist a layer document, atomically when the collaborator can."""
    rel = f"data/{layer_file}"
    serialized = json.dumps(fc, indent=2, ensure_ascii=False)
    atomic = getattr(files, "atomic_write_text_file", None)
    if callable(atomic):
        try:
            atomic(project_dir, rel, serialized)
            return
        except Exception as e:
            logger.warning("Atomic write of %s failed, falling back to non-atomic write: %s", rel, e)
    files.write_text_file(project_dir, rel, serialized)


def append_to_layer(files: ProjectFiles, project_dir: str, layer_file: str, feature: Feature) -> None:
    """
    Append one feature to a layer document.

    Existing features are kept in order; the new one goes last.
    """
    fc = load_layer_document(files, project_dir, layer_file)
    fc["features"].append(feature)
    write_layer_document(files, project_dir, layer_file, fc)
