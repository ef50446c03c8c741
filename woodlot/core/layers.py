"""
Layer catalog.

The catalog is static: it is loaded once from the repo-versioned
`woodlot/data/layers.yaml` and never mutated. The classifier only needs each
layer's `file` and `geometry`; `schema` is what the feature forms edit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from woodlot.core.errors import ConfigError


GEOMETRY_TYPES = frozenset(("Point", "LineString", "Polygon"))

_DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "layers.yaml"


@dataclass(frozen=True)
class LayerDefinition:
    id: str
    file: str
    geometry: str
    label: str = ""
    schema: Mapping[str, Any] = field(default_factory=dict)

    @property
    def document_path(self) -> str:
        """Project-relative path of the layer's FeatureCollection."""
        return f"data/{self.file}"


LayerCatalog = Mapping[str, LayerDefinition]


def parse_layer_catalog(raw: Any) -> LayerCatalog:
    """
    Validate a decoded catalog document and build the read-only catalog.

    Raises:
      ConfigError: unknown version, missing fields or an unsupported geometry
    """
    if not isinstance(raw, dict) or raw.get("version") != 1:
        raise ConfigError("Layer catalog must be a mapping with `version: 1`")
    layers = raw.get("layers")
    if not isinstance(layers, dict) or not layers:
        raise ConfigError("Layer catalog has no `layers` section")

    catalog: Dict[str, LayerDefinition] = {}
    for layer_id, entry in layers.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"Layer {layer_id!r} must be a mapping")
        file_name = str(entry.get("file") or "").strip()
        geometry = str(entry.get("geometry") or "").strip()
        if not file_name:
            raise ConfigError(f"Layer {layer_id!r} has no `file`")
        if geometry not in GEOMETRY_TYPES:
            raise ConfigError(f"Layer {layer_id!r} has unsupported geometry {geometry!r}")
        catalog[str(layer_id)] = LayerDefinition(
            id=str(layer_id),
            file=file_name,
            geometry=geometry,
            label=str(entry.get("label") or layer_id),
            schema=MappingProxyType(dict(entry.get("schema") or {})),
        )
    return MappingProxyType(catalog)


def load_layer_catalog(path: Optional[Path] = None) -> LayerCatalog:
    """Load a catalog file (defaults to the bundled `layers.yaml`)."""
    p = path or _DATA_PATH
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    return parse_layer_catalog(raw)


@lru_cache(maxsize=1)
def default_catalog() -> LayerCatalog:
    return load_layer_catalog()


def get_layer(layer_id: str, catalog: Optional[LayerCatalog] = None) -> Optional[LayerDefinition]:
    return (catalog if catalog is not None else default_catalog()).get(layer_id)
