"""Exception types raised by the import pipeline."""

from __future__ import annotations


class WoodlotError(Exception):
    """Base class for pipeline errors."""


class ParseError(WoodlotError, ValueError):
    """An export file could not be turned into features."""


class KmlParseError(ParseError):
    pass


class GpxParseError(ParseError):
    pass


class LayerDocumentError(WoodlotError):
    """An existing per-layer document is present but not a readable FeatureCollection."""


class MissingActiveUserError(WoodlotError, ValueError):
    pass


class ConfigError(WoodlotError, ValueError):
    pass
