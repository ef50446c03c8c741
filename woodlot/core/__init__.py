"""Core functionality modules for Woodlot."""

__all__ = [
    "classifier",
    "config",
    "dedup",
    "importer",
    "layers",
    "report",
    "selftest",
    "writer",
]
