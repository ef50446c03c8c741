"""
Project file access.

The import pipeline never touches the filesystem directly; it goes through a
`ProjectFiles` collaborator. The desktop shell provides one backed by its own
file APIs, and `LocalProjectFiles` provides the plain local-disk version used
by the CLI and the tests.

Paths handed to `read_text_file`/`write_text_file` are relative to a project
directory (e.g. "data/scrapes.geojson").
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol


class ProjectFiles(Protocol):
    """Protocol for the file collaborator consumed by the import pipeline.

    `atomic_write_text_file(project_dir, relative_path, text) -> bool` is
    optional; callers check for it with getattr.
    """

    def read_external_file(self, path: str) -> str:
        """Read an arbitrary absolute path as UTF-8 text."""
        ...

    def read_text_file(self, project_dir: str, relative_path: str) -> str:
        """Read a project document. Raises if it does not exist."""
        ...

    def write_text_file(self, project_dir: str, relative_path: str, text: str) -> bool:
        """Create parent directories as needed and overwrite the document."""
        ...


def _resolve(project_dir: str, relative_path: str) -> Path:
    return Path(project_dir) / relative_path


class LocalProjectFiles:
    """`ProjectFiles` implementation on the local filesystem."""

    def read_external_file(self, path: str) -> str:
        return Path(path).read_text(encoding="utf-8")

    def read_text_file(self, project_dir: str, relative_path: str) -> str:
        return _resolve(project_dir, relative_path).read_text(encoding="utf-8")

    def write_text_file(self, project_dir: str, relative_path: str, text: str) -> bool:
        target = _resolve(project_dir, relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        return True

    def atomic_write_text_file(self, project_dir: str, relative_path: str, text: str) -> bool:
        """Write to a temp file in the target directory, then rename over the target."""
        target = _resolve(project_dir, relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with fd:
                fd.write(text)
                fd.flush()
                os.fsync(fd.fileno())
            os.replace(fd.name, target)
        except BaseException:
            try:
                os.unlink(fd.name)
            except OSError:
                pass
            raise
        return True
