"""Persisted dependency records, one file per source.

A record lists the headers a source included the last time its dependencies
were extracted, one absolute path per line. Records live next to the objects
as <obj_dir>/<logical_name>.dep so each one can be fresh or stale on its own.
A missing record means "unknown": the source must be treated as stale.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .source_scanner import SourceFile

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".dep"


def atomic_write_text(path: Path, content: str) -> None:
    """Write a file through a temp file and rename so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        temp_file.write_text(content, encoding="utf-8", errors="surrogateescape")
        temp_file.replace(path)
    finally:
        if temp_file.exists():
            temp_file.unlink()


class DependencyRecordStore:
    """Reads and writes dependency records under an object directory.

    Args:
        obj_dir: Directory holding the group's objects and records
    """

    def __init__(self, obj_dir: Path):
        self.obj_dir = obj_dir

    def record_path(self, source: SourceFile) -> Path:
        return self.obj_dir / f"{source.logical_name}{RECORD_SUFFIX}"

    def exists(self, source: SourceFile) -> bool:
        return self.record_path(source).is_file()

    def read(self, source: SourceFile) -> Optional[list[str]]:
        """Read the header list recorded for a source.

        Returns:
            Header paths, or None if no record exists
        """
        path = self.record_path(source)
        try:
            content = path.read_text(encoding="utf-8", errors="surrogateescape")
        except FileNotFoundError:
            return None
        return [line for line in content.split("\n") if line]

    def write(self, source: SourceFile, headers: list[str]) -> Path:
        """Replace the record of a source.

        Args:
            source: Source the headers belong to
            headers: Header paths in discovery order

        Returns:
            Path of the written record
        """
        path = self.record_path(source)
        atomic_write_text(path, "\n".join(headers))
        logger.debug(f"Wrote {len(headers)} headers to {path}")
        return path

