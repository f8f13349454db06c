"""Source file discovery for a build group.

Sources are enumerated fresh on every build by walking the group's source
directories. A file is selected when its path relative to the source
directory matches one of the include patterns and none of the exclude
patterns. Patterns use shell-style wildcards; a leading "**/" also matches
files directly inside the source directory.
"""

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..errors import BuildConfigError
from .build_config import BuildGroupConfig
from .language_flags import SOURCE_EXTENSIONS, Language, language_for_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """One translation unit of a build group.

    Attributes:
        path: Absolute path, the identity of the source
        logical_name: Path relative to its source directory, without extension
        language: Language the unit is compiled as
    """

    path: Path
    logical_name: str
    language: Language

    def __str__(self) -> str:
        return self.logical_name


def matches_pattern(relative_path: str, pattern: str) -> bool:
    """Check a POSIX relative path against one glob pattern.

    Args:
        relative_path: Path relative to the source directory, "/" separated
        pattern: Shell-style pattern, e.g. "**/*.cpp"

    Returns:
        True if the path matches
    """
    if fnmatch.fnmatchcase(relative_path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatchcase(relative_path, pattern[3:])


def is_selected(relative_path: str, include: Iterable[str], exclude: Iterable[str]) -> bool:
    """Include wins only if no exclude pattern matches."""
    if not any(matches_pattern(relative_path, p) for p in include):
        return False
    return not any(matches_pattern(relative_path, p) for p in exclude)


class SourceScanner:
    """Enumerates the sources of one build group.

    Args:
        config: Build group configuration
    """

    def __init__(self, config: BuildGroupConfig):
        self.config = config

    def scan(self) -> list[SourceFile]:
        """Scan all source directories.

        Returns:
            Sources sorted by logical name

        Raises:
            BuildConfigError: If two sources map to the same logical name
        """
        by_name: dict[str, SourceFile] = {}
        for src_dir in self.config.src_dirs:
            if not src_dir.is_dir():
                logger.warning(f"Source directory not found: {src_dir}")
                continue
            for source in self._scan_dir(src_dir):
                existing = by_name.get(source.logical_name)
                if existing is not None:
                    raise BuildConfigError(f"Sources {existing.path} and {source.path} both map to object '{source.logical_name}'")
                by_name[source.logical_name] = source

        sources = [by_name[name] for name in sorted(by_name)]
        logger.debug(f"Found {len(sources)} source files for group '{self.config.name}'")
        return sources

    def _scan_dir(self, src_dir: Path) -> list[SourceFile]:
        sources = []
        for path in sorted(src_dir.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(src_dir).as_posix()
            if not is_selected(relative, self.config.include, self.config.exclude):
                continue
            language = self._language_for(path)
            if language is None:
                logger.debug(f"Skipping non C/C++ file matched by include patterns: {path}")
                continue
            logical_name = relative[: -len(path.suffix)] if path.suffix else relative
            sources.append(SourceFile(path=path.absolute(), logical_name=logical_name, language=language))
        return sources

    def _language_for(self, path: Path) -> Optional[Language]:
        if path.suffix.lower() not in SOURCE_EXTENSIONS:
            return None
        if self.config.language is not None:
            return self.config.language
        return language_for_path(path)
