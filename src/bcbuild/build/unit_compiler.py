"""Compilation of single sources to bitcode objects.

A unit is stale when its object or stamp is missing, when it has no
dependency record or when its compiler flags changed. It is also stale when
the source or any header named in its current record changed since the object
was built. Headers that no longer exist count as changed.

The compiler writes to a temporary file that replaces the object only on
success, so a failed compile never leaves a partial object behind and never
refreshes the stamp.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .build_config import BuildGroupConfig
from .dependency_store import DependencyRecordStore
from .source_scanner import SourceFile
from .unit_stamp import stamp_path_for, staleness_reason

if TYPE_CHECKING:
    from ..toolchain import Toolchain

logger = logging.getLogger(__name__)

OBJECT_SUFFIX = ".bc"


class UnitCompiler:
    """Compiles sources of one build group into bitcode objects.

    Args:
        toolchain: Toolchain used to run the compiler
        store: Dependency records consulted for staleness
        config: Build group configuration
    """

    def __init__(self, toolchain: "Toolchain", store: DependencyRecordStore, config: BuildGroupConfig):
        self.toolchain = toolchain
        self.store = store
        self.config = config

    def object_path(self, source: SourceFile) -> Path:
        return self.config.obj_dir / f"{source.logical_name}{OBJECT_SUFFIX}"

    def stamp_path(self, source: SourceFile) -> Path:
        return stamp_path_for(self.object_path(source))

    def inputs(self, source: SourceFile) -> list[Path]:
        """Source plus every header of its current dependency record."""
        headers = self.store.read(source) or []
        return [source.path, *(Path(h) for h in headers)]

    def fingerprint(self, source: SourceFile) -> str:
        """Flags the unit is compiled with, recorded in its stamp."""
        return " ".join(self.config.compile_flags_for(source.language))

    def record_missing(self, source: SourceFile) -> Optional[str]:
        if not self.store.exists(source):
            return "no dependency record"
        return None

    def is_stale(self, source: SourceFile) -> tuple[bool, str]:
        """Check whether a source must be recompiled.

        Returns:
            (stale, reason); reason is empty when the unit is current
        """
        reason = self.record_missing(source) or staleness_reason(
            [self.object_path(source)],
            self.stamp_path(source),
            self.inputs(source),
            self.config.change_detection,
            self.fingerprint(source),
        )
        return (reason is not None, reason or "")

    def command_args(self, source: SourceFile, output: Path) -> list[str]:
        return [*self.config.compile_flags_for(source.language), str(source.path), "-o", str(output)]

    def compile(self, source: SourceFile) -> Path:
        """Compile one source, replacing its object on success.

        Returns:
            Path of the object file

        Raises:
            ToolInvocationFailed: If the compiler exits non-zero
        """
        obj = self.object_path(source)
        obj.parent.mkdir(parents=True, exist_ok=True)
        temp_obj = obj.with_name(obj.name + ".tmp")

        try:
            result = self.toolchain.run_compiler(source.language, self.command_args(source, temp_obj), self.config.obj_dir)
            result.check()
            if not temp_obj.exists():
                raise FileNotFoundError(f"Compiler reported success but produced no output: {temp_obj}")
            temp_obj.replace(obj)
        finally:
            if temp_obj.exists():
                temp_obj.unlink()

        logger.debug(f"Compiled {source.logical_name} -> {obj}")
        return obj

