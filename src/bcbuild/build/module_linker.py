"""Linking of bitcode objects into one module.

The objects are found by scanning the object directory rather than by
re-deriving them from the source list, so objects of removed sources must be
pruned before linking (the orchestrator does this). The module is written to
a temporary file first and renamed into place only when the linker succeeds.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .build_config import BuildGroupConfig
from .unit_compiler import OBJECT_SUFFIX

if TYPE_CHECKING:
    from ..toolchain import Toolchain

logger = logging.getLogger(__name__)


class ModuleLinker:
    """Links every object of a build group into <target_dir>/<name>.bc.

    Args:
        toolchain: Toolchain used to run the linker
        config: Build group configuration
    """

    def __init__(self, toolchain: "Toolchain", config: BuildGroupConfig):
        self.toolchain = toolchain
        self.config = config

    @property
    def out_file(self) -> Path:
        return self.config.out_file

    def collect_objects(self) -> list[Path]:
        """All objects currently in the object directory, sorted by path."""
        if not self.config.obj_dir.is_dir():
            return []
        return sorted(p for p in self.config.obj_dir.rglob(f"*{OBJECT_SUFFIX}") if p.is_file())

    def command_args(self, objects: list[Path], output: Path) -> list[str]:
        return ["-o", str(output), *self.config.linker_args, *(str(o) for o in objects)]

    def link(self) -> Path:
        """Link the module.

        Returns:
            Path of the linked module

        Raises:
            ToolInvocationFailed: If the linker exits non-zero
        """
        objects = self.collect_objects()
        out_file = self.out_file
        out_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = out_file.with_name(out_file.name + ".tmp")

        logger.debug(f"Linking {len(objects)} objects into {out_file}")
        try:
            result = self.toolchain.run_linker(self.command_args(objects, temp_file), self.config.target_dir)
            result.check()
            if not temp_file.exists():
                raise FileNotFoundError(f"Linker reported success but produced no output: {temp_file}")
            temp_file.replace(out_file)
        finally:
            if temp_file.exists():
                temp_file.unlink()
        return out_file
