"""Incremental build orchestration for one build group.

Sequence per group:
    EXTRACT_DEPS -> COMPILE_UNITS -> LINK -> DONE

Each phase only executes its stale nodes and is left out of the result when
it had nothing to do. A group whose graph has no stale node at all goes
straight to DONE without invoking any tool. Whatever was skipped, the linked
module after a build equals the one a clean rebuild would produce.
"""

import logging
import shutil
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .build_config import BuildGroupConfig
from .build_graph import BuildGraph, BuildNode
from .dependency_extractor import DependencyExtractor
from .dependency_store import RECORD_SUFFIX, DependencyRecordStore
from .module_linker import ModuleLinker
from .source_scanner import SourceFile, SourceScanner
from .unit_compiler import OBJECT_SUFFIX, UnitCompiler
from .unit_stamp import STAMP_SUFFIX, stamp_path_for

if TYPE_CHECKING:
    from ..toolchain import Toolchain

logger = logging.getLogger(__name__)

MODULE_NODE = "module"

# Files under obj_dir that belong to one source, longest suffix first
_ARTIFACT_SUFFIXES = (
    OBJECT_SUFFIX + STAMP_SUFFIX,
    RECORD_SUFFIX + STAMP_SUFFIX,
    OBJECT_SUFFIX,
    RECORD_SUFFIX,
)


class BuildPhase(Enum):
    """Phase of a build group."""

    EXTRACT_DEPS = "extract-deps"
    COMPILE_UNITS = "compile-units"
    LINK = "link"
    DONE = "done"


@dataclass
class BuildResult:
    """Result of building one group.

    Attributes:
        group: Build group name
        phases: Phases that did work, always ending with DONE
        sources: Sources of the group in this run
        extracted: Logical names whose dependency records were regenerated
        compiled: Logical names that were recompiled
        pruned: Logical names whose artifacts were removed with their sources
        linked: Whether the module was relinked
        module: Linked module path (None when linking is skipped)
        build_time: Wall-clock seconds
    """

    group: str
    phases: list[BuildPhase] = field(default_factory=list)
    sources: list[SourceFile] = field(default_factory=list)
    extracted: list[str] = field(default_factory=list)
    compiled: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    linked: bool = False
    module: Optional[Path] = None
    build_time: float = 0.0

    @property
    def up_to_date(self) -> bool:
        """True if nothing had to be done."""
        return self.phases == [BuildPhase.DONE]

    @property
    def cached(self) -> list[str]:
        """Logical names whose objects were reused."""
        compiled = set(self.compiled)
        return [s.logical_name for s in self.sources if s.logical_name not in compiled]


def _node_name(prefix: str, source: SourceFile) -> str:
    return f"{prefix}:{source.logical_name}"


class BuildOrchestrator:
    """Drives dependency extraction, compilation and linking of one group.

    Args:
        config: Build group configuration
        toolchain: Compiler/linker implementation
        jobs: Worker threads for extraction and compilation (default: CPU count)
    """

    def __init__(self, config: BuildGroupConfig, toolchain: "Toolchain", jobs: Optional[int] = None):
        self.config = config
        self.toolchain = toolchain
        self.jobs = jobs
        self.scanner = SourceScanner(config)
        self.store = DependencyRecordStore(config.obj_dir)
        self.extractor = DependencyExtractor(toolchain, self.store, config)
        self.compiler = UnitCompiler(toolchain, self.store, config)
        self.linker = ModuleLinker(toolchain, config)

    def build(self) -> BuildResult:
        """Bring the group's objects and module up to date.

        Returns:
            BuildResult describing what was done

        Raises:
            ToolInvocationFailed: If the compiler or linker fails
            MalformedDependencyOutput: If a dependency listing cannot be parsed
            BuildConfigError: If the sources cannot be enumerated
        """
        start_time = time.time()
        result = BuildResult(group=self.config.name)
        total_phases = 2 if self.config.skip_link else 3

        result.sources = self.scanner.scan()
        result.pruned = self.prune(result.sources)
        if result.pruned:
            logger.info(f"      Removed artifacts of {len(result.pruned)} deleted sources")

        if not result.sources or self.config.skip_link:
            self._remove_module()

        if not result.sources:
            logger.warning(f"No sources found for group '{self.config.name}', nothing to build")
            result.phases.append(BuildPhase.DONE)
            result.build_time = time.time() - start_time
            return result

        graph = self._create_graph(result.sources)
        graph.validate()

        stale = graph.plan()
        if not stale:
            logger.info(f"Group '{self.config.name}' is up to date ({len(result.sources)} sources)")
            result.module = None if self.config.skip_link else self.config.out_file
            result.phases.append(BuildPhase.DONE)
            result.build_time = time.time() - start_time
            return result

        for name, reason in sorted(stale.items()):
            logger.debug(f"Stale: {name}: {reason}")

        logger.info(f"[1/{total_phases}] Extracting dependencies...")
        rebuilt = graph.run([_node_name("deps", s) for s in result.sources])
        result.extracted = [n.name.split(":", 1)[1] for n in rebuilt]
        if rebuilt:
            result.phases.append(BuildPhase.EXTRACT_DEPS)
        logger.info(f"      Extracted {len(result.extracted)}/{len(result.sources)} dependency records")

        logger.info(f"[2/{total_phases}] Compiling units...")
        rebuilt = graph.run([_node_name("unit", s) for s in result.sources])
        result.compiled = [n.name.split(":", 1)[1] for n in rebuilt]
        if rebuilt:
            result.phases.append(BuildPhase.COMPILE_UNITS)
        logger.info(f"      Compiled {len(result.compiled)} units ({len(result.sources) - len(result.compiled)} cached)")

        if not self.config.skip_link:
            logger.info(f"[3/{total_phases}] Linking module...")
            rebuilt = graph.run([MODULE_NODE])
            result.linked = bool(rebuilt)
            if rebuilt:
                result.phases.append(BuildPhase.LINK)
                logger.info(f"      Linked {len(self.linker.collect_objects())} objects into {self.config.out_file.name}")
            else:
                logger.info("      Module is up to date")
            result.module = self.config.out_file

        result.phases.append(BuildPhase.DONE)
        result.build_time = time.time() - start_time
        return result

    def _create_graph(self, sources: list[SourceFile]) -> BuildGraph:
        graph = BuildGraph(kind=self.config.change_detection, max_workers=self.jobs)
        for source in sources:
            record = self.store.record_path(source)
            deps_name = _node_name("deps", source)
            graph.add_node(
                BuildNode(
                    name=deps_name,
                    action=partial(self.extractor.extract, source),
                    inputs=partial(self.compiler.inputs, source),
                    outputs=[record],
                    stamp_file=stamp_path_for(record),
                    fingerprint=self.compiler.fingerprint(source),
                )
            )
            graph.add_node(
                BuildNode(
                    name=_node_name("unit", source),
                    action=partial(self.compiler.compile, source),
                    inputs=partial(self.compiler.inputs, source),
                    outputs=[self.compiler.object_path(source)],
                    stamp_file=self.compiler.stamp_path(source),
                    fingerprint=self.compiler.fingerprint(source),
                    dependencies=[deps_name],
                    precondition=partial(self.compiler.record_missing, source),
                )
            )

        if not self.config.skip_link:
            graph.add_node(
                BuildNode(
                    name=MODULE_NODE,
                    action=self.linker.link,
                    inputs=self.linker.collect_objects,
                    outputs=[self.config.out_file],
                    stamp_file=stamp_path_for(self.config.out_file),
                    fingerprint=" ".join(self.config.linker_args),
                    dependencies=[_node_name("unit", s) for s in sources],
                )
            )
        return graph

    def prune(self, sources: list[SourceFile]) -> list[str]:
        """Delete objects, records and stamps whose source no longer exists.

        Args:
            sources: Current sources of the group

        Returns:
            Sorted logical names whose artifacts were removed
        """
        obj_dir = self.config.obj_dir
        if not obj_dir.is_dir():
            return []

        current = {s.logical_name for s in sources}
        pruned = set()
        for path in sorted(obj_dir.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(obj_dir).as_posix()
            if relative.endswith(".tmp"):
                logger.debug(f"Removing leftover temporary file: {path}")
                path.unlink()
                continue
            for suffix in _ARTIFACT_SUFFIXES:
                if relative.endswith(suffix):
                    logical_name = relative[: -len(suffix)]
                    if logical_name not in current:
                        logger.debug(f"Removing stale artifact: {path}")
                        path.unlink()
                        pruned.add(logical_name)
                    break
        return sorted(pruned)

    def _remove_module(self) -> None:
        """Delete the linked module and its stamp, if present."""
        for path in (self.config.out_file, stamp_path_for(self.config.out_file)):
            if path.exists():
                logger.debug(f"Removing {path}")
                path.unlink()

    def clean(self) -> None:
        """Remove every artifact of the group."""
        if self.config.obj_dir.exists():
            logger.info(f"Removing {self.config.obj_dir}")
            shutil.rmtree(self.config.obj_dir)
        self._remove_module()
