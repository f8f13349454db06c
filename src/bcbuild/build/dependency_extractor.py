"""Dependency extraction.

For each source the compiler is run in "-M" mode with exactly the flags of
the real compile, so the reported header set is the one the compile will
see. The listing is parsed before anything is written: a malformed listing or
a failing compiler leaves the previous record untouched.
"""

import logging
from typing import TYPE_CHECKING

from .build_config import BuildGroupConfig
from .dependency_parser import parse_dependency_output
from .dependency_store import DependencyRecordStore
from .source_scanner import SourceFile

if TYPE_CHECKING:
    from ..toolchain import Toolchain

logger = logging.getLogger(__name__)

DEPENDENCIES_ONLY_FLAG = "-M"


class DependencyExtractor:
    """Produces dependency records by asking the compiler for them.

    Args:
        toolchain: Toolchain used to run the compiler
        store: Record store the results are written to
        config: Build group configuration
    """

    def __init__(self, toolchain: "Toolchain", store: DependencyRecordStore, config: BuildGroupConfig):
        self.toolchain = toolchain
        self.store = store
        self.config = config

    def command_args(self, source: SourceFile) -> list[str]:
        return [*self.config.compile_flags_for(source.language), DEPENDENCIES_ONLY_FLAG, str(source.path)]

    def extract(self, source: SourceFile) -> list[str]:
        """Extract and persist the header set of one source.

        Returns:
            Header paths written to the record

        Raises:
            ToolInvocationFailed: If the compiler exits non-zero
            MalformedDependencyOutput: If the listing cannot be parsed
        """
        self.config.obj_dir.mkdir(parents=True, exist_ok=True)
        result = self.toolchain.run_compiler(source.language, self.command_args(source), self.config.obj_dir)
        result.check()

        headers = parse_dependency_output(result.stdout, source.path)
        self.store.write(source, headers)
        logger.debug(f"{source.logical_name}: {len(headers)} headers")
        return headers
