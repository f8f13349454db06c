"""Incremental bitcode build pipeline."""

from .build_config import BuildGroupConfig
from .build_graph import BuildGraph, BuildNode, NodeState
from .dependency_extractor import DependencyExtractor
from .dependency_parser import MakefileDependencyParser, parse_dependency_output
from .dependency_store import DependencyRecordStore
from .language_flags import Language
from .module_linker import ModuleLinker
from .orchestrator import BuildOrchestrator, BuildPhase, BuildResult
from .source_scanner import SourceFile, SourceScanner
from .unit_compiler import UnitCompiler

__all__ = [
    "BuildGraph",
    "BuildGroupConfig",
    "BuildNode",
    "BuildOrchestrator",
    "BuildPhase",
    "BuildResult",
    "DependencyExtractor",
    "DependencyRecordStore",
    "Language",
    "MakefileDependencyParser",
    "ModuleLinker",
    "NodeState",
    "SourceFile",
    "SourceScanner",
    "UnitCompiler",
    "parse_dependency_output",
]
