"""Generic incremental build graph.

Every artifact of a build (dependency record, object, module) is a node with
declared upstream nodes, a callable returning its current input files, its
output files, and the stamp written after it was last built. The graph walks
nodes in dependency order, one level at a time, and executes only the stale
ones on a bounded thread pool.

A node is stale when:
1. An upstream node was rebuilt during this run
2. A node-specific precondition reports a reason (e.g. missing record)
3. An output or the stamp is missing, the fingerprint differs, or an
   input's change signal differs

Usage:
    graph = BuildGraph(kind="content", max_workers=8)
    graph.add_node(BuildNode(name="dep:a", ...))
    graph.add_node(BuildNode(name="obj:a", dependencies=["dep:a"], ...))
    graph.validate()  # raises CyclicDependencyError if cycle detected
    graph.run(["dep:a"])
    graph.run(["obj:a"])
"""

import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..errors import CyclicDependencyError
from .unit_stamp import BuildStamp, compute_signal, staleness_reason

logger = logging.getLogger(__name__)


class NodeState(Enum):
    """State of a node within one build run."""

    PENDING = "pending"
    CURRENT = "current"
    REBUILT = "rebuilt"
    FAILED = "failed"


@dataclass
class BuildNode:
    """One artifact of the build.

    Attributes:
        name: Unique node name (e.g. "obj:runtime/Alloc")
        action: Produces the outputs; raises on failure
        inputs: Returns the files the artifact currently depends on
        outputs: Files the action produces
        stamp_file: Where the input signals are recorded after success
        dependencies: Names of nodes that must be current before this one
        precondition: Optional extra staleness check returning a reason or None
        fingerprint: Settings recorded in the stamp; a change makes the node stale
        state: State within the current run
        reason: Why the node was rebuilt (empty if it was current)
        error: Exception raised by the action, if it failed
        elapsed: Seconds spent in the action
    """

    name: str
    action: Callable[[], object]
    inputs: Callable[[], list[Path]]
    outputs: list[Path]
    stamp_file: Path
    dependencies: list[str] = field(default_factory=list)
    precondition: Optional[Callable[[], Optional[str]]] = None
    fingerprint: str = ""
    state: NodeState = NodeState.PENDING
    reason: str = ""
    error: Optional[BaseException] = None
    elapsed: float = 0.0


class BuildGraph:
    """Executes stale nodes in dependency order.

    Args:
        kind: Change signal kind, "content" or "mtime"
        max_workers: Thread pool size (default: CPU count)
    """

    def __init__(self, kind: str = "content", max_workers: Optional[int] = None) -> None:
        self.kind = kind
        self.max_workers = max_workers or os.cpu_count() or 1
        self._nodes: dict[str, BuildNode] = {}
        self._lock = threading.Lock()

    def add_node(self, node: BuildNode) -> None:
        """Add a node.

        Raises:
            ValueError: If a node with the same name already exists.
        """
        with self._lock:
            if node.name in self._nodes:
                raise ValueError(f"Duplicate node name: {node.name}")
            self._nodes[node.name] = node

    def get_node(self, name: str) -> BuildNode:
        with self._lock:
            if name not in self._nodes:
                raise KeyError(f"Unknown node: {name}")
            return self._nodes[name]

    @property
    def node_count(self) -> int:
        with self._lock:
            return len(self._nodes)

    def validate(self) -> None:
        """Check references and detect cycles.

        Raises:
            CyclicDependencyError: On an unknown dependency or a cycle
        """
        with self._lock:
            for node in self._nodes.values():
                for dep_name in node.dependencies:
                    if dep_name not in self._nodes:
                        raise CyclicDependencyError(f"Node '{node.name}' depends on unknown node '{dep_name}'")
            self._detect_cycles()

    def _detect_cycles(self) -> None:
        """DFS with white/gray/black coloring."""
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {name: WHITE for name in self._nodes}

        def dfs(name: str, path: list[str]) -> None:
            color[name] = GRAY
            path.append(name)
            for dep_name in self._nodes[name].dependencies:
                if color[dep_name] == GRAY:
                    cycle = path[path.index(dep_name) :] + [dep_name]
                    raise CyclicDependencyError(f"Cyclic dependency detected: {' -> '.join(cycle)}")
                if color[dep_name] == WHITE:
                    dfs(dep_name, path)
            path.pop()
            color[name] = BLACK

        for name in self._nodes:
            if color[name] == WHITE:
                dfs(name, [])

    def stale_reason(self, node: BuildNode) -> Optional[str]:
        """Why the node must be rebuilt, or None if it is current."""
        for dep_name in node.dependencies:
            if self.get_node(dep_name).state == NodeState.REBUILT:
                return f"'{dep_name}' was rebuilt"
        if node.precondition is not None:
            reason = node.precondition()
            if reason:
                return reason
        return staleness_reason(node.outputs, node.stamp_file, node.inputs(), self.kind, node.fingerprint)

    def plan(self) -> dict[str, str]:
        """Stale nodes judged from stamps alone, without running anything.

        Returns:
            Node name -> reason for every node that would be rebuilt first
        """
        with self._lock:
            nodes = list(self._nodes.values())
        stale = {}
        for node in nodes:
            reason = self.stale_reason(node)
            if reason:
                stale[node.name] = reason
        return stale

    def _levels(self, names: list[str]) -> list[list[BuildNode]]:
        """Group requested nodes into levels whose dependencies are satisfied."""
        todo = {name: self.get_node(name) for name in names}
        done: set[str] = set()
        levels = []
        while todo:
            level = []
            for name, node in todo.items():
                ready = True
                for dep_name in node.dependencies:
                    if dep_name in todo:
                        ready = False
                    elif dep_name not in done and self.get_node(dep_name).state in (NodeState.PENDING, NodeState.FAILED):
                        raise RuntimeError(f"Node '{name}' requires '{dep_name}', which has not been built")
                if ready:
                    level.append(node)
            if not level:
                raise CyclicDependencyError(f"Unable to order remaining nodes: {', '.join(sorted(todo))}")
            levels.append(sorted(level, key=lambda n: n.name))
            for node in level:
                done.add(node.name)
                del todo[node.name]
        return levels

    def run(self, names: list[str]) -> list[BuildNode]:
        """Bring the named nodes up to date.

        All stale nodes of one level are submitted together; every submitted
        action is allowed to finish before a failure is raised.

        Args:
            names: Nodes to build; their dependencies must be in `names` or
                already current/rebuilt

        Returns:
            Nodes that were rebuilt, in execution order

        Raises:
            Exception: The first error raised by a failing action
        """
        rebuilt: list[BuildNode] = []
        levels = self._levels(names)
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="bcbuild") as executor:
            for level in levels:
                stale = []
                for node in level:
                    reason = self.stale_reason(node)
                    if reason:
                        node.reason = reason
                        stale.append(node)
                    else:
                        node.state = NodeState.CURRENT
                        logger.debug(f"Up to date: {node.name}")

                futures: dict[Future[None], BuildNode] = {executor.submit(self._execute, node): node for node in stale}
                wait(futures)

                failed = [node for node in stale if node.state == NodeState.FAILED]
                rebuilt.extend(node for node in stale if node.state == NodeState.REBUILT)
                if failed:
                    raise failed[0].error  # type: ignore[misc]
        return rebuilt

    def _execute(self, node: BuildNode) -> None:
        """Run one node's action and record its stamp on success."""
        logger.debug(f"Building {node.name} ({node.reason})")
        start = time.monotonic()
        try:
            before = {str(p): compute_signal(p, self.kind) for p in node.inputs()}
            node.action()

            # Inputs known before the action keep the signal they had when it started
            stamp = BuildStamp.capture(node.inputs(), self.kind, node.fingerprint)
            for path in stamp.inputs:
                if path in before:
                    stamp.inputs[path] = before[path]
            stamp.save(node.stamp_file)
        except Exception as e:
            node.error = e
            node.state = NodeState.FAILED
            node.elapsed = time.monotonic() - start
            logger.error(f"Failed: {node.name}: {e}")
            return

        node.elapsed = time.monotonic() - start
        node.state = NodeState.REBUILT
        logger.debug(f"Built {node.name} in {node.elapsed:.2f}s")
