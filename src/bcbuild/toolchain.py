"""Toolchain interface used by the build pipeline.

The pipeline never spawns processes itself; it goes through an object that
implements the Toolchain protocol. ClangToolchain is the real implementation
backed by clang/clang++/llvm-link. Tests substitute a fake that records the
invocations and writes the expected outputs.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .build.language_flags import Language
from .errors import ToolInvocationFailed
from .subprocess_utils import run_captured

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Outcome of one external tool invocation.

    Attributes:
        cmd_line: Full command line, executable first
        returncode: Process exit status
        stdout: Captured standard output
        stderr: Captured standard error
    """

    cmd_line: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    cwd: Optional[Path] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        """True if the tool exited with status 0."""
        return self.returncode == 0

    def check(self) -> "ToolResult":
        """Raise ToolInvocationFailed unless the tool succeeded.

        Returns:
            self, to allow chaining

        Raises:
            ToolInvocationFailed: If returncode is non-zero
        """
        if not self.ok:
            raise ToolInvocationFailed(self.cmd_line, self.returncode, self.stdout, self.stderr)
        return self


@runtime_checkable
class Toolchain(Protocol):
    """Protocol for invoking the external compiler and linker."""

    def run_compiler(self, language: Language, args: list[str], cwd: Path) -> ToolResult:
        """Run the compiler driver for the given source language."""
        ...

    def run_linker(self, args: list[str], cwd: Path) -> ToolResult:
        """Run the bitcode linker."""
        ...


class ClangToolchain:
    """Toolchain backed by clang, clang++ and llvm-link.

    Args:
        llvm_dir: LLVM installation root. Executables are taken from
            <llvm_dir>/bin when given, otherwise looked up on PATH.
    """

    COMPILERS = {
        Language.C: "clang",
        Language.CPP: "clang++",
    }
    LINKER = "llvm-link"

    def __init__(self, llvm_dir: Optional[Path] = None) -> None:
        self.llvm_dir = llvm_dir

    def executable(self, name: str) -> str:
        """Resolve a tool name to the executable that will be run.

        Args:
            name: Tool name, e.g. "clang++"

        Returns:
            Path of the tool inside llvm_dir, or the bare name for PATH lookup
        """
        if self.llvm_dir is None:
            return shutil.which(name) or name
        return str(self.llvm_dir / "bin" / name)

    def run_compiler(self, language: Language, args: list[str], cwd: Path) -> ToolResult:
        return self._run([self.executable(self.COMPILERS[language]), *args], cwd)

    def run_linker(self, args: list[str], cwd: Path) -> ToolResult:
        return self._run([self.executable(self.LINKER), *args], cwd)

    def _run(self, cmd_line: list[str], cwd: Path) -> ToolResult:
        logger.debug(f"Running: {' '.join(cmd_line)} (cwd: {cwd})")
        try:
            completed = run_captured(cmd_line, cwd=cwd)
        except FileNotFoundError as e:
            # Report a missing executable the same way as a failing one
            return ToolResult(cmd_line=cmd_line, returncode=127, stderr=str(e), cwd=cwd)

        result = ToolResult(
            cmd_line=cmd_line,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            cwd=cwd,
        )
        if not result.ok:
            logger.debug(f"{Path(cmd_line[0]).name} exited with {result.returncode}")
        return result
