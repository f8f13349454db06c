"""Pytest configuration and fixtures for bcbuild tests.

The build pipeline never spawns processes itself, so tests drive it through
FakeToolchain: a stand-in for clang/clang++/llvm-link that resolves
`#include "..."` directives to produce `-M` listings, writes deterministic
"bitcode" files, and records every invocation.
"""

import re
import sys
import threading
from pathlib import Path
from typing import Callable, Optional

import pytest

from bcbuild.build.build_config import BuildGroupConfig
from bcbuild.build.language_flags import Language
from bcbuild.toolchain import ToolResult

_INCLUDE_RE = re.compile(r'^\s*#\s*include\s+"([^"]+)"', re.MULTILINE)


def _escape(path: str) -> str:
    return path.replace("\\", "\\\\").replace(" ", "\\ ")


class FakeToolchain:
    """Records invocations and imitates the compiler and linker.

    Attributes:
        calls: (tool, args) per invocation, tool is "c", "cpp" or "link"
        fail_compile: Source stems whose compile exits with status 1
        fail_deps: Source stems whose dependency extraction exits with status 1
        fail_link: Make the linker exit with status 1
        dependency_output: Source stem -> raw text returned for `-M`
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str]]] = []
        self.fail_compile: set[str] = set()
        self.fail_deps: set[str] = set()
        self.fail_link = False
        self.dependency_output: dict[str, str] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self.calls.clear()

    @property
    def dependency_calls(self) -> list[list[str]]:
        return [args for tool, args in self.calls if tool != "link" and "-M" in args]

    @property
    def compile_calls(self) -> list[list[str]]:
        return [args for tool, args in self.calls if tool != "link" and "-M" not in args]

    @property
    def link_calls(self) -> list[list[str]]:
        return [args for tool, args in self.calls if tool == "link"]

    def compiled_stems(self) -> list[str]:
        return sorted(Path(args[args.index("-o") - 1]).stem for args in self.compile_calls)

    def extracted_stems(self) -> list[str]:
        return sorted(Path(args[-1]).stem for args in self.dependency_calls)

    def run_compiler(self, language: Language, args: list[str], cwd: Path) -> ToolResult:
        cmd_line = [f"fake-{language.value}", *args]
        with self._lock:
            self.calls.append((language.value, list(args)))

        if "-M" in args:
            return self._list_dependencies(cmd_line, args)

        output = Path(args[args.index("-o") + 1])
        source = Path(args[args.index("-o") - 1])
        if source.stem in self.fail_compile:
            return ToolResult(cmd_line, 1, "", f"{source}:1:1: error: expected ';'\n", cwd)
        include_dirs = [Path(a[2:]) for a in args if a.startswith("-I")]
        try:
            headers = self._resolve_includes(source, include_dirs)
        except FileNotFoundError as e:
            return ToolResult(cmd_line, 1, "", f"fatal error: '{e.args[0]}' file not found\n", cwd)
        text = "".join(p.read_text() for p in [source, *headers])
        output.write_text(f"bitcode({source.name}):{text}")
        return ToolResult(cmd_line, 0, "", "", cwd)

    def run_linker(self, args: list[str], cwd: Path) -> ToolResult:
        cmd_line = ["fake-llvm-link", *args]
        with self._lock:
            self.calls.append(("link", list(args)))
        if self.fail_link:
            return ToolResult(cmd_line, 1, "", "error: linking failed\n", cwd)
        output = Path(args[args.index("-o") + 1])
        objects = [Path(a) for a in args if a.endswith(".bc") and Path(a).is_file()]
        output.write_text("\n".join(o.read_text() for o in objects))
        return ToolResult(cmd_line, 0, "", "", cwd)

    def _list_dependencies(self, cmd_line: list[str], args: list[str]) -> ToolResult:
        source = Path(args[-1])
        if source.stem in self.fail_deps:
            return ToolResult(cmd_line, 1, "", "fatal error: unable to read source\n")
        if source.stem in self.dependency_output:
            return ToolResult(cmd_line, 0, self.dependency_output[source.stem], "")

        include_dirs = [Path(a[2:]) for a in args if a.startswith("-I")]
        try:
            headers = self._resolve_includes(source, include_dirs)
        except FileNotFoundError as e:
            return ToolResult(cmd_line, 1, "", f"fatal error: '{e.args[0]}' file not found\n")

        listing = " \\\n  ".join(_escape(str(p)) for p in [source, *headers])
        return ToolResult(cmd_line, 0, f"{source.stem}.o: {listing}\n", "")

    def _resolve_includes(self, source: Path, include_dirs: list[Path]) -> list[Path]:
        found: list[Path] = []
        pending = [source]
        while pending:
            current = pending.pop(0)
            for name in _INCLUDE_RE.findall(current.read_text()):
                for directory in [current.parent, *include_dirs]:
                    candidate = directory / name
                    if candidate.is_file():
                        break
                else:
                    raise FileNotFoundError(name)
                if candidate not in found:
                    found.append(candidate)
                    pending.append(candidate)
        return found


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def src_root(tmp_path: Path) -> Path:
    """A group source tree with empty cpp/ and headers/ directories."""
    root = tmp_path / "runtime"
    (root / "cpp").mkdir(parents=True)
    (root / "headers").mkdir()
    return root


@pytest.fixture
def make_config(tmp_path: Path, src_root: Path) -> Callable[..., BuildGroupConfig]:
    """Factory for a BuildGroupConfig rooted at src_root."""

    def factory(name: str = "runtime", target: str = "linux_x64", build_dir: Optional[Path] = None, **overrides) -> BuildGroupConfig:
        return BuildGroupConfig.create(
            name=name,
            src_root=src_root,
            target=target,
            build_dir=build_dir or tmp_path / "build",
            **overrides,
        )

    return factory


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr are always restored after each test."""
    yield

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__
