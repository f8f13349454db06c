"""Build group configuration.

This module defines:
- BuildGroupConfig: Everything needed to build one group of sources into one
  bitcode module, resolved once when the group is constructed.

Design:
    All paths are made absolute up front. Derived locations (object directory,
    module file) are plain fields computed by create(), so nothing downstream
    recomputes or memoizes them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import BuildConfigError
from .language_flags import SOURCE_EXTENSIONS, Language, compile_flags

DEFAULT_INCLUDE: tuple[str, ...] = tuple(f"**/*{ext}" for ext in SOURCE_EXTENSIONS)
DEFAULT_EXCLUDE: tuple[str, ...] = tuple(f"**/*Test{ext}" for ext in SOURCE_EXTENSIONS)

CHANGE_DETECTION_MODES = ("content", "mtime")


@dataclass(frozen=True)
class BuildGroupConfig:
    """Full configuration of one build group.

    Attributes:
        name: Group name; names the object folder and the linked module
        src_root: Root directory of the group's sources
        target: Target platform identifier (e.g. "linux_x64")
        output_group: Output bucket under <build_dir>/bitcode
        build_dir: Root build directory
        src_dirs: Directories scanned for sources
        headers_dirs: Header search directories (-I flags)
        include: Glob patterns selecting sources, relative to each src dir
        exclude: Glob patterns removing sources from the selection
        compiler_args: Extra compiler arguments appended to every compile
        linker_args: Extra linker arguments placed ahead of the objects
        language: Forced language for every source, or None to use extensions
        skip_link: Only produce object files, never the module
        change_detection: "content" (sha256) or "mtime"
        target_dir: <build_dir>/bitcode/<output_group>/<target>
        obj_dir: <target_dir>/<name>, holds objects, records and stamps
        out_file: <target_dir>/<name>.bc, the linked module
    """

    name: str
    src_root: Path
    target: str
    output_group: str
    build_dir: Path
    src_dirs: tuple[Path, ...]
    headers_dirs: tuple[Path, ...]
    include: tuple[str, ...]
    exclude: tuple[str, ...]
    compiler_args: tuple[str, ...]
    linker_args: tuple[str, ...]
    language: Optional[Language]
    skip_link: bool
    change_detection: str
    target_dir: Path
    obj_dir: Path
    out_file: Path

    @classmethod
    def create(
        cls,
        name: str,
        src_root: Path,
        target: str,
        build_dir: Path,
        output_group: str = "main",
        src_dirs: Optional[Iterable[Path]] = None,
        headers_dirs: Optional[Iterable[Path]] = None,
        include: Iterable[str] = DEFAULT_INCLUDE,
        exclude: Iterable[str] = DEFAULT_EXCLUDE,
        compiler_args: Iterable[str] = (),
        linker_args: Iterable[str] = (),
        language: Optional[Language] = None,
        skip_link: bool = False,
        change_detection: str = "content",
    ) -> "BuildGroupConfig":
        """Create a configuration with every path resolved.

        Relative src_dirs and headers_dirs are taken relative to src_root.
        They default to <src_root>/cpp and <src_root>/headers.

        Raises:
            BuildConfigError: If a value is invalid
        """
        if not name:
            raise BuildConfigError("Build group name must not be empty")
        if not target:
            raise BuildConfigError(f"Build group '{name}' has no target")
        if change_detection not in CHANGE_DETECTION_MODES:
            raise BuildConfigError(f"Build group '{name}': change_detection must be one of {', '.join(CHANGE_DETECTION_MODES)}, got '{change_detection}'")

        src_root = Path(src_root).absolute()
        build_dir = Path(build_dir).absolute()

        def resolve(paths: Optional[Iterable[Path]], default: str) -> tuple[Path, ...]:
            if paths is None:
                return (src_root / default,)
            return tuple(p if p.is_absolute() else src_root / p for p in map(Path, paths))

        target_dir = build_dir / "bitcode" / output_group / target
        return cls(
            name=name,
            src_root=src_root,
            target=target,
            output_group=output_group,
            build_dir=build_dir,
            src_dirs=resolve(src_dirs, "cpp"),
            headers_dirs=resolve(headers_dirs, "headers"),
            include=tuple(include),
            exclude=tuple(exclude),
            compiler_args=tuple(compiler_args),
            linker_args=tuple(linker_args),
            language=language,
            skip_link=skip_link,
            change_detection=change_detection,
            target_dir=target_dir,
            obj_dir=target_dir / name,
            out_file=target_dir / f"{name}.bc",
        )

    def compile_flags_for(self, language: Language) -> List[str]:
        """Flags used for both dependency extraction and compilation of a unit."""
        return compile_flags(language, self.target, self.headers_dirs, self.compiler_args)
