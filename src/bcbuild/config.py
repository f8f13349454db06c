"""Loader for bcbuild.ini project files.

The file is an INI file in the manner of platformio.ini:

    [bcbuild]
    build_dir = build
    llvm_dir = /opt/llvm
    default_groups = runtime

    [group:runtime]
    src_root = runtime/src/main
    target = linux_x64
    compiler_args = -DKONAN_MI=1

List values are whitespace separated (newlines included) and are split with
shell quoting rules, so a value may contain a quoted space. Relative paths are
resolved against the directory holding the file.
"""

import configparser
import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .build.build_config import DEFAULT_EXCLUDE, DEFAULT_INCLUDE, BuildGroupConfig
from .build.language_flags import Language
from .errors import BuildConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "bcbuild.ini"
MAIN_SECTION = "bcbuild"
GROUP_PREFIX = "group:"

_GROUP_KEYS = {
    "src_root",
    "target",
    "output_group",
    "src_dirs",
    "headers_dirs",
    "include",
    "exclude",
    "compiler_args",
    "linker_args",
    "language",
    "skip_link",
    "change_detection",
}


@dataclass(frozen=True)
class ProjectConfig:
    """A parsed bcbuild.ini.

    Attributes:
        path: The configuration file
        build_dir: Root build directory
        llvm_dir: LLVM installation to take tools from (None uses PATH)
        default_groups: Groups built when none are requested
        groups: Build groups by name, in file order
    """

    path: Path
    build_dir: Path
    llvm_dir: Optional[Path]
    default_groups: tuple[str, ...]
    groups: dict[str, BuildGroupConfig] = field(default_factory=dict)

    def select(self, names: Optional[list[str]] = None) -> list[BuildGroupConfig]:
        """Return the groups to build.

        Args:
            names: Requested group names; falls back to default_groups, then
                to every group

        Raises:
            BuildConfigError: If a requested group does not exist
        """
        wanted = list(names or self.default_groups or self.groups)
        unknown = [n for n in wanted if n not in self.groups]
        if unknown:
            raise BuildConfigError(f"Unknown build group(s): {', '.join(unknown)} (available: {', '.join(self.groups) or 'none'})")
        return [self.groups[n] for n in wanted]


def _split(value: str) -> list[str]:
    try:
        return shlex.split(value)
    except ValueError as e:
        raise BuildConfigError(f"Cannot parse list value {value!r}: {e}") from e


def _parse_language(value: str, section: str) -> Optional[Language]:
    if not value:
        return None
    try:
        return Language(value.lower())
    except ValueError:
        raise BuildConfigError(f"[{section}] language must be 'c' or 'cpp', got '{value}'") from None


def _parse_group(name: str, section: configparser.SectionProxy, base_dir: Path, build_dir: Path) -> BuildGroupConfig:
    unknown = set(section.keys()) - _GROUP_KEYS - set(section.parser.defaults())
    if unknown:
        logger.warning(f"[{section.name}] ignoring unknown option(s): {', '.join(sorted(unknown))}")

    src_root = section.get("src_root")
    if not src_root:
        raise BuildConfigError(f"[{section.name}] src_root is required")
    target = section.get("target")
    if not target:
        raise BuildConfigError(f"[{section.name}] target is required")

    try:
        skip_link = section.getboolean("skip_link", fallback=False)
    except ValueError as e:
        raise BuildConfigError(f"[{section.name}] skip_link: {e}") from e

    src_dirs = _split(section["src_dirs"]) if "src_dirs" in section else None
    headers_dirs = _split(section["headers_dirs"]) if "headers_dirs" in section else None

    return BuildGroupConfig.create(
        name=name,
        src_root=base_dir / src_root,
        target=target,
        build_dir=build_dir,
        output_group=section.get("output_group", "main"),
        src_dirs=[Path(p) for p in src_dirs] if src_dirs is not None else None,
        headers_dirs=[Path(p) for p in headers_dirs] if headers_dirs is not None else None,
        include=_split(section["include"]) if "include" in section else DEFAULT_INCLUDE,
        exclude=_split(section["exclude"]) if "exclude" in section else DEFAULT_EXCLUDE,
        compiler_args=_split(section.get("compiler_args", "")),
        linker_args=_split(section.get("linker_args", "")),
        language=_parse_language(section.get("language", ""), section.name),
        skip_link=skip_link,
        change_detection=section.get("change_detection", "content").strip().lower(),
    )


def load_config(path: Path) -> ProjectConfig:
    """Parse a bcbuild.ini file.

    Args:
        path: Path to the configuration file

    Returns:
        ProjectConfig with every group resolved

    Raises:
        BuildConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path).absolute()
    if not path.is_file():
        raise BuildConfigError(f"Configuration file not found: {path}")

    parser = configparser.ConfigParser(inline_comment_prefixes=(";", "#"), interpolation=None)
    try:
        parser.read(path, encoding="utf-8")
    except configparser.Error as e:
        raise BuildConfigError(f"Invalid configuration file {path}: {e}") from e

    base_dir = path.parent
    main = parser[MAIN_SECTION] if parser.has_section(MAIN_SECTION) else None
    build_dir = base_dir / (main.get("build_dir", "build") if main is not None else "build")
    llvm_dir_value = main.get("llvm_dir", "") if main is not None else ""
    llvm_dir = base_dir / llvm_dir_value if llvm_dir_value else None
    default_groups = tuple(_split(main.get("default_groups", ""))) if main is not None else ()

    groups: dict[str, BuildGroupConfig] = {}
    for section_name in parser.sections():
        if section_name == MAIN_SECTION:
            continue
        if not section_name.startswith(GROUP_PREFIX):
            logger.warning(f"Ignoring unknown section [{section_name}] in {path.name}")
            continue
        name = section_name[len(GROUP_PREFIX) :].strip()
        groups[name] = _parse_group(name, parser[section_name], base_dir, build_dir)

    if not groups:
        raise BuildConfigError(f"No [{GROUP_PREFIX}<name>] sections found in {path}")

    logger.debug(f"Loaded {len(groups)} build group(s) from {path}")
    return ProjectConfig(
        path=path,
        build_dir=build_dir,
        llvm_dir=llvm_dir,
        default_groups=default_groups,
        groups=groups,
    )
