"""Per-language compiler flags.

Design:
    Each source language declares the flags it controls explicitly: the
    language standard, the optimization level and the warning set. The flags
    common to every compile (emit bitcode, header search directories) and the
    user's extra arguments are assembled around them by compile_flags(), so
    dependency extraction and compilation always agree on one flag list.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List


class Language(Enum):
    """Source language of a translation unit."""

    C = "c"
    CPP = "cpp"

    def __str__(self) -> str:
        """Return the string value for config files and display."""
        return self.value


@dataclass(frozen=True)
class LanguageFlags:
    """Flags owned by one source language.

    Attributes:
        language: Language these flags apply to
        standard: Language standard flag (e.g. "-std=c++14")
        optimization: Optimization level flag
        warnings: Warning flags, in command-line order
        position_independent: Whether -fPIC is requested (subject to target support)
    """

    language: Language
    standard: str
    optimization: str
    warnings: tuple[str, ...]
    position_independent: bool


# Keyed by Language. Ordering inside each tuple is preserved on the command line.
LANGUAGE_FLAGS: dict[Language, LanguageFlags] = {
    Language.C: LanguageFlags(
        language=Language.C,
        standard="-std=gnu11",
        optimization="-O3",
        warnings=("-Wall", "-Wextra", "-Werror"),
        position_independent=False,
    ),
    Language.CPP: LanguageFlags(
        language=Language.CPP,
        standard="-std=c++14",
        optimization="-O2",
        warnings=(
            "-Werror",
            "-Wall",
            "-Wextra",
            "-Wno-unused-parameter",
            "-Wno-unused-function",
        ),
        position_independent=True,
    ),
}

# Emit LLVM bitcode instead of native objects
COMMON_COMPILE_FLAGS: tuple[str, ...] = ("-c", "-emit-llvm")

# Target families where -fPIC is rejected by the driver
_NO_PIC_FAMILIES = ("mingw",)

_EXTENSIONS: dict[str, Language] = {
    ".c": Language.C,
    ".cpp": Language.CPP,
    ".cc": Language.CPP,
    ".cxx": Language.CPP,
    ".mm": Language.CPP,
}

SOURCE_EXTENSIONS: tuple[str, ...] = tuple(_EXTENSIONS)


def language_for_path(path: Path) -> Language:
    """Determine the source language from a file extension.

    Args:
        path: Source file path

    Returns:
        Language of the file

    Raises:
        ValueError: If the extension is not a known C/C++ source extension
    """
    try:
        return _EXTENSIONS[path.suffix.lower()]
    except KeyError:
        raise ValueError(f"Not a C/C++ source file: {path}") from None


def supports_pic(target: str) -> bool:
    """Check whether the target accepts position-independent code flags."""
    return not target.lower().startswith(_NO_PIC_FAMILIES)


def language_specific_flags(language: Language, target: str) -> List[str]:
    """Get the flags selected by the language tag.

    Args:
        language: Source language
        target: Target platform identifier (e.g. "linux_x64", "mingw_x64")

    Returns:
        Standard, optimization, warning and (where supported) -fPIC flags
    """
    spec = LANGUAGE_FLAGS[language]
    flags = [spec.standard, spec.optimization, *spec.warnings]
    if spec.position_independent and supports_pic(target):
        flags.append("-fPIC")
    return flags


def compile_flags(
    language: Language,
    target: str,
    headers_dirs: Iterable[Path],
    compiler_args: Iterable[str] = (),
) -> List[str]:
    """Assemble the full flag list shared by dependency extraction and compilation.

    Args:
        language: Source language of the unit
        target: Target platform identifier
        headers_dirs: Header search directories, each becomes -I<dir>
        compiler_args: Extra user-supplied compiler arguments, appended last

    Returns:
        Ordered list of compiler flags (without the source or output path)
    """
    flags = list(COMMON_COMPILE_FLAGS)
    flags.extend(f"-I{d}" for d in headers_dirs)
    flags.extend(language_specific_flags(language, target))
    flags.extend(compiler_args)
    return flags
