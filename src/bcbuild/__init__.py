"""bcbuild - incremental C/C++ to LLVM bitcode builds.

Compiles the sources of a build group to one bitcode object per file, tracks
the headers each file includes, and links the objects into a single module.
Only sources whose inputs changed since the last successful build are
recompiled.
"""

__version__ = "0.3.0"

from .errors import (
    BcbuildError,
    BuildConfigError,
    CyclicDependencyError,
    MalformedDependencyOutput,
    ToolInvocationFailed,
)

__all__ = [
    "__version__",
    "BcbuildError",
    "BuildConfigError",
    "CyclicDependencyError",
    "MalformedDependencyOutput",
    "ToolInvocationFailed",
]
