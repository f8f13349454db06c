"""Subprocess helpers for running compilers and linkers.

All external tools are started through safe_run() so that no console window
flashes up on Windows and child processes never read from the terminal.
"""

import subprocess
import sys
from pathlib import Path
from typing import Any, Optional


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (compilers must never block waiting for input)

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Note:
        An explicit 'creationflags' argument is OR'd with the platform
        defaults; an explicit 'stdin' argument is used as-is.
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run(cmd, **kwargs)


def run_captured(cmd: list[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """Run a tool to completion and capture its output as text.

    The exit status is not checked here; callers decide what a failure means.
    Undecodable bytes are kept as surrogate escapes so file names in the
    output map back to the same files on disk.

    Args:
        cmd: Command and arguments
        cwd: Working directory for the process (None = inherit)

    Returns:
        CompletedProcess with decoded stdout and stderr
    """
    return safe_run(
        cmd,
        cwd=str(cwd) if cwd is not None else None,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="surrogateescape",
    )
