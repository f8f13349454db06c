"""Exception hierarchy for bcbuild.

Every error raised by the build pipeline derives from BcbuildError so the CLI
can report failures without catching unrelated exceptions.
"""


class BcbuildError(Exception):
    """Base class for all bcbuild errors."""

    pass


class BuildConfigError(BcbuildError):
    """Raised when the project or build group configuration is invalid."""

    pass


class MalformedDependencyOutput(BcbuildError):
    """Raised when the compiler's dependency listing does not have the expected shape."""

    def __init__(self, message: str, source_path: str, output: str):
        super().__init__(message)
        self.source_path = source_path
        self.output = output


class ToolInvocationFailed(BcbuildError):
    """Raised when an external compiler or linker exits with a non-zero status.

    The captured stdout/stderr of the failing process is kept verbatim and is
    part of the message so callers can surface the tool's diagnostics.
    """

    def __init__(self, cmd_line: list[str], returncode: int, stdout: str, stderr: str):
        self.cmd_line = list(cmd_line)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

        lines = [f"Command failed with exit code {returncode}: {' '.join(self.cmd_line)}"]
        if stdout:
            lines.append(stdout.rstrip("\n"))
        if stderr:
            lines.append(stderr.rstrip("\n"))
        super().__init__("\n".join(lines))


class CyclicDependencyError(BcbuildError):
    """Raised when the build graph contains a cycle or an unknown node reference."""

    pass
