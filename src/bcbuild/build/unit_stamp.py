"""Change signals and build stamps for incremental compilation.

A stamp records, for one produced artifact, the change signal of every input
the artifact was built from. An artifact is up to date when its stamp exists
and every current input still has the recorded signal. A stamp is written
only after the artifact was produced successfully, so a failed build step
leaves the previous stamp (and therefore the staleness) in place.

Two kinds of signal are supported:
- "content": SHA256 of the file contents
- "mtime": modification time in nanoseconds plus size

A missing input has the signal None, which never equals a recorded signal of
an existing file, so deleted headers are detected as changes.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .dependency_store import atomic_write_text

logger = logging.getLogger(__name__)

STAMP_SUFFIX = ".stamp"


def get_file_hash(file_path: Path) -> str:
    """Calculate SHA256 hash of file contents.

    Raises:
        FileNotFoundError: If file does not exist
        IOError: If file cannot be read
    """
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def compute_signal(file_path: Path, kind: str) -> Optional[str]:
    """Compute the change signal of a file.

    Args:
        file_path: File to inspect
        kind: "content" or "mtime"

    Returns:
        Signal string, or None if the file does not exist
    """
    try:
        if kind == "mtime":
            st = file_path.stat()
            return f"{st.st_mtime_ns}:{st.st_size}"
        return get_file_hash(file_path)
    except (FileNotFoundError, IsADirectoryError):
        return None


def stamp_path_for(artifact: Path) -> Path:
    """Location of the stamp belonging to an artifact."""
    return artifact.with_name(artifact.name + STAMP_SUFFIX)


@dataclass
class BuildStamp:
    """Input signals an artifact was last built from.

    Attributes:
        kind: Signal kind the values were computed with
        inputs: Absolute input path -> signal (None if it was missing)
        fingerprint: Command line (or other settings) the artifact was built with
    """

    kind: str
    inputs: dict[str, Optional[str]] = field(default_factory=dict)
    fingerprint: str = ""

    @classmethod
    def capture(cls, paths: Iterable[Path], kind: str, fingerprint: str = "") -> BuildStamp:
        """Record the current signals of the given inputs."""
        return cls(kind=kind, inputs={str(p): compute_signal(p, kind) for p in paths}, fingerprint=fingerprint)

    def changed_inputs(self, paths: Iterable[Path]) -> list[str]:
        """Compare current inputs with this stamp.

        Args:
            paths: The artifact's current inputs

        Returns:
            Inputs that are new, gone, or carry a different signal, plus
            recorded inputs that are no longer listed
        """
        current = [str(p) for p in paths]
        changed = [p for p in current if p not in self.inputs or self.inputs[p] != compute_signal(Path(p), self.kind)]
        listed = set(current)
        changed.extend(p for p in self.inputs if p not in listed)
        return changed

    def to_dict(self) -> dict:
        return {"kind": self.kind, "inputs": dict(self.inputs), "fingerprint": self.fingerprint}

    @classmethod
    def from_dict(cls, data: dict) -> BuildStamp:
        return cls(kind=data["kind"], inputs=dict(data["inputs"]), fingerprint=data.get("fingerprint", ""))

    def save(self, stamp_file: Path) -> None:
        """Save atomically (temp file + rename)."""
        atomic_write_text(stamp_file, json.dumps(self.to_dict(), indent=2, sort_keys=True))
        logger.debug(f"Saved stamp with {len(self.inputs)} inputs to {stamp_file}")

    @classmethod
    def load(cls, stamp_file: Path) -> Optional[BuildStamp]:
        """Load a stamp from disk.

        Returns:
            The stamp, or None if it is missing or unreadable
        """
        if not stamp_file.exists():
            return None
        try:
            with open(stamp_file, "r", encoding="utf-8") as f:
                return cls.from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError, IOError) as e:
            logger.warning(f"Ignoring unreadable stamp {stamp_file}: {e}")
            return None


def staleness_reason(
    outputs: Iterable[Path],
    stamp_file: Path,
    inputs: Iterable[Path],
    kind: str,
    fingerprint: str = "",
) -> Optional[str]:
    """Decide whether an artifact must be rebuilt.

    Args:
        outputs: Files the build step produces
        stamp_file: Stamp written after the last successful build
        inputs: Files the artifact currently depends on
        kind: Signal kind to compare with
        fingerprint: Settings the artifact would be built with now

    Returns:
        Human-readable reason if the artifact is stale, None if it is current
    """
    for output in outputs:
        if not output.exists():
            return f"output missing: {output.name}"

    stamp = BuildStamp.load(stamp_file)
    if stamp is None:
        return "no previous build stamp"
    if stamp.kind != kind:
        return f"change detection switched from {stamp.kind} to {kind}"
    if stamp.fingerprint != fingerprint:
        return "command line changed"

    changed = stamp.changed_inputs(inputs)
    if changed:
        names = ", ".join(Path(p).name for p in changed[:3])
        more = f" (+{len(changed) - 3} more)" if len(changed) > 3 else ""
        return f"changed inputs: {names}{more}"
    return None
