"""Elapsed-time clock for console lines.

Every line the CLI writes starts with the time since launch as MM:SS.cc, so a
slow phase stands out when reading a build log:

    00:00.01 bcbuild v0.3.0
    00:00.35 [1/3] Extracting dependencies...
"""

import time

_started = time.monotonic()


def init_timer() -> None:
    """Restart the clock; the CLI calls this once before its first line."""
    global _started
    _started = time.monotonic()


def elapsed() -> float:
    return time.monotonic() - _started


def format_timestamp() -> str:
    """Current elapsed time as MM:SS.cc."""
    minutes, seconds = divmod(elapsed(), 60)
    return f"{int(minutes):02d}:{seconds:05.2f}"
