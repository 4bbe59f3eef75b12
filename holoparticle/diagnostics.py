"""Console diagnostics shared by the engine, the samplers and the Qt view.

Messages are plain prefixed lines (``[Holo][DEBUG] ...``).  The entry point
installs :class:`DebugSilencer` on ``sys.stdout``/``sys.stderr`` so the verbose
engine chatter stays out of the console unless ``HOLO_DEBUG`` is set.
"""

from __future__ import annotations

import io
import os
import sys

DEBUG_MARKER = "[Holo][DEBUG]"
WARN_MARKER = "[Holo][WARN]"


def debug(message: str) -> None:
    print(f"{DEBUG_MARKER} {message}", flush=True)


def warn(message: str) -> None:
    print(f"{WARN_MARKER} {message}", file=sys.stderr, flush=True)


class DebugSilencer(io.TextIOBase):
    """Line filter in front of a console stream.

    Complete lines containing one of ``markers`` are dropped and counted in
    :attr:`suppressed`; an unterminated tail waits for its newline or for
    :meth:`flush`.
    """

    def __init__(self, stream, *markers: str) -> None:
        super().__init__()
        self.stream = stream
        self.markers = tuple(m for m in markers if m)
        self.suppressed = 0
        self._pending = ""

    def _forward(self, line: str) -> None:
        if any(marker in line for marker in self.markers):
            self.suppressed += 1
        else:
            self.stream.write(line)

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:  # type: ignore[override]
        chunks = (self._pending + text).splitlines(keepends=True)
        self._pending = chunks.pop() if chunks and not chunks[-1].endswith("\n") else ""
        for line in chunks:
            self._forward(line)
        return len(text)

    def flush(self) -> None:  # type: ignore[override]
        tail, self._pending = self._pending, ""
        if tail:
            self._forward(tail)
        self.stream.flush()

    def __getattr__(self, name):
        return getattr(self.stream, name)


def install_debug_silencer(*markers: str) -> None:
    """Wrap ``sys.stdout`` and ``sys.stderr``; ``HOLO_DEBUG=1`` leaves them alone."""

    if os.environ.get("HOLO_DEBUG", "").strip().lower() in {"1", "true", "yes"}:
        return
    markers = markers or (DEBUG_MARKER,)
    for name in ("stdout", "stderr"):
        current = getattr(sys, name)
        if not isinstance(current, DebugSilencer):
            setattr(sys, name, DebugSilencer(current, *markers))


__all__ = [
    "DEBUG_MARKER",
    "WARN_MARKER",
    "DebugSilencer",
    "debug",
    "install_debug_silencer",
    "warn",
]
