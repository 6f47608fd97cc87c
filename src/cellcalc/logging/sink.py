"""NDJSON event file for spreadsheet events.

Events are appended as one JSON line per event to
``<log_dir>/events.ndjson`` with sorted keys.  Appends hold an exclusive
``fcntl.flock`` and reads a shared one, so several processes editing
sheets can share one log directory.  Without ``fcntl`` (Windows) the
file is used unlocked.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from cellcalc.logging.events import CalcEvent

try:
    import fcntl
except ImportError:
    fcntl = None  # type: ignore[assignment]

EVENTS_FILENAME = "events.ndjson"

# Reads look at most this many bytes from the end of the file
_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
_MAX_LIMIT = 2000


@contextmanager
def _locked(path: Path, flags: int, shared: bool) -> Iterator[int]:
    """Open *path* as a raw fd and hold a flock on it while in use."""
    fd = os.open(str(path), flags)
    try:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_SH if shared else fcntl.LOCK_EX)
        yield fd
    finally:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class EventSink:
    """Append-only writer and reader for one ``events.ndjson`` file."""

    def __init__(self, log_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.log_dir = Path(log_dir)
        self.path = self.log_dir / EVENTS_FILENAME
        self._fsync = fsync
        self._tail_bytes = _DEFAULT_TAIL_BYTES if tail_bytes is None else tail_bytes
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, event: CalcEvent) -> None:
        """Append *event* as a single line."""
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        with _locked(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, shared=False) as fd:
            os.write(fd, (line + "\n").encode("utf-8"))
            if self._fsync:
                os.fsync(fd)

    def read_events(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        cell: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Return logged events, newest first.

        Only the tail of the file is read, so very old events may be
        missing from the result.  *cell* is matched case-insensitively
        against the ``cell`` context key.
        """
        wanted_cell = cell.upper() if cell else None
        matches: list[dict[str, Any]] = []
        for event in reversed(self._load_tail()):
            if level and event.get("level") != level:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            if wanted_cell and event.get("context", {}).get("cell") != wanted_cell:
                continue
            matches.append(event)
            if len(matches) >= min(limit, _MAX_LIMIT):
                break
        return matches

    def _load_tail(self) -> list[dict[str, Any]]:
        """Parse the complete lines in the tail of the file, skipping bad ones."""
        if not self.path.exists():
            return []
        with _locked(self.path, os.O_RDONLY, shared=True) as fd:
            size = os.fstat(fd).st_size
            start = max(0, size - self._tail_bytes)
            os.lseek(fd, start, os.SEEK_SET)
            data = os.read(fd, size - start)
        if start > 0:
            # first line is probably cut
            data = data[data.find(b"\n") + 1:]

        events: list[dict[str, Any]] = []
        for raw in data.decode("utf-8", errors="replace").splitlines():
            raw = raw.strip()
            if not raw:
                continue
            try:
                events.append(json.loads(raw))
            except json.JSONDecodeError:
                continue
        return events
