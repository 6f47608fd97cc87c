"""Spreadsheet event model and the module-level emit functions.

Events describe rejected cell edits and snapshot load/save outcomes.
Timestamps are UTC ISO-8601 ending in ``Z``.  Nothing is written until
:func:`set_log_dir` configures a sink, and emitting never raises: a
broken sink only produces an occasional line on stderr.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Cell edits
    cell_rejected = "cell_rejected"

    # Snapshot lifecycle
    snapshot_loaded = "snapshot_loaded"
    snapshot_saved = "snapshot_saved"
    snapshot_failed = "snapshot_failed"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

INVALID_NAME = "invalid_name"
FORMULA_FORMAT = "formula_format"
CIRCULAR_DEPENDENCY = "circular_dependency"
SNAPSHOT_READ_FAILED = "snapshot_read_failed"
SNAPSHOT_WRITE_FAILED = "snapshot_write_failed"


# ---------------------------------------------------------------------------
# Context sanitising
# ---------------------------------------------------------------------------

_max_value_len = 256


def sanitize_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with long strings truncated.

    Cell contents are user text of arbitrary size; anything longer than
    ``logging_max_value_len`` characters is cut and marked.
    """
    return {k: _sanitize_value(v) for k, v in context.items()}


def _sanitize_value(v: Any) -> Any:
    if isinstance(v, dict):
        return sanitize_context(v)
    if isinstance(v, (list, tuple)):
        return [_sanitize_value(item) for item in v]
    if isinstance(v, str) and len(v) > _max_value_len:
        return v[:_max_value_len] + "...[truncated]"
    return v


# ---------------------------------------------------------------------------
# Attribution invariants
# ---------------------------------------------------------------------------

_EVENT_REQUIRED_KEYS: dict[str, set[str]] = {
    EventType.cell_rejected.value: {"cell"},
    EventType.snapshot_loaded.value: {"path"},
    EventType.snapshot_saved.value: {"path"},
    EventType.snapshot_failed.value: set(),  # path may be an unprintable object
}


def _validate_attribution(event: CalcEvent) -> CalcEvent:
    """Downgrade *event* to a warning if its type needs context keys it lacks."""
    event_type = event.event_type.value if isinstance(event.event_type, EventType) else event.event_type
    required = _EVENT_REQUIRED_KEYS.get(event_type, set())
    missing = required - set(event.context.keys())
    if not missing:
        return event
    ctx = dict(event.context)
    ctx["_missing_attribution"] = sorted(missing)
    return event.model_copy(update={"level": EventLevel.warning, "context": ctx})


# ---------------------------------------------------------------------------
# Helper constructors
# ---------------------------------------------------------------------------


def make_cell_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    cell: str,
    content: str | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> CalcEvent:
    """Build an event with guaranteed cell attribution context."""
    ctx: dict[str, Any] = {"cell": cell}
    if content is not None:
        ctx["content"] = content
    if extra:
        ctx.update(extra)
    return CalcEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


def make_snapshot_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    path: str | None = None,
    cell_count: int | None = None,
    error_code: str | None = None,
) -> CalcEvent:
    """Build an event with snapshot attribution context."""
    ctx: dict[str, Any] = {}
    if path is not None:
        ctx["path"] = path
    if cell_count is not None:
        ctx["cell_count"] = cell_count
    return CalcEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Current UTC time, microsecond precision, ``Z`` suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class CalcEvent(BaseModel):
    """One line of ``events.ndjson``."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Lazily initialised when ``set_log_dir`` is called.
_sink: Any = None  # EventSink | None


def set_log_dir(log_dir: Any, config_dir: Any = None) -> None:
    """Configure the module-level event sink to write under *log_dir*.

    If it is never called, ``emit()`` silently discards events.  Pass
    None to disable logging again.

    Reads ``logging_fsync``, ``logging_tail_bytes`` and
    ``logging_max_value_len`` from ``cellcalc.yaml`` in *config_dir*
    (defaults when omitted).
    """
    global _sink, _max_value_len
    from pathlib import Path

    from cellcalc.config import DEFAULT_CONFIG, load_config
    from cellcalc.logging.sink import EventSink

    if log_dir is None:
        _sink = None
        _max_value_len = DEFAULT_CONFIG["logging_max_value_len"]
        return

    cfg = load_config(config_dir)
    _max_value_len = int(cfg["logging_max_value_len"])
    _sink = EventSink(
        Path(log_dir),
        fsync=bool(cfg["logging_fsync"]),
        tail_bytes=int(cfg["logging_tail_bytes"]),
    )


def get_sink() -> Any:
    """The sink configured by :func:`set_log_dir`, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print *msg* to stderr at most once per ``_STDERR_INTERVAL_SECS``."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[cellcalc] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Safe emit
# ---------------------------------------------------------------------------


def emit(event: CalcEvent) -> None:
    """Sanitize, attribute and append *event* to the configured sink.

    Any exception is reported through :func:`_stderr_warning` instead of
    propagating, so a full disk never breaks a cell edit.
    """
    try:
        sink = get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": sanitize_context(event.context)})
        event = _validate_attribution(event)
        sink.write(event)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")
