"""Structured event logging for cellcalc.

Provides the event schema, the filesystem NDJSON sink, and an ``emit``
function that never raises.
"""

from cellcalc.logging.events import (
    CalcEvent,
    EventLevel,
    EventType,
    emit,
    make_cell_event,
    make_snapshot_event,
    sanitize_context,
    set_log_dir,
)
from cellcalc.logging.sink import EventSink

__all__ = [
    "CalcEvent",
    "EventLevel",
    "EventSink",
    "EventType",
    "emit",
    "make_cell_event",
    "make_snapshot_event",
    "sanitize_context",
    "set_log_dir",
]
