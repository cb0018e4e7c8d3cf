"""Structured event logging utilities."""

from .audit import (
    LEVELS,
    ConsoleEventSink,
    EventSink,
    GuardEvent,
    JsonlAuditLogger,
    fan_out,
    level_rank,
    make_event,
    null_sink,
    utc_timestamp,
)

__all__ = [
    "ConsoleEventSink",
    "EventSink",
    "GuardEvent",
    "JsonlAuditLogger",
    "LEVELS",
    "fan_out",
    "level_rank",
    "make_event",
    "null_sink",
    "utc_timestamp",
]
