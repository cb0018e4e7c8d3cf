"""Classified guard events, event sinks, and the JSONL audit log."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

LEVELS = ("debug", "info", "warning", "error")


@dataclass(slots=True, frozen=True)
class GuardEvent:
    """Single classified event emitted by the guard engine."""

    timestamp: str
    kind: str
    level: str
    message: str
    path: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)


EventSink = Callable[[GuardEvent], None]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_event(
    kind: str,
    level: str,
    message: str,
    path: Path | str | None = None,
    **metadata: object,
) -> GuardEvent:
    """Build a timestamped event; unknown levels are rejected."""
    if level not in LEVELS:
        raise ValueError(f"Unknown event level: {level!r}")
    return GuardEvent(
        timestamp=utc_timestamp(),
        kind=kind,
        level=level,
        message=message,
        path=str(path) if path is not None else None,
        metadata=dict(metadata),
    )


def level_rank(level: str) -> int:
    """Return the ordinal of a level name."""
    try:
        return LEVELS.index(level)
    except ValueError:
        raise ValueError(f"Unknown event level: {level!r}") from None


def null_sink(event: GuardEvent) -> None:
    """Discard events."""


def fan_out(*sinks: EventSink) -> EventSink:
    """Return a sink that forwards each event to every given sink in order."""

    def _emit(event: GuardEvent) -> None:
        for sink in sinks:
            sink(event)

    return _emit


class ConsoleEventSink:
    """Write events as readable lines, dropping those below a minimum level."""

    def __init__(self, stream: TextIO, min_level: str = "info") -> None:
        self._stream = stream
        self._min_rank = level_rank(min_level)

    def __call__(self, event: GuardEvent) -> None:
        if level_rank(event.level) < self._min_rank:
            return
        self._stream.write(f"{event.level.upper():<7} {event.message}\n")
        self._stream.flush()


class JsonlAuditLogger:
    """Append-only JSONL audit logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def __call__(self, event: GuardEvent) -> None:
        self.append(event)

    def append(self, event: GuardEvent) -> None:
        """Append an event as one JSON object per line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                entries.append(record)
        if len(entries) <= limit:
            return entries
        return entries[-limit:]
