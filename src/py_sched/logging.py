"""Scheduler event log.

Every scheduling decision and resource hand-off is recorded as a
structured log entry, so a run can be replayed and audited afterwards
without any textual trace format.

- **LogLevel** orders severities for filtering (DEBUG < ERROR).
- **LogEntry** is a single immutable record stamped with the tick on
  which it happened.
- **Logger** is an append-only buffer with filtering and clearing.

Per-tick dispatch decisions are logged at DEBUG; ceiling boosts,
restorations and wake-ups at INFO; a priority inversion caught by
inheritance at WARNING; and a run that stalls or overruns its tick
limit at ERROR, just before ``SimulationError`` is raised.  So
``filter(min_level=LogLevel.INFO)`` gives the interesting part of a run
and ``filter(min_level=LogLevel.WARNING)`` the trouble.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries.

    IntEnum lets levels compare with ``<`` / ``>``, which makes
    minimum-level filtering trivial.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The subsystem that generated the event
            (``"scheduler"``, ``"resource"`` or ``"simulator"``).
        tick: The simulated tick on which the event occurred.

    """

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering."""

    def __init__(self) -> None:
        """Create an empty logger."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        tick: int = 0,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Subsystem that generated the event.
            tick: Simulated tick of the event.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result if result is not self._entries else list(result)

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of recorded entries."""
        return len(self._entries)
