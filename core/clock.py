"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Single source of "now" for the engine.

- Posting age (velocity, time decay) is measured against it
- Version ids, A/B test ids and record timestamps are stamped from it
- Tests freeze or step it to make ages deterministic

============================================================
CONVENTIONS
============================================================
- Every datetime leaving this module is timezone-aware UTC
- Naive datetimes coming in are treated as UTC

============================================================
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


# ============================================================
# UTC HELPERS
# ============================================================

def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso8601(dt: datetime) -> str:
    return ensure_utc(dt).isoformat()


def from_iso8601(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


def hours_between(start: datetime, end: datetime) -> float:
    """Signed hours from ``start`` to ``end``."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600.0


# ============================================================
# CLOCKS
# ============================================================

class ClockProtocol(ABC):
    """Anything that can tell the current UTC time."""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def hours_since(self, moment: datetime) -> float:
        """Hours elapsed since ``moment`` (negative if it lies in the future)."""
        return hours_between(moment, self.now())


class SystemClock(ClockProtocol):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Manually driven clock for tests.

    Stays frozen until ``set_time`` or ``advance`` is called.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        self._time = ensure_utc(initial_time) if initial_time else datetime.now(timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        with self._lock:
            self._time = ensure_utc(new_time)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """Step forward; extra keyword arguments go to ``timedelta``."""
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_utc",
    "to_iso8601",
    "from_iso8601",
    "hours_between",
]
