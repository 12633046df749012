"""Clock abstractions used for stale-queue and schedule-replacement logic.

The store never reads wall-clock time directly; it asks an injected clock.
Production code uses :class:`SystemClock`; tests use :class:`FixedClock`.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now_utc(self) -> datetime:
        """Return current UTC time as an aware datetime."""


class SystemClock:
    """Wall clock."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Deterministic clock used for tests.

    Time only moves when :meth:`set` or :meth:`advance` is called.
    """

    def __init__(self, start: datetime) -> None:
        ensure_aware(start)
        self._current = start.astimezone(timezone.utc)
        self._lock = Lock()

    def now_utc(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, dt: datetime) -> None:
        ensure_aware(dt)
        with self._lock:
            self._current = dt.astimezone(timezone.utc)

    def advance(self, seconds: float) -> datetime:
        """Advance the clock by ``seconds`` (must be non-negative)."""
        if seconds < 0.0:
            raise ValueError("seconds must be non-negative")
        with self._lock:
            self._current += timedelta(seconds=seconds)
            return self._current


def ensure_aware(dt: datetime) -> None:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Datetime must be timezone-aware")


def to_unix(dt: datetime) -> int:
    """Whole Unix seconds for an aware datetime (sub-second part truncated)."""
    ensure_aware(dt)
    return int(dt.timestamp())


def from_unix(ts: int) -> datetime:
    """Aware UTC datetime for stored Unix seconds.

    Raises OverflowError, OSError or ValueError for out-of-range values.
    """
    return datetime.fromtimestamp(ts, tz=timezone.utc)
