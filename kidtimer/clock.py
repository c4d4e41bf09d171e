"""
Clock sources. Wall-clock time is the only truth for elapsed duration;
the per-second tick is just a display convenience.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


class SystemClock:
    """Local wall clock."""

    def now(self) -> datetime:
        return datetime.now()


class FrozenClock:
    """A clock that only moves when told to. Used by tests and seed scripts."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2024, 1, 1, 9, 0, 0)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        self._now += timedelta(seconds=seconds, **kwargs)
        return self._now

    def set(self, when: datetime) -> None:
        self._now = when
