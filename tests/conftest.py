"""Shared fixtures: in-memory storage, a frozen clock and recording fakes."""

import os
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

# Headless Qt and audio for the whole test run
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

from kidtimer.clock import FrozenClock
from kidtimer.data.database import SCHEMA_SQL
from kidtimer.data.repository import Storage
from kidtimer.services.timer_engine import TimerEngine

T0 = datetime(2024, 3, 4, 9, 0, 0)


class FakeNotifier:
    """Records every call; can be told to fail."""

    def __init__(self) -> None:
        self.scheduled = []      # (handle, timer_id, remaining_seconds)
        self.cancelled = []
        self.played = []         # (tone_id, haptics_enabled)
        self.pulses = []
        self.fail_schedule = False
        self.fail_feedback = False
        self._counter = 0

    def schedule_completion_alert(self, timer):
        if self.fail_schedule:
            raise RuntimeError("notifications denied")
        self._counter += 1
        handle = f"alert-{self._counter}"
        self.scheduled.append((handle, timer.id, timer.remaining_seconds))
        return handle

    def cancel_completion_alert(self, handle):
        self.cancelled.append(handle)

    def play_completion_feedback(self, tone_id, haptics_enabled):
        if self.fail_feedback:
            raise RuntimeError("audio device gone")
        self.played.append((tone_id, haptics_enabled))

    def haptic_pulse(self, style="medium"):
        self.pulses.append(style)


class FakeScheduler:
    def __init__(self) -> None:
        self.is_active = False
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        self.is_active = True
        self.starts += 1

    def stop(self) -> None:
        self.is_active = False
        self.stops += 1


def make_storage() -> Storage:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    return Storage(conn)


@pytest.fixture
def storage():
    return make_storage()


@pytest.fixture
def clock():
    return FrozenClock(T0)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def engine(storage, notifier, clock, scheduler):
    eng = TimerEngine(storage, notifier=notifier, clock=clock, scheduler=scheduler)
    eng.load()
    return eng
