"""
Data models for KidTimer.

Plain dataclasses for everything the engine persists. Each one knows how to
turn itself into a JSON-friendly dict and back, so the storage layer never has
to know about field names.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

DEFAULT_TONE = "chime"
VIBRATE_ONLY = "vibrate_only"

# helpers: ISO strings <-> datetime/date
_parse_dt = lambda s: datetime.fromisoformat(s) if s else None
_parse_date = lambda s: date.fromisoformat(s) if s else None
_iso = lambda d: d.isoformat() if d else None


@dataclass
class Activity:
    """A timer template: built-in (homework, reading...) or made by a parent."""
    id: str = ""
    name: str = ""
    default_minutes: int = 15
    icon: str = "star"
    is_custom: bool = False
    label: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            default_minutes=int(data.get("default_minutes", 15)),
            icon=data.get("icon", "star"),
            is_custom=bool(data.get("is_custom", False)),
            label=data.get("label"),
        )


@dataclass
class Timer:
    """
    One countdown.

    Exactly one of these holds at any time:
        counting down  running and not paused, scheduled_end set
        paused         paused, no scheduled_end
        completed      remaining_seconds == 0, completed_at set
    """
    id: str = ""
    activity_kind: str = "custom"
    label: str = "Timer"
    total_duration_seconds: int = 0
    remaining_seconds: int = 0
    running: bool = True
    paused: bool = False
    created_at: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sound_tone_id: str = DEFAULT_TONE
    pending_notification_handle: Optional[str] = None

    @property
    def is_counting_down(self) -> bool:
        return self.running and not self.paused

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None and self.remaining_seconds == 0

    @property
    def status(self) -> str:
        if self.is_completed:
            return "completed"
        if self.paused:
            return "paused"
        return "running"

    def formatted_remaining(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_kind": self.activity_kind,
            "label": self.label,
            "total_duration_seconds": self.total_duration_seconds,
            "remaining_seconds": self.remaining_seconds,
            "running": self.running,
            "paused": self.paused,
            "created_at": _iso(self.created_at),
            "scheduled_end": _iso(self.scheduled_end),
            "completed_at": _iso(self.completed_at),
            "sound_tone_id": self.sound_tone_id,
            "pending_notification_handle": self.pending_notification_handle,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Timer":
        return cls(
            id=data["id"],
            activity_kind=data.get("activity_kind", "custom"),
            label=data.get("label", "Timer"),
            total_duration_seconds=int(data["total_duration_seconds"]),
            remaining_seconds=int(data["remaining_seconds"]),
            running=bool(data.get("running", False)),
            paused=bool(data.get("paused", False)),
            created_at=_parse_dt(data.get("created_at")),
            scheduled_end=_parse_dt(data.get("scheduled_end")),
            completed_at=_parse_dt(data.get("completed_at")),
            sound_tone_id=data.get("sound_tone_id", DEFAULT_TONE),
            pending_notification_handle=data.get("pending_notification_handle"),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of one finished timer."""
    id: str
    activity_kind: str
    label: str
    duration_seconds: int
    completed_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_kind": self.activity_kind,
            "label": self.label,
            "duration_seconds": self.duration_seconds,
            "completed_at": self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(
            id=data["id"],
            activity_kind=data.get("activity_kind", "custom"),
            label=data.get("label", "Timer"),
            duration_seconds=int(data["duration_seconds"]),
            completed_at=datetime.fromisoformat(data["completed_at"]),
        )


@dataclass
class Settings:
    """User preferences, changed only from the settings screen."""
    sound_enabled: bool = True
    haptics_enabled: bool = True
    selected_theme: str = "default"
    default_sound_tone: str = DEFAULT_TONE

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        defaults = cls()
        return cls(
            sound_enabled=bool(data.get("sound_enabled", defaults.sound_enabled)),
            haptics_enabled=bool(data.get("haptics_enabled", defaults.haptics_enabled)),
            selected_theme=data.get("selected_theme", defaults.selected_theme),
            default_sound_tone=data.get("default_sound_tone", defaults.default_sound_tone),
        )


@dataclass
class Progress:
    """Lifetime totals for this installation. Counters only ever go up."""
    total_timers_completed: int = 0
    total_minutes_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: Optional[date] = None
    activity_counts: Dict[str, int] = field(default_factory=dict)
    earned_badges: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_timers_completed": self.total_timers_completed,
            "total_minutes_completed": self.total_minutes_completed,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_completed_date": _iso(self.last_completed_date),
            "activity_counts": dict(self.activity_counts),
            "earned_badges": list(self.earned_badges),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Progress":
        return cls(
            total_timers_completed=int(data.get("total_timers_completed", 0)),
            total_minutes_completed=int(data.get("total_minutes_completed", 0)),
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            last_completed_date=_parse_date(data.get("last_completed_date")),
            activity_counts={k: int(v) for k, v in data.get("activity_counts", {}).items()},
            earned_badges=list(data.get("earned_badges", [])),
        )


@dataclass(frozen=True)
class Badge:
    """
    A static achievement.

    requirement is one of:
        'total_timers', 'total_minutes', 'streak', 'activity_count'
    activity_kind is only used by 'activity_count'.
    """
    id: str
    name: str
    description: str
    icon: str
    color: str
    requirement: str
    threshold: int
    activity_kind: Optional[str] = None

    def current_value(self, progress: Progress) -> int:
        if self.requirement == "total_timers":
            return progress.total_timers_completed
        if self.requirement == "total_minutes":
            return progress.total_minutes_completed
        if self.requirement == "streak":
            return progress.current_streak
        if self.requirement == "activity_count":
            return progress.activity_counts.get(self.activity_kind or "", 0)
        return 0

    def is_met(self, progress: Progress) -> bool:
        return self.current_value(progress) >= self.threshold


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   Defines the shape of every record the app keeps: timers, history,
#   settings, progress, custom activities, and the static Badge type.
#
# Data flow:
#   TimerEngine mutates Timer objects → Storage serialises them with
#   to_dict() → JSON in SQLite → from_dict() on the next launch.
#
# Notes:
#   - Datetimes are naive local time; streaks are keyed on local calendar
#     dates, which is what a kid means by "today".
#   - Timer is mutable (the engine owns it); HistoryEntry and Badge are
#     frozen because nothing should edit them after the fact.
