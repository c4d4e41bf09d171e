"""
Storage — the single place where SQL lives.

A small key/value contract (get / set / remove) over one SQLite table, plus
typed helpers for each logical resource. Everything here is best-effort:
a failed read returns the default, a failed write returns False, and both are
logged. Callers keep their in-memory state and carry on.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

from .models import Activity, HistoryEntry, Progress, Settings, Timer

logger = logging.getLogger(__name__)

TIMERS_KEY = "kidtimer:timers"
SETTINGS_KEY = "kidtimer:settings"
PROGRESS_KEY = "kidtimer:progress"
CUSTOM_ACTIVITIES_KEY = "kidtimer:custom_activities"
HISTORY_KEY = "kidtimer:history"

ALL_KEYS = (TIMERS_KEY, SETTINGS_KEY, PROGRESS_KEY, CUSTOM_ACTIVITIES_KEY, HISTORY_KEY)

_UNREADABLE = object()

HISTORY_LIMIT = 100


class Storage:
    """Data-access layer wrapping a sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection, history_limit: int = HISTORY_LIMIT) -> None:
        self.conn = conn
        self.history_limit = history_limit

    # ── Raw key/value contract ──────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        value = self._read(key, default)
        return default if value is _UNREADABLE else value

    def _read(self, key: str, default: Any) -> Any:
        """Like get(), but a failed read returns _UNREADABLE instead of the default."""
        try:
            row = self.conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error:
            logger.exception("Failed to read %s", key)
            return _UNREADABLE
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Corrupt JSON under %s, ignoring it.", key)
            return _UNREADABLE

    def set(self, key: str, value: Any) -> bool:
        try:
            self.conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value, updated_at = excluded.updated_at""",
                (key, json.dumps(value), datetime.now().isoformat()),
            )
            self.conn.commit()
        except sqlite3.Error:
            logger.exception("Failed to save %s", key)
            return False
        return True

    def remove(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        try:
            self.conn.executemany(
                "DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys]
            )
            self.conn.commit()
        except sqlite3.Error:
            logger.exception("Failed to remove %s", ", ".join(keys))
            return False
        return True

    # ── Timers ──────────────────────────────────────────────────────────────

    def get_timers(self) -> List[Timer]:
        return self._load_list(TIMERS_KEY, Timer.from_dict)

    def save_timers(self, timers: List[Timer]) -> bool:
        return self.set(TIMERS_KEY, [t.to_dict() for t in timers])

    # ── Settings ────────────────────────────────────────────────────────────

    def get_settings(self) -> Settings:
        data = self.get(SETTINGS_KEY)
        if not isinstance(data, dict):
            return Settings()
        return Settings.from_dict(data)

    def save_settings(self, settings: Settings) -> bool:
        return self.set(SETTINGS_KEY, settings.to_dict())

    # ── Progress ────────────────────────────────────────────────────────────

    def get_progress(self) -> Progress:
        data = self.get(PROGRESS_KEY)
        if not isinstance(data, dict):
            return Progress()
        try:
            return Progress.from_dict(data)
        except (TypeError, ValueError):
            logger.warning("Unreadable progress record, starting fresh.")
            return Progress()

    def save_progress(self, progress: Progress) -> bool:
        return self.set(PROGRESS_KEY, progress.to_dict())

    # ── Custom activities ───────────────────────────────────────────────────

    def get_custom_activities(self) -> List[Activity]:
        return self._load_list(CUSTOM_ACTIVITIES_KEY, Activity.from_dict)

    def save_custom_activities(self, activities: List[Activity]) -> bool:
        return self.set(CUSTOM_ACTIVITIES_KEY, [a.to_dict() for a in activities])

    # ── History (newest first, capped) ──────────────────────────────────────

    def get_history(self) -> List[HistoryEntry]:
        return self._load_list(HISTORY_KEY, HistoryEntry.from_dict)

    def add_history_entry(self, entry: HistoryEntry) -> bool:
        data = self._read(HISTORY_KEY, [])
        if data is _UNREADABLE or not isinstance(data, list):
            # a blind write here would replace the whole log with one entry
            logger.warning("History unreadable, not recording %s.", entry.id)
            return False
        history = self._parse_list(HISTORY_KEY, data, HistoryEntry.from_dict)
        history.insert(0, entry)
        trimmed = history[: self.history_limit]
        return self.set(HISTORY_KEY, [h.to_dict() for h in trimmed])

    def get_history_stats(self, now: Optional[datetime] = None) -> dict:
        """Counts for the history screen: today, last 7 days, all kept entries."""
        now = now or datetime.now()
        history = self.get_history()
        week_ago = now - timedelta(days=7)
        return {
            "today_count": sum(1 for h in history if h.completed_at.date() == now.date()),
            "week_count": sum(1 for h in history if h.completed_at > week_ago),
            "total_count": len(history),
            "total_minutes": sum(h.duration_seconds for h in history) // 60,
        }

    # ── Housekeeping ────────────────────────────────────────────────────────

    def clear_all(self) -> bool:
        return self.remove(ALL_KEYS)

    def _load_list(self, key: str, factory) -> list:
        return self._parse_list(key, self.get(key, []), factory)

    def _parse_list(self, key: str, data: Any, factory) -> list:
        if not isinstance(data, list):
            logger.warning("Expected a list under %s, got %s.", key, type(data).__name__)
            return []
        items = []
        for raw in data:
            try:
                items.append(factory(raw))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable record under %s: %r", key, raw)
        return items


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   Everything persistent goes through Storage: the timer list, settings,
#   progress, custom activities and the history log. Each is one JSON
#   document in the kv_store table, read and written independently.
#
# Data flow:
#   TimerEngine → save_timers() once per tick / per user action
#   Completion protocol → add_history_entry() + save_progress()
#   History / badges screens → get_history(), get_progress() (read only)
#
# Failure policy:
#   sqlite3.Error on read → default value; on write → False. No retries;
#   the next successful write carries the latest in-memory state.
