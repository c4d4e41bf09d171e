"""
Timer Engine — owns every timer, the per-second countdown and the
background catch-up.

Handles: create / pause / resume / reset / remove, the once-a-second tick,
reconciling against the wall clock after the ticker wasn't running, and the
completion protocol (feedback → history → progress/badges), which runs exactly
once per completion.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Set, Tuple

from kidtimer.clock import SystemClock
from kidtimer.data.catalog import ACTIVITIES, CUSTOM_KIND, get_activity_by_id
from kidtimer.data.models import VIBRATE_ONLY, Activity, HistoryEntry, Progress, Settings, Timer
from kidtimer.data.repository import Storage
from kidtimer.feedback.notifier import NullNotifier
from kidtimer.services.progress_service import evaluate

logger = logging.getLogger(__name__)

FALLBACK_LABEL = "Timer"


class TimerEngine:
    """
    The single writer of the timer list and (through the evaluator) progress.

    Timer lifecycle:
        create → counting down ⇄ paused
                 counting down → completed (tick or reconcile)
        reset  → counting down from the full duration
    """

    def __init__(
        self,
        storage: Storage,
        notifier=None,
        clock=None,
        scheduler=None,
        on_change: Optional[Callable[[], None]] = None,
        on_new_badge: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.storage = storage
        self.notifier = notifier or NullNotifier()
        self.clock = clock or SystemClock()
        self.scheduler = scheduler

        # Callbacks the UI will set
        self.on_change = on_change
        self.on_new_badge = on_new_badge

        self.timers: List[Timer] = []
        self.settings = Settings()
        self.progress = Progress()
        self.custom_activities: List[Activity] = []
        self.new_badge: Optional[str] = None
        self.is_loaded = False

        self._foreground = True
        self._fired: Set[Tuple[str, datetime]] = set()

    # ── Start-up ────────────────────────────────────────────────────────────

    def load(self) -> None:
        """Read everything from storage and catch up on time spent closed."""
        self.settings = self.storage.get_settings()
        self.progress = self.storage.get_progress()
        self.custom_activities = self.storage.get_custom_activities()
        self.timers = self.storage.get_timers()
        # alert handles died with the previous process
        for timer in self.timers:
            timer.pending_notification_handle = None
        self.is_loaded = True
        logger.info("Loaded %d timers.", len(self.timers))
        self.reconcile_from_background()
        self._reschedule_alerts()

    def attach_scheduler(self, scheduler) -> None:
        self.scheduler = scheduler
        self._sync_scheduler()

    # ── Queries ─────────────────────────────────────────────────────────────

    @property
    def has_running_timers(self) -> bool:
        return any(t.is_counting_down for t in self.timers)

    def get_timer(self, timer_id: str) -> Optional[Timer]:
        for timer in self.timers:
            if timer.id == timer_id:
                return timer
        return None

    def all_activities(self) -> List[Activity]:
        return list(ACTIVITIES) + list(self.custom_activities)

    def history(self) -> List[HistoryEntry]:
        return self.storage.get_history()

    def history_stats(self) -> dict:
        return self.storage.get_history_stats(self.clock.now())

    # ── Timer operations ────────────────────────────────────────────────────

    def create_timer(
        self,
        activity_kind: str,
        duration_minutes: int,
        label: Optional[str] = None,
        sound_tone: Optional[str] = None,
    ) -> Timer:
        """Start a new countdown. Input is validated by the caller."""
        now = self.clock.now()
        seconds = int(duration_minutes * 60)
        timer = Timer(
            id=f"timer_{uuid.uuid4().hex[:12]}",
            activity_kind=activity_kind,
            label=self.resolve_label(activity_kind, label),
            total_duration_seconds=seconds,
            remaining_seconds=seconds,
            running=True,
            paused=False,
            created_at=now,
            scheduled_end=now + timedelta(seconds=seconds),
            sound_tone_id=sound_tone or self.settings.default_sound_tone,
        )
        timer.pending_notification_handle = self._schedule_alert(timer)
        self.timers.insert(0, timer)
        self._persist_timers()

        if self.settings.haptics_enabled:
            self._safe_notify(self.notifier.haptic_pulse, "medium")

        logger.info("Timer %s created: %s for %ds", timer.id, timer.label, seconds)
        self._after_mutation()
        return timer

    def pause(self, timer_id: str) -> None:
        timer = self.get_timer(timer_id)
        if timer is None or timer.paused or timer.is_completed or not timer.running:
            return
        self._cancel_alert(timer)
        timer.paused = True
        timer.running = False
        timer.scheduled_end = None
        self._persist_timers()
        logger.info("Timer %s paused at %ds", timer.id, timer.remaining_seconds)
        self._after_mutation()

    def resume(self, timer_id: str) -> None:
        timer = self.get_timer(timer_id)
        if timer is None or not timer.paused or timer.is_completed:
            return
        timer.scheduled_end = self.clock.now() + timedelta(seconds=timer.remaining_seconds)
        timer.paused = False
        timer.running = True
        timer.pending_notification_handle = self._schedule_alert(timer)
        self._persist_timers()
        logger.info("Timer %s resumed with %ds left", timer.id, timer.remaining_seconds)
        self._after_mutation()

    def toggle(self, timer_id: str) -> None:
        """Pause a counting-down timer, resume a paused one."""
        timer = self.get_timer(timer_id)
        if timer is None:
            return
        if self.settings.haptics_enabled:
            self._safe_notify(self.notifier.haptic_pulse, "light")
        if timer.paused:
            self.resume(timer_id)
        else:
            self.pause(timer_id)

    def reset(self, timer_id: str) -> None:
        timer = self.get_timer(timer_id)
        if timer is None:
            return
        self._cancel_alert(timer)
        self._forget_completions(timer.id)
        timer.remaining_seconds = timer.total_duration_seconds
        timer.running = True
        timer.paused = False
        timer.completed_at = None
        timer.scheduled_end = self.clock.now() + timedelta(seconds=timer.total_duration_seconds)
        timer.pending_notification_handle = self._schedule_alert(timer)
        self._persist_timers()
        if self.settings.haptics_enabled:
            self._safe_notify(self.notifier.haptic_pulse, "medium")
        logger.info("Timer %s reset", timer.id)
        self._after_mutation()

    def remove(self, timer_id: str) -> None:
        timer = self.get_timer(timer_id)
        if timer is None:
            return
        self._cancel_alert(timer)
        self._forget_completions(timer_id)
        self.timers = [t for t in self.timers if t.id != timer_id]
        self._persist_timers()
        if self.settings.haptics_enabled:
            self._safe_notify(self.notifier.haptic_pulse, "light")
        logger.info("Timer %s removed", timer_id)
        self._after_mutation()

    # ── Ticking ─────────────────────────────────────────────────────────────

    def tick(self) -> List[Timer]:
        """One second passed in the foreground. Returns timers that finished."""
        now = self.clock.now()
        finished: List[Timer] = []
        for timer in self.timers:
            if not timer.is_counting_down:
                continue
            timer.remaining_seconds = max(0, timer.remaining_seconds - 1)
            if timer.remaining_seconds == 0:
                self._mark_completed(timer, now)
                finished.append(timer)

        # one write per tick, before any completion side effects
        self._persist_timers()
        for timer in finished:
            self._run_completion_protocol(timer)
        self._after_mutation()
        return finished

    # ── Background / foreground ─────────────────────────────────────────────

    def enter_background(self) -> None:
        """The ticker stops; wall-clock timestamps carry the truth from here."""
        self._foreground = False
        self._persist_timers()
        self._sync_scheduler()
        logger.info("Entered background with %d counting down.",
                    sum(1 for t in self.timers if t.is_counting_down))

    def reconcile_from_background(self) -> List[Timer]:
        """
        Recompute every counting-down timer from its scheduled end.

        Runs on every return to the foreground and once at cold start.
        Timers whose end already passed complete at their scheduled end,
        not at "now", so history and streaks show when they really finished.
        """
        self._foreground = True
        return self.catch_up_due_timers()

    def catch_up_due_timers(self) -> List[Timer]:
        """
        Reconcile against the wall clock without touching foreground state.

        Called directly when a completion alert fires while the app is in the
        background, so the timer finishes on time but the ticker stays off.
        """
        now = self.clock.now()
        finished: List[Timer] = []
        for timer in self.timers:
            if not timer.is_counting_down or timer.scheduled_end is None:
                continue
            remaining_ms = (timer.scheduled_end - now) / timedelta(milliseconds=1)
            if remaining_ms <= 0:
                self._mark_completed(timer, timer.scheduled_end)
                finished.append(timer)
            else:
                seconds = math.ceil(remaining_ms / 1000)
                timer.remaining_seconds = max(
                    0, min(seconds, timer.remaining_seconds, timer.total_duration_seconds)
                )

        self._persist_timers()
        # the list is newest-created first; streaks and history need end order
        finished.sort(key=lambda t: t.completed_at)
        for timer in finished:
            logger.info("Timer %s finished at %s while in background",
                        timer.id, timer.completed_at.isoformat())
            self._run_completion_protocol(timer)
        self._after_mutation()
        return finished

    # ── Badges / settings / activities ──────────────────────────────────────

    def clear_new_badge(self) -> Optional[str]:
        """Hand the pending badge to the UI, exactly once."""
        badge, self.new_badge = self.new_badge, None
        return badge

    def update_settings(self, **changes) -> Settings:
        self.settings = replace(self.settings, **changes)
        self.storage.save_settings(self.settings)
        self._notify_change()
        return self.settings

    def add_custom_activity(
        self,
        name: str,
        default_minutes: int = 15,
        icon: str = "star",
        label: Optional[str] = None,
    ) -> Activity:
        activity = Activity(
            id=f"{CUSTOM_KIND}_{uuid.uuid4().hex[:12]}",
            name=name.strip(),
            default_minutes=default_minutes,
            icon=icon,
            is_custom=True,
            label=(label or "").strip() or None,
        )
        self.custom_activities.append(activity)
        self.storage.save_custom_activities(self.custom_activities)
        self._notify_change()
        return activity

    def remove_custom_activity(self, activity_id: str) -> None:
        before = len(self.custom_activities)
        self.custom_activities = [a for a in self.custom_activities if a.id != activity_id]
        if len(self.custom_activities) != before:
            self.storage.save_custom_activities(self.custom_activities)
            self._notify_change()

    def resolve_label(self, activity_kind: str, override: Optional[str] = None) -> str:
        """Override → custom activity → built-in activity → "Timer"."""
        if override and override.strip():
            return override.strip()
        for activity in self.custom_activities:
            if activity.id == activity_kind:
                return activity.label or activity.name
        builtin = get_activity_by_id(activity_kind)
        if builtin:
            return builtin.name
        return FALLBACK_LABEL

    def clear_all_data(self) -> None:
        """Wipe timers, history, progress, settings and custom activities."""
        for timer in self.timers:
            self._cancel_alert(timer)
        self.storage.clear_all()
        self.timers = []
        self.settings = Settings()
        self.progress = Progress()
        self.custom_activities = []
        self.new_badge = None
        self._fired.clear()
        logger.info("All data cleared.")
        self._after_mutation()

    # ── Completion ──────────────────────────────────────────────────────────

    def _mark_completed(self, timer: Timer, completed_at: datetime) -> None:
        self._cancel_alert(timer)
        timer.remaining_seconds = 0
        timer.running = False
        timer.paused = False
        timer.scheduled_end = None
        timer.completed_at = completed_at

    def _run_completion_protocol(self, timer: Timer) -> None:
        key = (timer.id, timer.completed_at)
        if key in self._fired:
            return
        self._fired.add(key)

        tone = timer.sound_tone_id if self.settings.sound_enabled else VIBRATE_ONLY
        self._safe_notify(
            self.notifier.play_completion_feedback, tone, self.settings.haptics_enabled
        )

        self.storage.add_history_entry(HistoryEntry(
            id=f"history_{uuid.uuid4().hex[:12]}",
            activity_kind=timer.activity_kind,
            label=timer.label,
            duration_seconds=timer.total_duration_seconds,
            completed_at=timer.completed_at,
        ))

        self.progress, badge = evaluate(self.progress, timer)
        self.storage.save_progress(self.progress)
        if badge:
            self.new_badge = badge
            if self.on_new_badge:
                self.on_new_badge(badge)
        logger.info("Timer %s complete (%s).", timer.id, timer.label)

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _schedule_alert(self, timer: Timer) -> Optional[str]:
        try:
            return self.notifier.schedule_completion_alert(timer)
        except Exception as e:
            logger.warning("Failed to schedule alert for %s: %s", timer.id, e)
            return None

    def _reschedule_alerts(self) -> None:
        """Arm a fresh alert for every timer still counting down."""
        pending = [t for t in self.timers if t.is_counting_down]
        for timer in pending:
            timer.pending_notification_handle = self._schedule_alert(timer)
        if pending:
            self._persist_timers()

    def _forget_completions(self, timer_id: str) -> None:
        self._fired = {key for key in self._fired if key[0] != timer_id}

    def _cancel_alert(self, timer: Timer) -> None:
        handle = timer.pending_notification_handle
        timer.pending_notification_handle = None
        if handle:
            self._safe_notify(self.notifier.cancel_completion_alert, handle)

    def _safe_notify(self, fn: Callable, *args) -> None:
        # notifier calls are fire-and-forget
        try:
            fn(*args)
        except Exception as e:
            logger.warning("Notifier call %s failed: %s", getattr(fn, "__name__", fn), e)

    def _persist_timers(self) -> None:
        if not self.storage.save_timers(self.timers):
            logger.warning("Timer list not saved; keeping in-memory state.")

    def _after_mutation(self) -> None:
        self._sync_scheduler()
        self._notify_change()

    def _sync_scheduler(self) -> None:
        """Arm the ticker while anything counts down in the foreground."""
        if self.scheduler is None:
            return
        should_run = self._foreground and self.has_running_timers
        if should_run and not self.scheduler.is_active:
            self.scheduler.start()
        elif not should_run and self.scheduler.is_active:
            self.scheduler.stop()

    def _notify_change(self) -> None:
        if self.on_change:
            self.on_change()


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   The heart of the app. Keeps the timer list, counts it down once a
#   second while in the foreground, and catches up from the wall clock when
#   the app comes back from the background or starts cold.
#
# Data flow:
#   UI action → create_timer()/pause()/... → Timer mutated → save_timers()
#   TickScheduler (QTimer) → tick() → remaining -= 1 → at 0: completed →
#   save_timers() → notifier feedback → add_history_entry() → evaluate() →
#   save_progress() → new_badge for the UI
#   LifecycleWatcher → enter_background() / reconcile_from_background()
#   Alert fires while hidden → catch_up_due_timers()
#
# Notes:
#   - Remaining time while counting down comes from scheduled_end on every
#     reconcile; ticks only move the display between reconciles.
#   - Reconcile never raises remaining_seconds, so it stays monotonic even
#     if the QTimer fired slightly early.
#   - Timers are written before completion side effects: if the process dies
#     in between, a completion is lost rather than counted twice.
