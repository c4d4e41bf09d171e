"""Unit tests for the timer engine."""

from datetime import date, datetime, timedelta

import pytest

from kidtimer.data.models import Progress
from kidtimer.data.repository import TIMERS_KEY
from kidtimer.services.timer_engine import TimerEngine

from conftest import T0, FakeNotifier, FakeScheduler


def _reload(storage, clock, notifier=None) -> TimerEngine:
    """A fresh engine over the same storage, as after a relaunch."""
    eng = TimerEngine(storage, notifier=notifier or FakeNotifier(), clock=clock,
                      scheduler=FakeScheduler())
    eng.load()
    return eng


def _without_handle(timer) -> dict:
    data = timer.to_dict()
    data.pop("pending_notification_handle")
    return data


class TestCreate:
    def test_create_sets_countdown_state(self, engine, clock, notifier):
        timer = engine.create_timer("reading", 1)
        assert timer.total_duration_seconds == 60
        assert timer.remaining_seconds == 60
        assert timer.running and not timer.paused
        assert timer.scheduled_end == T0 + timedelta(seconds=60)
        assert timer.completed_at is None
        assert timer.pending_notification_handle == notifier.scheduled[0][0]
        assert notifier.scheduled[0][2] == 60

    def test_label_resolution(self, engine):
        assert engine.create_timer("reading", 5).label == "Reading"
        assert engine.create_timer("reading", 5, label="  Story time ").label == "Story time"
        assert engine.create_timer("custom_unknown", 5).label == "Timer"

        activity = engine.add_custom_activity("Piano", 20, label="Piano practice")
        assert engine.create_timer(activity.id, 20).label == "Piano practice"
        plain = engine.add_custom_activity("Walk the dog")
        assert engine.create_timer(plain.id, 10).label == "Walk the dog"

    def test_newest_first_and_persisted(self, engine, storage):
        first = engine.create_timer("homework", 30)
        second = engine.create_timer("bedtime", 15)
        assert [t.id for t in engine.timers] == [second.id, first.id]
        assert [t.id for t in storage.get_timers()] == [second.id, first.id]

    def test_sound_tone_defaults_to_setting(self, engine):
        engine.update_settings(default_sound_tone="magic")
        assert engine.create_timer("reading", 1).sound_tone_id == "magic"
        assert engine.create_timer("reading", 1, sound_tone="bell").sound_tone_id == "bell"

    def test_haptic_pulse_only_when_enabled(self, engine, notifier):
        engine.create_timer("reading", 1)
        assert notifier.pulses == ["medium"]
        engine.update_settings(haptics_enabled=False)
        engine.create_timer("reading", 1)
        assert notifier.pulses == ["medium"]

    def test_notification_failure_still_persists(self, engine, storage, notifier):
        notifier.fail_schedule = True
        timer = engine.create_timer("reading", 1)
        assert timer.pending_notification_handle is None
        assert storage.get_timers()[0].id == timer.id

    def test_storage_failure_keeps_memory_state(self, engine, storage):
        storage.conn.close()
        timer = engine.create_timer("reading", 1)
        engine.tick()
        assert engine.get_timer(timer.id).remaining_seconds == 59


class TestPauseResume:
    def test_pause_freezes_remaining(self, engine, clock, notifier):
        timer = engine.create_timer("homework", 1)
        for _ in range(15):
            clock.advance(1)
            engine.tick()
        assert timer.remaining_seconds == 45

        engine.pause(timer.id)
        assert timer.paused and not timer.running
        assert timer.scheduled_end is None
        assert timer.pending_notification_handle is None
        assert notifier.cancelled == ["alert-1"]

        clock.advance(10)
        engine.tick()
        engine.reconcile_from_background()
        assert timer.remaining_seconds == 45

        engine.resume(timer.id)
        assert timer.remaining_seconds == 45
        assert timer.scheduled_end == clock.now() + timedelta(seconds=45)
        assert notifier.scheduled[-1][2] == 45

        clock.advance(1)
        engine.tick()
        assert timer.remaining_seconds == 44

    def test_toggle(self, engine):
        timer = engine.create_timer("homework", 1)
        engine.toggle(timer.id)
        assert timer.paused
        engine.toggle(timer.id)
        assert timer.is_counting_down

    def test_pause_and_resume_ignore_wrong_state(self, engine, notifier):
        timer = engine.create_timer("homework", 1)
        engine.resume(timer.id)           # not paused
        assert notifier.scheduled == [("alert-1", timer.id, 60)]
        engine.pause(timer.id)
        engine.pause(timer.id)            # already paused
        assert notifier.cancelled == ["alert-1"]

    def test_completed_timer_cannot_pause_or_resume(self, engine):
        timer = engine.create_timer("homework", 1)
        for _ in range(60):
            engine.tick()
        engine.pause(timer.id)
        engine.resume(timer.id)
        assert timer.status == "completed"


class TestUnknownIds:
    @pytest.mark.parametrize("op", ["pause", "resume", "reset", "remove", "toggle"])
    def test_mutators_are_noops(self, engine, storage, op):
        engine.create_timer("reading", 5)
        before = [t.to_dict() for t in engine.timers]
        stored = storage.get(TIMERS_KEY)

        getattr(engine, op)("timer_does_not_exist")

        assert [t.to_dict() for t in engine.timers] == before
        assert storage.get(TIMERS_KEY) == stored


class TestResetRemove:
    def test_reset_restarts_completed_timer(self, engine, clock, notifier):
        timer = engine.create_timer("brush_teeth", 1)
        for _ in range(60):
            engine.tick()
        assert timer.is_completed

        clock.advance(30)
        engine.reset(timer.id)
        assert timer.remaining_seconds == 60
        assert timer.is_counting_down
        assert timer.completed_at is None
        assert timer.scheduled_end == clock.now() + timedelta(seconds=60)
        assert timer.pending_notification_handle == notifier.scheduled[-1][0]

    def test_reset_cancels_pending_alert(self, engine, notifier):
        timer = engine.create_timer("brush_teeth", 2)
        engine.reset(timer.id)
        assert notifier.cancelled == ["alert-1"]
        assert timer.pending_notification_handle == "alert-2"

    def test_remove_cancels_and_persists(self, engine, storage, notifier):
        keep = engine.create_timer("reading", 5)
        gone = engine.create_timer("homework", 5)
        engine.remove(gone.id)
        assert notifier.cancelled == ["alert-2"]
        assert gone.pending_notification_handle is None
        assert [t.id for t in storage.get_timers()] == [keep.id]
        engine.remove(gone.id)
        assert [t.id for t in engine.timers] == [keep.id]

    def test_reset_and_remove_forget_completions(self, engine, storage, clock):
        kept = engine.create_timer("reading", 1)
        dropped = engine.create_timer("homework", 1)
        for _ in range(60):
            clock.advance(1)
            engine.tick()
        assert len(engine._fired) == 2

        engine.remove(dropped.id)
        engine.reset(kept.id)
        assert engine._fired == set()

        for _ in range(60):
            clock.advance(1)
            engine.tick()
        assert len(storage.get_history()) == 3
        assert engine._fired == {(kept.id, kept.completed_at)}


class TestTick:
    def test_remaining_never_increases(self, engine, clock):
        a = engine.create_timer("reading", 1)
        b = engine.create_timer("homework", 2)
        seen = {a.id: [], b.id: []}
        for i in range(150):
            clock.advance(1)
            engine.tick()
            if i % 7 == 0:
                engine.reconcile_from_background()
            for t in (a, b):
                seen[t.id].append(t.remaining_seconds)
        for values in seen.values():
            assert values == sorted(values, reverse=True)
            assert values[-1] == 0

    def test_one_write_per_tick(self, engine, storage, monkeypatch):
        engine.create_timer("reading", 1)
        engine.create_timer("homework", 1)
        calls = []
        original = storage.save_timers
        monkeypatch.setattr(storage, "save_timers", lambda ts: calls.append(1) or original(ts))
        engine.tick()
        assert len(calls) == 1

    def test_reading_scenario(self, engine, storage, clock, notifier):
        timer = engine.create_timer("reading", 1)
        for _ in range(60):
            clock.advance(1)
            engine.tick()

        assert timer.remaining_seconds == 0
        assert timer.running is False
        assert timer.completed_at == T0 + timedelta(seconds=60)

        history = storage.get_history()
        assert len(history) == 1
        assert history[0].duration_seconds == 60
        assert history[0].label == "Reading"
        assert engine.progress.total_timers_completed == 1
        assert storage.get_progress().total_timers_completed == 1
        assert engine.new_badge == "first_timer"
        assert notifier.played == [("chime", True)]

    def test_scheduler_follows_running_timers(self, engine, scheduler):
        assert not scheduler.is_active
        timer = engine.create_timer("reading", 1)
        assert scheduler.is_active
        engine.pause(timer.id)
        assert not scheduler.is_active
        engine.resume(timer.id)
        assert scheduler.is_active
        for _ in range(60):
            engine.tick()
        assert not scheduler.is_active
        assert scheduler.starts == 2


class TestCompletion:
    def test_exactly_once_across_tick_and_reconcile(self, engine, storage, clock):
        engine.create_timer("reading", 1)
        for _ in range(60):
            clock.advance(1)
            engine.tick()
        clock.advance(120)
        engine.reconcile_from_background()
        engine.reconcile_from_background()
        engine.tick()

        assert len(storage.get_history()) == 1
        assert engine.progress.total_timers_completed == 1

    def test_exactly_once_after_relaunch(self, engine, storage, clock):
        engine.create_timer("reading", 1)
        clock.advance(300)
        engine.reconcile_from_background()

        again = _reload(storage, clock)
        again.reconcile_from_background()
        assert len(storage.get_history()) == 1
        assert again.progress.total_timers_completed == 1

    def test_feedback_failure_is_swallowed(self, engine, storage, notifier):
        notifier.fail_feedback = True
        engine.create_timer("reading", 1)
        for _ in range(60):
            engine.tick()
        assert len(storage.get_history()) == 1

    def test_sound_disabled_plays_vibration_only(self, engine, notifier):
        engine.update_settings(sound_enabled=False)
        engine.create_timer("reading", 1, sound_tone="fanfare")
        for _ in range(60):
            engine.tick()
        assert notifier.played == [("vibrate_only", True)]

    def test_new_badge_consumed_once(self, engine):
        badges = []
        engine.on_new_badge = badges.append
        engine.create_timer("reading", 1)
        for _ in range(60):
            engine.tick()
        assert badges == ["first_timer"]
        assert engine.clear_new_badge() == "first_timer"
        assert engine.clear_new_badge() is None


class TestReconcile:
    def test_completes_at_scheduled_end(self, engine, storage, clock, scheduler):
        timer = engine.create_timer("homework", 10)
        engine.enter_background()
        assert not scheduler.is_active

        clock.set(T0 + timedelta(seconds=700))
        finished = engine.reconcile_from_background()

        assert finished == [timer]
        assert timer.remaining_seconds == 0
        assert timer.completed_at == T0 + timedelta(seconds=600)
        assert timer.scheduled_end is None
        assert timer.pending_notification_handle is None
        assert storage.get_history()[0].completed_at == T0 + timedelta(seconds=600)

    def test_catches_up_partial_time(self, engine, clock, scheduler):
        timer = engine.create_timer("homework", 10)
        engine.enter_background()
        clock.advance(100.4)
        engine.reconcile_from_background()
        assert timer.remaining_seconds == 500   # ceil(499.6)
        assert timer.is_counting_down
        assert scheduler.is_active

    def test_cold_start_recomputes_from_scheduled_end(self, engine, storage, clock):
        running = engine.create_timer("reading", 10)
        paused = engine.create_timer("homework", 5)
        for _ in range(20):
            clock.advance(1)
            engine.tick()
        engine.pause(paused.id)

        # process dies; stored remaining_seconds for `running` goes stale
        clock.advance(240)
        again = _reload(storage, clock)

        reloaded_running = again.get_timer(running.id)
        reloaded_paused = again.get_timer(paused.id)
        assert reloaded_running.remaining_seconds == 600 - 260
        assert reloaded_running.scheduled_end == running.scheduled_end
        assert reloaded_paused.to_dict() == paused.to_dict()

    def test_reload_without_time_passing_is_identity(self, engine, storage, clock):
        engine.create_timer("reading", 10)
        engine.create_timer("homework", 5)
        engine.pause(engine.timers[0].id)
        before = [_without_handle(t) for t in engine.timers]

        again = _reload(storage, clock)
        assert [_without_handle(t) for t in again.timers] == before

    def test_cold_start_completes_overdue_timer(self, engine, storage, clock):
        timer = engine.create_timer("bedtime", 15)
        clock.advance(hours=8)
        again = _reload(storage, clock)
        reloaded = again.get_timer(timer.id)
        assert reloaded.is_completed
        assert reloaded.completed_at == T0 + timedelta(minutes=15)
        assert reloaded.pending_notification_handle is None
        assert again.progress.total_timers_completed == 1

    def test_cold_start_rearms_alerts(self, engine, storage, clock):
        running = engine.create_timer("homework", 10)
        paused = engine.create_timer("reading", 5)
        engine.pause(paused.id)
        clock.advance(60)

        fresh = FakeNotifier()
        fresh._counter = 40
        again = _reload(storage, clock, notifier=fresh)

        assert fresh.scheduled == [("alert-41", running.id, 540)]
        assert fresh.cancelled == []
        assert again.get_timer(running.id).pending_notification_handle == "alert-41"
        assert again.get_timer(paused.id).pending_notification_handle is None
        assert storage.get_timers()[1].pending_notification_handle == "alert-41"

    def test_stale_handle_dropped_when_alerts_unavailable(self, engine, storage, clock):
        timer = engine.create_timer("homework", 10)
        fresh = FakeNotifier()
        fresh.fail_schedule = True
        again = _reload(storage, clock, notifier=fresh)
        assert again.get_timer(timer.id).pending_notification_handle is None

    def test_overdue_timers_complete_in_end_order(self, engine, storage, clock):
        engine.progress = Progress(
            total_timers_completed=3, current_streak=3, longest_streak=3,
            last_completed_date=date(2024, 3, 4), earned_badges=["first_timer"],
        )
        clock.set(datetime(2024, 3, 5, 23, 30))
        engine.create_timer("homework", 20)      # ends 23:50 on the 5th
        clock.set(datetime(2024, 3, 5, 23, 40))
        engine.create_timer("reading", 30)       # ends 00:10 on the 6th
        engine.enter_background()

        clock.set(datetime(2024, 3, 6, 7, 0))
        finished = engine.reconcile_from_background()

        assert [t.label for t in finished] == ["Homework", "Reading"]
        history = storage.get_history()
        assert [(h.label, h.completed_at) for h in history] == [
            ("Reading", datetime(2024, 3, 6, 0, 10)),
            ("Homework", datetime(2024, 3, 5, 23, 50)),
        ]
        assert engine.progress.current_streak == 5
        assert engine.progress.longest_streak == 5
        assert engine.progress.last_completed_date == date(2024, 3, 6)

    def test_catch_up_keeps_ticker_off(self, engine, storage, clock, scheduler):
        first = engine.create_timer("homework", 1)
        later = engine.create_timer("reading", 10)
        engine.enter_background()
        clock.advance(90)

        finished = engine.catch_up_due_timers()

        assert finished == [first]
        assert later.remaining_seconds == 510
        assert not scheduler.is_active
        assert len(storage.get_history()) == 1


class TestSettingsAndActivities:
    def test_settings_persist(self, engine, storage, clock):
        engine.update_settings(selected_theme="space", sound_enabled=False)
        assert _reload(storage, clock).settings.selected_theme == "space"

    def test_unknown_setting_raises(self, engine):
        with pytest.raises(TypeError):
            engine.update_settings(volume=11)

    def test_custom_activities(self, engine, storage, clock):
        activity = engine.add_custom_activity("  Piano ", 25, icon="music")
        assert activity.is_custom and activity.id.startswith("custom_")
        assert activity.name == "Piano"
        assert activity in engine.all_activities()
        assert _reload(storage, clock).custom_activities == [activity]

        engine.remove_custom_activity(activity.id)
        assert engine.custom_activities == []
        assert _reload(storage, clock).custom_activities == []

    def test_history_stats(self, engine, clock):
        engine.create_timer("reading", 1)
        for _ in range(60):
            clock.advance(1)
            engine.tick()
        stats = engine.history_stats()
        assert stats["today_count"] == 1
        assert stats["total_count"] == 1

    def test_clear_all_data(self, engine, storage, notifier, scheduler):
        timer = engine.create_timer("reading", 1)
        engine.clear_all_data()
        assert engine.timers == []
        assert storage.get_timers() == []
        assert timer.pending_notification_handle is None
        assert not scheduler.is_active
