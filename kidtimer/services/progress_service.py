"""
Progress / badge evaluation.

Pure functions: given the prior Progress and a just-completed Timer, return
the new Progress and at most one newly earned badge id. Nothing here touches
storage; the TimerEngine persists the result.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import List, Optional, Tuple

from kidtimer.data.catalog import BADGES
from kidtimer.data.models import Badge, Progress, Timer

logger = logging.getLogger(__name__)


def evaluate(prior: Progress, timer: Timer) -> Tuple[Progress, Optional[str]]:
    """Fold one completion into the running totals."""
    counts = dict(prior.activity_counts)
    counts[timer.activity_kind] = counts.get(timer.activity_kind, 0) + 1

    progress = replace(
        prior,
        total_timers_completed=prior.total_timers_completed + 1,
        total_minutes_completed=prior.total_minutes_completed + timer.total_duration_seconds // 60,
        activity_counts=counts,
        earned_badges=list(prior.earned_badges),
    )

    completed_on = timer.completed_at.date() if timer.completed_at else date.today()
    progress = update_streak(progress, completed_on)

    new_badge = _award_next_badge(progress)
    if new_badge:
        logger.info("Badge earned: %s", new_badge)
    return progress, new_badge


def update_streak(progress: Progress, today: date) -> Progress:
    """
    Calendar-day streak.

    Same day as the last completion → unchanged. Yesterday → +1.
    Anything older, or no prior completion → 1. A completion dated before the
    last recorded day (caught up late from the background) leaves it alone.
    """
    last = progress.last_completed_date
    if last == today:
        return progress

    if last is None:
        streak = 1
    else:
        diff_days = (today - last).days
        if diff_days < 0:
            return progress
        streak = progress.current_streak + 1 if diff_days == 1 else 1

    return replace(
        progress,
        current_streak=streak,
        longest_streak=max(progress.longest_streak, streak),
        last_completed_date=today,
    )


def _award_next_badge(progress: Progress) -> Optional[str]:
    # first match in catalog order only; the rest are picked up on later completions
    for badge in BADGES:
        if badge.id in progress.earned_badges:
            continue
        if badge.is_met(progress):
            progress.earned_badges.append(badge.id)
            return badge.id
    return None


def badge_progress(badge: Badge, progress: Progress) -> Tuple[int, int]:
    """(current, target) for a progress bar, current capped at target."""
    return min(badge.current_value(progress), badge.threshold), badge.threshold


def earned_badges(progress: Progress) -> List[Badge]:
    return [b for b in BADGES if b.id in progress.earned_badges]
