"""
Seed Data Generator — fills the database with a month of realistic timer
completions (history, progress, streaks, badges) for development.

Run: python scripts/seed_data.py
"""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from kidtimer.clock import FrozenClock
from kidtimer.config import load_config
from kidtimer.data.catalog import ACTIVITIES
from kidtimer.data.database import Database
from kidtimer.data.repository import Storage
from kidtimer.services.timer_engine import TimerEngine


def seed(num_days: int = 30) -> None:
    config = load_config()
    db = Database(Path(config["db_path"]))
    db.connect()
    storage = Storage(db.conn, history_limit=config["history_limit"])

    start = datetime.now().replace(hour=8, minute=0, second=0, microsecond=0)
    clock = FrozenClock(start - timedelta(days=num_days))
    engine = TimerEngine(storage, clock=clock)
    engine.load()

    completed = 0
    for day in range(num_days):
        # Skip roughly one day in six so streaks break now and then
        if random.random() < 0.17:
            clock.advance(days=1)
            continue

        day_start = clock.now()
        for _ in range(random.randint(1, 4)):
            activity = random.choice(ACTIVITIES)
            minutes = max(1, activity.default_minutes + random.randint(-5, 5))
            timer = engine.create_timer(activity.id, minutes)

            # Sometimes pause partway through
            if random.random() < 0.3:
                clock.advance(seconds=minutes * 30)
                engine.pause(timer.id)
                clock.advance(minutes=random.randint(1, 10))
                engine.resume(timer.id)

            # Let it run out while "in the background"
            engine.enter_background()
            clock.advance(minutes=minutes + random.randint(1, 30))
            completed += len(engine.reconcile_from_background())
            engine.remove(timer.id)

        clock.set(day_start + timedelta(days=1))

    progress = engine.progress
    print(f"Seeded {completed} completions over {num_days} days.")
    print(f"Streak: {progress.current_streak} (longest {progress.longest_streak})")
    print(f"Badges: {', '.join(progress.earned_badges) or 'none'}")
    db.close()


if __name__ == "__main__":
    seed()
