from .progress_service import badge_progress, earned_badges, evaluate, update_streak
from .timer_engine import TimerEngine

__all__ = ["TimerEngine", "evaluate", "update_streak", "badge_progress", "earned_badges"]
