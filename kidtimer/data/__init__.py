from .database import Database
from .models import Activity, Badge, HistoryEntry, Progress, Settings, Timer
from .repository import Storage

__all__ = ["Database", "Activity", "Badge", "HistoryEntry", "Progress", "Settings", "Timer", "Storage"]
