"""
Static catalogs: built-in activities, sound tones, themes and badges.

Order matters for BADGES: the progress evaluator scans it front to back and
only announces the first newly earned badge per completion.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .models import Activity, Badge

ACTIVITIES: List[Activity] = [
    Activity(id="homework", name="Homework", default_minutes=30, icon="book"),
    Activity(id="screen_time", name="Screen Time", default_minutes=30, icon="monitor"),
    Activity(id="brush_teeth", name="Brush Teeth", default_minutes=2, icon="droplet"),
    Activity(id="bedtime", name="Bedtime", default_minutes=15, icon="moon"),
    Activity(id="playtime", name="Playtime", default_minutes=30, icon="star"),
    Activity(id="cleanup", name="Cleanup", default_minutes=10, icon="trash-2"),
    Activity(id="snack_time", name="Snack Time", default_minutes=15, icon="coffee"),
    Activity(id="reading", name="Reading", default_minutes=20, icon="book-open"),
]

CUSTOM_KIND = "custom"

SOUND_TONES: Dict[str, str] = {
    "vibrate_only": "Vibrate Only",
    "chime": "Chime",
    "bell": "Bell",
    "xylophone": "Xylophone",
    "whistle": "Whistle",
    "celebration": "Celebration",
    "gentle": "Gentle",
    "playful": "Playful",
    "magic": "Magic",
    "drumroll": "Drumroll",
    "fanfare": "Fanfare",
}

THEMES: Dict[str, dict] = {
    "default": {"name": "Sunny", "primary": "#FF6B6B", "secondary": "#4ECDC4", "accent": "#FFE66D"},
    "space": {"name": "Space", "primary": "#7B2CBF", "secondary": "#3C096C", "accent": "#E0AAFF"},
    "ocean": {"name": "Ocean", "primary": "#0077B6", "secondary": "#00B4D8", "accent": "#90E0EF"},
    "forest": {"name": "Forest", "primary": "#2D6A4F", "secondary": "#52B788", "accent": "#D8F3DC"},
}

BADGES: List[Badge] = [
    Badge("first_timer", "First Timer", "Finish your very first timer", "award", "#FFD93D",
          "total_timers", 1),
    Badge("high_five", "High Five", "Finish 5 timers", "thumbs-up", "#6BCB77",
          "total_timers", 5),
    Badge("timer_champ", "Timer Champ", "Finish 25 timers", "trophy", "#4D96FF",
          "total_timers", 25),
    Badge("timer_legend", "Timer Legend", "Finish 100 timers", "crown", "#9B5DE5",
          "total_timers", 100),
    Badge("hour_hero", "Hour Hero", "Spend 60 minutes on timers", "clock", "#F15BB5",
          "total_minutes", 60),
    Badge("time_master", "Time Master", "Spend 300 minutes on timers", "watch", "#00BBF9",
          "total_minutes", 300),
    Badge("marathon", "Marathon", "Spend 1000 minutes on timers", "activity", "#FEE440",
          "total_minutes", 1000),
    Badge("streak_3", "On a Roll", "Finish a timer 3 days in a row", "zap", "#FF9F1C",
          "streak", 3),
    Badge("streak_7", "Week Warrior", "Finish a timer 7 days in a row", "calendar", "#E71D36",
          "streak", 7),
    Badge("streak_30", "Unstoppable", "Finish a timer 30 days in a row", "sun", "#2EC4B6",
          "streak", 30),
    Badge("bookworm", "Bookworm", "Finish 10 reading timers", "book-open", "#8338EC",
          "activity_count", 10, "reading"),
    Badge("homework_hero", "Homework Hero", "Finish 10 homework timers", "book", "#3A86FF",
          "activity_count", 10, "homework"),
    Badge("sparkly_smile", "Sparkly Smile", "Brush your teeth 14 times", "droplet", "#06D6A0",
          "activity_count", 14, "brush_teeth"),
    Badge("sleepy_head", "Sleepy Head", "Finish 7 bedtime timers", "moon", "#118AB2",
          "activity_count", 7, "bedtime"),
    Badge("tidy_up", "Tidy Up", "Finish 10 cleanup timers", "trash-2", "#EF476F",
          "activity_count", 10, "cleanup"),
]


def get_activity_by_id(activity_id: str) -> Optional[Activity]:
    for activity in ACTIVITIES:
        if activity.id == activity_id:
            return activity
    return None


def get_badge_by_id(badge_id: str) -> Optional[Badge]:
    for badge in BADGES:
        if badge.id == badge_id:
            return badge
    return None
