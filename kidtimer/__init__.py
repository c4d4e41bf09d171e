"""KidTimer — activity timers for kids, with streaks and badges."""

__version__ = "1.0.0"
