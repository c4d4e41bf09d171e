"""
Tick Scheduler — the once-a-second heartbeat for TimerEngine.tick().

Uses a QTimer so ticks run on the Qt event loop, the same thread as every
other engine call. The engine starts and stops it; it never decides by itself.
"""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QTimer, Qt

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000


class TickScheduler:
    """Start/stop wrapper around a repeating QTimer."""

    def __init__(self, callback: Callable[[], object], interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        self._timer = QTimer()
        self._timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(callback)

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def start(self) -> None:
        self._timer.start()
        logger.debug("Tick scheduler armed (%d ms).", self._timer.interval())

    def stop(self) -> None:
        self._timer.stop()
        logger.debug("Tick scheduler disarmed.")
