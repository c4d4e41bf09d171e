"""
Completion notifier — local alerts and completion feedback.

Alerts are single-shot QTimers that pop a tray balloon when a timer is due.
They run on the Qt event loop, so they only fire while the process is alive;
TimerEngine.reconcile_from_background() is what actually detects completions
that happened while nothing was ticking.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from kidtimer.data.models import Timer

from .sound_manager import SilentFeedback

logger = logging.getLogger(__name__)

ALERT_TITLE = "Timer Complete!"


class NullNotifier:
    """Does nothing. The engine's default when no notifier is wired in."""

    def schedule_completion_alert(self, timer: Timer) -> Optional[str]:
        return None

    def cancel_completion_alert(self, handle: str) -> None:
        pass

    def play_completion_feedback(self, tone_id: str, haptics_enabled: bool) -> None:
        pass

    def haptic_pulse(self, style: str = "medium") -> None:
        pass


class CompletionNotifier(QObject):
    """
    Schedules tray alerts and plays completion feedback.

    `tray` is anything with showMessage(title, body) and supportsMessages();
    in the app it's the QSystemTrayIcon.
    """

    alert_fired = Signal(str, str)  # handle, timer id

    def __init__(self, feedback: Optional[SilentFeedback] = None, tray=None,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.feedback = feedback or SilentFeedback()
        self.tray = tray
        self._pending: Dict[str, QTimer] = {}

    @property
    def supports_alerts(self) -> bool:
        return self.tray is not None and bool(self.tray.supportsMessages())

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ── Alerts ──────────────────────────────────────────────────────────────

    def schedule_completion_alert(self, timer: Timer) -> Optional[str]:
        if not self.supports_alerts:
            return None
        handle = uuid.uuid4().hex
        alert = QTimer(self)
        alert.setSingleShot(True)
        alert.timeout.connect(
            lambda: self._fire(handle, timer.id, timer.label)
        )
        alert.start(max(0, timer.remaining_seconds) * 1000)
        self._pending[handle] = alert
        logger.debug("Alert %s scheduled for %s in %ds", handle, timer.id, timer.remaining_seconds)
        return handle

    def cancel_completion_alert(self, handle: str) -> None:
        alert = self._pending.pop(handle, None)
        if alert is None:
            return
        alert.stop()
        alert.deleteLater()
        logger.debug("Alert %s cancelled", handle)

    def _fire(self, handle: str, timer_id: str, label: str) -> None:
        alert = self._pending.pop(handle, None)
        if alert is not None:
            alert.deleteLater()
        try:
            self.tray.showMessage(ALERT_TITLE, f"Your {label} timer is done!")
        except Exception as e:
            logger.warning("Failed to show alert: %s", e)
        self.alert_fired.emit(handle, timer_id)

    # ── Feedback ────────────────────────────────────────────────────────────

    def play_completion_feedback(self, tone_id: str, haptics_enabled: bool) -> None:
        self.feedback.play(tone_id)
        if haptics_enabled:
            self.feedback.haptic("medium", count=3)

    def haptic_pulse(self, style: str = "medium") -> None:
        self.feedback.haptic(style)
