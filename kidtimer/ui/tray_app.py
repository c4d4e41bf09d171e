"""
Tray App — the central hub of KidTimer.

Contains:
  - Core wiring (database, storage, engine, scheduler, notifier, lifecycle)
  - A system-tray icon whose menu starts quick timers and lists running ones
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Qt
from PySide6.QtGui import QAction, QColor, QIcon, QPainter, QPixmap
from PySide6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from kidtimer.data.catalog import SOUND_TONES, THEMES, get_badge_by_id
from kidtimer.data.database import Database
from kidtimer.data.repository import Storage
from kidtimer.feedback.notifier import CompletionNotifier
from kidtimer.feedback.sound_manager import select_feedback
from kidtimer.services.lifecycle import LifecycleWatcher
from kidtimer.services.tick_scheduler import TickScheduler
from kidtimer.services.timer_engine import TimerEngine

logger = logging.getLogger(__name__)


def _make_icon(color: str) -> QIcon:
    pixmap = QPixmap(64, 64)
    pixmap.fill(Qt.GlobalColor.transparent)
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setBrush(QColor(color))
    painter.setPen(Qt.PenStyle.NoPen)
    painter.drawEllipse(4, 4, 56, 56)
    painter.end()
    return QIcon(pixmap)


class TrayApp(QObject):
    """Owns the core systems and the tray icon."""

    def __init__(self, app: QApplication, config: dict) -> None:
        super().__init__()
        self.app = app
        self.config = config

        # ── Initialize core systems ─────────────────────────────────────
        self.db = Database(Path(config["db_path"]))
        self.db.connect()
        self.storage = Storage(self.db.conn, history_limit=config["history_limit"])

        self.menu = QMenu()
        self.tray: Optional[QSystemTrayIcon] = None
        if QSystemTrayIcon.isSystemTrayAvailable():
            self.tray = QSystemTrayIcon(_make_icon(THEMES["default"]["primary"]))
            self.tray.setToolTip("KidTimer")

        feedback = select_feedback(Path(config["sound_cache_dir"]), config["volume"])
        self.notifier = CompletionNotifier(feedback=feedback, tray=self.tray, parent=self)

        self.engine = TimerEngine(
            self.storage,
            notifier=self.notifier,
            on_change=self._refresh,
            on_new_badge=self._on_new_badge,
        )
        self.scheduler = TickScheduler(self.engine.tick, config["tick_interval_ms"])
        self.lifecycle = LifecycleWatcher(self.engine, app=app, parent=self)
        self.notifier.alert_fired.connect(self._on_alert_fired)

        # ── Load state (cold-start reconcile happens here) ─────────────
        self.engine.load()
        self.engine.attach_scheduler(self.scheduler)

        # ── System tray ────────────────────────────────────────────────
        self.menu.aboutToShow.connect(self._rebuild_menu)
        if self.tray is not None:
            self.tray.setContextMenu(self.menu)
            self.tray.show()
        self._refresh()

    # ── Tray contents ───────────────────────────────────────────────────

    def _refresh(self) -> None:
        theme = THEMES.get(self.engine.settings.selected_theme, THEMES["default"])
        if self.tray is not None:
            self.tray.setIcon(_make_icon(theme["primary"]))
            self.tray.setToolTip(self._tooltip())

    def _tooltip(self) -> str:
        active = [t for t in self.engine.timers if not t.is_completed]
        if not active:
            return "KidTimer — no timers"
        lines = [f"{t.label}: {t.formatted_remaining()}{' (paused)' if t.paused else ''}"
                 for t in active[:5]]
        return "\n".join(lines)

    def _rebuild_menu(self) -> None:
        self.menu.clear()

        start_menu = self.menu.addMenu("Start timer")
        for activity in self.engine.all_activities():
            action = QAction(f"{activity.name} ({activity.default_minutes} min)", start_menu)
            action.triggered.connect(
                lambda _=False, a=activity: self.engine.create_timer(a.id, a.default_minutes)
            )
            start_menu.addAction(action)

        if self.engine.timers:
            self.menu.addSeparator()
        for timer in self.engine.timers:
            sub = self.menu.addMenu(f"{timer.label} — {timer.formatted_remaining()} [{timer.status}]")
            if not timer.is_completed:
                toggle = sub.addAction("Resume" if timer.paused else "Pause")
                toggle.triggered.connect(lambda _=False, tid=timer.id: self.engine.toggle(tid))
            sub.addAction("Reset").triggered.connect(lambda _=False, tid=timer.id: self.engine.reset(tid))
            sub.addAction("Remove").triggered.connect(lambda _=False, tid=timer.id: self.engine.remove(tid))

        self.menu.addSeparator()
        sound = self.menu.addAction("Sound")
        sound.setCheckable(True)
        sound.setChecked(self.engine.settings.sound_enabled)
        sound.toggled.connect(lambda v: self.engine.update_settings(sound_enabled=v))

        tone_menu = self.menu.addMenu("Default tone")
        for tone_id, name in SOUND_TONES.items():
            action = tone_menu.addAction(name)
            action.setCheckable(True)
            action.setChecked(tone_id == self.engine.settings.default_sound_tone)
            action.triggered.connect(
                lambda _=False, t=tone_id: self.engine.update_settings(default_sound_tone=t)
            )

        self.menu.addAction("Quit").triggered.connect(self._quit_app)

    def _on_alert_fired(self, handle: str, timer_id: str) -> None:
        # in the foreground the ticker finishes the timer itself
        if self.lifecycle.in_background:
            self.engine.catch_up_due_timers()

    def _on_new_badge(self, badge_id: str) -> None:
        badge = get_badge_by_id(badge_id)
        if badge and self.tray is not None:
            self.tray.showMessage("New Badge!", f"{badge.name}: {badge.description}")
        self.engine.clear_new_badge()

    def _quit_app(self) -> None:
        logger.info("Quitting with %d alerts pending; they are re-armed on next launch.",
                    self.notifier.pending_count)
        self.engine.enter_background()
        self.db.close()
        if self.tray is not None:
            self.tray.hide()
        self.app.quit()
