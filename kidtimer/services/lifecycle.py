"""
Lifecycle Watcher — forwards app foreground/background transitions to the
timer engine.

Hidden / Suspended  → engine.enter_background()
back to Active      → engine.reconcile_from_background()

Inactive (window lost focus) is still foreground: the ticker keeps running.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Qt, Slot
from PySide6.QtGui import QGuiApplication

logger = logging.getLogger(__name__)

_BACKGROUND_STATES = (
    Qt.ApplicationState.ApplicationHidden,
    Qt.ApplicationState.ApplicationSuspended,
)


class LifecycleWatcher(QObject):
    """Connects QGuiApplication.applicationStateChanged to the engine."""

    def __init__(self, engine, app: Optional[QGuiApplication] = None,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.engine = engine
        self.state = Qt.ApplicationState.ApplicationActive

        app = app or QGuiApplication.instance()
        if isinstance(app, QGuiApplication):
            app.applicationStateChanged.connect(self.on_state_changed)
        else:
            logger.info("No GUI application; lifecycle events will not be tracked.")

    @property
    def in_background(self) -> bool:
        return self.state in _BACKGROUND_STATES

    @Slot(Qt.ApplicationState)
    def on_state_changed(self, state: Qt.ApplicationState) -> None:
        previous, self.state = self.state, state
        if state == previous:
            return
        if state in _BACKGROUND_STATES and previous not in _BACKGROUND_STATES:
            logger.info("App moved to background.")
            self.engine.enter_background()
        elif state == Qt.ApplicationState.ApplicationActive:
            logger.info("App active again; reconciling timers.")
            self.engine.reconcile_from_background()
