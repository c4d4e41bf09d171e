"""
KidTimer — activity timers for kids
Entry point for the application.
"""

import faulthandler
import logging
import sys
from pathlib import Path

faulthandler.enable()

# Ensure kidtimer is importable when run from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent))

from PySide6.QtWidgets import QApplication

from kidtimer.config import load_config
from kidtimer.ui.tray_app import TrayApp


def setup_logging(config: dict) -> None:
    logging.basicConfig(
        level=getattr(logging, str(config["log_level"]).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(config["log_file"], encoding="utf-8"),
        ],
    )


def main() -> None:
    config = load_config()
    setup_logging(config)
    logger = logging.getLogger(__name__)
    logger.info("Starting KidTimer...")

    app = QApplication(sys.argv)
    app.setApplicationName("KidTimer")
    app.setOrganizationName("KidTimer")
    # Tray-only app: no window closing should end it
    app.setQuitOnLastWindowClosed(False)

    tray_app = TrayApp(app, config)

    logger.info("Application started with %d timers.", len(tray_app.engine.timers))
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
