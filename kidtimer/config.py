"""
App configuration — JSON file merged over built-in defaults.

User-facing preferences (sound, haptics, theme, default tone) are NOT here;
they live in the Settings record in the database. This file only holds
deployment knobs: where the database lives, tick interval, log level, etc.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parent.parent
CONFIG_PATH = ROOT_DIR / "config" / "kidtimer.json"

DEFAULT_CONFIG = {
    "db_path": str(ROOT_DIR / "kidtimer.db"),
    "tick_interval_ms": 1000,
    "history_limit": 100,
    "sound_cache_dir": str(ROOT_DIR / "cache" / "sounds"),
    "volume": 0.8,
    "log_file": "kidtimer.log",
    "log_level": "INFO",
}


def load_config(path: Optional[Path] = None) -> dict:
    """Read the JSON config, filling any missing keys from DEFAULT_CONFIG."""
    path = path or CONFIG_PATH
    merged = DEFAULT_CONFIG.copy()
    if not path.exists():
        return merged
    try:
        with open(path, encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, json.JSONDecodeError):
        logger.warning("Bad config at %s, using defaults.", path)
        return merged
    if not isinstance(cfg, dict):
        logger.warning("Config at %s is not an object, using defaults.", path)
        return merged
    merged.update(cfg)
    return merged
