"""
Sound Manager — plays the completion tone for a finished timer.

Three interchangeable players, picked once at start-up by select_feedback():
  - SoundManager: pygame.mixer playing WAV files cached on disk, falling back
    to speech when a file can't be produced or played.
  - SpeechFeedback: Qt text-to-speech saying a short phrase per tone.
  - SilentFeedback: logs only (headless machines, CI).

Desktop hardware has no haptic actuator, so haptic requests are logged.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from kidtimer.data.models import VIBRATE_ONLY

from .tones import UnknownToneError, available_tones, synthesize_tone

logger = logging.getLogger(__name__)

# Whether pygame mixer is available
_mixer_available = False
try:
    import pygame.mixer
    _mixer_available = True
except ImportError:
    logger.warning("pygame not installed; tone playback will be disabled.")

# Whether Qt text-to-speech is available
_speech_available = False
try:
    from PySide6.QtTextToSpeech import QTextToSpeech
    _speech_available = True
except ImportError:
    logger.warning("QtTextToSpeech not available; speech fallback disabled.")

SPEECH_MESSAGES = {
    "chime": "Timer done!",
    "bell": "Ding ding! Time is up!",
    "xylophone": "Time is up!",
    "whistle": "Timer finished!",
    "celebration": "Yay! Great job!",
    "gentle": "Your timer is complete.",
    "playful": "All done!",
    "magic": "Timer complete!",
    "drumroll": "And... time!",
    "fanfare": "Well done!",
}


class SilentFeedback:
    """Player that only logs. Always available."""

    name = "silent"

    def play(self, tone_id: str) -> None:
        logger.info("Completion tone %s (silent).", tone_id)

    def haptic(self, style: str = "medium", count: int = 1) -> None:
        logger.debug("Haptic %s x%d requested; no actuator.", style, count)


class SpeechFeedback(SilentFeedback):
    """Says a short phrase instead of playing a tone."""

    name = "speech"

    def __init__(self) -> None:
        self._tts = QTextToSpeech() if _speech_available else None
        if self._tts is not None:
            self._tts.setPitch(0.1)
            self._tts.setRate(-0.1)

    @staticmethod
    def is_supported() -> bool:
        return _speech_available and bool(QTextToSpeech.availableEngines())

    def play(self, tone_id: str) -> None:
        if tone_id == VIBRATE_ONLY or self._tts is None:
            return
        message = SPEECH_MESSAGES.get(tone_id, "Timer complete!")
        try:
            self._tts.say(message)
        except Exception as e:
            logger.warning("Speech fallback failed: %s", e)


class SoundManager(SilentFeedback):
    """pygame playback with an on-disk WAV cache per tone."""

    name = "pygame"

    def __init__(self, cache_dir: Path, volume: float = 0.8,
                 fallback: Optional[SilentFeedback] = None) -> None:
        self.cache_dir = Path(cache_dir)
        self.volume = max(0.0, min(volume, 1.0))
        self.fallback = fallback
        self._initialized = False
        self._sounds: dict = {}

        if _mixer_available:
            self._init_mixer()

    def _init_mixer(self) -> None:
        try:
            pygame.mixer.init(frequency=44100, size=-16, channels=1, buffer=512)
            self._initialized = True
            logger.info("Sound manager initialized.")
        except Exception as e:
            logger.warning("Could not init audio: %s", e)

    @property
    def is_ready(self) -> bool:
        return self._initialized

    def cached_path(self, tone_id: str) -> Optional[Path]:
        """Return the WAV file for a tone, writing it on first use."""
        path = self.cache_dir / f"timer_sound_{tone_id}.wav"
        if path.exists():
            return path
        try:
            data = synthesize_tone(tone_id)
        except UnknownToneError:
            return None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.warning("Could not cache sound %s: %s", tone_id, e)
            return None
        return path

    def preload(self) -> None:
        for tone_id in available_tones():
            self.cached_path(tone_id)

    def play(self, tone_id: str) -> None:
        if tone_id == VIBRATE_ONLY:
            return
        if not self._initialized:
            self._play_fallback(tone_id)
            return
        try:
            sound = self._sounds.get(tone_id)
            if sound is None:
                path = self.cached_path(tone_id)
                if path is None:
                    logger.info("Audio file not available for %s, using fallback.", tone_id)
                    self._play_fallback(tone_id)
                    return
                sound = pygame.mixer.Sound(str(path))
                self._sounds[tone_id] = sound
            sound.set_volume(self.volume)
            sound.play()
        except Exception as e:
            logger.warning("Native audio playback failed (%s), using fallback.", e)
            self._play_fallback(tone_id)

    def set_volume(self, volume: float) -> None:
        self.volume = max(0.0, min(volume, 1.0))
        for s in self._sounds.values():
            s.set_volume(self.volume)

    def _play_fallback(self, tone_id: str) -> None:
        if self.fallback is not None:
            self.fallback.play(tone_id)


def select_feedback(cache_dir: Path, volume: float = 0.8) -> SilentFeedback:
    """Pick the best player this machine supports."""
    speech = SpeechFeedback() if SpeechFeedback.is_supported() else None
    if _mixer_available:
        manager = SoundManager(cache_dir, volume, fallback=speech)
        if manager.is_ready:
            manager.preload()
            return manager
    if speech is not None:
        logger.info("Using speech feedback.")
        return speech
    logger.info("No audio output available; completion feedback is silent.")
    return SilentFeedback()


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   Plays something when a timer finishes. The engine only ever calls
#   notifier.play_completion_feedback(); which player sits behind it is
#   decided here, once.
#
# Data flow:
#   select_feedback() at start-up → CompletionNotifier(feedback=...) →
#   TimerEngine completion → feedback.play(tone_id) → pygame / TTS / log.
