"""
Tone synthesis — turns a tone id into a short WAV clip.

All sounds are generated from note lists (no audio files shipped). Output is
44.1 kHz, 16-bit mono PCM. The result depends only on the tone id, so it is
cached for the life of the process.
"""

from __future__ import annotations

import logging
import wave
from functools import lru_cache
from io import BytesIO
from typing import Dict, List

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
PEAK = 32767 * 0.7

TONE_CONFIGS: Dict[str, dict] = {
    "chime": {"frequencies": [523, 659, 784], "durations": [0.15, 0.15, 0.3], "type": "sine"},
    "bell": {"frequencies": [440, 554, 659, 880], "durations": [0.1, 0.1, 0.1, 0.4], "type": "sine"},
    "xylophone": {"frequencies": [392, 494, 587, 784], "durations": [0.1, 0.1, 0.1, 0.3], "type": "triangle"},
    "whistle": {"frequencies": [880, 1047, 1319], "durations": [0.2, 0.2, 0.3], "type": "sine"},
    "celebration": {"frequencies": [523, 659, 784, 1047, 784, 1047],
                    "durations": [0.1, 0.1, 0.1, 0.15, 0.15, 0.3], "type": "sine"},
    "gentle": {"frequencies": [330, 392, 494], "durations": [0.3, 0.3, 0.5], "type": "sine"},
    "playful": {"frequencies": [523, 784, 523, 784, 1047],
                "durations": [0.1, 0.1, 0.1, 0.1, 0.3], "type": "square"},
    "magic": {"frequencies": [392, 494, 587, 784, 988],
              "durations": [0.1, 0.1, 0.1, 0.15, 0.4], "type": "sine"},
    "drumroll": {"frequencies": [220, 220, 220, 220, 330],
                 "durations": [0.08, 0.08, 0.08, 0.08, 0.4], "type": "square"},
    "fanfare": {"frequencies": [392, 494, 587, 784, 587, 784, 988],
                "durations": [0.15, 0.1, 0.15, 0.1, 0.1, 0.1, 0.4], "type": "sine"},
}


class UnknownToneError(KeyError):
    """Raised for a tone id with no waveform (including 'vibrate_only')."""


def available_tones() -> List[str]:
    return list(TONE_CONFIGS)


@lru_cache(maxsize=None)
def synthesize_tone(tone_id: str) -> bytes:
    """Render a tone to WAV bytes."""
    config = TONE_CONFIGS.get(tone_id)
    if config is None:
        raise UnknownToneError(tone_id)

    total = int(SAMPLE_RATE * sum(config["durations"]))
    notes = [
        _render_note(freq, dur, config["type"])
        for freq, dur in zip(config["frequencies"], config["durations"])
    ]
    samples = np.zeros(total, dtype=np.int16)
    joined = np.concatenate(notes)[:total]
    samples[: len(joined)] = joined
    logger.debug("Synthesized %s: %d samples", tone_id, total)
    return _make_wav(samples)


def _render_note(freq: float, duration: float, waveform: str) -> np.ndarray:
    n = int(SAMPLE_RATE * duration)
    t = np.arange(n) / SAMPLE_RATE
    # quick attack, slightly slower release
    envelope = np.minimum(1.0, np.minimum(t * 20, (duration - t) * 10))
    phase = 2 * np.pi * freq * t

    if waveform == "square":
        wave_ = np.where(np.sin(phase) > 0, 0.3, -0.3)
    elif waveform == "triangle":
        wave_ = (2 / np.pi) * np.arcsin(np.sin(phase)) * 0.5
    else:
        wave_ = np.sin(phase) * 0.5

    return np.floor(wave_ * envelope * PEAK).astype(np.int16)


def _make_wav(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Pack int16 samples into a WAV byte string."""
    buf = BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        w.writeframes(samples.astype("<i2").tobytes())
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   Renders each completion tone from a list of (frequency, duration) notes
#   with a per-note attack/release envelope, in sine, square or triangle
#   flavour, and wraps the samples in a WAV container.
#
# Data flow:
#   SoundManager.play("bell") → synthesize_tone("bell") → WAV bytes →
#   written once to the sound cache dir → pygame plays the file.
