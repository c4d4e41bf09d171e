from .notifier import CompletionNotifier, NullNotifier
from .sound_manager import SilentFeedback, SoundManager, SpeechFeedback, select_feedback
from .tones import UnknownToneError, available_tones, synthesize_tone

__all__ = [
    "CompletionNotifier", "NullNotifier", "SilentFeedback", "SoundManager",
    "SpeechFeedback", "select_feedback", "UnknownToneError", "available_tones",
    "synthesize_tone",
]
