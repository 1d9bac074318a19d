"""Speech recognition adapters."""

from .base import SpeechTranscriber, TranscriptionOutcome
from .google import GoogleSpeechTranscriber

__all__ = ["GoogleSpeechTranscriber", "SpeechTranscriber", "TranscriptionOutcome"]
