"""Speech recognition interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from scribeline.schemas.job import RecognitionConfig, Segment


@dataclass(slots=True)
class TranscriptionOutcome:
    """Result of one recognition call; provider failures travel in ``error``."""

    transcript: str = ""
    segments: list[Segment] = field(default_factory=list)
    raw_payload: dict[str, Any] | None = None
    detected_speaker_count: int | None = None
    error: str | None = None

    @classmethod
    def failed(cls, message: str) -> TranscriptionOutcome:
        return cls(error=message or "Transcription processing failed")


class SpeechTranscriber(ABC):
    @abstractmethod
    async def transcribe(self, audio_uri: str, config: RecognitionConfig) -> TranscriptionOutcome:
        """Recognize the published audio; must not raise for provider errors."""


__all__ = ["SpeechTranscriber", "TranscriptionOutcome"]
