"""Recognition configuration defaults and outcome messages."""

from __future__ import annotations

from scribeline.core.config import Settings
from scribeline.schemas.job import DiarizationConfig, RecognitionConfig, Segment

_AUTO_DETECT_CODES = frozenset({"", "auto", "auto-detect"})


def build_recognition_config(
    *,
    language_code: str | None,
    enable_speaker_diarization: bool,
    min_speakers: int | None,
    max_speakers: int | None,
    settings: Settings,
) -> RecognitionConfig:
    """Resolve client options into the immutable config stored on the job.

    Auto-detection never leaves the language unset: the primary hint language is
    used together with the configured alternative set. Diarization bounds fall
    back to the configured defaults when omitted.
    """
    requested = (language_code or "").strip()
    alternatives: list[str] | None = None
    if requested.lower() in _AUTO_DETECT_CODES:
        primary = settings.auto_detect_primary_language
        alternatives = [code for code in settings.auto_detect_alternative_languages if code != primary]
    else:
        primary = requested

    diarization: DiarizationConfig | None = None
    if enable_speaker_diarization:
        lower = min_speakers if min_speakers is not None else settings.default_min_speakers
        upper = max_speakers if max_speakers is not None else settings.default_max_speakers
        if lower > upper:
            raise ValueError(f"min_speakers ({lower}) must not exceed max_speakers ({upper})")
        diarization = DiarizationConfig(enabled=True, min_speakers=lower, max_speakers=upper)

    return RecognitionConfig(
        language_code=primary,
        alternative_language_codes=alternatives or None,
        model=settings.recognition_model,
        diarization=diarization,
    )


def success_message(transcript: str | None, segments: list[Segment]) -> str:
    """Message for a successful recognition; empty output is a degraded success, not a failure."""
    if segments:
        return "Transcription successful."
    if transcript:
        return "Transcription text available, but no detailed segments."
    return "Transcription resulted in no text or segments."


def translated_message(language: str) -> str:
    return f"Transcription and translation to {language} successful."


TRANSLATION_FAILED_MESSAGE = "Transcription successful, but translation failed."
