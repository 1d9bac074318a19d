"""Google Cloud Speech-to-Text transcriber."""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import speech
from starlette.concurrency import run_in_threadpool

from scribeline.adapters.speech.base import SpeechTranscriber, TranscriptionOutcome
from scribeline.domain.segments import RecognizedResult, WordTiming, build_segments
from scribeline.schemas.job import RecognitionConfig

logger = logging.getLogger(__name__)


def _seconds(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value.total_seconds()
    seconds = getattr(value, "seconds", None)
    if seconds is None:
        return None
    return float(seconds) + float(getattr(value, "nanos", 0) or 0) / 1e9


def _provider_config(config: RecognitionConfig) -> speech.RecognitionConfig:
    diarization = None
    if config.diarization is not None and config.diarization.enabled:
        diarization = speech.SpeakerDiarizationConfig(
            enable_speaker_diarization=True,
            min_speaker_count=config.diarization.min_speakers,
            max_speaker_count=config.diarization.max_speakers,
        )
    return speech.RecognitionConfig(
        encoding=speech.RecognitionConfig.AudioEncoding[config.encoding],
        sample_rate_hertz=config.sample_rate_hertz,
        language_code=config.language_code,
        alternative_language_codes=list(config.alternative_language_codes or []),
        enable_automatic_punctuation=config.enable_automatic_punctuation,
        enable_word_time_offsets=config.enable_word_time_offsets,
        model=config.model,
        diarization_config=diarization,
    )


def recognized_results(response: Any) -> list[RecognizedResult]:
    """Flatten a provider response into the provider-neutral result shape."""
    results: list[RecognizedResult] = []
    for result in getattr(response, "results", None) or []:
        alternatives = getattr(result, "alternatives", None) or []
        if not alternatives:
            continue
        best = alternatives[0]
        results.append(
            RecognizedResult(
                transcript=str(getattr(best, "transcript", "") or ""),
                words=[
                    WordTiming(
                        word=str(getattr(word, "word", "") or "").strip(),
                        start=_seconds(getattr(word, "start_time", None)),
                        end=_seconds(getattr(word, "end_time", None)),
                        speaker_tag=getattr(word, "speaker_tag", None) or None,
                    )
                    for word in (getattr(best, "words", None) or [])
                ],
                result_end=_seconds(getattr(result, "result_end_time", None)),
            )
        )
    return results


class GoogleSpeechTranscriber(SpeechTranscriber):
    def __init__(self, *, client: speech.SpeechClient | None = None, operation_timeout: float | None = None) -> None:
        self._client = client
        self._operation_timeout = operation_timeout

    def _recognize(self, audio_uri: str, config: RecognitionConfig) -> Any:
        if self._client is None:
            self._client = speech.SpeechClient()
        operation = self._client.long_running_recognize(
            config=_provider_config(config),
            audio=speech.RecognitionAudio(uri=audio_uri),
        )
        return operation.result(timeout=self._operation_timeout)

    async def transcribe(self, audio_uri: str, config: RecognitionConfig) -> TranscriptionOutcome:
        try:
            response = await run_in_threadpool(self._recognize, audio_uri, config)
        except (GoogleAPIError, GoogleAuthError, ValueError, KeyError) as exc:
            logger.warning("speech.failed reason=%s", type(exc).__name__)
            return TranscriptionOutcome.failed(str(exc))

        diarized = config.diarization is not None and config.diarization.enabled
        built = build_segments(recognized_results(response), diarized=diarized)
        try:
            raw_payload = type(response).to_dict(response)
        except (AttributeError, TypeError):
            raw_payload = None
        logger.info(
            "speech.completed segments=%s speakers=%s",
            len(built.segments),
            built.detected_speaker_count,
        )
        return TranscriptionOutcome(
            transcript=built.transcript,
            segments=built.segments,
            raw_payload=raw_payload,
            detected_speaker_count=built.detected_speaker_count,
        )


__all__ = ["GoogleSpeechTranscriber", "recognized_results"]
