"""Detached pipeline continuation: processing through terminal state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
import json
import logging
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from scribeline.adapters.speech.base import SpeechTranscriber, TranscriptionOutcome
from scribeline.adapters.translation.base import SegmentTranslator
from scribeline.core.staging import StagingArea
from scribeline.domain.recognition import TRANSLATION_FAILED_MESSAGE, success_message, translated_message
from scribeline.errors import ApiError, PersistenceError, PipelineError, RecognitionError
from scribeline.repositories.base import JobRecord, JobStore
from scribeline.schemas.job import JobStatus, TranslatedSegment, TranslationEntry
from scribeline.services.broadcaster import StatusBroadcaster
from scribeline.services.translation import translate_segments

logger = logging.getLogger(__name__)

PROCESSING_MESSAGE = "Processing transcription..."
INTERRUPTED_MESSAGE = "Processing was interrupted before completion."


@dataclass(slots=True, frozen=True)
class PipelineRun:
    """In-process handle for one run; local paths are never persisted.

    Retries carry no local paths: they re-enter with the stored audio URI.
    """

    job_id: str
    audio_path: Path | None = None
    video_path: Path | None = None
    target_language: str | None = None


@dataclass(slots=True)
class _RunState:
    raw_payload: dict[str, Any] | None = None


@dataclass(slots=True)
class _Terminal:
    status: JobStatus
    message: str
    fields: dict[str, Any]
    translated: list[TranslatedSegment] | None = None
    target_language: str | None = None


class PipelineCoordinator:
    def __init__(
        self,
        *,
        store: JobStore,
        broadcaster: StatusBroadcaster,
        transcriber: SpeechTranscriber,
        translator: SegmentTranslator,
        staging: StagingArea,
        transcription_timeout: float | None = 3600.0,
        retain_source_video: bool = False,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._transcriber = transcriber
        self._translator = translator
        self._staging = staging
        self._transcription_timeout = transcription_timeout
        self._retain_source_video = retain_source_video

    async def run(self, run: PipelineRun) -> JobRecord | None:
        """Drive one job from ``queued``/``waiting`` to a terminal state.

        Local files are removed whatever the outcome; the raw provider payload
        is archived afterwards when the recognizer returned one.
        """
        state = _RunState()
        try:
            return await self._execute(run, state)
        finally:
            await self.discard_local_files(run)
            if state.raw_payload is not None:
                await self._archive_raw_payload(run.job_id, state.raw_payload)

    async def fail_unexpected(self, job_id: str, exc: BaseException) -> JobRecord | None:
        """Map an error that escaped a run onto the ``failed`` transition."""
        message = str(exc) or type(exc).__name__
        return await self._fail(job_id, f"Unexpected pipeline error: {message}")

    async def fail_interrupted(self, run: PipelineRun) -> JobRecord | None:
        """Close a run that was cancelled, possibly before it ever started."""
        try:
            return await self._fail(run.job_id, INTERRUPTED_MESSAGE)
        finally:
            await self.discard_local_files(run)

    async def _execute(self, run: PipelineRun, state: _RunState) -> JobRecord | None:
        record = await self._store.get(run.job_id)
        if record is None:
            logger.warning("pipeline.job_missing job_id=%s", run.job_id)
            return None

        try:
            record = await self._store.transition(run.job_id, JobStatus.PROCESSING)
        except ApiError as exc:
            logger.warning(
                "pipeline.start_rejected job_id=%s status=%s code=%s",
                run.job_id,
                record.status,
                exc.payload.code,
            )
            return None
        except PersistenceError as exc:
            return await self._fail(run.job_id, f"Failed to start processing: {exc}")

        logger.info("pipeline.processing job_id=%s", run.job_id)
        await self._broadcaster.emit(run.job_id, JobStatus.PROCESSING, PROCESSING_MESSAGE)

        try:
            terminal = await self._recognize(record, run, state)
        except Exception as exc:
            logger.exception("pipeline.unexpected_error job_id=%s", run.job_id)
            return await self.fail_unexpected(run.job_id, exc)

        return await self._finish(run.job_id, terminal)

    async def _recognize(self, record: JobRecord, run: PipelineRun, state: _RunState) -> _Terminal:
        try:
            outcome = await self._transcribe(record)
        except RecognitionError as exc:
            outcome = TranscriptionOutcome.failed(str(exc))
        state.raw_payload = outcome.raw_payload

        if outcome.error is not None:
            logger.warning("pipeline.recognition_failed job_id=%s", record.id)
            return _Terminal(
                status=JobStatus.FAILED,
                message=outcome.error,
                fields={"error_message": outcome.error, "segments": []},
            )

        message = success_message(outcome.transcript, outcome.segments)
        fields: dict[str, Any] = {
            "transcript_text": outcome.transcript,
            "segments": outcome.segments,
            "detected_speaker_count": outcome.detected_speaker_count,
            "error_message": None,
        }
        terminal = _Terminal(status=JobStatus.SUCCESS, message=message, fields=fields)

        language = run.target_language or record.target_language
        if language and outcome.segments:
            await self._translate(record.id, outcome, language, terminal)
        return terminal

    async def _transcribe(self, record: JobRecord) -> TranscriptionOutcome:
        call = self._transcriber.transcribe(record.audio_uri, record.recognition_config)
        if self._transcription_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self._transcription_timeout)
        except asyncio.TimeoutError as exc:
            raise RecognitionError(
                f"Transcription timed out after {self._transcription_timeout:g} seconds"
            ) from exc

    async def _translate(
        self,
        job_id: str,
        outcome: TranscriptionOutcome,
        language: str,
        terminal: _Terminal,
    ) -> None:
        await self._broadcaster.emit(
            job_id,
            JobStatus.PROCESSING,
            f"Transcription complete. Translating to {language}...",
        )
        try:
            translated = await translate_segments(self._translator, outcome.segments, language)
            await self._store.upsert_translation(
                job_id,
                TranslationEntry(language=language, segments=translated, translated_at=datetime.now(UTC)),
            )
        except PipelineError as exc:
            logger.warning("pipeline.translation_failed job_id=%s target_lang=%s code=%s", job_id, language, exc.code)
            terminal.fields["error_message"] = f"Translation error: {exc}"
            terminal.message = TRANSLATION_FAILED_MESSAGE
            return

        terminal.translated = translated
        terminal.target_language = language
        terminal.message = translated_message(language)

    async def _finish(self, job_id: str, terminal: _Terminal) -> JobRecord | None:
        record: JobRecord | None = None
        try:
            record = await self._store.transition(job_id, terminal.status, **terminal.fields)
        except ApiError as exc:
            # Another path already closed the job; it owns the terminal broadcast.
            logger.warning("pipeline.terminal_rejected job_id=%s code=%s", job_id, exc.payload.code)
            return None
        except PersistenceError as exc:
            logger.error("pipeline.terminal_persist_failed job_id=%s status=%s reason=%s", job_id, terminal.status, exc)

        payload: dict[str, Any]
        if terminal.status is JobStatus.SUCCESS:
            payload = {
                "transcription": terminal.fields.get("transcript_text"),
                "segments": terminal.fields.get("segments"),
                "detected_speaker_count": terminal.fields.get("detected_speaker_count"),
            }
            if terminal.translated is not None:
                payload["translated_transcript"] = terminal.translated
                payload["target_lang"] = terminal.target_language
        else:
            payload = {"segments": []}
        logger.info("pipeline.terminal job_id=%s status=%s", job_id, terminal.status.value)
        await self._broadcaster.emit(job_id, terminal.status, terminal.message, **payload)
        return record

    async def _fail(self, job_id: str, message: str) -> JobRecord | None:
        return await self._finish(
            job_id,
            _Terminal(status=JobStatus.FAILED, message=message, fields={"error_message": message, "segments": []}),
        )

    async def discard_local_files(self, run: PipelineRun) -> None:
        paths = [run.audio_path]
        if not self._retain_source_video:
            paths.append(run.video_path)
        for path in paths:
            if path is None:
                continue
            try:
                await aiofiles.os.remove(path)
                logger.info("pipeline.temp_deleted job_id=%s file=%s", run.job_id, Path(path).name)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("pipeline.temp_delete_failed job_id=%s file=%s reason=%s", run.job_id, Path(path).name, exc)

    async def _archive_raw_payload(self, job_id: str, payload: dict[str, Any]) -> None:
        target = self._staging.raw_payload_path(job_id)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "w", encoding="utf-8") as handle:
                await handle.write(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("pipeline.raw_archive_failed job_id=%s reason=%s", job_id, exc)
            return
        logger.info("pipeline.raw_archived job_id=%s file=%s", job_id, target.name)


__all__ = ["INTERRUPTED_MESSAGE", "PROCESSING_MESSAGE", "PipelineCoordinator", "PipelineRun"]
