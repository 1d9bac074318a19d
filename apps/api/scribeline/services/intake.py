"""Synchronous pre-job phase: acquisition through job creation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import aiofiles.os

from scribeline.adapters.ingestion.base import IngestionAdapter
from scribeline.adapters.media.extract import FfmpegAudioExtractor
from scribeline.adapters.media.probe import FfprobeMediaProbe
from scribeline.adapters.storage.base import DurableUploader
from scribeline.core.config import Settings
from scribeline.core.logging_safety import safe_log_identifier
from scribeline.core.staging import StagingArea
from scribeline.domain.recognition import build_recognition_config
from scribeline.errors import ApiError, PipelineError
from scribeline.repositories.base import JobStore, NewJob
from scribeline.schemas.job import JobAccepted, JobStatus, RecognitionConfig, SourceType, TranscriptionOptions
from scribeline.services.broadcaster import StatusBroadcaster
from scribeline.services.pipeline import PipelineCoordinator, PipelineRun
from scribeline.services.runner import PipelineRunner

logger = logging.getLogger(__name__)

QUEUED_MESSAGE = "Video received. Transcription has been queued."


class IntakeService:
    def __init__(
        self,
        *,
        store: JobStore,
        broadcaster: StatusBroadcaster,
        coordinator: PipelineCoordinator,
        runner: PipelineRunner,
        staging: StagingArea,
        probe: FfprobeMediaProbe,
        extractor: FfmpegAudioExtractor,
        uploader: DurableUploader,
        settings: Settings,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._coordinator = coordinator
        self._runner = runner
        self._staging = staging
        self._probe = probe
        self._extractor = extractor
        self._uploader = uploader
        self._settings = settings

    def resolve_recognition_config(self, options: TranscriptionOptions) -> RecognitionConfig:
        try:
            return build_recognition_config(
                language_code=options.language_code or self._settings.default_language_code,
                enable_speaker_diarization=options.enable_speaker_diarization,
                min_speakers=options.min_speakers,
                max_speakers=options.max_speakers,
                settings=self._settings,
            )
        except ValueError as exc:
            raise ApiError(status_code=422, code="INVALID_RECOGNITION_CONFIG", message=str(exc)) from exc

    async def submit(
        self,
        *,
        owner_id: str,
        source_type: SourceType,
        adapter: IngestionAdapter,
        source: Any,
        options: TranscriptionOptions,
    ) -> JobAccepted:
        """Stage, publish and register one source; the job is created last.

        Failures before creation remove every staged file and surface as an
        ``ApiError`` with no job record left behind.
        """
        recognition_config = self.resolve_recognition_config(options)
        safe_owner_id = safe_log_identifier(owner_id, prefix="pid")
        written: list[Path] = []
        published: str | None = None

        try:
            media = await adapter.acquire(source)
            written.append(media.local_video_path)

            duration = await self._probe.probe(media.local_video_path)

            audio_path = self._staging.audio_path_for(media.local_video_path)
            written.append(audio_path)
            await self._extractor.extract(media.local_video_path, audio_path)

            audio_uri = await self._uploader.publish(audio_path, audio_path.name)
            published = audio_path.name
            record = await self._store.create(
                NewJob(
                    owner_id=owner_id,
                    source_type=source_type,
                    original_label=media.provenance.display_name,
                    audio_uri=audio_uri,
                    audio_file_name=audio_path.name,
                    recognition_config=recognition_config,
                    file_size_bytes=media.provenance.size_bytes,
                    duration_seconds=duration,
                    target_language=options.target_lang or None,
                )
            )
        except PipelineError as exc:
            await self._discard(written, published)
            logger.warning(
                "intake.rejected owner_id=%s source_type=%s code=%s",
                safe_owner_id,
                source_type.value,
                exc.code,
            )
            raise ApiError.from_pipeline_error(exc) from exc
        except BaseException:
            await self._discard(written, published)
            raise

        logger.info(
            "intake.job_created job_id=%s owner_id=%s source_type=%s duration_seconds=%s",
            record.id,
            safe_owner_id,
            source_type.value,
            duration,
        )
        await self._broadcaster.emit(record.id, JobStatus.QUEUED, QUEUED_MESSAGE)

        run = PipelineRun(
            job_id=record.id,
            audio_path=audio_path,
            video_path=media.local_video_path,
            target_language=record.target_language,
        )
        try:
            self._runner.submit(run)
        except RuntimeError as exc:
            await self._discard(written)
            await self._coordinator.fail_unexpected(record.id, exc)
            raise ApiError(status_code=503, code="PIPELINE_UNAVAILABLE", message=str(exc)) from exc

        return JobAccepted(
            job_id=record.id,
            status=JobStatus.QUEUED,
            message=QUEUED_MESSAGE,
            duration_seconds=duration,
        )

    async def _discard(self, paths: list[Path], published: str | None = None) -> None:
        if published is not None:
            await self._uploader.discard(published)
        for path in paths:
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("intake.cleanup_failed file=%s reason=%s", path.name, exc)


__all__ = ["IntakeService", "QUEUED_MESSAGE"]
