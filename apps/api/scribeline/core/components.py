"""Construction of the collaborators the application runs with."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from scribeline.adapters.ingestion import (
    TIKTOK,
    YOUTUBE,
    IngestionAdapter,
    RemoteUrlIngestionAdapter,
    UploadIngestionAdapter,
)
from scribeline.adapters.media import FfmpegAudioExtractor, FfprobeMediaProbe
from scribeline.adapters.speech import GoogleSpeechTranscriber, SpeechTranscriber
from scribeline.adapters.storage import DurableUploader, GcsUploader, LocalBlobUploader
from scribeline.adapters.translation import GoogleSegmentTranslator, SegmentTranslator
from scribeline.core.config import Settings
from scribeline.core.staging import StagingArea
from scribeline.repositories.base import JobStore
from scribeline.repositories.memory import InMemoryJobStore
from scribeline.schemas.job import SourceType
from scribeline.services.broadcaster import StatusBroadcaster
from scribeline.services.pipeline import PipelineCoordinator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Components:
    settings: Settings
    store: JobStore
    broadcaster: StatusBroadcaster
    staging: StagingArea
    ingestion: dict[SourceType, IngestionAdapter]
    probe: FfprobeMediaProbe
    extractor: FfmpegAudioExtractor
    uploader: DurableUploader
    transcriber: SpeechTranscriber
    translator: SegmentTranslator

    def build_coordinator(self) -> PipelineCoordinator:
        return PipelineCoordinator(
            store=self.store,
            broadcaster=self.broadcaster,
            transcriber=self.transcriber,
            translator=self.translator,
            staging=self.staging,
            transcription_timeout=self.settings.transcription_timeout_seconds,
            retain_source_video=self.settings.retain_source_video,
        )


def build_store(settings: Settings) -> JobStore:
    if not settings.database_url:
        logger.info("store.selected backend=memory")
        return InMemoryJobStore()

    from scribeline.repositories.sql import SqlJobStore

    store = SqlJobStore(settings.database_url)
    store.create_schema()
    logger.info("store.selected backend=sql")
    return store


def build_uploader(settings: Settings) -> DurableUploader:
    if settings.blob_backend == "local":
        return LocalBlobUploader(settings.local_blob_root)
    return GcsUploader(settings.gcs_bucket_name)


def build_components(settings: Settings) -> Components:
    staging = StagingArea(settings.staging_root)
    return Components(
        settings=settings,
        store=build_store(settings),
        broadcaster=StatusBroadcaster(queue_size=settings.subscriber_queue_size),
        staging=staging,
        ingestion={
            SourceType.UPLOAD: UploadIngestionAdapter(staging),
            SourceType.YOUTUBE: RemoteUrlIngestionAdapter(YOUTUBE, staging, binary=settings.downloader_binary),
            SourceType.TIKTOK: RemoteUrlIngestionAdapter(TIKTOK, staging, binary=settings.downloader_binary),
        },
        probe=FfprobeMediaProbe(settings.ffprobe_binary),
        extractor=FfmpegAudioExtractor(settings.ffmpeg_binary),
        uploader=build_uploader(settings),
        transcriber=GoogleSpeechTranscriber(),
        translator=GoogleSegmentTranslator(),
    )


__all__ = ["Components", "build_components", "build_store", "build_uploader"]
