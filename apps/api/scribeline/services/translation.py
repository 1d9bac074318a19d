"""Segment translation fan-out and the on-demand translation path."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import logging

from scribeline.adapters.translation.base import SegmentTranslator
from scribeline.errors import ApiError, PipelineError, TranslationError
from scribeline.repositories.base import JobStore
from scribeline.schemas.job import Job, JobStatus, Segment, TranslatedSegment, TranslationEntry

logger = logging.getLogger(__name__)


async def translate_segments(
    translator: SegmentTranslator,
    segments: list[Segment],
    language: str,
) -> list[TranslatedSegment]:
    """Translate every segment concurrently; output order always matches input order.

    The first failure cancels the calls still in flight.
    """

    async def _one(segment: Segment) -> TranslatedSegment:
        translated = await translator.translate(segment.text, language)
        return TranslatedSegment(**segment.model_dump(), translated_text=translated)

    tasks: list[asyncio.Task[TranslatedSegment]] = []
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(_one(segment)) for segment in segments]
    except ExceptionGroup as failures:
        first = failures.exceptions[0]
        if isinstance(first, TranslationError):
            raise first from None
        raise TranslationError(f"Failed to translate text: {first}") from first
    return [task.result() for task in tasks]


class TranslationService:
    def __init__(self, store: JobStore, translator: SegmentTranslator) -> None:
        self._store = store
        self._translator = translator

    async def translate_job(self, *, owner_id: str, job_id: str, language: str) -> Job:
        record = await self._store.get_for_owner(owner_id, job_id)
        if record is None:
            raise ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")

        if record.status is not JobStatus.SUCCESS or not record.segments:
            raise ApiError(
                status_code=409,
                code="TRANSLATION_NOT_READY",
                message="Job has no completed transcript to translate.",
                details={"current_status": record.status},
            )

        try:
            translated = await translate_segments(self._translator, record.segments, language)
            updated = await self._store.upsert_translation(
                record.id,
                TranslationEntry(language=language, segments=translated, translated_at=datetime.now(UTC)),
            )
        except PipelineError as exc:
            logger.warning("translate.rejected job_id=%s target_lang=%s code=%s", record.id, language, exc.code)
            raise ApiError.from_pipeline_error(exc) from exc

        logger.info("translate.completed job_id=%s target_lang=%s segments=%s", record.id, language, len(translated))
        return updated.to_schema()


__all__ = ["TranslationService", "translate_segments"]
