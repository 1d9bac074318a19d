"""SQLAlchemy job store tests against in-memory SQLite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import unittest

from fakes import sample_segments

from scribeline.core.config import Settings
from scribeline.domain.recognition import build_recognition_config
from scribeline.errors import ApiError, PersistenceError
from scribeline.repositories.base import NewJob
from scribeline.repositories.sql import SqlJobStore
from scribeline.schemas.job import JobStatus, SourceType, TranslatedSegment, TranslationEntry


def _entry(language: str, *, at: datetime | None = None) -> TranslationEntry:
    return TranslationEntry(
        language=language,
        segments=[
            TranslatedSegment(**segment.model_dump(), translated_text=f"[{language}] {segment.text}")
            for segment in sample_segments(2)
        ],
        translated_at=at or datetime.now(UTC),
    )


class SqlJobStoreTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = SqlJobStore("sqlite://")
        self.store.create_schema()

    def tearDown(self) -> None:
        self.store.dispose()

    async def _create(self, owner_id: str = "owner-1", *, diarize: bool = True):
        return await self.store.create(
            NewJob(
                owner_id=owner_id,
                source_type=SourceType.TIKTOK,
                original_label="TikTok Video (123)",
                audio_uri="gs://test-bucket/audio-tiktok.wav",
                audio_file_name="audio-tiktok.wav",
                recognition_config=build_recognition_config(
                    language_code="auto",
                    enable_speaker_diarization=diarize,
                    min_speakers=2,
                    max_speakers=3,
                    settings=Settings(),
                ),
                duration_seconds=12.5,
                target_language="es",
            )
        )

    async def test_create_and_read_round_trip_preserves_config(self) -> None:
        created = await self._create()

        loaded = await self.store.get(created.id)

        self.assertEqual(loaded.status, JobStatus.QUEUED)
        self.assertEqual(loaded.recognition_config, created.recognition_config)
        self.assertEqual(loaded.recognition_config.diarization.min_speakers, 2)
        self.assertEqual(loaded.duration_seconds, 12.5)
        self.assertIsNotNone(loaded.created_at.tzinfo)
        self.assertIsNone(await self.store.get_for_owner("someone-else", created.id))

    async def test_transition_persists_fields_and_enforces_lifecycle(self) -> None:
        created = await self._create()
        await self.store.transition(created.id, JobStatus.PROCESSING)

        done = await self.store.transition(
            created.id,
            JobStatus.SUCCESS,
            transcript_text="hello",
            segments=sample_segments(2),
            detected_speaker_count=2,
        )

        self.assertEqual(done.status, JobStatus.SUCCESS)
        self.assertEqual([segment.text for segment in done.segments], ["segment number 0", "segment number 1"])
        self.assertEqual(done.detected_speaker_count, 2)
        with self.assertRaises(ApiError) as context:
            await self.store.transition(created.id, JobStatus.PROCESSING)
        self.assertEqual(context.exception.payload.code, "FSM_TERMINAL_IMMUTABLE")

    async def test_translation_upsert_is_per_language(self) -> None:
        created = await self._create()
        earlier = datetime.now(UTC) - timedelta(minutes=5)

        await self.store.upsert_translation(created.id, _entry("fr", at=earlier))
        await self.store.upsert_translation(created.id, _entry("de"))
        updated = await self.store.upsert_translation(created.id, _entry("fr"))

        self.assertEqual([entry.language for entry in updated.translations], ["fr", "de"])
        self.assertGreater(updated.translations[0].translated_at, earlier)
        self.assertEqual(updated.translations[0].segments[0].translated_text, "[fr] segment number 0")

    async def test_status_transition_does_not_touch_translations(self) -> None:
        created = await self._create()
        await self.store.upsert_translation(created.id, _entry("ja"))

        processing = await self.store.transition(created.id, JobStatus.PROCESSING)

        self.assertEqual([entry.language for entry in processing.translations], ["ja"])

    async def test_list_is_owner_scoped_filtered_and_paginated(self) -> None:
        first = await self._create()
        second = await self._create()
        await self._create(owner_id="owner-2")
        await self.store.transition(first.id, JobStatus.FAILED, error_message="bad audio")

        records, total = await self.store.list_for_owner("owner-1", limit=1)
        self.assertEqual(total, 2)
        self.assertEqual(len(records), 1)

        failed, failed_total = await self.store.list_for_owner("owner-1", status=JobStatus.FAILED)
        self.assertEqual(failed_total, 1)
        self.assertEqual(failed[0].id, first.id)
        self.assertNotEqual(second.id, first.id)

    async def test_missing_job_raises_persistence_error(self) -> None:
        with self.assertRaises(PersistenceError):
            await self.store.transition("missing", JobStatus.PROCESSING)
        with self.assertRaises(PersistenceError):
            await self.store.upsert_translation("missing", _entry("fr"))


if __name__ == "__main__":
    unittest.main()
