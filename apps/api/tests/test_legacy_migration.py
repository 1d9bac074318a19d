"""Legacy job document migration tests."""

from __future__ import annotations

import unittest

from scribeline.repositories.legacy import migrate_documents, record_from_legacy_document
from scribeline.repositories.memory import InMemoryJobStore
from scribeline.schemas.job import JobStatus, SourceType

_LEGACY_DOCUMENT = {
    "_id": "64f0c0ffee",
    "userId": "user-42",
    "sourceType": "youtube",
    "originalName": "YouTube Video (abcdefghijk)",
    "fileName": "audio-youtube-abcdefghijk.wav",
    "gcsAudioUri": "gs://legacy-bucket/audio-youtube-abcdefghijk.wav",
    "languageCode": "en-US",
    "speakerDiarizationEnabled": True,
    "status": "completed",
    "transcriptionResult": "hello there",
    "segments": [{"start": 0, "end": 1.5, "text": "hello there", "speakerTag": 1}],
    "detectedSpeakerCount": 1,
    "targetLang": "es",
    "translatedTranscript": [
        {"start": 0, "end": 1.5, "text": "hello there", "speakerTag": 1, "translatedText": "hola"}
    ],
    "createdAt": {"$date": "2024-03-01T10:00:00Z"},
    "updatedAt": "2024-03-01T10:05:00Z",
}


class LegacyMigrationTests(unittest.IsolatedAsyncioTestCase):
    def test_flat_translation_becomes_tagged_entry(self) -> None:
        record = record_from_legacy_document(_LEGACY_DOCUMENT)

        self.assertEqual(record.id, "64f0c0ffee")
        self.assertEqual(record.owner_id, "user-42")
        self.assertEqual(record.source_type, SourceType.YOUTUBE)
        self.assertEqual(record.status, JobStatus.SUCCESS)
        self.assertEqual(record.segments[0].speaker_tag, 1)
        self.assertEqual(len(record.translations), 1)
        entry = record.translations[0]
        self.assertEqual(entry.language, "es")
        self.assertEqual(entry.segments[0].translated_text, "hola")
        self.assertEqual(entry.translated_at, record.updated_at)
        self.assertEqual(record.recognition_config.diarization.max_speakers, 5)
        self.assertEqual(record.created_at.isoformat(), "2024-03-01T10:00:00+00:00")

    def test_tagged_translations_win_over_flat_duplicate(self) -> None:
        document = dict(_LEGACY_DOCUMENT)
        document["translations"] = [
            {
                "language": "es",
                "segments": [{"start": 0, "end": 1.5, "text": "hello there", "translatedText": "hola!"}],
                "translatedAt": "2024-03-02T00:00:00Z",
            }
        ]

        record = record_from_legacy_document(document)

        self.assertEqual([entry.language for entry in record.translations], ["es"])
        self.assertEqual(record.translations[0].segments[0].translated_text, "hola!")

    def test_in_flight_documents_are_closed_as_failed(self) -> None:
        document = dict(_LEGACY_DOCUMENT, status="processing", errorMessage=None)

        record = record_from_legacy_document(document)

        self.assertEqual(record.status, JobStatus.FAILED)
        self.assertEqual(record.error_message, "Processing was interrupted before completion.")

    async def test_migration_writes_through_store(self) -> None:
        store = InMemoryJobStore()

        migrated = await migrate_documents(store, [_LEGACY_DOCUMENT])

        self.assertEqual(migrated, 1)
        stored = await store.get_for_owner("user-42", "64f0c0ffee")
        self.assertEqual(stored.translations[0].language, "es")


if __name__ == "__main__":
    unittest.main()
