"""One-time migration of legacy job documents into the current record shape.

Legacy documents come from the previous document store and carry a single flat
translation (``translatedTranscript`` + top-level ``targetLang``) instead of the
per-language ``translations`` list. Each document is converted once and written
through ``JobStore.import_record``; nothing reads the legacy shape afterwards.

Usage::

    python -m scribeline.repositories.legacy export.json --database-url sqlite:///jobs.db
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import UTC, datetime
import json
import logging
from pathlib import Path
from typing import Any

from scribeline.core.config import get_settings
from scribeline.domain.recognition import build_recognition_config
from scribeline.repositories.base import JobRecord, JobStore, replace_translation
from scribeline.schemas.job import (
    JobStatus,
    RecognitionConfig,
    Segment,
    SourceType,
    TranslatedSegment,
    TranslationEntry,
)

logger = logging.getLogger(__name__)

_LEGACY_STATUS_MAP: dict[str, JobStatus] = {
    "queued": JobStatus.QUEUED,
    "pending": JobStatus.QUEUED,
    "waiting": JobStatus.WAITING,
    "success": JobStatus.SUCCESS,
    "completed": JobStatus.SUCCESS,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
}
_INTERRUPTED_MESSAGE = "Processing was interrupted before completion."


def record_from_legacy_document(document: dict[str, Any]) -> JobRecord:
    """Convert one legacy document; documents already in the new shape pass through."""
    settings = get_settings()
    created_at = _parse_datetime(document.get("createdAt")) or datetime.now(UTC)
    updated_at = _parse_datetime(document.get("updatedAt")) or created_at

    raw_status = str(document.get("status") or "queued").strip().lower()
    status = _LEGACY_STATUS_MAP.get(raw_status)
    error_message = document.get("errorMessage")
    if status is None:
        # In-flight documents from a dead process cannot resume; close them out.
        status = JobStatus.FAILED
        error_message = error_message or _INTERRUPTED_MESSAGE

    if isinstance(document.get("recognitionConfig"), dict):
        recognition_config = RecognitionConfig.model_validate(document["recognitionConfig"])
    else:
        recognition_config = build_recognition_config(
            language_code=document.get("languageCode"),
            enable_speaker_diarization=bool(document.get("speakerDiarizationEnabled")),
            min_speakers=None,
            max_speakers=None,
            settings=settings,
        )

    segments = [_legacy_segment(item) for item in document.get("segments") or []]
    translations = [
        TranslationEntry(
            language=item["language"],
            segments=[_legacy_translated_segment(segment) for segment in item.get("segments") or []],
            translated_at=_parse_datetime(item.get("translatedAt")) or updated_at,
        )
        for item in document.get("translations") or []
    ]
    legacy_language = document.get("targetLang")
    legacy_segments = document.get("translatedTranscript") or []
    if legacy_language and legacy_segments and not any(entry.language == legacy_language for entry in translations):
        translations = replace_translation(
            translations,
            TranslationEntry(
                language=legacy_language,
                segments=[_legacy_translated_segment(segment) for segment in legacy_segments],
                translated_at=updated_at,
            ),
        )

    return JobRecord(
        id=str(document.get("_id") or document["id"]),
        owner_id=str(document.get("userId") or document.get("owner_id") or settings.default_owner_id),
        source_type=SourceType(document.get("sourceType") or SourceType.UPLOAD.value),
        original_label=str(document.get("originalName") or document.get("fileName") or "Untitled"),
        audio_uri=str(document.get("gcsAudioUri") or ""),
        audio_file_name=str(document.get("fileName") or ""),
        recognition_config=recognition_config,
        status=status,
        created_at=created_at,
        updated_at=updated_at,
        file_size_bytes=document.get("fileSize"),
        duration_seconds=document.get("duration"),
        target_language=legacy_language,
        transcript_text=document.get("transcriptionResult"),
        segments=segments,
        detected_speaker_count=document.get("detectedSpeakerCount"),
        translations=translations,
        error_message=error_message if status in (JobStatus.FAILED, JobStatus.SUCCESS) else None,
    )


async def migrate_documents(store: JobStore, documents: list[dict[str, Any]]) -> int:
    migrated = 0
    for document in documents:
        record = record_from_legacy_document(document)
        await store.import_record(record)
        migrated += 1
        logger.info(
            "legacy.migrated job_id=%s status=%s translations=%s",
            record.id,
            record.status,
            len(record.translations),
        )
    return migrated


def _legacy_segment(item: dict[str, Any]) -> Segment:
    return Segment(
        start=float(item.get("start") or 0.0),
        end=float(item.get("end") or 0.0),
        text=str(item.get("text") or ""),
        speaker_tag=item.get("speakerTag", item.get("speaker_tag")),
    )


def _legacy_translated_segment(item: dict[str, Any]) -> TranslatedSegment:
    base = _legacy_segment(item)
    return TranslatedSegment(
        **base.model_dump(),
        translated_text=str(item.get("translatedText") or item.get("translated_text") or ""),
    )


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, dict) and "$date" in value:
        return _parse_datetime(value["$date"])
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate legacy job documents into the job store.")
    parser.add_argument("export", type=Path, help="JSON array of legacy job documents")
    parser.add_argument("--database-url", default=None, help="Target database (defaults to SCRIBELINE_DATABASE_URL)")
    args = parser.parse_args(argv)

    from scribeline.repositories.sql import SqlJobStore

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        parser.error("a database URL is required")

    documents = json.loads(args.export.read_text(encoding="utf-8"))
    store = SqlJobStore(database_url)
    store.create_schema()
    try:
        migrated = asyncio.run(migrate_documents(store, documents))
    finally:
        store.dispose()
    print(f"Migrated {migrated} job document(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
