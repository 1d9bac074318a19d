"""Job store interface and record type."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from scribeline.schemas.job import (
    Job,
    JobStatus,
    RecognitionConfig,
    Segment,
    SourceType,
    TranslationEntry,
)

# Fields the pipeline and retry path may change after creation.
MUTABLE_FIELDS = frozenset({"transcript_text", "segments", "detected_speaker_count", "error_message"})
IMMUTABLE_FIELDS = frozenset({"source_type", "recognition_config", "audio_uri"})


@dataclass(slots=True)
class JobRecord:
    id: str
    owner_id: str
    source_type: SourceType
    original_label: str
    audio_uri: str
    audio_file_name: str
    recognition_config: RecognitionConfig
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    file_size_bytes: int | None = None
    duration_seconds: float | None = None
    target_language: str | None = None
    transcript_text: str | None = None
    segments: list[Segment] = field(default_factory=list)
    detected_speaker_count: int | None = None
    translations: list[TranslationEntry] = field(default_factory=list)
    error_message: str | None = None

    def to_schema(self) -> Job:
        return Job(
            id=self.id,
            owner_id=self.owner_id,
            source_type=self.source_type,
            original_label=self.original_label,
            file_size_bytes=self.file_size_bytes,
            duration_seconds=self.duration_seconds,
            audio_uri=self.audio_uri,
            recognition_config=self.recognition_config,
            target_language=self.target_language,
            status=self.status,
            transcript_text=self.transcript_text,
            segments=list(self.segments),
            detected_speaker_count=self.detected_speaker_count,
            translations=list(self.translations),
            error_message=self.error_message,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(slots=True)
class NewJob:
    owner_id: str
    source_type: SourceType
    original_label: str
    audio_uri: str
    audio_file_name: str
    recognition_config: RecognitionConfig
    file_size_bytes: int | None = None
    duration_seconds: float | None = None
    target_language: str | None = None


def check_update_fields(fields: dict[str, Any]) -> None:
    """Reject writes to immutable or unknown job fields."""
    blocked = IMMUTABLE_FIELDS.intersection(fields)
    if blocked:
        raise ValueError(f"Immutable job fields cannot be updated: {sorted(blocked)}")
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown job fields: {sorted(unknown)}")


def replace_translation(entries: list[TranslationEntry], entry: TranslationEntry) -> list[TranslationEntry]:
    """Replace the entry for ``entry.language`` in place order, or append it."""
    replaced = False
    merged: list[TranslationEntry] = []
    for existing in entries:
        if existing.language == entry.language:
            if not replaced:
                merged.append(entry)
                replaced = True
            continue
        merged.append(existing)
    if not replaced:
        merged.append(entry)
    return merged


class JobStore(ABC):
    """Persisted, keyed collection of jobs.

    Implementations must allow concurrent updates to different jobs without
    cross-job locking, and apply updates per field: a status transition never
    rewrites ``translations`` and a translation upsert touches one language only.
    Write failures surface as ``PersistenceError``.
    """

    @abstractmethod
    async def create(self, new_job: NewJob) -> JobRecord:
        """Persist a new job in ``queued`` status."""

    @abstractmethod
    async def get(self, job_id: str) -> JobRecord | None:
        """Return a job by id regardless of owner."""

    @abstractmethod
    async def get_for_owner(self, owner_id: str, job_id: str) -> JobRecord | None:
        """Return a job only when it belongs to ``owner_id``."""

    @abstractmethod
    async def list_for_owner(
        self,
        owner_id: str,
        *,
        status: JobStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[JobRecord], int]:
        """Return one page of the owner's jobs, newest first, plus the total count."""

    @abstractmethod
    async def transition(
        self,
        job_id: str,
        new_status: JobStatus,
        *,
        retry: bool = False,
        **fields: Any,
    ) -> JobRecord:
        """Apply an FSM-validated status change together with a partial field update."""

    @abstractmethod
    async def upsert_translation(self, job_id: str, entry: TranslationEntry) -> JobRecord:
        """Insert or replace the translation entry for one language."""

    @abstractmethod
    async def import_record(self, record: JobRecord) -> JobRecord:
        """Store a fully formed record as-is (used by the legacy migration)."""


__all__ = [
    "IMMUTABLE_FIELDS",
    "JobRecord",
    "JobStore",
    "MUTABLE_FIELDS",
    "NewJob",
    "check_update_fields",
    "replace_translation",
]
