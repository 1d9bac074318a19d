"""In-memory job store used for local development and tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from scribeline.domain.job_fsm import ensure_transition
from scribeline.errors import PersistenceError
from scribeline.repositories.base import (
    JobRecord,
    JobStore,
    NewJob,
    check_update_fields,
    replace_translation,
)
from scribeline.schemas.job import JobStatus, TranslationEntry


@dataclass(slots=True)
class InMemoryJobStore(JobStore):
    """Simple, deterministic persistence layer.

    Every mutation runs without an await between read and write, so updates on
    the event loop are atomic per call.
    """

    jobs: dict[str, JobRecord] = field(default_factory=dict)
    job_write_count: int = 0
    # One-shot failpoint: the next write raises PersistenceError with this message.
    update_failure_message: str | None = None

    async def create(self, new_job: NewJob) -> JobRecord:
        self._maybe_fail()
        now = datetime.now(UTC)
        record = JobRecord(
            id=str(uuid4()),
            owner_id=new_job.owner_id,
            source_type=new_job.source_type,
            original_label=new_job.original_label,
            audio_uri=new_job.audio_uri,
            audio_file_name=new_job.audio_file_name,
            recognition_config=new_job.recognition_config,
            status=JobStatus.QUEUED,
            created_at=now,
            updated_at=now,
            file_size_bytes=new_job.file_size_bytes,
            duration_seconds=new_job.duration_seconds,
            target_language=new_job.target_language,
        )
        self.jobs[record.id] = record
        self.job_write_count += 1
        return self._snapshot(record)

    async def get(self, job_id: str) -> JobRecord | None:
        record = self.jobs.get(job_id)
        return self._snapshot(record) if record is not None else None

    async def get_for_owner(self, owner_id: str, job_id: str) -> JobRecord | None:
        record = self.jobs.get(job_id)
        if record is None or record.owner_id != owner_id:
            return None
        return self._snapshot(record)

    async def list_for_owner(
        self,
        owner_id: str,
        *,
        status: JobStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[JobRecord], int]:
        records = [
            record
            for record in self.jobs.values()
            if record.owner_id == owner_id and (status is None or record.status is status)
        ]
        records.sort(key=lambda record: record.created_at, reverse=True)
        page = records[offset : offset + limit]
        return [self._snapshot(record) for record in page], len(records)

    async def transition(
        self,
        job_id: str,
        new_status: JobStatus,
        *,
        retry: bool = False,
        **fields: Any,
    ) -> JobRecord:
        check_update_fields(fields)
        record = self._require(job_id)
        ensure_transition(record.status, new_status, retry=retry)
        self._maybe_fail()

        record.status = new_status
        for name, value in fields.items():
            setattr(record, name, list(value) if name == "segments" else value)
        record.updated_at = datetime.now(UTC)
        self.job_write_count += 1
        return self._snapshot(record)

    async def upsert_translation(self, job_id: str, entry: TranslationEntry) -> JobRecord:
        record = self._require(job_id)
        self._maybe_fail()

        record.translations = replace_translation(record.translations, entry)
        record.updated_at = datetime.now(UTC)
        self.job_write_count += 1
        return self._snapshot(record)

    async def import_record(self, record: JobRecord) -> JobRecord:
        self._maybe_fail()
        self.jobs[record.id] = self._snapshot(record)
        self.job_write_count += 1
        return self._snapshot(record)

    def _require(self, job_id: str) -> JobRecord:
        record = self.jobs.get(job_id)
        if record is None:
            raise PersistenceError(f"Job {job_id} does not exist")
        return record

    def _maybe_fail(self) -> None:
        if self.update_failure_message is None:
            return
        message = self.update_failure_message
        self.update_failure_message = None
        raise PersistenceError(message)

    @staticmethod
    def _snapshot(record: JobRecord) -> JobRecord:
        # Callers get a detached copy so they never mutate stored state by accident.
        return replace(record, segments=list(record.segments), translations=list(record.translations))
