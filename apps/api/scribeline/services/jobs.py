"""Job service layer."""

import logging

from scribeline.core.logging_safety import safe_log_identifier
from scribeline.errors import ApiError
from scribeline.repositories.base import JobRecord, JobStore
from scribeline.schemas.job import (
    Job,
    JobPage,
    JobStatus,
    JobSummary,
    RetryJobResponse,
    Segment,
    SubtitleFormat,
)
from scribeline.services.broadcaster import StatusBroadcaster
from scribeline.services.pipeline import PipelineRun
from scribeline.services.runner import PipelineRunner
from scribeline.services.subtitles import render_subtitles

logger = logging.getLogger(__name__)

_RETRY_ATTEMPTED_STATUS = JobStatus.WAITING
_LIST_LIMIT_MIN = 1
_LIST_LIMIT_MAX = 100
RETRY_MESSAGE = "Retry accepted. Transcription will run again."


class JobService:
    def __init__(self, store: JobStore, *, broadcaster: StatusBroadcaster, runner: PipelineRunner) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._runner = runner

    async def get_job(self, *, owner_id: str, job_id: str) -> Job:
        record = await self._require_owned(owner_id=owner_id, job_id=job_id)
        return record.to_schema()

    async def list_jobs(
        self,
        *,
        owner_id: str,
        status: JobStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> JobPage:
        limit = min(max(limit, _LIST_LIMIT_MIN), _LIST_LIMIT_MAX)
        offset = max(offset, 0)
        records, total = await self._store.list_for_owner(owner_id, status=status, limit=limit, offset=offset)
        return JobPage(
            items=[self._to_summary(record) for record in records],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def retry_job(self, *, owner_id: str, job_id: str) -> RetryJobResponse:
        """Consume the retry signal: ``failed`` -> ``waiting`` and re-run from processing.

        The re-run reuses the persisted recognition config and audio URI; the
        source is never acquired again.
        """
        record = await self._require_owned(owner_id=owner_id, job_id=job_id)
        if record.status is not JobStatus.FAILED:
            self._raise_retry_not_allowed(record.status)
        if not self._runner.accepting:
            raise ApiError(status_code=503, code="PIPELINE_UNAVAILABLE", message="Pipeline runner is shut down")

        record = await self._store.transition(record.id, JobStatus.WAITING, retry=True, error_message=None)
        logger.info(
            "retry.accepted job_id=%s owner_id=%s",
            record.id,
            safe_log_identifier(owner_id, prefix="pid"),
        )
        await self._broadcaster.emit(record.id, JobStatus.WAITING, RETRY_MESSAGE)
        self._runner.submit(PipelineRun(job_id=record.id, target_language=record.target_language))
        return RetryJobResponse(job_id=record.id, status=record.status, message=RETRY_MESSAGE)

    async def render_subtitles(
        self,
        *,
        owner_id: str,
        job_id: str,
        subtitle_format: SubtitleFormat,
        language: str | None = None,
    ) -> str:
        record = await self._require_owned(owner_id=owner_id, job_id=job_id)
        if record.status is not JobStatus.SUCCESS:
            raise ApiError(
                status_code=409,
                code="SUBTITLES_NOT_READY",
                message="Subtitles are available only for successful jobs.",
                details={"current_status": record.status},
            )

        segments: list[Segment] = list(record.segments)
        if language:
            entry = next((item for item in record.translations if item.language == language), None)
            if entry is None:
                raise ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")
            segments = list(entry.segments)
        return render_subtitles(segments, subtitle_format)

    async def _require_owned(self, *, owner_id: str, job_id: str) -> JobRecord:
        record = await self._store.get_for_owner(owner_id, job_id)
        if record is None:
            raise ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")
        return record

    @staticmethod
    def _raise_retry_not_allowed(current_status: JobStatus) -> None:
        raise ApiError(
            status_code=409,
            code="RETRY_NOT_ALLOWED_STATE",
            message="Retry is allowed only from failed.",
            details={
                "current_status": current_status,
                "attempted_status": _RETRY_ATTEMPTED_STATUS,
            },
        )

    @staticmethod
    def _to_summary(record: JobRecord) -> JobSummary:
        return JobSummary(
            id=record.id,
            source_type=record.source_type,
            original_label=record.original_label,
            status=record.status,
            duration_seconds=record.duration_seconds,
            has_text=bool(record.transcript_text),
            error_message=record.error_message,
            created_at=record.created_at,
        )
