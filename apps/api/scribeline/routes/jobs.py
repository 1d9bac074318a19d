"""Job routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Response, WebSocket, WebSocketDisconnect, status

from scribeline.core.components import Components
from scribeline.domain.job_fsm import is_terminal
from scribeline.routes.dependencies import (
    get_components,
    get_job_service,
    get_owner_id,
    get_translation_service,
)
from scribeline.schemas.error import (
    ErrorResponse,
    FsmTransitionError,
    JobStateConflictError,
    NoLeakNotFoundError,
    UpstreamStageError,
)
from scribeline.schemas.events import JobStatusEvent
from scribeline.schemas.job import (
    Job,
    JobPage,
    JobStatus,
    RetryJobResponse,
    SubtitleFormat,
    TranslateJobRequest,
)
from scribeline.services.jobs import JobService
from scribeline.services.subtitles import MEDIA_TYPES
from scribeline.services.translation import TranslationService

router = APIRouter(tags=["Jobs"])
logger = logging.getLogger(__name__)

_SNAPSHOT_MESSAGE = "Current job status."


@router.get("/jobs", response_model=JobPage)
async def list_jobs(
    owner_id: Annotated[str, Depends(get_owner_id)],
    service: Annotated[JobService, Depends(get_job_service)],
    status_filter: Annotated[JobStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> JobPage:
    return await service.list_jobs(owner_id=owner_id, status=status_filter, limit=limit, offset=offset)


@router.get(
    "/jobs/{jobId}",
    response_model=Job,
    responses={404: {"model": NoLeakNotFoundError}},
)
async def get_job(
    job_id: Annotated[str, Path(alias="jobId")],
    owner_id: Annotated[str, Depends(get_owner_id)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return await service.get_job(owner_id=owner_id, job_id=job_id)


@router.post(
    "/jobs/{jobId}/translations",
    response_model=Job,
    responses={
        404: {"model": NoLeakNotFoundError},
        409: {"model": JobStateConflictError},
        502: {"model": UpstreamStageError},
    },
)
async def translate_job(
    job_id: Annotated[str, Path(alias="jobId")],
    payload: TranslateJobRequest,
    owner_id: Annotated[str, Depends(get_owner_id)],
    service: Annotated[TranslationService, Depends(get_translation_service)],
) -> Job:
    return await service.translate_job(owner_id=owner_id, job_id=job_id, language=payload.target_lang)


@router.post(
    "/jobs/{jobId}/retry",
    response_model=RetryJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": NoLeakNotFoundError},
        409: {"model": JobStateConflictError | FsmTransitionError},
        503: {"model": ErrorResponse},
    },
)
async def retry_job(
    job_id: Annotated[str, Path(alias="jobId")],
    owner_id: Annotated[str, Depends(get_owner_id)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> RetryJobResponse:
    return await service.retry_job(owner_id=owner_id, job_id=job_id)


@router.get(
    "/jobs/{jobId}/subtitles",
    response_class=Response,
    responses={
        200: {"content": {"application/x-subrip": {}, "text/vtt": {}}},
        404: {"model": NoLeakNotFoundError},
        409: {"model": JobStateConflictError},
    },
)
async def get_subtitles(
    job_id: Annotated[str, Path(alias="jobId")],
    owner_id: Annotated[str, Depends(get_owner_id)],
    service: Annotated[JobService, Depends(get_job_service)],
    subtitle_format: Annotated[SubtitleFormat, Query(alias="format")] = SubtitleFormat.SRT,
    language: Annotated[str | None, Query()] = None,
) -> Response:
    content = await service.render_subtitles(
        owner_id=owner_id,
        job_id=job_id,
        subtitle_format=subtitle_format,
        language=language,
    )
    filename = f"{job_id}{'.' + language if language else ''}.{subtitle_format.value}"
    return Response(
        content=content,
        media_type=MEDIA_TYPES[subtitle_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.websocket("/jobs/{jobId}/events")
async def job_events(websocket: WebSocket, job_id: Annotated[str, Path(alias="jobId")]) -> None:
    """Stream one job's status events; the socket closes after a terminal event."""
    components: Components = websocket.app.state.components
    owner_id = (
        websocket.headers.get("X-Owner-Id")
        or websocket.query_params.get("owner_id")
        or components.settings.default_owner_id
    ).strip()

    await websocket.accept()
    async with components.broadcaster.subscribe(job_id) as queue:
        record = await components.store.get_for_owner(owner_id, job_id)
        if record is None:
            payload = NoLeakNotFoundError(code="RESOURCE_NOT_FOUND", message="Resource not found")
            await websocket.send_json(payload.model_dump(mode="json"))
            await websocket.close(code=1008)
            return

        snapshot = JobStatusEvent(
            job_id=record.id,
            status=record.status,
            message=record.error_message or _SNAPSHOT_MESSAGE,
            transcription=record.transcript_text,
            segments=record.segments or None,
            detected_speaker_count=record.detected_speaker_count,
            emitted_at=record.updated_at,
        )
        try:
            await websocket.send_json(snapshot.model_dump(mode="json", exclude_none=True))
            if is_terminal(record.status):
                await websocket.close()
                return

            while True:
                event = await queue.get()
                await websocket.send_json(event.model_dump(mode="json", exclude_none=True))
                if is_terminal(event.status):
                    break
        except WebSocketDisconnect:
            logger.info("events.disconnected job_id=%s", job_id)
            return
    await websocket.close()
