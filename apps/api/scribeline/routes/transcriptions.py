"""Transcription intake routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from scribeline.adapters.ingestion import RemoteSource, UploadSource
from scribeline.core.components import Components
from scribeline.core.logging_safety import redact_url, safe_log_identifier
from scribeline.routes.dependencies import (
    get_components,
    get_intake_service,
    get_owner_id,
    get_request_correlation_id,
)
from scribeline.schemas.error import SourceRejectedError, UpstreamStageError
from scribeline.schemas.job import JobAccepted, RemoteTranscriptionRequest, SourceType, TranscriptionOptions
from scribeline.services.intake import IntakeService

router = APIRouter(prefix="/transcriptions", tags=["Transcriptions"])
logger = logging.getLogger(__name__)

_INTAKE_RESPONSES = {
    400: {"model": SourceRejectedError},
    422: {"model": SourceRejectedError},
    502: {"model": UpstreamStageError},
}


@router.post(
    "/upload",
    response_model=JobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_INTAKE_RESPONSES,
)
async def transcribe_upload(
    owner_id: Annotated[str, Depends(get_owner_id)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    components: Annotated[Components, Depends(get_components)],
    service: Annotated[IntakeService, Depends(get_intake_service)],
    file: Annotated[UploadFile | None, File()] = None,
    language_code: Annotated[str, Form()] = "auto",
    enable_speaker_diarization: Annotated[bool, Form()] = False,
    min_speakers: Annotated[int | None, Form(ge=1)] = None,
    max_speakers: Annotated[int | None, Form(ge=1)] = None,
    target_lang: Annotated[str | None, Form()] = None,
) -> JobAccepted:
    logger.info(
        "transcription.requested correlation_id=%s source_type=upload owner_id=%s",
        safe_log_identifier(correlation_id, prefix="cid"),
        safe_log_identifier(owner_id, prefix="pid"),
    )
    options = TranscriptionOptions(
        language_code=language_code,
        enable_speaker_diarization=enable_speaker_diarization,
        min_speakers=min_speakers,
        max_speakers=max_speakers,
        target_lang=target_lang or None,
    )
    return await service.submit(
        owner_id=owner_id,
        source_type=SourceType.UPLOAD,
        adapter=components.ingestion[SourceType.UPLOAD],
        source=UploadSource(file=file),
        options=options,
    )


async def _submit_remote(
    *,
    source_type: SourceType,
    payload: RemoteTranscriptionRequest,
    owner_id: str,
    correlation_id: str,
    components: Components,
    service: IntakeService,
) -> JobAccepted:
    logger.info(
        "transcription.requested correlation_id=%s source_type=%s owner_id=%s url=%s",
        safe_log_identifier(correlation_id, prefix="cid"),
        source_type.value,
        safe_log_identifier(owner_id, prefix="pid"),
        redact_url(payload.url),
    )
    return await service.submit(
        owner_id=owner_id,
        source_type=source_type,
        adapter=components.ingestion[source_type],
        source=RemoteSource(url=payload.url),
        options=payload,
    )


@router.post(
    "/youtube",
    response_model=JobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_INTAKE_RESPONSES,
)
async def transcribe_youtube(
    payload: RemoteTranscriptionRequest,
    owner_id: Annotated[str, Depends(get_owner_id)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    components: Annotated[Components, Depends(get_components)],
    service: Annotated[IntakeService, Depends(get_intake_service)],
) -> JobAccepted:
    return await _submit_remote(
        source_type=SourceType.YOUTUBE,
        payload=payload,
        owner_id=owner_id,
        correlation_id=correlation_id,
        components=components,
        service=service,
    )


@router.post(
    "/tiktok",
    response_model=JobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_INTAKE_RESPONSES,
)
async def transcribe_tiktok(
    payload: RemoteTranscriptionRequest,
    owner_id: Annotated[str, Depends(get_owner_id)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    components: Annotated[Components, Depends(get_components)],
    service: Annotated[IntakeService, Depends(get_intake_service)],
) -> JobAccepted:
    return await _submit_remote(
        source_type=SourceType.TIKTOK,
        payload=payload,
        owner_id=owner_id,
        correlation_id=correlation_id,
        components=components,
        service=service,
    )
