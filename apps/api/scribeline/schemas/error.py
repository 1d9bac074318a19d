"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from scribeline.schemas.job import JobStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class TransitionErrorDetails(BaseModel):
    current_status: JobStatus
    attempted_status: JobStatus
    allowed_next_statuses: list[JobStatus] | None = None


class FsmTransitionError(BaseModel):
    code: Literal["FSM_TRANSITION_INVALID", "FSM_TERMINAL_IMMUTABLE"]
    message: str
    details: TransitionErrorDetails


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class SourceRejectedError(BaseModel):
    code: Literal["INVALID_SOURCE", "INVALID_RECOGNITION_CONFIG"]
    message: str
    details: dict[str, Any] | None = None


class UpstreamStageError(BaseModel):
    code: Literal["ACQUISITION_FAILED", "PUBLISH_FAILED", "TRANSLATION_FAILED"]
    message: str
    details: dict[str, Any] | None = None


class JobStateConflictErrorDetails(BaseModel):
    current_status: JobStatus
    attempted_status: JobStatus | None = None


class JobStateConflictError(BaseModel):
    code: Literal["RETRY_NOT_ALLOWED_STATE", "TRANSLATION_NOT_READY", "SUBTITLES_NOT_READY"]
    message: str
    details: JobStateConflictErrorDetails
