"""Application exception types."""

from __future__ import annotations

from scribeline.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)

    @classmethod
    def from_pipeline_error(cls, exc: PipelineError) -> ApiError:
        return cls(status_code=exc.status_code, code=exc.code, message=str(exc) or exc.default_message)


class PipelineError(Exception):
    """Base class for failures raised at a pipeline stage boundary."""

    status_code = 500
    code = "PIPELINE_FAILED"
    default_message = "Pipeline stage failed"


class AcquisitionError(PipelineError):
    """Source unreachable, download utility failure or unusable upload."""

    status_code = 502
    code = "ACQUISITION_FAILED"
    default_message = "Failed to acquire source media"


class InvalidSourceError(AcquisitionError):
    """The request does not carry a usable source (missing file, foreign URL)."""

    status_code = 400
    code = "INVALID_SOURCE"
    default_message = "Invalid source"


class ProbeError(PipelineError):
    """Duration probing failed. Never fatal; callers substitute an unknown duration."""

    code = "PROBE_FAILED"
    default_message = "Failed to probe media duration"


class ExtractionError(PipelineError):
    code = "EXTRACTION_FAILED"
    default_message = "Failed to extract audio"


class PublishError(PipelineError):
    status_code = 502
    code = "PUBLISH_FAILED"
    default_message = "Failed to publish audio to durable storage"


class RecognitionError(PipelineError):
    status_code = 502
    code = "RECOGNITION_FAILED"
    default_message = "Transcription processing failed"


class TranslationError(PipelineError):
    status_code = 502
    code = "TRANSLATION_FAILED"
    default_message = "Failed to translate text"


class PersistenceError(PipelineError):
    code = "PERSISTENCE_FAILED"
    default_message = "Failed to persist job"


__all__ = [
    "AcquisitionError",
    "ApiError",
    "ExtractionError",
    "InvalidSourceError",
    "PersistenceError",
    "PipelineError",
    "ProbeError",
    "PublishError",
    "RecognitionError",
    "TranslationError",
]
