"""Live job status event schema."""

from datetime import datetime

from pydantic import BaseModel

from scribeline.schemas.job import JobStatus, Segment, TranslatedSegment


class JobStatusEvent(BaseModel):
    """Payload pushed to live-status subscribers.

    ``status`` only ever carries persisted lifecycle values; the translating
    sub-phase is reported through ``message`` with ``status=processing``.
    """

    job_id: str
    status: JobStatus
    message: str
    transcription: str | None = None
    segments: list[Segment] | None = None
    detected_speaker_count: int | None = None
    translated_transcript: list[TranslatedSegment] | None = None
    target_lang: str | None = None
    emitted_at: datetime
