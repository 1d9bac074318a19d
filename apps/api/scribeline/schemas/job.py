"""Job API schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    WAITING = "waiting"


class SourceType(str, Enum):
    UPLOAD = "upload"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"


class SubtitleFormat(str, Enum):
    SRT = "srt"
    VTT = "vtt"


class DiarizationConfig(BaseModel):
    enabled: bool = True
    min_speakers: int = Field(ge=1)
    max_speakers: int = Field(ge=1)


class RecognitionConfig(BaseModel):
    """Recognition parameters captured at job creation; never mutated afterwards."""

    model_config = {"frozen": True}

    encoding: str = "LINEAR16"
    sample_rate_hertz: int = 16000
    language_code: str
    alternative_language_codes: list[str] | None = None
    enable_automatic_punctuation: bool = True
    enable_word_time_offsets: bool = True
    model: str = "latest_long"
    diarization: DiarizationConfig | None = None


class Segment(BaseModel):
    start: float
    end: float
    text: str
    speaker_tag: int | None = None


class TranslatedSegment(Segment):
    translated_text: str


class TranslationEntry(BaseModel):
    language: str
    segments: list[TranslatedSegment]
    translated_at: datetime


class TranscriptionOptions(BaseModel):
    language_code: str = "auto"
    enable_speaker_diarization: bool = False
    min_speakers: int | None = Field(default=None, ge=1)
    max_speakers: int | None = Field(default=None, ge=1)
    target_lang: str | None = None


class RemoteTranscriptionRequest(TranscriptionOptions):
    url: str = Field(min_length=1)


class TranslateJobRequest(BaseModel):
    target_lang: str = Field(min_length=2)


class JobAccepted(BaseModel):
    job_id: str
    status: JobStatus
    message: str
    duration_seconds: float | None = None


class Job(BaseModel):
    id: str
    owner_id: str
    source_type: SourceType
    original_label: str
    file_size_bytes: int | None = None
    duration_seconds: float | None = None
    audio_uri: str
    recognition_config: RecognitionConfig
    target_language: str | None = None
    status: JobStatus
    transcript_text: str | None = None
    segments: list[Segment] = Field(default_factory=list)
    detected_speaker_count: int | None = None
    translations: list[TranslationEntry] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class JobSummary(BaseModel):
    id: str
    source_type: SourceType
    original_label: str
    status: JobStatus
    duration_seconds: float | None = None
    has_text: bool
    error_message: str | None = None
    created_at: datetime


class JobPage(BaseModel):
    items: list[JobSummary]
    total: int
    limit: int
    offset: int


class RetryJobResponse(BaseModel):
    job_id: str
    status: JobStatus
    message: str
