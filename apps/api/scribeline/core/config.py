"""Application configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_AUTO_DETECT_ALTERNATIVES = ["en-US", "ja-JP", "ko-KR", "cmn-CN", "fr-FR", "de-DE", "es-ES"]


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    staging_root: Path = Path("var/staging")
    database_url: str | None = None

    blob_backend: Literal["gcs", "local"] = "gcs"
    gcs_bucket_name: str | None = None
    local_blob_root: Path = Path("var/blobs")

    default_language_code: str = "auto"
    auto_detect_primary_language: str = "vi-VN"
    auto_detect_alternative_languages: list[str] = Field(default_factory=lambda: list(_AUTO_DETECT_ALTERNATIVES))
    recognition_model: str = "latest_long"
    default_min_speakers: int = 1
    default_max_speakers: int = 5

    # None disables the bound; a hung recognizer then leaves the job in processing.
    transcription_timeout_seconds: float | None = 3600.0
    max_concurrent_jobs: int | None = 4
    subscriber_queue_size: int = 100

    downloader_binary: str = "yt-dlp"
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    retain_source_video: bool = False

    default_owner_id: str = "anonymous"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="SCRIBELINE_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
