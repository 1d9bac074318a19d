"""Source ingestion adapters."""

from .base import AcquiredMedia, IngestionAdapter, Provenance, RemoteSource, UploadSource
from .remote import TIKTOK, YOUTUBE, RemoteSourceProfile, RemoteUrlIngestionAdapter, downloader_error_message
from .upload import UploadIngestionAdapter

__all__ = [
    "AcquiredMedia",
    "IngestionAdapter",
    "Provenance",
    "RemoteSource",
    "RemoteSourceProfile",
    "RemoteUrlIngestionAdapter",
    "TIKTOK",
    "UploadIngestionAdapter",
    "UploadSource",
    "YOUTUBE",
    "downloader_error_message",
]
