"""Ingestion adapter interface and acquisition result types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(slots=True, frozen=True)
class Provenance:
    display_name: str
    size_bytes: int | None = None


@dataclass(slots=True, frozen=True)
class AcquiredMedia:
    local_video_path: Path
    provenance: Provenance


@dataclass(slots=True, frozen=True)
class UploadSource:
    """Uploaded file handle; ``file`` exposes async ``read(size)`` and ``filename``."""

    file: Any


@dataclass(slots=True, frozen=True)
class RemoteSource:
    url: str


class IngestionAdapter(ABC):
    """Turns one source reference into exactly one local video file.

    On failure every file written during the call is removed before the error
    propagates.
    """

    @abstractmethod
    async def acquire(self, source: Any) -> AcquiredMedia:
        """Stage the source locally and describe where it came from."""


__all__ = ["AcquiredMedia", "IngestionAdapter", "Provenance", "RemoteSource", "UploadSource"]
