"""Durable storage interface."""

from abc import ABC, abstractmethod
from pathlib import Path


class DurableUploader(ABC):
    """Publishes a staged file and returns a reference the recognizer can read."""

    @abstractmethod
    async def publish(self, local_path: Path, blob_name: str) -> str:
        """Upload ``local_path`` under ``blob_name`` and return its durable URI."""

    @abstractmethod
    async def discard(self, blob_name: str) -> None:
        """Best-effort removal of a published blob no job refers to; never raises."""


__all__ = ["DurableUploader"]
