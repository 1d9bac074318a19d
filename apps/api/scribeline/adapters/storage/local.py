"""Filesystem-backed uploader for local development."""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from scribeline.adapters.storage.base import DurableUploader
from scribeline.errors import PublishError

logger = logging.getLogger(__name__)

_COPY_CHUNK_SIZE = 1024 * 1024


class LocalBlobUploader(DurableUploader):
    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    async def publish(self, local_path: Path, blob_name: str) -> str:
        target = self._root / blob_name
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(local_path, "rb") as source, aiofiles.open(target, "wb") as sink:
                while chunk := await source.read(_COPY_CHUNK_SIZE):
                    await sink.write(chunk)
        except OSError as exc:
            logger.error("publish.failed backend=local blob=%s reason=%s", blob_name, type(exc).__name__)
            raise PublishError(f"Failed to copy audio into blob root: {exc}") from exc

        logger.info("publish.completed backend=local blob=%s", blob_name)
        return target.resolve().as_uri()

    async def discard(self, blob_name: str) -> None:
        try:
            await aiofiles.os.remove(self._root / blob_name)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.error("publish.orphaned backend=local blob=%s reason=%s", blob_name, type(exc).__name__)
            return
        logger.info("publish.discarded backend=local blob=%s", blob_name)


__all__ = ["LocalBlobUploader"]
