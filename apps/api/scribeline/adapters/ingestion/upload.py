"""Direct upload ingestion."""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from scribeline.adapters.ingestion.base import AcquiredMedia, IngestionAdapter, Provenance, UploadSource
from scribeline.core.staging import StagingArea
from scribeline.errors import AcquisitionError, InvalidSourceError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024
_DEFAULT_EXTENSION = ".mp4"


class UploadIngestionAdapter(IngestionAdapter):
    def __init__(self, staging: StagingArea) -> None:
        self._staging = staging

    async def acquire(self, source: UploadSource) -> AcquiredMedia:
        upload = getattr(source, "file", None)
        filename = getattr(upload, "filename", None) if upload is not None else None
        if upload is None or not filename:
            raise InvalidSourceError("No video file uploaded.")

        extension = Path(filename).suffix.lower() or _DEFAULT_EXTENSION
        target = self._staging.inbound_path("video", extension)
        written = 0
        try:
            async with aiofiles.open(target, "wb") as handle:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    await handle.write(chunk)
                    written += len(chunk)
        except OSError as exc:
            await _discard(target)
            raise AcquisitionError(f"Failed to store uploaded file: {exc}") from exc
        except BaseException:
            await _discard(target)
            raise

        if written == 0:
            await _discard(target)
            raise InvalidSourceError("Uploaded file is empty.")

        logger.info("ingest.upload_staged file=%s size_bytes=%s", target.name, written)
        return AcquiredMedia(
            local_video_path=target,
            provenance=Provenance(display_name=filename, size_bytes=written),
        )


async def _discard(path: Path) -> None:
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("ingest.cleanup_failed file=%s reason=%s", path.name, exc)


__all__ = ["UploadIngestionAdapter"]
