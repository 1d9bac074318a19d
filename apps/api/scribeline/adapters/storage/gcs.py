"""Google Cloud Storage uploader."""

from __future__ import annotations

import logging
from pathlib import Path

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from scribeline.adapters.storage.base import DurableUploader
from scribeline.errors import PublishError

logger = logging.getLogger(__name__)


class GcsUploader(DurableUploader):
    def __init__(self, bucket_name: str | None, *, client: storage.Client | None = None) -> None:
        self._bucket_name = (bucket_name or "").strip()
        self._client = client

    def _bucket(self) -> storage.Bucket:
        if not self._bucket_name:
            raise PublishError("GCS bucket name is not configured")
        if self._client is None:
            self._client = storage.Client()
        return self._client.bucket(self._bucket_name)

    async def publish(self, local_path: Path, blob_name: str) -> str:
        local_path = Path(local_path)

        def _upload() -> None:
            self._bucket().blob(blob_name).upload_from_filename(str(local_path), content_type="audio/wav")

        try:
            await run_in_threadpool(_upload)
        except (GoogleAPIError, GoogleAuthError, OSError) as exc:
            logger.error("publish.failed backend=gcs blob=%s reason=%s", blob_name, type(exc).__name__)
            raise PublishError(f"Failed to upload audio to storage: {exc}") from exc

        uri = f"gs://{self._bucket_name}/{blob_name}"
        logger.info("publish.completed backend=gcs blob=%s", blob_name)
        return uri

    async def discard(self, blob_name: str) -> None:
        def _delete() -> None:
            self._bucket().blob(blob_name).delete()

        try:
            await run_in_threadpool(_delete)
        except (GoogleAPIError, GoogleAuthError, PublishError, OSError) as exc:
            logger.error("publish.orphaned backend=gcs blob=%s reason=%s", blob_name, type(exc).__name__)
            return
        logger.info("publish.discarded backend=gcs blob=%s", blob_name)


__all__ = ["GcsUploader"]
