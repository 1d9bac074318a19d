"""Per-job live status fan-out."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import UTC, datetime
import logging
from typing import Any, AsyncIterator

from pydantic import ValidationError

from scribeline.schemas.events import JobStatusEvent
from scribeline.schemas.job import JobStatus

logger = logging.getLogger(__name__)


class StatusBroadcaster:
    """Topic-per-job publish/subscribe.

    Each subscriber owns a bounded queue. Delivery is at most once: when a
    subscriber's queue is full the event is dropped for that subscriber only.
    Nothing is buffered for jobs without subscribers.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._topics: dict[str, set[asyncio.Queue[JobStatusEvent]]] = defaultdict(set)
        self.emitted: int = 0
        self.dropped: int = 0

    def subscriber_count(self, job_id: str) -> int:
        return len(self._topics.get(job_id, ()))

    async def emit(self, job_id: str, status: JobStatus, message: str, **payload: Any) -> JobStatusEvent | None:
        """Publish one event; never raises into the caller."""
        try:
            event = JobStatusEvent(
                job_id=job_id,
                status=status,
                message=message,
                emitted_at=datetime.now(UTC),
                **payload,
            )
        except ValidationError as exc:
            logger.error("broadcast.invalid_event job_id=%s status=%s errors=%s", job_id, status, exc.error_count())
            return None

        self.emitted += 1
        for queue in list(self._topics.get(job_id, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self.dropped += 1
                logger.warning("broadcast.dropped job_id=%s status=%s reason=subscriber_queue_full", job_id, status)
        logger.info("broadcast.emitted job_id=%s status=%s", job_id, event.status.value)
        return event

    @asynccontextmanager
    async def subscribe(self, job_id: str) -> AsyncIterator[asyncio.Queue[JobStatusEvent]]:
        queue: asyncio.Queue[JobStatusEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._topics[job_id].add(queue)
        try:
            yield queue
        finally:
            subscribers = self._topics.get(job_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    self._topics.pop(job_id, None)


__all__ = ["StatusBroadcaster"]
