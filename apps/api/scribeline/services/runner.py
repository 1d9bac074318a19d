"""Supervised execution of detached pipeline runs."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
import logging

from scribeline.services.pipeline import PipelineCoordinator, PipelineRun

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RunFailure:
    job_id: str
    error: str


class PipelineRunner:
    """Bounded task runner for pipeline continuations.

    ``submit`` schedules a run on a later loop tick and returns immediately.
    Exceptions escaping a run are routed to the coordinator's failure mapping
    and recorded in ``failures``; a failure in that mapping is logged.
    """

    def __init__(self, coordinator: PipelineCoordinator, *, max_concurrency: int | None = 4) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be positive or None")
        self._coordinator = coordinator
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._tasks: dict[asyncio.Task[None], PipelineRun] = {}
        self._closed = False
        self.failures: deque[RunFailure] = deque(maxlen=100)

    @property
    def accepting(self) -> bool:
        return not self._closed

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, run: PipelineRun) -> asyncio.Task[None]:
        if self._closed:
            raise RuntimeError("Pipeline runner is shut down")
        task = asyncio.get_running_loop().create_task(self._supervise(run), name=f"pipeline-{run.job_id}")
        self._tasks[task] = run
        task.add_done_callback(self._forget)
        logger.info("runner.submitted job_id=%s in_flight=%s", run.job_id, len(self._tasks))
        return task

    async def drain(self) -> None:
        """Wait until every submitted run, including runs submitted meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every submitted run; each cancelled job is closed as interrupted and its files removed."""
        self._closed = True
        pending = dict(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for task, run in pending.items():
            if not task.cancelled():
                continue
            try:
                await self._coordinator.fail_interrupted(run)
            except Exception:
                logger.exception("runner.interrupt_mapping_failed job_id=%s", run.job_id)
        logger.info("runner.shutdown cancelled=%s", len(pending))

    async def _supervise(self, run: PipelineRun) -> None:
        try:
            if self._semaphore is None:
                await self._coordinator.run(run)
            else:
                async with self._semaphore:
                    await self._coordinator.run(run)
        except asyncio.CancelledError:
            logger.warning("runner.cancelled job_id=%s", run.job_id)
            raise
        except Exception as exc:
            logger.exception("runner.run_escaped job_id=%s", run.job_id)
            self.failures.append(RunFailure(job_id=run.job_id, error=str(exc) or type(exc).__name__))
            try:
                await self._coordinator.fail_unexpected(run.job_id, exc)
            except Exception:
                logger.exception("runner.failure_mapping_failed job_id=%s", run.job_id)

    def _forget(self, task: asyncio.Task[None]) -> None:
        self._tasks.pop(task, None)


__all__ = ["PipelineRunner", "RunFailure"]
