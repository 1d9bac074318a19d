"""Pipeline runner supervision and status broadcaster scoping tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
import tempfile
import unittest

from fakes import FakeTranscriber, FakeTranslator

from scribeline.core.config import Settings
from scribeline.core.staging import StagingArea
from scribeline.domain.recognition import build_recognition_config
from scribeline.repositories.base import NewJob
from scribeline.repositories.memory import InMemoryJobStore
from scribeline.schemas.job import JobStatus, SourceType
from scribeline.services.broadcaster import StatusBroadcaster
from scribeline.services.pipeline import INTERRUPTED_MESSAGE, PipelineCoordinator, PipelineRun
from scribeline.services.runner import PipelineRunner


class _RecordingCoordinator:
    def __init__(self, *, fail_with: Exception | None = None, mapping_error: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.mapping_error = mapping_error
        self.started: list[str] = []
        self.unexpected: list[tuple[str, str]] = []
        self.interrupted: list[str] = []
        self.active = 0
        self.peak = 0
        self.release = asyncio.Event()

    async def run(self, run: PipelineRun) -> None:
        self.started.append(run.job_id)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await self.release.wait()
            if self.fail_with is not None:
                raise self.fail_with
        finally:
            self.active -= 1

    async def fail_unexpected(self, job_id: str, exc: BaseException) -> None:
        if self.mapping_error is not None:
            raise self.mapping_error
        self.unexpected.append((job_id, str(exc)))

    async def fail_interrupted(self, run: PipelineRun) -> None:
        self.interrupted.append(run.job_id)


class PipelineRunnerTests(unittest.IsolatedAsyncioTestCase):
    async def test_submit_returns_before_the_run_starts(self) -> None:
        coordinator = _RecordingCoordinator()
        runner = PipelineRunner(coordinator, max_concurrency=None)

        runner.submit(PipelineRun(job_id="job-1"))

        self.assertEqual(coordinator.started, [])
        await asyncio.sleep(0)
        self.assertEqual(coordinator.started, ["job-1"])
        coordinator.release.set()
        await runner.drain()
        self.assertEqual(runner.in_flight, 0)

    async def test_concurrency_is_bounded(self) -> None:
        coordinator = _RecordingCoordinator()
        runner = PipelineRunner(coordinator, max_concurrency=2)

        for index in range(5):
            runner.submit(PipelineRun(job_id=f"job-{index}"))
        for _ in range(5):
            await asyncio.sleep(0)

        self.assertEqual(coordinator.active, 2)
        coordinator.release.set()
        await runner.drain()
        self.assertEqual(coordinator.peak, 2)
        self.assertEqual(len(coordinator.started), 5)

    async def test_escaped_exception_reaches_failure_mapping(self) -> None:
        coordinator = _RecordingCoordinator(fail_with=RuntimeError("boom"))
        coordinator.release.set()
        runner = PipelineRunner(coordinator)

        runner.submit(PipelineRun(job_id="job-1"))
        await runner.drain()

        self.assertEqual(coordinator.unexpected, [("job-1", "boom")])
        self.assertEqual(runner.failures[-1].job_id, "job-1")

    async def test_failing_failure_mapping_is_contained(self) -> None:
        coordinator = _RecordingCoordinator(fail_with=RuntimeError("boom"), mapping_error=RuntimeError("store down"))
        coordinator.release.set()
        runner = PipelineRunner(coordinator)

        task = runner.submit(PipelineRun(job_id="job-1"))
        await runner.drain()

        self.assertTrue(task.done())
        self.assertIsNone(task.exception())
        self.assertEqual(len(runner.failures), 1)

    async def test_shutdown_cancels_and_marks_interrupted(self) -> None:
        coordinator = _RecordingCoordinator()
        runner = PipelineRunner(coordinator)
        runner.submit(PipelineRun(job_id="job-1"))
        await asyncio.sleep(0)

        await runner.shutdown()

        self.assertEqual(coordinator.interrupted, ["job-1"])
        self.assertFalse(runner.accepting)
        with self.assertRaises(RuntimeError):
            runner.submit(PipelineRun(job_id="job-2"))

    def test_non_positive_concurrency_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PipelineRunner(_RecordingCoordinator(), max_concurrency=0)


class StatusBroadcasterTests(unittest.IsolatedAsyncioTestCase):
    async def test_events_reach_only_subscribers_of_that_job(self) -> None:
        broadcaster = StatusBroadcaster()
        async with broadcaster.subscribe("job-a") as queue_a, broadcaster.subscribe("job-b") as queue_b:
            await broadcaster.emit("job-a", JobStatus.PROCESSING, "working")

            event = queue_a.get_nowait()
            self.assertEqual((event.job_id, event.status, event.message), ("job-a", JobStatus.PROCESSING, "working"))
            self.assertTrue(queue_b.empty())

        self.assertEqual(broadcaster.subscriber_count("job-a"), 0)

    async def test_every_subscriber_of_a_job_receives_the_event_once(self) -> None:
        broadcaster = StatusBroadcaster()
        async with broadcaster.subscribe("job-a") as first, broadcaster.subscribe("job-a") as second:
            await broadcaster.emit("job-a", JobStatus.SUCCESS, "done", transcription="hello")
            for queue in (first, second):
                with self.subTest(queue=id(queue)):
                    self.assertEqual(queue.qsize(), 1)
                    self.assertEqual(queue.get_nowait().transcription, "hello")

    async def test_full_subscriber_queue_drops_instead_of_blocking(self) -> None:
        broadcaster = StatusBroadcaster(queue_size=1)
        async with broadcaster.subscribe("job-a") as queue:
            await broadcaster.emit("job-a", JobStatus.QUEUED, "one")
            await broadcaster.emit("job-a", JobStatus.PROCESSING, "two")

            self.assertEqual(queue.qsize(), 1)
            self.assertEqual(queue.get_nowait().message, "one")
        self.assertEqual(broadcaster.dropped, 1)

    async def test_emit_without_subscribers_and_invalid_payload_never_raises(self) -> None:
        broadcaster = StatusBroadcaster()
        self.assertIsNotNone(await broadcaster.emit("job-x", JobStatus.QUEUED, "queued"))
        self.assertIsNone(await broadcaster.emit("job-x", JobStatus.SUCCESS, "bad", segments="not-a-list"))


class RunnerShutdownCleanupTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.staging = StagingArea(Path(self._tmp.name) / "staging")
        self.staging.ensure()
        self.store = InMemoryJobStore()
        self.transcriber = FakeTranscriber(gate=asyncio.Event())
        self.coordinator = PipelineCoordinator(
            store=self.store,
            broadcaster=StatusBroadcaster(),
            transcriber=self.transcriber,
            translator=FakeTranslator(),
            staging=self.staging,
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def _staged_run(self, index: int) -> PipelineRun:
        record = await self.store.create(
            NewJob(
                owner_id="owner-1",
                source_type=SourceType.UPLOAD,
                original_label=f"clip-{index}.mp4",
                audio_uri=f"gs://test-bucket/audio-clip-{index}.wav",
                audio_file_name=f"audio-clip-{index}.wav",
                recognition_config=build_recognition_config(
                    language_code="en-US",
                    enable_speaker_diarization=False,
                    min_speakers=None,
                    max_speakers=None,
                    settings=Settings(),
                ),
            )
        )
        video_path = self.staging.inbound_dir / f"video-{index}.mp4"
        video_path.write_bytes(b"video")
        audio_path = self.staging.audio_path_for(video_path)
        audio_path.write_bytes(b"RIFF")
        return PipelineRun(job_id=record.id, audio_path=audio_path, video_path=video_path)

    async def test_shutdown_removes_files_of_runs_still_waiting_for_a_slot(self) -> None:
        runner = PipelineRunner(self.coordinator, max_concurrency=1)
        runs = [await self._staged_run(index) for index in range(2)]
        for run in runs:
            runner.submit(run)
        for _ in range(5):
            await asyncio.sleep(0)
        self.assertEqual(len(self.transcriber.calls), 1)

        await runner.shutdown()

        for run in runs:
            with self.subTest(job_id=run.job_id):
                stored = await self.store.get(run.job_id)
                self.assertEqual(stored.status, JobStatus.FAILED)
                self.assertEqual(stored.error_message, INTERRUPTED_MESSAGE)
                self.assertFalse(run.audio_path.exists())
                self.assertFalse(run.video_path.exists())


if __name__ == "__main__":
    unittest.main()
