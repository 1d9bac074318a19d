"""Job status transition invariant tests."""

from __future__ import annotations

import unittest

from scribeline.core.config import Settings
from scribeline.domain.job_fsm import allowed_next_statuses, ensure_transition, is_terminal
from scribeline.domain.recognition import build_recognition_config
from scribeline.errors import ApiError, PersistenceError
from scribeline.repositories.base import NewJob
from scribeline.repositories.memory import InMemoryJobStore
from scribeline.schemas.job import JobStatus, SourceType


def _new_job(owner_id: str = "user-a") -> NewJob:
    return NewJob(
        owner_id=owner_id,
        source_type=SourceType.UPLOAD,
        original_label="clip.mp4",
        audio_uri="gs://bucket/audio-clip.wav",
        audio_file_name="audio-clip.wav",
        recognition_config=build_recognition_config(
            language_code="en-US",
            enable_speaker_diarization=False,
            min_speakers=None,
            max_speakers=None,
            settings=Settings(),
        ),
    )


class JobFsmUnitTests(unittest.TestCase):
    def test_allowed_transition_examples_across_lifecycle(self) -> None:
        allowed_pairs = [
            (JobStatus.QUEUED, JobStatus.PROCESSING),
            (JobStatus.QUEUED, JobStatus.FAILED),
            (JobStatus.WAITING, JobStatus.PROCESSING),
            (JobStatus.PROCESSING, JobStatus.SUCCESS),
            (JobStatus.PROCESSING, JobStatus.FAILED),
        ]
        for old_status, new_status in allowed_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                ensure_transition(old_status, new_status)

    def test_forbidden_transitions_return_contract_shape(self) -> None:
        invalid_pairs = [
            (JobStatus.QUEUED, JobStatus.SUCCESS),
            (JobStatus.PROCESSING, JobStatus.QUEUED),
            (JobStatus.PROCESSING, JobStatus.PROCESSING),
            (JobStatus.WAITING, JobStatus.SUCCESS),
        ]
        for old_status, new_status in invalid_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                with self.assertRaises(ApiError) as context:
                    ensure_transition(old_status, new_status)
                self.assertEqual(context.exception.status_code, 409)
                self.assertEqual(context.exception.payload.code, "FSM_TRANSITION_INVALID")
                details = context.exception.payload.details
                self.assertEqual(details["current_status"], old_status)
                self.assertEqual(details["attempted_status"], new_status)
                self.assertIn("allowed_next_statuses", details)

    def test_terminal_states_are_immutable(self) -> None:
        for terminal_status in (JobStatus.SUCCESS, JobStatus.FAILED):
            for attempted in (JobStatus.QUEUED, JobStatus.PROCESSING, JobStatus.WAITING):
                with self.subTest(terminal_status=terminal_status, attempted=attempted):
                    with self.assertRaises(ApiError) as context:
                        ensure_transition(terminal_status, attempted)
                    self.assertEqual(context.exception.status_code, 409)
                    self.assertEqual(context.exception.payload.code, "FSM_TERMINAL_IMMUTABLE")
                    self.assertEqual(context.exception.payload.details["allowed_next_statuses"], [])

    def test_retry_signal_is_the_only_exit_from_failed(self) -> None:
        ensure_transition(JobStatus.FAILED, JobStatus.WAITING, retry=True)
        self.assertEqual(allowed_next_statuses(JobStatus.FAILED, retry=True), [JobStatus.WAITING])

        with self.assertRaises(ApiError) as context:
            ensure_transition(JobStatus.SUCCESS, JobStatus.WAITING, retry=True)
        self.assertEqual(context.exception.payload.code, "FSM_TERMINAL_IMMUTABLE")

        with self.assertRaises(ApiError):
            ensure_transition(JobStatus.FAILED, JobStatus.PROCESSING, retry=True)

    def test_terminal_predicate(self) -> None:
        self.assertTrue(is_terminal(JobStatus.SUCCESS))
        self.assertTrue(is_terminal(JobStatus.FAILED))
        for status in (JobStatus.QUEUED, JobStatus.PROCESSING, JobStatus.WAITING):
            with self.subTest(status=status):
                self.assertFalse(is_terminal(status))


class JobStoreTransitionTests(unittest.IsolatedAsyncioTestCase):
    async def test_store_transition_applies_valid_transition_with_consistent_writes(self) -> None:
        store = InMemoryJobStore()
        job = await store.create(_new_job())
        before_writes = store.job_write_count

        updated = await store.transition(job.id, JobStatus.PROCESSING)

        self.assertEqual(updated.status, JobStatus.PROCESSING)
        self.assertGreaterEqual(updated.updated_at, job.updated_at)
        self.assertEqual(store.job_write_count, before_writes + 1)

    async def test_store_transition_has_no_mutation_on_invalid_transition(self) -> None:
        store = InMemoryJobStore()
        job = await store.create(_new_job())
        before_writes = store.job_write_count

        with self.assertRaises(ApiError) as context:
            await store.transition(job.id, JobStatus.SUCCESS, transcript_text="early")

        self.assertEqual(context.exception.payload.code, "FSM_TRANSITION_INVALID")
        stored = await store.get(job.id)
        self.assertEqual(stored.status, JobStatus.QUEUED)
        self.assertIsNone(stored.transcript_text)
        self.assertEqual(store.job_write_count, before_writes)

    async def test_immutable_fields_cannot_be_updated(self) -> None:
        store = InMemoryJobStore()
        job = await store.create(_new_job())

        for field_name in ("audio_uri", "recognition_config", "source_type"):
            with self.subTest(field_name=field_name):
                with self.assertRaises(ValueError):
                    await store.transition(job.id, JobStatus.PROCESSING, **{field_name: None})

        self.assertEqual((await store.get(job.id)).status, JobStatus.QUEUED)

    async def test_failpoint_raises_persistence_error_once(self) -> None:
        store = InMemoryJobStore()
        job = await store.create(_new_job())
        store.update_failure_message = "disk full"

        with self.assertRaises(PersistenceError):
            await store.transition(job.id, JobStatus.PROCESSING)
        self.assertEqual((await store.get(job.id)).status, JobStatus.QUEUED)

        updated = await store.transition(job.id, JobStatus.PROCESSING)
        self.assertEqual(updated.status, JobStatus.PROCESSING)

    async def test_owner_scoped_reads_do_not_leak(self) -> None:
        store = InMemoryJobStore()
        job = await store.create(_new_job(owner_id="owner-a"))

        self.assertIsNotNone(await store.get_for_owner("owner-a", job.id))
        self.assertIsNone(await store.get_for_owner("owner-b", job.id))
        records, total = await store.list_for_owner("owner-b")
        self.assertEqual((records, total), ([], 0))


if __name__ == "__main__":
    unittest.main()
