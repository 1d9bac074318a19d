"""Recognition config defaults, outcome messages and segment building."""

from __future__ import annotations

import unittest

from scribeline.core.config import Settings
from scribeline.domain.recognition import (
    TRANSLATION_FAILED_MESSAGE,
    build_recognition_config,
    success_message,
    translated_message,
)
from scribeline.domain.segments import MAX_WORDS_PER_SEGMENT, RecognizedResult, WordTiming, build_segments
from scribeline.schemas.job import Segment


def _words(count: int, *, speaker_tags: list[int] | None = None) -> list[WordTiming]:
    return [
        WordTiming(
            word=f"w{index}",
            start=index * 0.5,
            end=index * 0.5 + 0.4,
            speaker_tag=speaker_tags[index] if speaker_tags else None,
        )
        for index in range(count)
    ]


class RecognitionConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings()

    def test_auto_detect_substitutes_primary_hint_and_alternatives(self) -> None:
        for requested in ("auto", "auto-detect", "", None):
            with self.subTest(requested=requested):
                config = build_recognition_config(
                    language_code=requested,
                    enable_speaker_diarization=False,
                    min_speakers=None,
                    max_speakers=None,
                    settings=self.settings,
                )
                self.assertEqual(config.language_code, "vi-VN")
                self.assertEqual(
                    config.alternative_language_codes,
                    ["en-US", "ja-JP", "ko-KR", "cmn-CN", "fr-FR", "de-DE", "es-ES"],
                )

    def test_explicit_language_has_no_alternatives(self) -> None:
        config = build_recognition_config(
            language_code="ja-JP",
            enable_speaker_diarization=False,
            min_speakers=None,
            max_speakers=None,
            settings=self.settings,
        )
        self.assertEqual(config.language_code, "ja-JP")
        self.assertIsNone(config.alternative_language_codes)
        self.assertIsNone(config.diarization)
        self.assertEqual((config.encoding, config.sample_rate_hertz), ("LINEAR16", 16000))
        self.assertTrue(config.enable_automatic_punctuation)
        self.assertTrue(config.enable_word_time_offsets)

    def test_diarization_defaults_to_one_through_five_speakers(self) -> None:
        config = build_recognition_config(
            language_code="en-US",
            enable_speaker_diarization=True,
            min_speakers=None,
            max_speakers=None,
            settings=self.settings,
        )
        self.assertTrue(config.diarization.enabled)
        self.assertEqual((config.diarization.min_speakers, config.diarization.max_speakers), (1, 5))

    def test_inverted_speaker_bounds_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_recognition_config(
                language_code="en-US",
                enable_speaker_diarization=True,
                min_speakers=4,
                max_speakers=2,
                settings=self.settings,
            )


class OutcomeMessageTests(unittest.TestCase):
    def test_messages_distinguish_degraded_success(self) -> None:
        segment = Segment(start=0.0, end=1.0, text="hello")
        self.assertEqual(success_message("hello", [segment]), "Transcription successful.")
        self.assertEqual(
            success_message("hello", []),
            "Transcription text available, but no detailed segments.",
        )
        self.assertEqual(success_message("", []), "Transcription resulted in no text or segments.")
        self.assertEqual(translated_message("es"), "Transcription and translation to es successful.")
        self.assertEqual(TRANSLATION_FAILED_MESSAGE, "Transcription successful, but translation failed.")


class SegmentBuildingTests(unittest.TestCase):
    def test_plain_results_break_every_fifteen_words(self) -> None:
        built = build_segments([RecognizedResult(transcript="x", words=_words(32))], diarized=False)

        self.assertEqual([len(segment.text.split()) for segment in built.segments], [15, 15, 2])
        self.assertEqual(MAX_WORDS_PER_SEGMENT, 15)
        self.assertEqual(built.segments[0].start, 0.0)
        self.assertAlmostEqual(built.segments[0].end, 14 * 0.5 + 0.4)
        self.assertTrue(all(segment.speaker_tag is None for segment in built.segments))
        self.assertIsNone(built.detected_speaker_count)
        self.assertEqual(built.transcript, "\n".join(segment.text for segment in built.segments))

    def test_segments_close_at_result_boundaries(self) -> None:
        results = [
            RecognizedResult(transcript="a", words=_words(3)),
            RecognizedResult(transcript="b", words=_words(2)),
        ]
        built = build_segments(results, diarized=False)
        self.assertEqual([segment.text for segment in built.segments], ["w0 w1 w2", "w0 w1"])

    def test_diarized_results_break_on_speaker_change(self) -> None:
        words = _words(6, speaker_tags=[1, 1, 2, 2, 2, 1])
        built = build_segments([RecognizedResult(transcript="x", words=words)], diarized=True)

        self.assertEqual([segment.text for segment in built.segments], ["w0 w1", "w2 w3 w4", "w5"])
        self.assertEqual([segment.speaker_tag for segment in built.segments], [1, 2, 1])
        self.assertEqual(built.detected_speaker_count, 2)

    def test_result_without_word_timings_becomes_coarse_segment(self) -> None:
        built = build_segments(
            [RecognizedResult(transcript="  no timings here ", words=[], result_end=4.0)],
            diarized=False,
        )
        self.assertEqual(len(built.segments), 1)
        self.assertEqual(built.segments[0].text, "no timings here")
        self.assertEqual(built.segments[0].end, 4.0)
        self.assertLessEqual(built.segments[0].start, built.segments[0].end)

    def test_empty_results_produce_empty_transcript(self) -> None:
        built = build_segments([RecognizedResult()], diarized=True)
        self.assertEqual(built.segments, [])
        self.assertEqual(built.transcript, "")
        self.assertEqual(built.detected_speaker_count, 0)


if __name__ == "__main__":
    unittest.main()
