"""Grouping of recognizer word timings into transcript segments."""

from __future__ import annotations

from dataclasses import dataclass, field

from scribeline.schemas.job import Segment

MAX_WORDS_PER_SEGMENT = 15
# Rough reading speed used to place results that came back without word timings.
_CHARS_PER_SECOND = 10.0


@dataclass(slots=True)
class WordTiming:
    word: str
    start: float | None
    end: float | None
    speaker_tag: int | None = None


@dataclass(slots=True)
class RecognizedResult:
    transcript: str = ""
    words: list[WordTiming] = field(default_factory=list)
    result_end: float | None = None


@dataclass(slots=True)
class BuiltTranscript:
    transcript: str
    segments: list[Segment]
    detected_speaker_count: int | None


@dataclass(slots=True)
class _OpenSegment:
    words: list[str] = field(default_factory=list)
    start: float | None = None
    end: float | None = None
    speaker_tag: int | None = None

    def add(self, word: WordTiming) -> None:
        if self.start is None:
            self.start = word.start
        self.end = word.end
        self.words.append(word.word)

    def close(self, segments: list[Segment], *, diarized: bool) -> None:
        text = " ".join(self.words).strip()
        if text and self.start is not None and self.end is not None:
            segments.append(
                Segment(
                    start=self.start,
                    end=self.end,
                    text=text,
                    speaker_tag=self.speaker_tag if diarized else None,
                )
            )
        self.words = []
        self.start = None
        self.end = None


def build_segments(results: list[RecognizedResult], *, diarized: bool) -> BuiltTranscript:
    """Build segments from recognizer results.

    With diarization a segment closes whenever the speaker changes and at the end
    of each result; without it a segment closes every ``MAX_WORDS_PER_SEGMENT``
    words or at the end of the result. Words with missing timestamps are dropped.
    """
    segments: list[Segment] = []
    speaker_tags: set[int] = set()

    for result in results:
        timed_words = [word for word in result.words if word.start is not None and word.end is not None]
        if not timed_words:
            _append_untimed_result(segments, result)
            continue

        current = _OpenSegment()
        for word in timed_words:
            if diarized:
                if word.speaker_tag is not None:
                    speaker_tags.add(word.speaker_tag)
                if current.words and word.speaker_tag != current.speaker_tag:
                    current.close(segments, diarized=diarized)
                current.speaker_tag = word.speaker_tag

            current.add(word)
            if not diarized and len(current.words) >= MAX_WORDS_PER_SEGMENT:
                current.close(segments, diarized=diarized)
        current.close(segments, diarized=diarized)

    transcript = "\n".join(segment.text for segment in segments)
    return BuiltTranscript(
        transcript=transcript,
        segments=segments,
        detected_speaker_count=len(speaker_tags) if diarized else None,
    )


def _append_untimed_result(segments: list[Segment], result: RecognizedResult) -> None:
    text = result.transcript.strip()
    if not text:
        return

    if segments:
        start = segments[-1].end
    elif result.result_end is not None:
        start = max(0.0, result.result_end - len(text) / _CHARS_PER_SECOND)
    else:
        start = 0.0
    end = result.result_end if result.result_end is not None else start
    segments.append(Segment(start=start, end=max(start, end), text=text))
