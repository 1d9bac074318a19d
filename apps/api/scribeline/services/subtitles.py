"""SRT and WebVTT rendering of transcript segments."""

from __future__ import annotations

from scribeline.schemas.job import Segment, SubtitleFormat, TranslatedSegment

MEDIA_TYPES: dict[SubtitleFormat, str] = {
    SubtitleFormat.SRT: "application/x-subrip",
    SubtitleFormat.VTT: "text/vtt",
}


def format_timestamp(seconds: float, subtitle_format: SubtitleFormat) -> str:
    total_ms = max(0, round(seconds * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    separator = "," if subtitle_format is SubtitleFormat.SRT else "."
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{millis:03d}"


def _cue_text(segment: Segment) -> str:
    if isinstance(segment, TranslatedSegment):
        return segment.translated_text.strip()
    return segment.text.strip()


def render_subtitles(segments: list[Segment], subtitle_format: SubtitleFormat) -> str:
    """Render numbered cues; translated segments contribute their translated text."""
    lines: list[str] = ["WEBVTT", ""] if subtitle_format is SubtitleFormat.VTT else []
    for index, segment in enumerate(segments, 1):
        start = format_timestamp(segment.start, subtitle_format)
        end = format_timestamp(max(segment.end, segment.start), subtitle_format)
        lines.append(str(index))
        lines.append(f"{start} --> {end}")
        lines.append(_cue_text(segment))
        lines.append("")
    return "\n".join(lines)


__all__ = ["MEDIA_TYPES", "format_timestamp", "render_subtitles"]
