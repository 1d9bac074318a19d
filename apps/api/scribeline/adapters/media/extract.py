"""Audio extraction through ffmpeg."""

from __future__ import annotations

import logging
from pathlib import Path

from scribeline.adapters.media.commands import CommandRunner, run_command
from scribeline.errors import ExtractionError

logger = logging.getLogger(__name__)

SAMPLE_RATE_HERTZ = 16000


class FfmpegAudioExtractor:
    """Produces mono 16 kHz 16-bit PCM WAV, the format the recognizer expects."""

    def __init__(self, binary: str = "ffmpeg", *, runner: CommandRunner = run_command) -> None:
        self._binary = binary
        self._runner = runner

    async def extract(self, video_path: Path, audio_path: Path) -> Path:
        video_path = Path(video_path)
        audio_path = Path(audio_path)
        audio_path.parent.mkdir(parents=True, exist_ok=True)
        args = [
            self._binary,
            "-y",
            "-i",
            str(video_path),
            "-vn",
            "-ac",
            "1",
            "-ar",
            str(SAMPLE_RATE_HERTZ),
            "-acodec",
            "pcm_s16le",
            str(audio_path),
        ]
        try:
            result = await self._runner(args)
        except OSError as exc:
            raise ExtractionError(f"{self._binary} could not be started: {exc}") from exc

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()[-1:] or [f"exit code {result.returncode}"]
            raise ExtractionError(f"Audio extraction failed: {detail[0]}")

        if not audio_path.exists() or audio_path.stat().st_size == 0:
            raise ExtractionError("Audio extraction produced no output")

        logger.info("extract.completed video=%s audio=%s", video_path.name, audio_path.name)
        return audio_path


__all__ = ["FfmpegAudioExtractor", "SAMPLE_RATE_HERTZ"]
