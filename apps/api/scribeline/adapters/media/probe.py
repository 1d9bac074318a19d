"""Media duration probing through ffprobe."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from scribeline.adapters.media.commands import CommandRunner, run_command
from scribeline.errors import ProbeError

logger = logging.getLogger(__name__)


class FfprobeMediaProbe:
    """Reads container duration; an unknown duration is ``None``, never an error."""

    def __init__(self, binary: str = "ffprobe", *, runner: CommandRunner = run_command) -> None:
        self._binary = binary
        self._runner = runner

    async def probe(self, path: Path) -> float | None:
        try:
            return await self._read_duration(Path(path))
        except ProbeError as exc:
            logger.warning("probe.failed file=%s reason=%s", Path(path).name, exc)
            return None

    async def _read_duration(self, path: Path) -> float:
        args = [
            self._binary,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "json",
            str(path),
        ]
        try:
            result = await self._runner(args)
        except OSError as exc:
            raise ProbeError(f"{self._binary} could not be started: {exc}") from exc

        if result.returncode != 0:
            raise ProbeError(result.stderr.strip() or f"{self._binary} exited with {result.returncode}")

        try:
            raw = json.loads(result.stdout or "{}").get("format", {}).get("duration")
            duration = float(raw)
        except (TypeError, ValueError, AttributeError) as exc:
            raise ProbeError("duration missing from probe output") from exc

        if duration < 0:
            raise ProbeError(f"negative duration {duration}")
        return duration


__all__ = ["FfprobeMediaProbe"]
