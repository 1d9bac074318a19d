"""Media tooling adapters."""

from .commands import CommandResult, CommandRunner, run_command
from .extract import FfmpegAudioExtractor
from .probe import FfprobeMediaProbe

__all__ = [
    "CommandResult",
    "CommandRunner",
    "FfmpegAudioExtractor",
    "FfprobeMediaProbe",
    "run_command",
]
