"""Filesystem staging layout shared by every pipeline run."""

from __future__ import annotations

import secrets
import time
from pathlib import Path


def unique_suffix() -> str:
    """Timestamp plus random component; concurrent runs must never collide."""
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"


class StagingArea:
    """One writable root split into inbound media, extracted audio and derived outputs."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.inbound_dir = self.root / "inbound"
        self.audio_dir = self.root / "audio"
        self.outputs_dir = self.root / "outputs"

    def ensure(self) -> None:
        for directory in (self.inbound_dir, self.audio_dir, self.outputs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def inbound_path(self, prefix: str, extension: str) -> Path:
        self.inbound_dir.mkdir(parents=True, exist_ok=True)
        return self.inbound_dir / f"{prefix}-{unique_suffix()}{extension}"

    def audio_path_for(self, video_path: Path) -> Path:
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        return self.audio_dir / f"audio-{video_path.stem}.wav"

    def raw_payload_path(self, job_id: str) -> Path:
        return self.outputs_dir / f"transcript_raw_{job_id}.json"
