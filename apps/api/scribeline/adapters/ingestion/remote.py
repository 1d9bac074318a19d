"""Remote URL ingestion through the yt-dlp downloader."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Callable
from urllib.parse import parse_qs, urlsplit

import aiofiles.os

from scribeline.adapters.ingestion.base import AcquiredMedia, IngestionAdapter, Provenance, RemoteSource
from scribeline.adapters.media.commands import CommandRunner, run_command
from scribeline.core.logging_safety import redact_url
from scribeline.core.staging import StagingArea
from scribeline.errors import AcquisitionError, InvalidSourceError
from scribeline.schemas.job import SourceType

logger = logging.getLogger(__name__)

_YOUTUBE_ID_PATTERN = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)


def _youtube_title(url: str) -> str:
    video_id: str | None = None
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if "youtube.com" in host:
            video_id = (parse_qs(parts.query).get("v") or [None])[0]
        elif "youtu.be" in host:
            video_id = parts.path.lstrip("/").split("/")[0] or None
    except ValueError:
        video_id = None
    if not video_id:
        match = _YOUTUBE_ID_PATTERN.search(url)
        video_id = match.group(1) if match else "unknown"
    return f"YouTube Video ({video_id})"


def _tiktok_title(url: str) -> str:
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    return f"TikTok Video ({segments[-1] if segments else 'link'})"


def _strip_query(url: str) -> str:
    return url.split("?", 1)[0]


@dataclass(slots=True, frozen=True)
class RemoteSourceProfile:
    """Per-platform rules: which URLs are accepted and how the download is invoked."""

    source_type: SourceType
    label: str
    file_prefix: str
    url_markers: tuple[str, ...]
    invalid_url_message: str
    title_for: Callable[[str], str]
    normalize_url: Callable[[str], str] = lambda url: url
    extra_args: tuple[str, ...] = field(default=("--recode-video", "mp4"))

    def accepts(self, url: str) -> bool:
        return any(marker in url for marker in self.url_markers)


YOUTUBE = RemoteSourceProfile(
    source_type=SourceType.YOUTUBE,
    label="YouTube",
    file_prefix="youtube",
    url_markers=("youtube.com/", "youtu.be/"),
    invalid_url_message="Valid YouTube URL is required.",
    title_for=_youtube_title,
)

TIKTOK = RemoteSourceProfile(
    source_type=SourceType.TIKTOK,
    label="TikTok",
    file_prefix="tiktok",
    url_markers=("tiktok.com/t/", "tiktok.com/@"),
    invalid_url_message="Invalid TikTok URL format provided.",
    title_for=_tiktok_title,
    normalize_url=_strip_query,
)


def downloader_error_message(stderr: str, label: str) -> str:
    """Text after the first ``ERROR:`` marker, or a generic per-platform message."""
    if stderr and "ERROR:" in stderr:
        detail = stderr.split("ERROR:", 1)[1].strip()
        if detail:
            return detail
    return f"Failed to download {label} video."


class RemoteUrlIngestionAdapter(IngestionAdapter):
    def __init__(
        self,
        profile: RemoteSourceProfile,
        staging: StagingArea,
        *,
        binary: str = "yt-dlp",
        runner: CommandRunner = run_command,
    ) -> None:
        self._profile = profile
        self._staging = staging
        self._binary = binary
        self._runner = runner

    @property
    def profile(self) -> RemoteSourceProfile:
        return self._profile

    async def acquire(self, source: RemoteSource) -> AcquiredMedia:
        raw_url = (getattr(source, "url", None) or "").strip()
        if not raw_url or not self._profile.accepts(raw_url):
            raise InvalidSourceError(self._profile.invalid_url_message)

        url = self._profile.normalize_url(raw_url)
        target = self._staging.inbound_path(self._profile.file_prefix, ".mp4")
        args = [
            self._binary,
            "--no-playlist",
            "--no-abort-on-error",
            "--output",
            str(target),
            *self._profile.extra_args,
            url,
        ]
        logger.info(
            "ingest.download_started source_type=%s url=%s file=%s",
            self._profile.source_type,
            redact_url(url),
            target.name,
        )
        try:
            try:
                result = await self._runner(args)
            except OSError as exc:
                raise AcquisitionError(f"{self._binary} could not be started: {exc}") from exc

            if result.returncode != 0:
                logger.warning(
                    "ingest.download_failed source_type=%s returncode=%s",
                    self._profile.source_type,
                    result.returncode,
                )
                raise AcquisitionError(downloader_error_message(result.stderr, self._profile.label))

            video_path = self._locate_output(target)
        except BaseException:
            await self._discard_partials(target, keep=None)
            raise

        await self._discard_partials(target, keep=video_path)
        logger.info("ingest.download_completed source_type=%s file=%s", self._profile.source_type, video_path.name)
        return AcquiredMedia(
            local_video_path=video_path,
            provenance=Provenance(display_name=self._profile.title_for(url)),
        )

    def _locate_output(self, target: Path) -> Path:
        if target.is_file() and target.stat().st_size > 0:
            return target
        # The downloader may keep its own container extension when recoding is skipped.
        candidates = sorted(
            path
            for path in target.parent.glob(f"{target.stem}.*")
            if path.is_file() and not path.name.endswith((".part", ".ytdl")) and path.stat().st_size > 0
        )
        if not candidates:
            raise AcquisitionError(f"Downloaded {self._profile.label} file is not accessible.")
        return candidates[0]

    async def _discard_partials(self, target: Path, *, keep: Path | None) -> None:
        for path in target.parent.glob(f"{target.stem}.*"):
            if keep is not None and path == keep:
                continue
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("ingest.cleanup_failed file=%s reason=%s", path.name, exc)


__all__ = [
    "RemoteSourceProfile",
    "RemoteUrlIngestionAdapter",
    "TIKTOK",
    "YOUTUBE",
    "downloader_error_message",
]
