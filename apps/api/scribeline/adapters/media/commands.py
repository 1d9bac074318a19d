"""Async subprocess helper for external media tools."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


CommandRunner = Callable[[Sequence[str]], Awaitable[CommandResult]]


async def run_command(args: Sequence[str]) -> CommandResult:
    """Run a command to completion without blocking the event loop.

    A missing binary surfaces as ``FileNotFoundError`` from the caller's point of view.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    result = CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    logger.debug("command.finished binary=%s returncode=%s", args[0], result.returncode)
    return result


__all__ = ["CommandResult", "CommandRunner", "run_command"]
