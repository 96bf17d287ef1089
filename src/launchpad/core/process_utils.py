"""Helpers for awaiting subprocesses under a deadline."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from launchpad.errors import StageTimeout

logger = logging.getLogger(__name__)


async def wait_with_deadline(
    process: asyncio.subprocess.Process,
    *,
    stage: str,
    timeout_seconds: float | None,
) -> tuple[int, bytes, bytes]:
    """Wait for ``process``; kill it and raise ``StageTimeout`` past the deadline."""
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except TimeoutError as exc:
        logger.error("%s exceeded %ss, killing pid %s", stage, timeout_seconds, process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise StageTimeout(stage, float(timeout_seconds or 0)) from exc
    returncode = process.returncode if process.returncode is not None else -1
    return returncode, stdout or b"", stderr or b""
