"""Readiness polling for spawned target servers."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeAlias

import httpx

from launchpad.errors import ProcessExitedError, ReadinessTimeout

logger = logging.getLogger(__name__)

Sleeper: TypeAlias = Callable[[float], Awaitable[None]]
Clock: TypeAlias = Callable[[], float]
ExitStatus: TypeAlias = Callable[[], int | None]

DEFAULT_INTERVAL_SECONDS = 0.5


@dataclass(slots=True)
class ReadinessResult:
    url: str
    attempts: int
    elapsed_seconds: float


class ReadinessProber:
    """Poll a URL until any HTTP response arrives or the deadline passes."""

    def __init__(
        self,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        request_timeout_seconds: float = 2.0,
        sleeper: Sleeper | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._interval_seconds = interval_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._sleep = sleeper or asyncio.sleep
        self._clock = clock or time.monotonic

    async def wait_until_ready(
        self,
        url: str,
        *,
        timeout_seconds: float = 60.0,
        exit_status: ExitStatus | None = None,
    ) -> ReadinessResult:
        """Return once ``url`` answers; status codes are not inspected.

        ``exit_status`` reports the child's exit code so a crashed server
        fails fast with ``ProcessExitedError`` instead of waiting out the
        deadline.
        """
        logger.info("Waiting for %s (timeout: %ss)", url, timeout_seconds)
        started = self._clock()
        attempts = 0
        async with httpx.AsyncClient(verify=False) as client:
            while True:
                attempts += 1
                remaining = timeout_seconds - (self._clock() - started)
                request_timeout = max(0.05, min(self._request_timeout_seconds, remaining))
                try:
                    response = await client.get(url, timeout=request_timeout)
                except httpx.TransportError as exc:
                    logger.debug("Readiness attempt %d on %s failed: %s", attempts, url, exc)
                else:
                    elapsed = self._clock() - started
                    logger.info(
                        "%s answered %s after %d attempts (%.2fs)",
                        url,
                        response.status_code,
                        attempts,
                        elapsed,
                    )
                    return ReadinessResult(url=url, attempts=attempts, elapsed_seconds=elapsed)

                if exit_status is not None:
                    returncode = exit_status()
                    if returncode is not None:
                        raise ProcessExitedError(returncode)

                elapsed = self._clock() - started
                if elapsed >= timeout_seconds:
                    logger.error("%s not ready after %d attempts", url, attempts)
                    raise ReadinessTimeout(url, elapsed, attempts)
                await self._sleep(min(self._interval_seconds, timeout_seconds - elapsed))
