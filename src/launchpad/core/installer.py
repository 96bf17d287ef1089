"""Dependency installation through the configured package manager."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from launchpad.core.process_utils import wait_with_deadline
from launchpad.errors import InstallError

logger = logging.getLogger(__name__)


class DependencyInstaller:
    """Run ``<package-manager> install`` inside a project directory."""

    def __init__(self, npm_path: str = "npm") -> None:
        self._npm_path = npm_path

    @property
    def label(self) -> str:
        return f"{Path(self._npm_path).name} install"

    async def install(self, directory: Path, *, timeout_seconds: float | None = None) -> None:
        logger.info("Running %s in %s", self.label, directory)
        try:
            # stdio is inherited so install output reaches the host console
            process = await asyncio.create_subprocess_exec(
                self._npm_path,
                "install",
                cwd=str(directory),
            )
        except OSError as exc:
            logger.error("%s process error: %s", self.label, exc)
            msg = f"{self.label} process error: {exc}"
            raise InstallError(msg) from exc

        returncode, _, _ = await wait_with_deadline(
            process, stage=self.label, timeout_seconds=timeout_seconds
        )
        logger.info("%s completed with exit code: %s", self.label, returncode)
        if returncode != 0:
            msg = f"{self.label} failed with exit code: {returncode}"
            logger.error(msg)
            raise InstallError(msg)
