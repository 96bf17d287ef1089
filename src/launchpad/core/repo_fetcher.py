"""Fetch remote repositories into local working directories."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from launchpad.core.process_utils import wait_with_deadline
from launchpad.errors import CloneError, StageTimeout

logger = logging.getLogger(__name__)

DEFAULT_REPO_HOST = "https://github.com"
_SLUG_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def normalize_repo_url(value: str, host: str = DEFAULT_REPO_HOST) -> str:
    """Expand ``owner/repo`` shorthand; URLs starting with http pass through."""
    candidate = value.strip()
    if candidate.startswith("http"):
        return candidate
    return f"{host.rstrip('/')}/{candidate.strip('/')}"


@dataclass(slots=True)
class FetchResult:
    """Outcome of a fetch."""

    repo_url: str
    destination: Path
    cache_path: Path
    from_cache: bool


class RepoFetcher:
    """Clone through a per-URL cache, then copy the tree over the destination."""

    def __init__(self, cache_dir: Path, *, git_path: str = "git") -> None:
        self._cache_dir = cache_dir
        self._git_path = git_path

    def cache_path_for(self, repo_url: str) -> Path:
        digest = hashlib.sha256(repo_url.encode("utf-8")).hexdigest()[:12]
        tail = _SLUG_UNSAFE.sub("-", repo_url.rstrip("/").split("://", 1)[-1])[-60:]
        return self._cache_dir / f"{tail.strip('-')}-{digest}"

    async def fetch(
        self,
        repo_url: str,
        destination: Path,
        *,
        timeout_seconds: float | None = None,
    ) -> FetchResult:
        cache_path = self.cache_path_for(repo_url)
        from_cache = False
        if (cache_path / ".git").is_dir():
            try:
                await self._git(
                    "pull",
                    "--ff-only",
                    "--depth",
                    "1",
                    cwd=cache_path,
                    timeout_seconds=timeout_seconds,
                )
            except (CloneError, StageTimeout) as exc:
                logger.warning("Refreshing cache for %s failed, using cached copy: %s", repo_url, exc)
                from_cache = True
        else:
            if cache_path.exists():
                await asyncio.to_thread(shutil.rmtree, cache_path)
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Cloning %s into cache %s", repo_url, cache_path)
            await self._git(
                "clone",
                "--depth",
                "1",
                repo_url,
                str(cache_path),
                cwd=None,
                timeout_seconds=timeout_seconds,
            )

        logger.info("Copying %s into %s", cache_path, destination)
        try:
            await asyncio.to_thread(
                shutil.copytree,
                cache_path,
                destination,
                ignore=shutil.ignore_patterns(".git"),
                dirs_exist_ok=True,
            )
        except (OSError, shutil.Error) as exc:
            msg = f"Copying {repo_url} into {destination} failed: {exc}"
            raise CloneError(msg) from exc
        return FetchResult(
            repo_url=repo_url,
            destination=destination,
            cache_path=cache_path,
            from_cache=from_cache,
        )

    async def _git(
        self,
        *args: str,
        cwd: Path | None,
        timeout_seconds: float | None,
    ) -> str:
        command = [self._git_path, *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            msg = f"git {args[0]} could not start: {exc}"
            raise CloneError(msg) from exc

        returncode, stdout, stderr = await wait_with_deadline(
            process, stage=f"git {args[0]}", timeout_seconds=timeout_seconds
        )
        output = stdout.decode("utf-8", errors="replace") + stderr.decode("utf-8", errors="replace")
        if returncode != 0:
            msg = f"git {args[0]} failed: {output.strip()}"
            raise CloneError(msg)
        return output.strip()
