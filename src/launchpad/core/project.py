"""Project aggregate: one external repository from fetch to teardown."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from launchpad.config import OrchestratorSettings
from launchpad.core.env_file import write_env_file
from launchpad.core.exit_cleanup import ExitCleanupRegistry, get_exit_cleanup_registry
from launchpad.core.installer import DependencyInstaller
from launchpad.core.manifest import PackageManifest, read_manifest
from launchpad.core.port_allocator import PortAllocator, get_port_allocator
from launchpad.core.readiness import ReadinessProber
from launchpad.core.repo_fetcher import RepoFetcher, normalize_repo_url
from launchpad.core.stats_analyzer import StatsAnalyzer
from launchpad.core.supervisor import ProcessState, ProcessSupervisor
from launchpad.errors import ServerRunningError, VideoIdError
from launchpad.models.project import ProjectDTO, ProjectScores, ProjectStats, ProjectStatus
from launchpad.models.values import Identifier, Port

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "No description provided"
VIDEO_ID_PATTERNS = (
    re.compile(
        r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/)([^&\n?#]+)"
    ),
    re.compile(r"youtube\.com/watch\?.*v=([^&\n?#]+)"),
)


def extract_video_id(url: str) -> str:
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    raise VideoIdError(url)


@dataclass(slots=True)
class ProjectServices:
    """Collaborators shared by projects built from the same settings."""

    fetcher: RepoFetcher
    installer: DependencyInstaller
    prober: ReadinessProber
    analyzer: StatsAnalyzer
    ports: PortAllocator
    exit_registry: ExitCleanupRegistry

    @classmethod
    def from_settings(cls, settings: OrchestratorSettings) -> ProjectServices:
        return cls(
            fetcher=RepoFetcher(settings.cache_dir, git_path=settings.git_path),
            installer=DependencyInstaller(settings.npm_path),
            prober=ReadinessProber(interval_seconds=settings.readiness_interval_seconds),
            analyzer=StatsAnalyzer(),
            ports=get_port_allocator(settings.port_range_min, settings.port_range_max),
            exit_registry=get_exit_cleanup_registry(),
        )


class Project:
    """An external repository materialized on disk and run as a child process.

    Status changes belong to the caller; the aggregate only guarantees the
    value stays inside ``ProjectStatus``.
    """

    def __init__(
        self,
        *,
        name: str,
        video_url: str,
        settings: OrchestratorSettings,
        description: str = "",
        repo_url: str | None = None,
        repo_url_or_shorthand: str | None = None,
        id: str | None = None,
        port: int | str | None = None,
        directory: Path | str | None = None,
        status: ProjectStatus | str = ProjectStatus.INITIALIZED,
        env_config: dict[str, str] | None = None,
        stats: ProjectStats | dict[str, Any] | None = None,
        scores: ProjectScores | dict[str, Any] | None = None,
        created_at: datetime | str | None = None,
        services: ProjectServices | None = None,
    ) -> None:
        if (repo_url is None) == (repo_url_or_shorthand is None):
            msg = "Exactly one of repo_url or repo_url_or_shorthand is required"
            raise ValueError(msg)

        self.name = name
        self.id = Identifier(id) if id is not None else Identifier()
        self.status = status
        self.repo_url = (
            repo_url
            if repo_url is not None
            else normalize_repo_url(str(repo_url_or_shorthand), settings.repo_host)
        )
        self.video_url = video_url
        self.description = description or DEFAULT_DESCRIPTION
        self.env_config = dict(env_config or {})
        self.directory = (
            Path(directory) if directory is not None else settings.workspace_root / self.id.value
        )
        self.stats = ProjectStats.model_validate(stats) if isinstance(stats, dict) else stats
        self.scores = ProjectScores.model_validate(scores) if isinstance(scores, dict) else scores
        if isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        else:
            self.created_at = created_at or datetime.now(UTC)

        self._settings = settings
        self._services = services or ProjectServices.from_settings(settings)
        # reserved only while the target server runs
        self.port = Port.parse(port) if port is not None else self._services.ports.suggest()
        self._supervisor = ProcessSupervisor(stop_grace_seconds=settings.stop_grace_seconds)
        self._cleanup_registered = False
        logger.info(
            "Project %s (%s) created: repo=%s port=%s dir=%s",
            self.name,
            self.id,
            self.repo_url,
            self.port,
            self.directory,
        )

    @property
    def status(self) -> ProjectStatus:
        return self._status

    @status.setter
    def status(self, value: ProjectStatus | str) -> None:
        self._status = ProjectStatus.parse(value)

    @property
    def video_id(self) -> str:
        return extract_video_id(self.video_url)

    @property
    def canonical_video_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    @property
    def server_url(self) -> str:
        return f"{self._settings.readiness_scheme}://localhost:{self.port.number}/"

    def server_state(self) -> ProcessState:
        return self._supervisor.status()

    def is_server_running(self) -> bool:
        return self._supervisor.is_alive()

    def to_dto(self) -> ProjectDTO:
        return ProjectDTO(
            name=self.name,
            id=self.id.value,
            video_url=self.video_url,
            env_config=dict(self.env_config),
            video_id=self.video_id,
            description=self.description,
            port=self.port.number,
            repo_url=self.repo_url,
            status=self.status,
            directory=str(self.directory),
            stats=self.stats,
            scores=self.scores,
            created_at=self.created_at,
        )

    async def setup(self) -> None:
        """Fetch the repository, then write .env and install dependencies together."""
        if self.is_server_running():
            msg = f"Stop the target server of project {self.id} before running setup again"
            raise ServerRunningError(msg)

        logger.info("Setting up project %s from %s into %s", self.id, self.repo_url, self.directory)
        self.directory.parent.mkdir(parents=True, exist_ok=True)
        await self._services.fetcher.fetch(
            self.repo_url,
            self.directory,
            timeout_seconds=self._settings.clone_timeout_seconds,
        )
        logger.info("Repository fetched, writing .env and installing dependencies")
        # both run to completion; the first failure in order propagates
        results = await asyncio.gather(
            write_env_file(self.directory, self.env_config),
            self._services.installer.install(
                self.directory, timeout_seconds=self._settings.install_timeout_seconds
            ),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        for extra in failures[1:]:
            logger.warning("Setup of project %s also failed: %s", self.id, extra)
        if failures:
            raise failures[0]
        logger.info("Setup of project %s completed", self.id)

    async def get_stats(self) -> ProjectStats:
        logger.info("Computing stats for project %s", self.id)
        return await asyncio.to_thread(self._services.analyzer.analyze, self.directory)

    async def start_target_server(self, *, timeout_seconds: float | None = None) -> None:
        if self.is_server_running():
            logger.info("Target server of project %s already running", self.id)
            return

        manifest = read_manifest(self.directory) or PackageManifest()
        command = [self._settings.npm_path, *manifest.run_script_args()]
        self._services.ports.acquire(self.id.value, self.port.number)
        self._supervisor.start(
            command,
            cwd=self.directory,
            env={"PORT": str(self.port.number)},
        )
        self._register_exit_cleanup()

        await self._services.prober.wait_until_ready(
            self.server_url,
            timeout_seconds=(
                timeout_seconds
                if timeout_seconds is not None
                else self._settings.readiness_timeout_seconds
            ),
            exit_status=self._supervisor.returncode,
        )
        self._supervisor.mark_running()
        logger.info("Target server of project %s ready on %s", self.id, self.server_url)

    async def stop_target_server(self) -> None:
        if not self.is_server_running():
            logger.info("No running target server for project %s", self.id)
            self._services.ports.release(self.id.value)
            return
        logger.info("Stopping target server of project %s", self.id)
        await asyncio.to_thread(self._supervisor.stop)
        self._services.ports.release(self.id.value)

    async def dispose(self) -> None:
        """Stop the server and give back the port and exit hook."""
        await self.stop_target_server()
        self._services.exit_registry.unregister(self.id.value)
        self._cleanup_registered = False

    def _register_exit_cleanup(self) -> None:
        if self._cleanup_registered:
            return
        self._services.exit_registry.register(self.id.value, self._supervisor.terminate)
        self._cleanup_registered = True
        logger.info("Registered exit cleanup for project %s", self.id)


class ProjectFactory:
    """Build projects that share one settings object and one set of services."""

    def __init__(
        self,
        settings: OrchestratorSettings,
        services: ProjectServices | None = None,
    ) -> None:
        self._settings = settings
        self._services = services or ProjectServices.from_settings(settings)

    @property
    def settings(self) -> OrchestratorSettings:
        return self._settings

    def create(self, **props: Any) -> Project:
        project = Project(settings=self._settings, services=self._services, **props)
        logger.info("Factory created project %s", project.id)
        return project
