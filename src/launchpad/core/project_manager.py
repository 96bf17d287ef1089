"""Project lifecycle workflow over live aggregates and persisted snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.core.path_guard import PathGuard
from launchpad.core.project import Project, ProjectFactory
from launchpad.db.store import SQLiteStore
from launchpad.errors import LaunchpadError
from launchpad.models.events import EventType, ProjectEvent
from launchpad.models.project import ProjectDTO, ProjectScores, ProjectStats, ProjectStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CreateProjectInput:
    """Input payload for project creation."""

    name: str
    video_url: str
    repo: str
    description: str = ""
    env_config: dict[str, str] = field(default_factory=dict)
    port: int | None = None
    directory: Path | None = None


class ProjectManager:
    """Drive projects through setup, serving and analysis.

    Live ``Project`` instances are kept in memory; snapshots go to the store
    after every transition so they survive a restart.
    """

    def __init__(self, factory: ProjectFactory, store: SQLiteStore) -> None:
        self._factory = factory
        self._store = store
        self._live: dict[str, Project] = {}
        self._workspace = PathGuard(factory.settings.workspace_root)

    async def create(self, payload: CreateProjectInput) -> Project:
        # caller-supplied directories must stay inside the workspace root
        directory = (
            self._workspace.resolve(payload.directory) if payload.directory is not None else None
        )
        project = self._factory.create(
            name=payload.name,
            video_url=payload.video_url,
            repo_url_or_shorthand=payload.repo,
            description=payload.description,
            env_config=payload.env_config,
            port=payload.port,
            directory=directory,
        )
        try:
            snapshot = project.to_dto()
        except LaunchpadError:
            await project.dispose()
            raise
        self._live[project.id.value] = project
        await self._store.upsert_project(snapshot)
        await self._record(project, EventType.PROJECT_CREATED, {"repo_url": project.repo_url})
        return project

    async def get(self, project_id: str) -> Project | None:
        live = self._live.get(project_id)
        if live is not None:
            return live
        snapshot = await self._store.get_project(project_id)
        if snapshot is None:
            return None
        project = self._rehydrate(snapshot)
        self._live[project_id] = project
        return project

    async def list(self) -> list[ProjectDTO]:
        snapshots = {snapshot.id: snapshot for snapshot in await self._store.list_projects()}
        for project_id, project in self._live.items():
            snapshots[project_id] = project.to_dto()
        return sorted(snapshots.values(), key=lambda snapshot: snapshot.created_at)

    async def setup(self, project: Project) -> Project:
        await self._transition(project, ProjectStatus.SETTING_UP)
        await self._record(project, EventType.SETUP_STARTED, {"directory": str(project.directory)})
        try:
            await project.setup()
        except LaunchpadError as exc:
            await self._record_error(project, "setup", exc)
            raise
        await self._record(project, EventType.SETUP_COMPLETED)
        await self._transition(project, ProjectStatus.READY)
        return project

    async def start(self, project: Project, *, timeout_seconds: float | None = None) -> Project:
        try:
            await project.start_target_server(timeout_seconds=timeout_seconds)
        except LaunchpadError as exc:
            await self._record_error(project, "start", exc)
            raise
        state = project.server_state()
        await self._record(
            project,
            EventType.SERVER_STARTED,
            {"port": project.port.number, "pid": state.pid},
        )
        return project

    async def stop(self, project: Project) -> Project:
        was_running = project.is_server_running()
        await project.stop_target_server()
        if was_running:
            await self._record(project, EventType.SERVER_STOPPED, {"port": project.port.number})
        return project

    async def compute_stats(self, project: Project) -> ProjectStats:
        stats = await project.get_stats()
        project.stats = stats
        await self._store.upsert_project(project.to_dto())
        await self._record(
            project,
            EventType.STATS_COMPUTED,
            {
                "agents": stats.architecture.agents.count,
                "tools": stats.architecture.tools.count,
                "workflows": stats.architecture.workflows.count,
            },
        )
        return stats

    async def record_scores(self, project: Project, scores: ProjectScores) -> Project:
        project.scores = scores
        await self._store.upsert_project(project.to_dto())
        return project

    async def update_status(self, project: Project, status: ProjectStatus | str) -> Project:
        await self._transition(project, ProjectStatus.parse(status))
        return project

    async def delete(self, project_id: str) -> None:
        project = self._live.pop(project_id, None)
        if project is not None:
            await project.dispose()
        await self._store.delete_project(project_id)
        await self._store.append_event(
            ProjectEvent(project_id=project_id, event_type=EventType.PROJECT_DELETED)
        )

    async def events(self, project_id: str) -> list[ProjectEvent]:
        return await self._store.list_events(project_id=project_id)

    async def shutdown(self) -> None:
        """Stop every live target server."""
        for project in list(self._live.values()):
            await project.stop_target_server()

    def _rehydrate(self, snapshot: ProjectDTO) -> Project:
        return self._factory.create(
            name=snapshot.name,
            id=snapshot.id,
            video_url=snapshot.video_url,
            description=snapshot.description,
            repo_url=snapshot.repo_url,
            port=snapshot.port,
            directory=snapshot.directory,
            status=snapshot.status,
            env_config=snapshot.env_config,
            stats=snapshot.stats,
            scores=snapshot.scores,
            created_at=snapshot.created_at,
        )

    async def _transition(self, project: Project, status: ProjectStatus) -> None:
        previous = project.status
        project.status = status
        await self._store.upsert_project(project.to_dto())
        if previous is not status:
            await self._record(
                project,
                EventType.STATUS_CHANGED,
                {"from": previous.value, "to": status.value},
            )

    async def _record_error(self, project: Project, stage: str, exc: Exception) -> None:
        logger.error("Project %s failed during %s: %s", project.id, stage, exc)
        await self._record(
            project,
            EventType.ERROR,
            {"stage": stage, "error": type(exc).__name__, "message": str(exc)},
        )

    async def _record(
        self,
        project: Project,
        event_type: EventType,
        payload: dict[str, str | int | float | bool | None] | None = None,
    ) -> None:
        await self._store.append_event(
            ProjectEvent(project_id=project.id.value, event_type=event_type, payload=payload or {})
        )
