"""Project routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from launchpad.api.deps import get_project_manager
from launchpad.api.routes.common import http_error, require_project
from launchpad.api.schemas.projects import (
    CreateProjectRequest,
    EventsResponse,
    ProjectsResponse,
    UpdateStatusRequest,
)
from launchpad.core.project_manager import CreateProjectInput, ProjectManager
from launchpad.errors import LaunchpadError
from launchpad.models.project import ProjectScores

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=ProjectsResponse)
async def list_projects(manager: ProjectManager = Depends(get_project_manager)) -> ProjectsResponse:
    return ProjectsResponse(items=await manager.list())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Any]:
    try:
        project = await manager.create(
            CreateProjectInput(
                name=request.name,
                video_url=request.video_url,
                repo=request.repo,
                description=request.description,
                env_config=request.env_config,
                port=request.port,
                directory=request.directory,
            )
        )
    except (LaunchpadError, ValueError) as exc:
        raise http_error(exc) from exc
    return project.to_dto().as_payload()


@router.get("/{project_id}")
async def get_project(
    project_id: str, manager: ProjectManager = Depends(get_project_manager)
) -> dict[str, Any]:
    project = await require_project(project_id, manager)
    return project.to_dto().as_payload()


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> None:
    await manager.delete(project_id)


@router.post("/{project_id}/setup")
async def setup_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Any]:
    project = await require_project(project_id, manager)
    try:
        await manager.setup(project)
    except LaunchpadError as exc:
        raise http_error(exc) from exc
    return project.to_dto().as_payload()


@router.post("/{project_id}/stats")
async def compute_stats(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Any]:
    project = await require_project(project_id, manager)
    try:
        stats = await manager.compute_stats(project)
    except LaunchpadError as exc:
        raise http_error(exc) from exc
    return stats.model_dump(mode="json", by_alias=True)


@router.put("/{project_id}/scores")
async def record_scores(
    project_id: str,
    scores: ProjectScores,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Any]:
    project = await require_project(project_id, manager)
    await manager.record_scores(project, scores)
    return project.to_dto().as_payload()


@router.put("/{project_id}/status")
async def update_status(
    project_id: str,
    request: UpdateStatusRequest,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Any]:
    project = await require_project(project_id, manager)
    await manager.update_status(project, request.status)
    return project.to_dto().as_payload()


@router.get("/{project_id}/events", response_model=EventsResponse)
async def list_events(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> EventsResponse:
    await require_project(project_id, manager)
    return EventsResponse(items=await manager.events(project_id))
