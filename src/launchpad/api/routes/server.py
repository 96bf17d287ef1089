"""Target server routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from launchpad.api.deps import get_project_manager
from launchpad.api.routes.common import http_error, require_project
from launchpad.api.schemas.server import ServerStateResponse, StartServerRequest
from launchpad.core.project import Project
from launchpad.core.project_manager import ProjectManager
from launchpad.errors import LaunchpadError

router = APIRouter(prefix="/api/v1/projects/{project_id}/server", tags=["server"])


def _state(project: Project) -> ServerStateResponse:
    state = project.server_state()
    return ServerStateResponse(
        state=state.state.value,
        running=state.running,
        pid=state.pid,
        returncode=state.returncode,
        port=project.port.number,
        url=project.server_url,
    )


@router.post("/start", response_model=ServerStateResponse)
async def start_server(
    project_id: str,
    request: StartServerRequest | None = None,
    manager: ProjectManager = Depends(get_project_manager),
) -> ServerStateResponse:
    project = await require_project(project_id, manager)
    timeout = request.timeout_seconds if request is not None else None
    try:
        await manager.start(project, timeout_seconds=timeout)
    except LaunchpadError as exc:
        raise http_error(exc) from exc
    return _state(project)


@router.post("/stop", response_model=ServerStateResponse)
async def stop_server(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> ServerStateResponse:
    project = await require_project(project_id, manager)
    await manager.stop(project)
    return _state(project)


@router.get("/status", response_model=ServerStateResponse)
async def server_status(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> ServerStateResponse:
    project = await require_project(project_id, manager)
    return _state(project)
