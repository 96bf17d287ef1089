"""Common route helpers."""

from __future__ import annotations

from fastapi import HTTPException, status

from launchpad.core.project import Project
from launchpad.core.project_manager import ProjectManager
from launchpad.errors import (
    LaunchpadError,
    PortUnavailableError,
    ProcessExitedError,
    ReadinessTimeout,
    ServerRunningError,
    SetupError,
    StatsError,
)


async def require_project(project_id: str, manager: ProjectManager) -> Project:
    """Load project or return 404."""
    project = await manager.get(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def http_error(exc: LaunchpadError | ValueError) -> HTTPException:
    """Map an orchestrator failure to an HTTP error."""
    if isinstance(exc, ReadinessTimeout):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    elif isinstance(exc, ServerRunningError | PortUnavailableError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, SetupError | ProcessExitedError):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, StatsError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValueError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))
