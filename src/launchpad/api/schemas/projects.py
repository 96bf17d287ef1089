"""Project API schemas."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from launchpad.models.events import ProjectEvent
from launchpad.models.project import ProjectDTO, ProjectStatus


class CreateProjectRequest(BaseModel):
    """Payload for registering a project."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    video_url: str = Field(alias="videoURL")
    repo: str = Field(min_length=1, description="Repository URL or owner/repo shorthand")
    description: str = ""
    env_config: dict[str, str] = Field(default_factory=dict, alias="envConfig")
    port: int | None = None
    directory: Path | None = None


class UpdateStatusRequest(BaseModel):
    status: ProjectStatus


class ProjectsResponse(BaseModel):
    """Collection response for projects."""

    items: list[ProjectDTO]


class EventsResponse(BaseModel):
    items: list[ProjectEvent]
