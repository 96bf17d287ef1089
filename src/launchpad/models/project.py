"""Project domain models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from launchpad.errors import InvalidStatus


class ProjectStatus(str, Enum):
    """Lifecycle status for an orchestrated project."""

    INITIALIZED = "initialized"
    SETTING_UP = "setting-up"
    READY = "ready"
    EVALUATING = "evaluating"
    EVALUATED = "evaluated"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, value: ProjectStatus | str) -> ProjectStatus:
        """Return the matching member or raise ``InvalidStatus``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidStatus(str(value)) from exc


class ElementCount(BaseModel):
    count: int = 0


class ArchitectureStats(BaseModel):
    """File-level counts of architecture elements."""

    agents: ElementCount = Field(default_factory=ElementCount)
    tools: ElementCount = Field(default_factory=ElementCount)
    workflows: ElementCount = Field(default_factory=ElementCount)


class ProjectStats(BaseModel):
    """Result of a static analysis pass over a fetched tree."""

    model_config = ConfigDict(populate_by_name=True)

    architecture: ArchitectureStats = Field(default_factory=ArchitectureStats)
    detected_technologies: dict[str, bool] = Field(
        default_factory=dict, alias="detectedTechnologies"
    )


class ScoredAspect(BaseModel):
    score: float
    explanation: str


class ScoredTest(BaseModel):
    id: str
    passed: bool
    explanation: str


class ProjectScores(BaseModel):
    """Evaluation results computed outside the orchestrator."""

    model_config = ConfigDict(populate_by_name=True)

    description_quality: ScoredAspect = Field(alias="descriptionQuality")
    tests: list[ScoredTest] = Field(default_factory=list)
    appeal: ScoredAspect
    creativity: ScoredAspect
    architecture: ArchitectureStats = Field(default_factory=ArchitectureStats)
    tags: list[str] = Field(default_factory=list)


class ProjectDTO(BaseModel):
    """Flat snapshot of a project for external consumers."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    id: str
    video_url: str = Field(alias="videoURL")
    env_config: dict[str, str] = Field(alias="envConfig")
    video_id: str = Field(alias="videoId")
    description: str
    port: int
    repo_url: str = Field(alias="repoURL")
    status: ProjectStatus
    directory: str
    stats: ProjectStats | None = None
    scores: ProjectScores | None = None
    created_at: datetime = Field(alias="createdAt")

    def as_payload(self) -> dict[str, Any]:
        """Return a JSON-ready mapping keyed by the wire field names."""
        return self.model_dump(mode="json", by_alias=True)
