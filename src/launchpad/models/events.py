"""Lifecycle events recorded for orchestrated projects."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Event categories emitted by the project manager."""

    PROJECT_CREATED = "project.created"
    PROJECT_DELETED = "project.deleted"
    SETUP_STARTED = "setup.started"
    SETUP_COMPLETED = "setup.completed"
    SERVER_STARTED = "server.started"
    SERVER_STOPPED = "server.stopped"
    STATS_COMPUTED = "stats.computed"
    STATUS_CHANGED = "status.changed"
    ERROR = "error"


class ProjectEvent(BaseModel):
    """Append-only lifecycle event."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    event_type: EventType
    payload: dict[str, str | int | float | bool | None] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
