"""Target server API schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StartServerRequest(BaseModel):
    """Start payload; the configured readiness timeout applies when omitted."""

    timeout_seconds: float | None = Field(default=None, gt=0)


class ServerStateResponse(BaseModel):
    state: str
    running: bool
    pid: int | None = None
    returncode: int | None = None
    port: int
    url: str
