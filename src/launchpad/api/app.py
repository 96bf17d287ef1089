"""FastAPI app entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from launchpad.api.deps import get_project_manager
from launchpad.api.routes.projects import router as projects_router
from launchpad.api.routes.server import router as server_router
from launchpad.config import get_settings
from launchpad.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    manager = app.dependency_overrides.get(get_project_manager, get_project_manager)()
    await manager.shutdown()


def create_app() -> FastAPI:
    app = FastAPI(title="Launchpad API", version="0.1.0", lifespan=lifespan)
    app.include_router(projects_router)
    app.include_router(server_router)

    @app.get("/api/v1/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run("launchpad.api.app:app", host="127.0.0.1", port=8000, reload=False)
