"""Shared API dependency providers."""

from __future__ import annotations

from functools import lru_cache

from launchpad.config import get_settings
from launchpad.core.project import ProjectFactory
from launchpad.core.project_manager import ProjectManager
from launchpad.db.store import SQLiteStore


def get_store() -> SQLiteStore:
    settings = get_settings()
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    return SQLiteStore(db_path=settings.db_path)


@lru_cache
def get_project_factory() -> ProjectFactory:
    return ProjectFactory(get_settings())


@lru_cache
def get_project_manager() -> ProjectManager:
    return ProjectManager(factory=get_project_factory(), store=get_store())
