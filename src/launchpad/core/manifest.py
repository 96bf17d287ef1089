"""Typed view over a fetched project's package.json."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"


class PackageManifest(BaseModel):
    """The subset of package.json the orchestrator relies on."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    scripts: dict[str, str] = Field(default_factory=dict)

    def all_dependencies(self) -> dict[str, str]:
        return {**self.dependencies, **self.dev_dependencies}

    def has_dependency(self, name: str) -> bool:
        return bool(self.all_dependencies().get(name))

    def run_script_args(self) -> list[str]:
        """Arguments for the package manager: dev, then start, else dev."""
        if "dev" in self.scripts:
            return ["run", "dev"]
        if "start" in self.scripts:
            return ["start"]
        return ["run", "dev"]


def read_manifest(directory: Path) -> PackageManifest | None:
    """Load the manifest, treating absence or bad shape as no data."""
    path = directory / MANIFEST_NAME
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.info("No %s in %s", MANIFEST_NAME, directory)
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read %s: %s", path, exc)
        return None

    if not isinstance(raw, dict):
        logger.warning("Ignoring %s: top level is %s, not an object", path, type(raw).__name__)
        return None
    try:
        return PackageManifest.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring %s: unexpected shape (%d errors)", path, exc.error_count())
        return None
