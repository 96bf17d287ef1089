"""Write a project's environment configuration as a .env file."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path

from launchpad.errors import EnvConfigError

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".env"


def render_env(env_config: Mapping[str, str]) -> str:
    """Render one unquoted KEY=VALUE line per entry, in mapping order."""
    lines: list[str] = []
    for key, value in env_config.items():
        if not key or "=" in key or any(ch in key for ch in "\r\n"):
            msg = f"Invalid environment key: {key!r}"
            raise EnvConfigError(msg)
        if any(ch in value for ch in "\r\n"):
            msg = f"Environment value for {key} contains a newline"
            raise EnvConfigError(msg)
        lines.append(f"{key}={value}")
    return "\n".join(lines)


async def write_env_file(directory: Path, env_config: Mapping[str, str]) -> Path:
    content = render_env(env_config)
    env_path = directory / ENV_FILE_NAME
    logger.info("Writing %d environment variables to %s", len(env_config), env_path)
    await asyncio.to_thread(env_path.write_text, content, encoding="utf-8")
    return env_path
