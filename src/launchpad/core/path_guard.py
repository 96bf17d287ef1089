"""Containment checks for user-influenced paths."""

from __future__ import annotations

from pathlib import Path

from launchpad.errors import PathEscapeError


class PathGuard:
    """Resolve relative paths while keeping them inside a root directory."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, candidate: str | Path) -> Path:
        # resolve() follows symlinks, so a link pointing outside is rejected too
        resolved = (self._root / candidate).resolve()
        if resolved != self._root and self._root not in resolved.parents:
            msg = f"Path escapes root {self._root}: {candidate}"
            raise PathEscapeError(msg)
        return resolved

    def contains(self, candidate: str | Path) -> bool:
        try:
            self.resolve(candidate)
        except PathEscapeError:
            return False
        return True
