"""Error taxonomy for launchpad."""

from __future__ import annotations


class LaunchpadError(Exception):
    """Base class for orchestrator failures."""


class InvalidStatus(LaunchpadError, ValueError):
    """Project status outside the allowed lifecycle values."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid project status: {value}")


class VideoIdError(LaunchpadError, ValueError):
    """Video URL carries no recognizable media identifier."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Unable to extract video ID from URL: {url}")


class PathEscapeError(LaunchpadError, ValueError):
    """Resolved path falls outside its configured root."""


class EnvConfigError(LaunchpadError, ValueError):
    """Environment entry cannot be written as a KEY=VALUE line."""


class SetupError(LaunchpadError, RuntimeError):
    """Project materialization failed."""


class CloneError(SetupError):
    """Repository fetch failed."""


class InstallError(SetupError):
    """Dependency installation failed."""


class StageTimeout(SetupError):
    """Setup stage exceeded its deadline."""

    def __init__(self, stage: str, timeout_seconds: float) -> None:
        self.stage = stage
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{stage} did not finish within {timeout_seconds:g}s")


class ServerRunningError(LaunchpadError, RuntimeError):
    """Operation requires the target server to be stopped."""


class PortUnavailableError(LaunchpadError, RuntimeError):
    """No port could be reserved."""


class ReadinessTimeout(LaunchpadError, TimeoutError):
    """Target server did not answer before the deadline."""

    def __init__(self, url: str, elapsed_seconds: float, attempts: int = 0) -> None:
        self.url = url
        self.elapsed_seconds = elapsed_seconds
        self.attempts = attempts
        super().__init__(
            f"Target server did not become ready on {url} within {elapsed_seconds:.1f}s"
        )


class ProcessExitedError(LaunchpadError, RuntimeError):
    """Target process exited before becoming ready."""

    def __init__(self, returncode: int | None) -> None:
        self.returncode = returncode
        super().__init__(f"Target server exited before becoming ready (exit code: {returncode})")


class StatsError(LaunchpadError, RuntimeError):
    """Source tree could not be enumerated."""
