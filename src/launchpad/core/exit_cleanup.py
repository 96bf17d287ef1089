"""Process-wide cleanup of live child processes on host exit."""

from __future__ import annotations

import atexit
import logging
import signal
import sys
import threading
from collections.abc import Callable
from types import FrameType
from typing import TypeAlias

logger = logging.getLogger(__name__)

CleanupCallback: TypeAlias = Callable[[], object]
SignalHandler: TypeAlias = Callable[[int, FrameType | None], object]

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
SIGNAL_EXIT_CODE = 1


class ExitCleanupRegistry:
    """Registry of live children, backed by one set of exit hooks.

    Hooks (atexit plus SIGINT/SIGTERM handlers) are installed lazily on the
    first registration and never duplicated, however many projects register.
    A handler that was already installed for a signal (a web server's
    graceful shutdown, say) is called after cleanup instead of exiting.
    """

    def __init__(self, *, install_hooks: bool = True) -> None:
        self._callbacks: dict[str, CleanupCallback] = {}
        # signal handlers run on the main thread and may interrupt a holder
        self._lock = threading.RLock()
        self._install_hooks = install_hooks
        self._installed = False
        self._previous_handlers: dict[int, SignalHandler] = {}

    @property
    def installed(self) -> bool:
        return self._installed

    def register(self, key: str, callback: CleanupCallback) -> None:
        with self._lock:
            self._callbacks[key] = callback
            if not self._installed:
                self._install()
                self._installed = True

    def unregister(self, key: str) -> None:
        with self._lock:
            self._callbacks.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._callbacks)

    def run_cleanup(self) -> None:
        with self._lock:
            callbacks = list(self._callbacks.items())
        for key, callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cleanup for %s failed", key)

    def _install(self) -> None:
        if not self._install_hooks:
            return
        atexit.register(self.run_cleanup)
        for signum in HANDLED_SIGNALS:
            try:
                previous = signal.signal(signum, self._handle_signal)
            except ValueError:
                # only the main thread may install handlers
                logger.warning("Cannot install %s handler outside the main thread", signum.name)
                continue
            if callable(previous) and previous is not signal.default_int_handler:
                self._previous_handlers[signum] = previous

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received %s, terminating live children", signal.Signals(signum).name)
        self.run_cleanup()
        previous = self._previous_handlers.get(signum)
        if previous is not None:
            previous(signum, frame)
            return
        sys.exit(SIGNAL_EXIT_CODE)


_REGISTRY = ExitCleanupRegistry()


def get_exit_cleanup_registry() -> ExitCleanupRegistry:
    return _REGISTRY
