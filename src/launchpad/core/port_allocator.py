"""Shared pool of ports for concurrently orchestrated projects."""

from __future__ import annotations

import random
import threading

from launchpad.errors import PortUnavailableError
from launchpad.models.values import PORT_MAX, PORT_MIN, Port

_RANDOM_PROBES = 64


class PortAllocator:
    """Hand out ports from a range, at most one per owner."""

    def __init__(
        self,
        low: int = PORT_MIN,
        high: int = PORT_MAX,
        *,
        rng: random.Random | None = None,
    ) -> None:
        if not PORT_MIN <= low <= high <= PORT_MAX:
            msg = f"Port range [{low}, {high}] outside [{PORT_MIN}, {PORT_MAX}]"
            raise ValueError(msg)
        self._low = low
        self._high = high
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._by_port: dict[int, str] = {}
        self._by_owner: dict[str, int] = {}

    def acquire(self, owner: str, preferred: int | None = None) -> Port:
        """Reserve ``preferred`` (or a random free port) for ``owner``.

        Re-acquiring the port an owner already holds is a no-op.
        """
        with self._lock:
            held = self._by_owner.get(owner)
            if preferred is None:
                if held is not None:
                    return Port(held)
                number = self._pick_free()
            else:
                holder = self._by_port.get(preferred)
                if holder is not None and holder != owner:
                    msg = f"Port {preferred} is already in use by project {holder}"
                    raise PortUnavailableError(msg)
                number = Port(preferred).number
            if held is not None and held != number:
                del self._by_port[held]
            self._by_port[number] = owner
            self._by_owner[owner] = number
            return Port(number)

    def suggest(self) -> Port:
        """Pick a port nobody holds right now, without reserving it."""
        with self._lock:
            return Port(self._pick_free())

    def release(self, owner: str) -> int | None:
        with self._lock:
            number = self._by_owner.pop(owner, None)
            if number is not None:
                self._by_port.pop(number, None)
            return number

    def holder(self, port: int) -> str | None:
        with self._lock:
            return self._by_port.get(port)

    def in_use(self) -> set[int]:
        with self._lock:
            return set(self._by_port)

    def _pick_free(self) -> int:
        for _ in range(_RANDOM_PROBES):
            candidate = self._rng.randint(self._low, self._high)
            if candidate not in self._by_port:
                return candidate
        free = [port for port in range(self._low, self._high + 1) if port not in self._by_port]
        if not free:
            msg = f"No free ports left in [{self._low}, {self._high}]"
            raise PortUnavailableError(msg)
        return self._rng.choice(free)


_ALLOCATOR: PortAllocator | None = None
_ALLOCATOR_LOCK = threading.Lock()


def get_port_allocator(low: int = PORT_MIN, high: int = PORT_MAX) -> PortAllocator:
    """Process-wide allocator, created on first use."""
    global _ALLOCATOR
    with _ALLOCATOR_LOCK:
        if _ALLOCATOR is None:
            _ALLOCATOR = PortAllocator(low, high)
        return _ALLOCATOR
