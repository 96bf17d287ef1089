"""Immutable value objects for orchestrated projects."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from uuid import uuid4

PORT_MIN = 3000
PORT_MAX = 9000


def _random_port() -> int:
    return random.randint(PORT_MIN, PORT_MAX)


@dataclass(frozen=True, slots=True)
class Identifier:
    """Non-empty opaque identifier; a UUID is generated when omitted."""

    value: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            msg = "Identifier must be a non-empty string"
            raise ValueError(msg)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Port:
    """TCP port in the orchestrator range; random when omitted."""

    number: int = field(default_factory=_random_port)

    def __post_init__(self) -> None:
        if isinstance(self.number, bool) or not isinstance(self.number, int):
            msg = f"Port must be an integer, got {self.number!r}"
            raise ValueError(msg)
        if not PORT_MIN <= self.number <= PORT_MAX:
            msg = f"Port {self.number} outside range [{PORT_MIN}, {PORT_MAX}]"
            raise ValueError(msg)

    @classmethod
    def parse(cls, value: int | str | None) -> Port:
        """Build a port from an int, a numeric string or nothing."""
        if value is None:
            return cls()
        if isinstance(value, str):
            try:
                number = int(value.strip())
            except ValueError as exc:
                msg = f"Port must be numeric, got {value!r}"
                raise ValueError(msg) from exc
            return cls(number)
        return cls(value)

    def __str__(self) -> str:
        return str(self.number)
