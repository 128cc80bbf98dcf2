"""Injectable clock.

Derived statuses (warranty, renewal) depend on "now". Routes resolve the
clock through ``get_clock`` so tests can pin time with ``FixedClock``.
"""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant; ``set`` moves it."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = at if at.tzinfo else at.replace(tzinfo=timezone.utc)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """Dependency returning the process clock."""
    return _system_clock

