"""Injectable time source."""

from __future__ import annotations

from datetime import datetime, timezone


class Clock:
    """Source of the current instant. Always returns timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock pinned to a given instant; advance it explicitly."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware instant")
        self._instant = instant.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware instant")
        self._instant = instant.astimezone(timezone.utc)

    def advance(self, delta) -> datetime:
        self._instant = self._instant + delta
        return self._instant


system_clock = Clock()


def get_clock() -> Clock:
    """Dependency for FastAPI to get the clock."""
    return system_clock
