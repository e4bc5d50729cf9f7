"""Cycle and unit arithmetic.

Time is divided into fixed-length cycles, each made of ``cycle_duration /
unit_duration`` units.  Both are aligned to the Unix epoch, so a unit key is
simply the number of whole units elapsed since 1970-01-01T00:00:00Z.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CycleClock:
    """Computes cycle boundaries and unit keys for a given layout."""

    def __init__(
        self,
        cycle_duration: timedelta,
        unit_duration: timedelta,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cycle_duration = cycle_duration
        self._unit_duration = unit_duration
        self._now = now

    @property
    def cycle_duration(self) -> timedelta:
        return self._cycle_duration

    @property
    def unit_duration(self) -> timedelta:
        return self._unit_duration

    def now(self) -> datetime:
        return _as_utc(self._now())

    def cycle_start(self, offset: int = 0) -> datetime:
        """Return the start of the cycle *offset* cycles away from the current one.

        ``offset=0`` is the current cycle, ``1`` the next, ``-1`` the previous.
        """
        return self._cycle_start_at(self.now(), offset)

    def unit_key(self, instant: datetime) -> int:
        """Return the index of the unit containing *instant*.

        Naive datetimes are interpreted as UTC.
        """
        return (_as_utc(instant) - EPOCH) // self._unit_duration

    def current_key(self) -> int:
        return self.unit_key(self.now())

    def _cycle_start_at(self, instant: datetime, offset: int) -> datetime:
        elapsed = instant - EPOCH
        current = EPOCH + (elapsed // self._cycle_duration) * self._cycle_duration
        return current + offset * self._cycle_duration


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)
