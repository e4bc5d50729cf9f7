"""Core domain models for idpool.

Configuration objects are Pydantic BaseModel classes; lightweight results
returned on the allocation hot path are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator

# Returned by Allocator.get_id() when no identifier is available.
SENTINEL_ID = 0

DEFAULT_CYCLE_DURATION = timedelta(hours=1)
DEFAULT_UNIT_DURATION = timedelta(seconds=1)
DEFAULT_FILENAME = "id_list.txt"
DEFAULT_ID_COUNT = 900_000
DEFAULT_MIN_ID = 100_000
DEFAULT_MAX_ID = 1_000_000


# ---------------------------------------------------------------------------
# Pool configuration
# ---------------------------------------------------------------------------


class PoolConfig(BaseModel):
    """Configuration for one identifier pool and its cycle layout.

    ``cycle_duration`` must be an exact, non-zero multiple of
    ``unit_duration``; the quotient is the number of buckets per cycle
    (:attr:`id_map_length`).
    """

    model_config = ConfigDict(frozen=True)

    cycle_duration: timedelta = DEFAULT_CYCLE_DURATION
    unit_duration: timedelta = DEFAULT_UNIT_DURATION
    filename: str = DEFAULT_FILENAME
    id_count: int = DEFAULT_ID_COUNT
    min_id: int = DEFAULT_MIN_ID
    max_id: int = DEFAULT_MAX_ID

    @model_validator(mode="after")
    def _check_layout(self) -> PoolConfig:
        if self.unit_duration <= timedelta(0):
            raise ValueError("unit_duration must be positive")
        if self.cycle_duration <= timedelta(0):
            raise ValueError("cycle_duration must be positive")
        if self.cycle_duration % self.unit_duration:
            raise ValueError(
                f"cycle_duration ({self.cycle_duration}) is not an exact multiple "
                f"of unit_duration ({self.unit_duration})"
            )

        low, high = sorted((self.min_id, self.max_id))
        # 0 is the "no identifier" sentinel and must stay outside the range
        if low <= SENTINEL_ID:
            raise ValueError(f"min_id must be greater than {SENTINEL_ID}, got {low}")
        if self.id_count > high - low:
            raise ValueError(
                f"id_count ({self.id_count}) exceeds the size of the id range "
                f"[{low}, {high})"
            )
        if self.id_count < self.id_map_length:
            raise ValueError(
                f"id_count ({self.id_count}) is smaller than the number of "
                f"buckets per cycle ({self.id_map_length})"
            )
        return self

    @property
    def id_map_length(self) -> int:
        """Number of unit buckets in one cycle."""
        return self.cycle_duration // self.unit_duration


# ---------------------------------------------------------------------------
# Lookup results
# ---------------------------------------------------------------------------


class LookupStatus(StrEnum):
    available = "available"
    missing = "missing"
    consumed = "consumed"


@dataclass(frozen=True)
class Lookup:
    """Outcome of resolving a unit key against the active bucket map."""

    key: int
    status: LookupStatus
    id: int = SENTINEL_ID

    @property
    def available(self) -> bool:
        return self.status is LookupStatus.available
