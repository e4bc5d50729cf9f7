"""Thread-safe, time-bucketed identifier allocator.

The allocator owns three pieces of mutable state: the full pool, the bucket
map of the loaded cycle and the set of identifiers consumed during that
cycle.  Every public operation takes the same lock, so callers on different
threads observe a single total order of lookups, consumption and rollover.

Lifecycle per cycle::

    idle -> load(N) -> {get_id, mark_used, acquire}* -> rollover() -> load(N+1) ...

Rollover and loading the next cycle are separate calls; whatever triggers
them (see :mod:`idpool.core.runtime`) lives outside this class.

An allocator owns its pool file: the first successful setup call locks it
through :meth:`PoolStore.lock`, so a second allocator on the same file (in
any process) fails instead of overwriting the first one's rollovers.  The
lock is released by :meth:`close`.
"""

from __future__ import annotations

import logging
import random
import threading
from datetime import datetime
from pathlib import Path

from idpool.core.buckets import BucketMap
from idpool.core.clock import CycleClock
from idpool.core.generator import generate
from idpool.core.models import SENTINEL_ID, Lookup, LookupStatus, PoolConfig
from idpool.core.store import PoolNotLoadedError, PoolStore
from idpool.metrics import (
    CYCLE_START_KEY,
    IDS_CONSUMED,
    IDS_DISCARDED,
    LOOKUPS_TOTAL,
    POOL_SIZE,
    ROLLOVERS_TOTAL,
)

logger = logging.getLogger(__name__)


class Allocator:
    """Hands out pre-generated identifiers by unit key and tracks consumption."""

    def __init__(
        self,
        config: PoolConfig | None = None,
        store: PoolStore | None = None,
        clock: CycleClock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or PoolConfig()
        self._store = store or PoolStore(Path(self._config.filename))
        self._clock = clock or CycleClock(
            self._config.cycle_duration, self._config.unit_duration
        )
        self._rng = rng
        self._lock = threading.Lock()

        self._ids: list[int] = []
        self._buckets: BucketMap | None = None
        self._used: set[int] = set()
        self._loaded = False

    # -- Properties -----------------------------------------------------------

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def clock(self) -> CycleClock:
        return self._clock

    @property
    def store(self) -> PoolStore:
        return self._store

    @property
    def buckets(self) -> BucketMap | None:
        """Bucket map of the loaded cycle, or None before load / after rollover."""
        return self._buckets

    @property
    def pool_size(self) -> int:
        return len(self._ids)

    @property
    def consumed_count(self) -> int:
        return len(self._used)

    def pool(self) -> list[int]:
        """Return a copy of the full pool in its persisted order."""
        with self._lock:
            return list(self._ids)

    # -- Setup ----------------------------------------------------------------

    def initialize(self) -> BucketMap:
        """Load the pool for the current cycle, generating it first if needed.

        A missing or empty pool file is replaced by a freshly generated pool.
        """
        with self._lock:
            self._claim()
            try:
                if not self._store.exists():
                    ids = generate(
                        self._config.id_count,
                        self._config.min_id,
                        self._config.max_id,
                        rng=self._rng,
                    )
                    self._store.save(ids)
                    logger.info(
                        "Generated new pool of %d ids at %s", len(ids), self._store.path
                    )
                return self._load(self._clock.cycle_start(0))
            except Exception:
                self._release_if_idle()
                raise

    def load(self, start: datetime) -> BucketMap:
        """Rebuild the pool and bucket map for the cycle beginning at *start*.

        The consumption set is left untouched; it is only cleared by
        :meth:`rollover`.  On error the previous state is kept.
        """
        with self._lock:
            self._claim()
            try:
                return self._load(start)
            except Exception:
                self._release_if_idle()
                raise

    def _load(self, start: datetime) -> BucketMap:
        start_key = self._clock.unit_key(start)
        ids, buckets = self._store.load(start_key, self._config.id_map_length)
        self._ids = ids
        self._buckets = buckets
        self._loaded = True

        POOL_SIZE.set(len(ids))
        CYCLE_START_KEY.set(start_key)
        logger.info(
            "Loaded cycle starting %s (keys %d..%d) from a pool of %d ids",
            start.isoformat(),
            buckets.start_key,
            buckets.end_key - 1,
            len(ids),
        )
        return buckets

    def _claim(self) -> None:
        if not self._loaded:
            self._store.lock()

    def _release_if_idle(self) -> None:
        if not self._loaded:
            self._store.unlock()

    def close(self) -> None:
        """Release the pool file and return to the idle state.

        Nothing is persisted; call :meth:`rollover` first to keep consumption.
        """
        with self._lock:
            self._ids = []
            self._buckets = None
            self._used = set()
            self._loaded = False
            self._store.unlock()

    def __enter__(self) -> Allocator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- Allocation -----------------------------------------------------------

    def lookup(self, key: int) -> Lookup:
        """Resolve *key* to an explicit available / missing / consumed result."""
        with self._lock:
            return self._lookup(key)

    def get_id(self, key: int) -> int:
        """Return the unconsumed identifier bound to *key*, or 0 if there is none."""
        result = self.lookup(key)
        return result.id if result.available else SENTINEL_ID

    def mark_used(self, id_: int) -> None:
        """Record *id_* as consumed for this cycle.  ``0`` is ignored."""
        if id_ == SENTINEL_ID:
            return
        with self._lock:
            self._mark_used(id_)

    def acquire(self, key: int) -> int:
        """Look up *key* and consume its identifier in one step.

        Returns the identifier, or 0 when none is available.
        """
        with self._lock:
            result = self._lookup(key)
            if not result.available:
                return SENTINEL_ID
            self._mark_used(result.id)
            return result.id

    def is_used(self, id_: int) -> bool:
        with self._lock:
            return id_ in self._used

    def _lookup(self, key: int) -> Lookup:
        id_ = self._buckets.get(key) if self._buckets is not None else None
        if id_ is None:
            result = Lookup(key=key, status=LookupStatus.missing)
        elif id_ in self._used:
            result = Lookup(key=key, status=LookupStatus.consumed, id=id_)
        else:
            result = Lookup(key=key, status=LookupStatus.available, id=id_)
        LOOKUPS_TOTAL.labels(outcome=result.status.value).inc()
        return result

    def _mark_used(self, id_: int) -> None:
        if id_ not in self._used:
            self._used.add(id_)
            IDS_CONSUMED.inc()

    # -- Rollover -------------------------------------------------------------

    def rollover(self) -> int:
        """Persist the unconsumed part of the pool and reset consumption.

        Consumed identifiers are dropped from the pool for good.  The bucket
        map is released as well, so no lookup succeeds until the next
        :meth:`load`.  Returns the number of identifiers kept.

        Raises:
            PoolNotLoadedError: nothing has been loaded yet, so there is no
                pool to persist.
        """
        with self._lock:
            if not self._loaded:
                raise PoolNotLoadedError("rollover called before the pool was loaded")
            remaining = [id_ for id_ in self._ids if id_ not in self._used]
            self._store.save(remaining)

            discarded = len(self._ids) - len(remaining)
            self._ids = remaining
            self._used = set()
            self._buckets = None

            POOL_SIZE.set(len(remaining))
            IDS_DISCARDED.inc(discarded)
            ROLLOVERS_TOTAL.inc()
            logger.info(
                "Rolled over pool: kept %d ids, discarded %d consumed",
                len(remaining),
                discarded,
            )
            return len(remaining)

    # -- Clock helpers --------------------------------------------------------

    def cycle_start(self, offset: int = 0) -> datetime:
        return self._clock.cycle_start(offset)

    def current_key(self) -> int:
        return self._clock.current_key()
