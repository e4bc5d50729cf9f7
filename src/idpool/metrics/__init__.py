"""Prometheus metrics for idpool."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

# Lookup metrics
LOOKUPS_TOTAL = Counter("idpool_lookups_total", "Bucket lookups", ["outcome"])
IDS_CONSUMED = Counter("idpool_ids_consumed_total", "Identifiers marked as used")

# Pool metrics
POOL_SIZE = Gauge("idpool_pool_size", "Identifiers currently held in the pool")
CYCLE_START_KEY = Gauge("idpool_cycle_start_key", "Unit key of the loaded cycle's first bucket")
ROLLOVERS_TOTAL = Counter("idpool_rollovers_total", "Completed cycle rollovers")
IDS_DISCARDED = Counter("idpool_ids_discarded_total", "Consumed identifiers dropped at rollover")

__all__ = [
    "LOOKUPS_TOTAL",
    "IDS_CONSUMED",
    "POOL_SIZE",
    "CYCLE_START_KEY",
    "ROLLOVERS_TOTAL",
    "IDS_DISCARDED",
]
