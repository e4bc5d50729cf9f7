"""Tests for PoolConfig validation and lookup results."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from idpool.core.models import Lookup, LookupStatus, PoolConfig


class TestPoolConfigDefaults:
    def test_defaults(self):
        config = PoolConfig()
        assert config.cycle_duration == timedelta(hours=1)
        assert config.unit_duration == timedelta(seconds=1)
        assert config.filename == "id_list.txt"
        assert config.id_map_length == 3600
        assert config.id_count <= config.max_id - config.min_id

    def test_seconds_are_accepted_for_durations(self):
        config = PoolConfig(cycle_duration=60, unit_duration=2, id_count=30, min_id=1, max_id=100)
        assert config.id_map_length == 30

    def test_frozen(self):
        config = PoolConfig()
        with pytest.raises(ValidationError):
            config.id_count = 5


class TestPoolConfigValidation:
    def test_cycle_not_multiple_of_unit(self):
        with pytest.raises(ValidationError, match="exact multiple"):
            PoolConfig(cycle_duration=timedelta(seconds=10), unit_duration=timedelta(seconds=3))

    def test_zero_unit(self):
        with pytest.raises(ValidationError, match="unit_duration"):
            PoolConfig(unit_duration=timedelta(0))

    def test_zero_cycle(self):
        with pytest.raises(ValidationError, match="cycle_duration"):
            PoolConfig(cycle_duration=timedelta(0))

    def test_min_id_must_be_positive(self):
        with pytest.raises(ValidationError, match="min_id"):
            PoolConfig(min_id=0, max_id=10_000, id_count=3600)

    def test_count_larger_than_range(self):
        with pytest.raises(ValidationError, match="exceeds"):
            PoolConfig(min_id=1, max_id=100, id_count=3600)

    def test_count_smaller_than_one_cycle(self):
        with pytest.raises(ValidationError, match="buckets per cycle"):
            PoolConfig(id_count=10)

    def test_swapped_bounds_are_accepted(self):
        config = PoolConfig(min_id=10_000, max_id=1, id_count=3600)
        assert config.id_map_length == 3600


class TestLookup:
    def test_available(self):
        assert Lookup(key=1, status=LookupStatus.available, id=5).available

    def test_missing_defaults_to_sentinel(self):
        result = Lookup(key=1, status=LookupStatus.missing)
        assert not result.available
        assert result.id == 0
