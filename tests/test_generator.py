"""Tests for shuffled pool generation."""

import random

import pytest

from idpool.core.generator import generate


class TestGenerate:
    def test_count_distinct_and_in_range(self):
        ids = generate(10_000, 100_000, 1_000_000)
        assert len(ids) == 10_000
        assert len(set(ids)) == 10_000
        assert all(100_000 <= id_ < 1_000_000 for id_ in ids)

    def test_is_permutation_of_leading_run(self):
        ids = generate(50, 10, 1_000)
        assert sorted(ids) == list(range(10, 60))

    def test_full_range(self):
        ids = generate(100, 1, 101)
        assert sorted(ids) == list(range(1, 101))

    def test_swapped_bounds(self):
        ids = generate(20, 500, 100)
        assert sorted(ids) == list(range(100, 120))

    def test_seeded_rng_is_reproducible(self):
        first = generate(1_000, 1, 10_000, rng=random.Random(42))
        second = generate(1_000, 1, 10_000, rng=random.Random(42))
        assert first == second

    def test_shuffles(self):
        ids = generate(1_000, 1, 10_000, rng=random.Random(7))
        assert ids != sorted(ids)

    def test_empty_and_single(self):
        assert generate(0, 1, 10) == []
        assert generate(1, 5, 10) == [5]

    def test_count_larger_than_range_rejected(self):
        with pytest.raises(ValueError, match="cannot draw"):
            generate(11, 1, 11)

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            generate(-1, 1, 10)

    def test_every_position_reachable(self):
        # Each value should land in the first slot at least once over many shuffles.
        rng = random.Random(1234)
        firsts = {generate(4, 1, 5, rng=rng)[0] for _ in range(200)}
        assert firsts == {1, 2, 3, 4}
