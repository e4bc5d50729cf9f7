"""Generation of shuffled identifier pools."""

from __future__ import annotations

import logging
import random

logger = logging.getLogger(__name__)


def generate(
    count: int,
    min_id: int,
    max_id: int,
    rng: random.Random | None = None,
) -> list[int]:
    """Return *count* distinct identifiers from ``[min_id, max_id)`` in random order.

    The pool is the sequential run ``min_id .. min_id + count - 1`` permuted
    with a Fisher-Yates shuffle, so every ordering is equally likely.  Bounds
    given in the wrong order are swapped.

    Raises:
        ValueError: if *count* is negative or larger than the range.
    """
    if min_id > max_id:
        min_id, max_id = max_id, min_id
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if count > max_id - min_id:
        raise ValueError(f"cannot draw {count} unique ids from [{min_id}, {max_id})")

    rng = rng or random.Random()
    ids = list(range(min_id, min_id + count))

    for i in range(count - 1, 0, -1):
        j = rng.randint(0, i)
        ids[i], ids[j] = ids[j], ids[i]

    logger.debug("Generated %d ids in [%d, %d)", count, min_id, max_id)
    return ids
