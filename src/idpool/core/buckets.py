from __future__ import annotations

from collections.abc import Iterator, Sequence


class BucketMap:
    """Binds the consecutive unit keys of one cycle to pool identifiers.

    Keys are dense, so the identifiers are kept in a tuple addressed by
    ``key - start_key`` rather than a dict.
    """

    __slots__ = ("_start_key", "_ids")

    def __init__(self, start_key: int, ids: Sequence[int]) -> None:
        self._start_key = start_key
        self._ids = tuple(ids)

    @property
    def start_key(self) -> int:
        return self._start_key

    @property
    def end_key(self) -> int:
        """First key past the end of the map."""
        return self._start_key + len(self._ids)

    def get(self, key: int) -> int | None:
        """Return the identifier bound to *key*, or None when out of range."""
        index = key - self._start_key
        if 0 <= index < len(self._ids):
            return self._ids[index]
        return None

    def items(self) -> Iterator[tuple[int, int]]:
        for offset, id_ in enumerate(self._ids):
            yield self._start_key + offset, id_

    def __contains__(self, key: object) -> bool:
        return isinstance(key, int) and self._start_key <= key < self.end_key

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"BucketMap(start_key={self._start_key}, length={len(self._ids)})"
