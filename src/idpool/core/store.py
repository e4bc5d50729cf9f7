"""Flat-file persistence for identifier pools.

The pool file holds one decimal identifier per line, UTF-8 encoded, with no
newline after the last entry.  Line order is significant: the first
``id_map_length`` lines become the buckets of the cycle being loaded.
"""

from __future__ import annotations

import fcntl
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from idpool.core.buckets import BucketMap

logger = logging.getLogger(__name__)


class IdPoolError(Exception):
    """Base class for idpool errors."""


class PoolParseError(IdPoolError, ValueError):
    """Raised when a pool file line is not a positive decimal identifier."""

    def __init__(self, path: Path, line_no: int, text: str) -> None:
        super().__init__(f"{path}:{line_no}: invalid identifier {text!r}")
        self.path = path
        self.line_no = line_no
        self.text = text


class PoolExhaustedError(IdPoolError):
    """Raised when the pool holds fewer identifiers than one cycle needs."""

    def __init__(self, available: int, required: int) -> None:
        super().__init__(
            f"pool exhausted: {available} identifiers available, {required} required"
        )
        self.available = available
        self.required = required


class PoolLockedError(IdPoolError):
    """Raised when another owner already holds the pool file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"{path} is owned by another allocator")
        self.path = path


class PoolNotLoadedError(IdPoolError):
    """Raised by operations that need a loaded pool."""


class PoolStore:
    """Reads and atomically rewrites a pool file."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock_fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    # -- Public API ----------------------------------------------------------

    @property
    def locked(self) -> bool:
        return self._lock_fd is not None

    def lock(self) -> None:
        """Take exclusive ownership of the pool file.

        The lock lives on a ``<name>.lock`` file beside the pool and is held
        until :meth:`unlock` or process exit.  Calling it again while held is
        a no-op.

        Raises:
            PoolLockedError: another store, in this or any other process,
                holds the lock.
        """
        if self._lock_fd is not None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self._path.parent / f"{self._path.name}.lock"
        fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            logger.error("Pool %s is already owned by another allocator", self._path)
            raise PoolLockedError(self._path) from None
        self._lock_fd = fd
        logger.debug("Locked %s", lock_path)

    def unlock(self) -> None:
        if self._lock_fd is None:
            return
        fd, self._lock_fd = self._lock_fd, None
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)

    def exists(self) -> bool:
        """True when the pool file exists and is not empty."""
        try:
            return self._path.stat().st_size > 0
        except FileNotFoundError:
            return False

    def save(self, ids: Iterable[int]) -> int:
        """Overwrite the pool file with *ids* and return how many were written."""
        lines = [str(id_) for id_ in ids]
        self._write("\n".join(lines))
        logger.debug("Saved %d ids to %s", len(lines), self._path)
        return len(lines)

    def read(self) -> list[int]:
        """Return every identifier in the file, in file order."""
        raw = self._path.read_text(encoding="utf-8")
        ids: list[int] = []
        for line_no, line in enumerate(raw.splitlines(), start=1):
            text = line.strip()
            if not (text.isascii() and text.isdigit()) or int(text) == 0:
                logger.error("Malformed line %d in %s: %r", line_no, self._path, line)
                raise PoolParseError(self._path, line_no, line)
            ids.append(int(text))
        return ids

    def load(self, start_key: int, id_map_length: int) -> tuple[list[int], BucketMap]:
        """Read the pool and bind its first *id_map_length* ids to keys from *start_key*.

        Returns the full pool together with the bucket map.

        Raises:
            OSError: the file cannot be read.
            PoolParseError: a line is not a positive decimal integer.
            PoolExhaustedError: fewer than *id_map_length* ids are left.
        """
        ids = self.read()
        if len(ids) < id_map_length:
            logger.error(
                "Pool %s holds %d ids but a cycle needs %d",
                self._path,
                len(ids),
                id_map_length,
            )
            raise PoolExhaustedError(len(ids), id_map_length)

        buckets = BucketMap(start_key, ids[:id_map_length])
        return ids, buckets

    # -- Internals -----------------------------------------------------------

    def _write(self, content: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write via tmp + fsync + replace
        tmp_path = self._path.parent / f"{self._path.name}.tmp"
        fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
        try:
            data = memoryview(content.encode("utf-8"))
            while data:
                data = data[os.write(fd, data):]
            os.fsync(fd)
        finally:
            os.close(fd)

        os.replace(tmp_path, self._path)
