"""Read-only file handle over a fetched KV value."""

from __future__ import annotations

import errno
import io

from .base import FileInfo, file_info
from .client import KVPair
from .errors import AlreadyClosedError, NotExistError
from .paths import basename


class ConsulFile:
    """File-like object holding one KV value.

    The value is fetched once by ConsulFS.open() and buffered here. A key
    that was missing at open time does not fail open(); stat() and read()
    raise NotExistError instead.

    Unlike Python's own file objects, close() is not idempotent: closing
    twice raises AlreadyClosedError.

    Attributes:
        path: The filesystem path the handle was opened with.
        key: The store key.
    """

    def __init__(self, path: str, key: str, pair: KVPair | None):
        """Initialize a file handle.

        Args:
            path: Original path (for error messages).
            key: Resolved store key.
            pair: The fetched pair, or None if the key does not exist.
        """
        self.path = path
        self.key = key
        self._content = pair.value if pair is not None else None
        self._buffer = io.BytesIO(self._content) if self._content is not None else None
        self._closed = False

    @property
    def name(self) -> str:
        return basename(self.key)

    def _check(self, op: str) -> io.BytesIO:
        if self._closed:
            raise AlreadyClosedError(op, self.path)
        if self._buffer is None:
            raise NotExistError(errno.ENOENT, f"{op}: no such key", self.key)
        return self._buffer

    def stat(self) -> FileInfo:
        """Return metadata for the file.

        Raises:
            NotExistError: If the key did not exist when the file was opened.
            AlreadyClosedError: If the file is closed.
        """
        self._check("stat")
        return file_info(self.name, self._content or b"")

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the current position (all if -1)."""
        return self._check("read").read(size)

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Read into a pre-allocated buffer; returns the number of bytes read."""
        return self._check("read").readinto(buffer)

    def close(self) -> None:
        """Close the file.

        Raises:
            AlreadyClosedError: If the file was already closed.
        """
        if self._closed:
            raise AlreadyClosedError("close", self.path)
        self._closed = True
        self._buffer = None

    @property
    def closed(self) -> bool:
        """Return True if the file is closed."""
        return self._closed

    def __enter__(self) -> ConsulFile:
        return self

    def __exit__(self, *args: object) -> None:
        if not self._closed:
            self.close()
