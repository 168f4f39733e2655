"""Directory handle with paginated reads over a memoized listing."""

from __future__ import annotations

from collections.abc import Callable

from .base import Entry, FileInfo, dir_info
from .errors import AlreadyClosedError, EndOfDirectory
from .paths import basename


class ConsulDir:
    """Directory handle returned by ConsulFS.open().

    The listing is loaded on the first read_dir() call (one store query)
    and then kept for the life of the handle; later store changes are not
    seen. Successive read_dir() calls walk it with a cursor.

    Attributes:
        path: The filesystem path the handle was opened with.
        prefix: The store key prefix, "" or ending in "/".
    """

    def __init__(
        self,
        path: str,
        prefix: str,
        load: Callable[[], list[Entry]],
        listing: list[Entry] | None = None,
    ):
        """Initialize a directory handle.

        Args:
            path: Original path (for error messages).
            prefix: Resolved store prefix.
            load: Fetches the listing; called at most once.
            listing: Listing already fetched by the caller, if any.
        """
        self.path = path
        self.prefix = prefix
        self._load = load
        self._listing = listing
        self._cursor = 0
        self._closed = False

    @property
    def name(self) -> str:
        return basename(self.path.partition("?")[0])

    def _entries(self) -> list[Entry]:
        if self._listing is None:
            self._listing = self._load()
        return self._listing

    def read_dir(self, n: int = 0) -> list[Entry]:
        """Read the next directory entries.

        Args:
            n: With n > 0, return at most n entries; a short final page is
                returned normally and the next call raises EndOfDirectory.
                End-of-directory is never reported together with entries;
                check ``exhausted`` to stop after a short page without
                another call. With n <= 0,
                return all remaining entries, which is an empty list (not an
                error) once the listing is used up.

        Returns:
            Entries in listing order, files and directories intermixed.

        Raises:
            EndOfDirectory: If n > 0 and no entries are left.
            AlreadyClosedError: If the handle is closed.
            StoreError: If loading the listing fails.
        """
        if self._closed:
            raise AlreadyClosedError("readdir", self.path)

        entries = self._entries()
        remaining = entries[self._cursor :]

        if n <= 0:
            self._cursor = len(entries)
            return remaining

        if not remaining:
            raise EndOfDirectory(self.path)

        page = remaining[:n]
        self._cursor += len(page)
        return page

    @property
    def exhausted(self) -> bool:
        """True once the listing is loaded and every entry has been read."""
        return self._listing is not None and self._cursor >= len(self._listing)

    def stat(self) -> FileInfo:
        if self._closed:
            raise AlreadyClosedError("stat", self.path)
        return dir_info(self.name)

    def close(self) -> None:
        """Close the handle.

        Raises:
            AlreadyClosedError: If the handle was already closed.
        """
        if self._closed:
            raise AlreadyClosedError("close", self.path)
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> ConsulDir:
        return self

    def __exit__(self, *args: object) -> None:
        if not self._closed:
            self.close()
