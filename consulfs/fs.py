"""Read-only filesystem view over the Consul KV store.

Provides ConsulFS, which maps ``/``-separated keys onto files and implied
directories, in the spirit of object-store filesystems.
"""

from __future__ import annotations

import errno
import functools
import logging
from collections.abc import Callable
from typing import Any

from .base import Entry, FileInfo, dir_info, file_info
from .client import KVClient
from .config import ConsulConfig, QueryOptions, connect_fs
from .consuldir import ConsulDir
from .consulfile import ConsulFile
from .context import CancelToken
from .errors import NotExistError
from .listing import build_listing, list_directory
from .paths import (
    SEPARATOR,
    basename,
    is_dir_path,
    normalize_base,
    resolve,
    split_location,
)

logger = logging.getLogger(__name__)

Handle = ConsulFile | ConsulDir


class ConsulFS:
    """Read-only filesystem backed by Consul KV.

    Keys are addressed relative to a base URL such as
    ``consul+https://consul.example.com/app/``. A path ending in ``/`` (or
    ``.``, the base itself) is a directory; its entries are the keys below
    it, with deeper keys folded into subdirectories. Any other path is a
    file whose content is the key's value. A path without a trailing ``/``
    whose key is missing but has keys below it is also a directory.

    Instances are immutable: the ``with_*`` methods return new filesystems.

    Example:
        >>> fsys = ConsulFS("consul://localhost:8500/app/")
        >>> fsys.read_file("db/host")
        b'db.internal'
        >>> [e.name for e in fsys.read_dir("db/")]
        ['host', 'port', 'replicas']
    """

    def __init__(
        self,
        url: str,
        config: ConsulConfig | None = None,
        cancel: CancelToken | None = None,
        *,
        client: KVClient | None = None,
    ):
        """Initialize a Consul filesystem.

        Args:
            url: Base URL; its path must be empty or end with "/".
            config: Connection settings. Defaults to connect_fs(url).
            cancel: Cancel token for every request made by this filesystem.
            client: Existing KV client to share (used by the with_* methods).

        Raises:
            ValueError: If the URL is empty, has an unsupported scheme, or
                its path does not end with "/".
        """
        self.base = normalize_base(url)
        self.config = config if config is not None else connect_fs(self.base)
        self._cancel = cancel
        self._client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> ConsulFS:
        """Create a filesystem from a URL and connect_fs() settings."""
        return cls(url, connect_fs(url, **kwargs))

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def with_config(self, config: ConsulConfig) -> ConsulFS:
        """Return a filesystem using ``config`` for all requests."""
        return ConsulFS(self.base, config, self._cancel)

    def with_token(self, token: str | None) -> ConsulFS:
        """Return a filesystem that authenticates with ACL ``token``."""
        return ConsulFS(self.base, self.config.with_token(token), self._cancel)

    def with_header(self, headers: Any) -> ConsulFS:
        """Return a filesystem that also sends ``headers`` with every request."""
        return ConsulFS(self.base, self.config.with_header(headers), self._cancel)

    def with_query_options(self, options: QueryOptions) -> ConsulFS:
        """Return a filesystem that sends ``options`` with every request.

        The HTTP client, if already created, is shared with the result.
        """
        return ConsulFS(
            self.base,
            self.config.with_query_options(options),
            self._cancel,
            client=self._shared_client(),
        )

    def with_cancel(self, cancel: CancelToken | None) -> ConsulFS:
        """Return a filesystem whose requests check ``cancel``.

        The HTTP client, if already created, is shared with the result.
        """
        return ConsulFS(
            self.base, self.config, cancel, client=self._shared_client()
        )

    def _shared_client(self) -> KVClient | None:
        if self._client is None:
            return None
        return self._client.share()

    @property
    def client(self) -> KVClient:
        """The KV client, created on first use."""
        if self._client is None:
            self._client = KVClient(self.config)
        return self._client

    def close(self) -> None:
        """Release the HTTP client.

        A client shared with derived filesystems stays open until each of
        them has been closed too.
        """
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> ConsulFS:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Filesystem operations
    # -------------------------------------------------------------------------

    def _locate(self, op: str, path: str) -> tuple[str, list[tuple[str, str]]]:
        return split_location(resolve(self.base, path, op))

    def _lister(
        self, prefix: str, params: list[tuple[str, str]]
    ) -> Callable[[], list[Entry]]:
        return functools.partial(
            list_directory, self.client, prefix, params=params, cancel=self._cancel
        )

    def open(self, path: str) -> Handle:
        """Open a file or directory.

        Files are fetched immediately; a missing key still returns a
        ConsulFile, whose stat() and read() raise NotExistError. Directory
        listings are fetched on the first read_dir().

        Args:
            path: Relative path, e.g. "foo", "sub/" or ".".

        Returns:
            ConsulDir for directories, ConsulFile otherwise.

        Raises:
            InvalidPathError: If the path is malformed.
            StoreError: If the store request fails.
            CanceledError: If the cancel token fires.
        """
        key, params = self._locate("open", path)

        if is_dir_path(path):
            logger.debug("open %r: directory %r", path, key)
            return ConsulDir(path, key, self._lister(key, params))

        pair = self.client.get(key, params=params, cancel=self._cancel, op="open")
        if pair is not None:
            logger.debug("open %r: file %r", path, key)
            return ConsulFile(path, key, pair)

        prefix = key + SEPARATOR
        pairs = self.client.list(prefix, params=params, cancel=self._cancel, op="open")
        if pairs:
            logger.debug("open %r: implied directory %r", path, prefix)
            return ConsulDir(
                path,
                prefix,
                self._lister(prefix, params),
                listing=build_listing(prefix, pairs),
            )

        logger.debug("open %r: no such key %r", path, key)
        return ConsulFile(path, key, None)

    def stat(self, path: str) -> FileInfo:
        """Get metadata for a file or directory.

        Files are looked up directly. A directory exists if any key starts
        with its prefix; the base itself (".") always exists.

        Raises:
            NotExistError: If nothing is stored at or below the path.
            InvalidPathError: If the path is malformed.
            StoreError: If the store request fails.
            CanceledError: If the cancel token fires.
        """
        key, params = self._locate("stat", path)
        name = basename(path.partition("?")[0])

        if path.partition("?")[0] == ".":
            return dir_info(name)

        if is_dir_path(path):
            prefix = key
        else:
            pair = self.client.get(key, params=params, cancel=self._cancel, op="stat")
            if pair is not None:
                return file_info(name, pair.value)
            prefix = key + SEPARATOR

        if self.client.list(prefix, params=params, cancel=self._cancel, op="stat"):
            return dir_info(name)
        raise NotExistError(errno.ENOENT, "stat: no such key", key)

    def read_file(self, path: str) -> bytes:
        """Read a whole file.

        Raises:
            NotExistError: If the key does not exist.
            IsADirectoryError: If the path is a directory.
        """
        handle = self.open(path)
        if isinstance(handle, ConsulDir):
            handle.close()
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        with handle:
            return handle.read()

    def read_dir(self, path: str = ".") -> list[Entry]:
        """List a directory's entries, sorted by key.

        Raises:
            NotExistError: If the path is a missing file-like path.
            NotADirectoryError: If the path is a file.
        """
        handle = self.open(path)
        if isinstance(handle, ConsulFile):
            with handle:
                handle.stat()
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        with handle:
            return handle.read_dir(0)

    def exists(self, path: str) -> bool:
        """Check if a file or directory exists."""
        try:
            self.stat(path)
        except NotExistError:
            return False
        return True

    def isfile(self, path: str) -> bool:
        """Check if path is a file."""
        try:
            return not self.stat(path).is_dir
        except NotExistError:
            return False

    def isdir(self, path: str) -> bool:
        """Check if path is a directory."""
        try:
            return self.stat(path).is_dir
        except NotExistError:
            return False
