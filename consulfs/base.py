"""Filesystem interface, entry types and metadata.

Defines the entries a directory listing is made of (FileEntry,
DirectoryEntry), the FileInfo metadata synthesized for them, and the
interface ConsulFS implements.
"""

from __future__ import annotations

import stat as stat_mod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from .paths import basename

FILE_MODE = stat_mod.S_IFREG | 0o644
DIR_MODE = stat_mod.S_IFDIR | 0o755


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a single file or directory.

    Consul stores no timestamps or content types, so ``mod_time`` is always
    None and ``content_type`` always empty.

    Attributes:
        name: File or directory name (last path segment).
        size: Value length in bytes (0 for directories).
        mode: File mode bits, including the file type.
        mod_time: Last modification time, None when unknown.
        is_dir: True if this is a directory, False for files.
        content_type: MIME type, empty when unknown.
    """

    name: str
    size: int
    mode: int
    mod_time: datetime | None = None
    is_dir: bool = False
    content_type: str = ""

    # os.stat_result-compatible properties

    @property
    def st_size(self) -> int:
        return self.size

    @property
    def st_mode(self) -> int:
        return self.mode

    @property
    def st_ino(self) -> int:
        return 0

    @property
    def st_dev(self) -> int:
        return 0

    @property
    def st_nlink(self) -> int:
        return 2 if self.is_dir else 1

    @property
    def st_mtime(self) -> float:
        return self.mod_time.timestamp() if self.mod_time is not None else 0.0

    @property
    def st_atime(self) -> float:
        return self.st_mtime

    @property
    def st_ctime(self) -> float:
        return self.st_mtime


def file_info(name: str, content: bytes) -> FileInfo:
    """Metadata for a regular file holding ``content``."""
    return FileInfo(name=name, size=len(content), mode=FILE_MODE)


def dir_info(name: str) -> FileInfo:
    """Metadata for a directory, real or implied by a key prefix."""
    return FileInfo(name=name, size=0, mode=DIR_MODE, is_dir=True)


@dataclass(frozen=True)
class FileEntry:
    """A file in a directory listing.

    Attributes:
        key: Full store key, e.g. "dir/sub/foo".
        content: Value fetched along with the listing.
    """

    key: str
    content: bytes = field(default=b"", repr=False)

    @property
    def name(self) -> str:
        return basename(self.key)

    def is_dir(self) -> bool:
        return False

    def is_file(self) -> bool:
        return True

    def stat(self) -> FileInfo:
        return file_info(self.name, self.content)


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory in a directory listing.

    Attributes:
        key: Collapsed store key ending in "/", e.g. "dir/sub/".
    """

    key: str

    @property
    def name(self) -> str:
        return basename(self.key)

    def is_dir(self) -> bool:
        return True

    def is_file(self) -> bool:
        return False

    def stat(self) -> FileInfo:
        return dir_info(self.name)


Entry = FileEntry | DirectoryEntry


@runtime_checkable
class FileSystem(Protocol):
    """Read-only filesystem interface.

    ``open()`` returns a file handle (read/readinto/stat/close) for files
    and a directory handle (read_dir/stat/close) for directories.
    """

    def open(self, path: str) -> Any:
        """Open a file or directory."""
        ...

    def stat(self, path: str) -> FileInfo:
        """Get file metadata."""
        ...

    def read_file(self, path: str) -> bytes:
        """Read a whole file."""
        ...

    def read_dir(self, path: str = ".") -> list[Entry]:
        """List directory entries."""
        ...

    def exists(self, path: str) -> bool:
        """Check if path exists."""
        ...

    def isfile(self, path: str) -> bool:
        """Check if path is a file."""
        ...

    def isdir(self, path: str) -> bool:
        """Check if path is a directory."""
        ...
