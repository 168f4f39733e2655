"""consulfs: Read-only filesystem view over the Consul KV store."""

from .base import DirectoryEntry, Entry, FileEntry, FileInfo, FileSystem
from .client import KVClient, KVPair
from .config import ConsulConfig, QueryOptions, connect_fs, get_address
from .consuldir import ConsulDir
from .consulfile import ConsulFile
from .context import CancelToken, cancel_scope
from .errors import (
    AlreadyClosedError,
    CanceledError,
    ConsulFSError,
    EndOfDirectory,
    InvalidPathError,
    NotExistError,
    StoreError,
)
from .fs import ConsulFS, Handle
from .listing import only_children
from .paths import resolve

__all__ = [
    "AlreadyClosedError",
    "cancel_scope",
    "CancelToken",
    "CanceledError",
    "connect_fs",
    "ConsulConfig",
    "ConsulDir",
    "ConsulFile",
    "ConsulFS",
    "ConsulFSError",
    "DirectoryEntry",
    "EndOfDirectory",
    "Entry",
    "FileEntry",
    "FileInfo",
    "FileSystem",
    "get_address",
    "Handle",
    "InvalidPathError",
    "KVClient",
    "KVPair",
    "NotExistError",
    "only_children",
    "QueryOptions",
    "resolve",
    "StoreError",
]
