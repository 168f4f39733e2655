"""Directory listings rebuilt from flat KV keys.

Consul has no directories: a recursive query for ``dir/`` returns every key
below it, at any depth. The functions here fold those keys down to the
immediate children of the prefix, the way S3-style object stores imply
folders.
"""

from __future__ import annotations

from collections.abc import Iterable

from .base import DirectoryEntry, Entry, FileEntry
from .client import KVClient, KVPair, Params
from .context import CancelToken
from .paths import SEPARATOR


def only_children(prefix: str, keys: Iterable[str]) -> list[str]:
    """Collapse keys under ``prefix`` to the prefix's immediate children.

    A key directly under the prefix is kept as is. A deeper key is cut after
    the first separator following the prefix, so all keys below the same
    subdirectory collapse onto one ``prefix + "name/"`` entry. The prefix
    itself is dropped, as are keys with an empty segment right after the
    prefix.

    Args:
        prefix: Directory prefix, "" or ending in "/".
        keys: Keys starting with ``prefix``, in any order. Others are ignored.

    Returns:
        Sorted, deduplicated child keys.

    Examples:
        >>> only_children("dir/", ["dir/b", "dir/a", "dir/sub/x", "dir/sub/y/z"])
        ['dir/a', 'dir/b', 'dir/sub/']
    """
    children: set[str] = set()
    for key in keys:
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        if not remainder:
            continue

        sep = remainder.find(SEPARATOR)
        if sep == 0:
            # Empty segment ("dir//x"): no valid path can name this child
            continue
        if sep > 0:
            # Subdirectory: keep "name/"
            remainder = remainder[: sep + 1]
        children.add(prefix + remainder)

    return sorted(children)


def build_listing(prefix: str, pairs: Iterable[KVPair]) -> list[Entry]:
    """Turn the pairs of a recursive query into directory entries.

    File entries carry the value that came back with their pair.
    """
    values = {pair.key: pair.value for pair in pairs}
    entries: list[Entry] = []
    for child in only_children(prefix, values):
        if child.endswith(SEPARATOR):
            entries.append(DirectoryEntry(child))
        else:
            entries.append(FileEntry(child, values[child]))
    return entries


def list_directory(
    client: KVClient,
    prefix: str,
    *,
    params: Params = (),
    cancel: CancelToken | None = None,
) -> list[Entry]:
    """List the immediate children of ``prefix`` with one recursive query.

    A prefix with no keys lists as empty; use ConsulFS.stat() to tell an
    absent directory from an empty one.

    Raises:
        StoreError: If the store request fails.
        CanceledError: If the cancel token fires.
    """
    pairs = client.list(prefix, params=params, cancel=cancel, op="readdir")
    return build_listing(prefix, pairs)
