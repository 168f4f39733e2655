"""Path validation and resolution against a base URL.

Filesystem paths are relative, ``/``-separated, and may carry a query
string (``sub/foo?dc=east``). They are joined onto the filesystem's base
URL with plain string operations; nothing here performs I/O.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

from .errors import InvalidPathError

SEPARATOR = "/"
# Never valid inside a path, even on platforms where it separates segments
ILLEGAL_SEPARATOR = "\\"


def _split_query(path: str) -> tuple[str, str]:
    name, _, query = path.partition("?")
    return name, query


def validate_path(op: str, path: str) -> str:
    """Check that ``path`` is a valid relative filesystem path.

    Accepts ``.`` (the root), ``a/b`` and ``a/b/`` (a directory). Rejects
    empty paths, absolute paths, backslashes, and empty, ``.`` or ``..``
    segments.

    Args:
        op: Operation name used in the error message.
        path: Path to check.

    Returns:
        The path, unchanged.

    Raises:
        InvalidPathError: If the path is not allowed.
    """
    name, _ = _split_query(path)
    if not name:
        raise InvalidPathError(op, path, "empty path")
    if name.startswith(SEPARATOR):
        raise InvalidPathError(op, path, "absolute paths are not allowed")
    if ILLEGAL_SEPARATOR in name:
        raise InvalidPathError(op, path, "backslash is not a valid separator")
    if name == ".":
        return path

    if name.endswith(SEPARATOR):
        name = name[:-1]
    for segment in name.split(SEPARATOR):
        if segment in ("", ".", ".."):
            raise InvalidPathError(op, path, f"invalid path element {segment!r}")
    return path


def is_dir_path(path: str) -> bool:
    """Return True if ``path`` names a directory: ``.`` or a trailing ``/``."""
    name, _ = _split_query(path)
    return name == "." or name.endswith(SEPARATOR)


def basename(key: str) -> str:
    """Last segment of a key, ignoring a trailing separator ("." for root)."""
    return key.rstrip(SEPARATOR).rsplit(SEPARATOR, 1)[-1] or "."


def resolve(base: str, path: str, op: str = "resolve") -> str:
    """Join a relative path onto a base URL.

    The base's query string is kept and the path's is appended to it.

    Examples:
        >>> resolve("https://example.com/dir/", "sub")
        'https://example.com/dir/sub'
        >>> resolve("consul:///dir/", "sub/foo?param=foo")
        'consul:///dir/sub/foo?param=foo'

    Raises:
        InvalidPathError: If ``path`` is not a valid relative path.
    """
    validate_path(op, path)
    head, base_query = _split_query(base)
    name, query = _split_query(path)

    if name != ".":
        if head.endswith(SEPARATOR):
            head = head + name
        else:
            head = head + SEPARATOR + name

    query = "&".join(q for q in (base_query, query) if q)
    if query:
        return f"{head}?{query}"
    return head


def normalize_base(url: str) -> str:
    """Normalize a filesystem base URL.

    An empty URL path becomes ``/``; any other path must end with ``/``.

    Examples:
        >>> normalize_base("consul+https://example.com")
        'consul+https://example.com/'

    Raises:
        ValueError: If the URL is empty or its path does not end with ``/``.
    """
    if not url:
        raise ValueError("A base URL is required")
    parts = urlsplit(url)
    path = parts.path or SEPARATOR
    if not path.endswith(SEPARATOR):
        raise ValueError(f"Invalid base URL path {path!r}: must end with '/'")
    base = f"{parts.scheme}://{parts.netloc}{path}"
    if parts.query:
        return f"{base}?{parts.query}"
    return base


def split_location(location: str) -> tuple[str, list[tuple[str, str]]]:
    """Split a resolved location into its store key and query parameters.

    Examples:
        >>> split_location("consul:///dir/sub/?dc=east")
        ('dir/sub/', [('dc', 'east')])
    """
    parts = urlsplit(location)
    key = parts.path.lstrip(SEPARATOR)
    return key, parse_qsl(parts.query, keep_blank_values=True)
