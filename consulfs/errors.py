"""Exceptions raised by consulfs.

Every error derives from ConsulFSError. Where a builtin exception already
names the condition (FileNotFoundError, ValueError, EOFError) the error
derives from that too, so ``except FileNotFoundError`` keeps working for
existence checks.
"""

from __future__ import annotations


class ConsulFSError(Exception):
    """Base class for all consulfs errors."""


class InvalidPathError(ConsulFSError, ValueError):
    """A path is malformed or not allowed."""

    def __init__(self, op: str, path: str, reason: str):
        super().__init__(f"{op} {path!r}: invalid path: {reason}")
        self.op = op
        self.path = path
        self.reason = reason


class NotExistError(ConsulFSError, FileNotFoundError):
    """No value is stored under the resolved key or prefix.

    Raised with errno-style arguments, e.g.
    ``NotExistError(errno.ENOENT, "stat: no such key", "dir/foo")``.
    """


class AlreadyClosedError(ConsulFSError, ValueError):
    """A handle was used or closed after it had already been closed."""

    def __init__(self, op: str, path: str):
        super().__init__(f"{op} {path!r}: I/O operation on closed file")
        self.op = op
        self.path = path


class EndOfDirectory(ConsulFSError, EOFError):
    """``read_dir(n)`` with ``n > 0`` found no entries left to return."""

    def __init__(self, path: str):
        super().__init__(f"readdir {path!r}: end of directory")
        self.path = path


class StoreError(ConsulFSError):
    """The KV store could not be reached or answered with an error.

    The underlying httpx exception, when there is one, is chained as
    ``__cause__``.

    Attributes:
        op: Operation that issued the request ("open", "stat", "readdir").
        path: Store key or prefix of the request.
        status_code: HTTP status of the response, or None for transport
            failures.
    """

    def __init__(
        self, op: str, path: str, message: str, status_code: int | None = None
    ):
        super().__init__(f"{op} {path!r}: {message}")
        self.op = op
        self.path = path
        self.status_code = status_code


class CanceledError(ConsulFSError):
    """The operation's cancel token was canceled or ran past its deadline."""

    def __init__(self, op: str, path: str, reason: str = "canceled"):
        super().__init__(f"{op} {path!r}: {reason}")
        self.op = op
        self.path = path
        self.reason = reason
