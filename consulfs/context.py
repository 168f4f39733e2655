"""Cancellation for store requests.

A CancelToken is attached to a filesystem with ``ConsulFS.with_cancel()``,
or installed for the current context with ``cancel_scope()`` so that code
several calls deep picks it up without threading it through arguments.
"""

import contextvars
import time
from contextlib import contextmanager
from typing import Iterator


class CancelToken:
    """Cancellation flag with an optional deadline.

    The token is checked before every store request and again when the
    response arrives; the request timeout is capped at the time left before
    the deadline.

    Example::

        token = CancelToken(timeout=5.0)
        with cancel_scope(token):
            fsys.read_file("config/app.json")
    """

    def __init__(self, timeout: float | None = None):
        self._cancelled = False
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._reason: str | None = None

    def cancel(self, reason: str = "canceled") -> None:
        """Cancel every request that checks this token from now on."""
        self._cancelled = True
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        """True once cancel() was called or the deadline has passed."""
        if self._cancelled:
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def reason(self) -> str:
        if self._cancelled:
            return self._reason or "canceled"
        return "deadline exceeded"

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())


# Token for store requests made in the current context
current_cancel: contextvars.ContextVar[CancelToken | None] = contextvars.ContextVar(
    "consulfs_current_cancel", default=None
)


@contextmanager
def cancel_scope(token: CancelToken) -> Iterator[CancelToken]:
    """Make ``token`` the cancel token for requests in this context.

    A token attached with ``ConsulFS.with_cancel()`` takes precedence.
    """
    reset = current_cancel.set(token)
    try:
        yield token
    finally:
        current_cancel.reset(reset)
