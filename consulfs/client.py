"""Consul KV HTTP client.

Thin wrapper around httpx for the two lookups the filesystem needs: a
single key, and every key under a prefix (``?recurse``). Transport and
HTTP failures are mapped onto the consulfs error types here.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from .config import ConsulConfig
from .context import CancelToken, current_cancel
from .errors import CanceledError, StoreError

logger = logging.getLogger(__name__)

KV_PATH = "/v1/kv/"
TOKEN_HEADER = "X-Consul-Token"

Params = Iterable[tuple[str, str]]


@dataclass(frozen=True)
class KVPair:
    """One key/value pair as returned by the KV endpoint."""

    key: str
    value: bytes = field(default=b"", repr=False)
    flags: int = 0
    modify_index: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> KVPair:
        """Build a pair from one item of a KV response.

        Raises:
            KeyError, TypeError, AttributeError, ValueError: If the item is
                not a well-formed pair (binascii.Error is a ValueError).
        """
        key = data["Key"]
        if not isinstance(key, str):
            raise TypeError(f"Key must be a string, got {type(key).__name__}")
        raw = data.get("Value")
        return cls(
            key=key,
            value=base64.b64decode(raw, validate=True) if raw else b"",
            flags=int(data.get("Flags") or 0),
            modify_index=int(data.get("ModifyIndex") or 0),
        )


class KVClient:
    """Blocking client for the Consul KV endpoint.

    Each call is one HTTP round trip. There are no retries: failures are
    raised to the caller as StoreError or CanceledError.
    """

    def __init__(self, config: ConsulConfig):
        self._config = config
        self._owners = 1
        headers = httpx.Headers(list(config.headers))
        token = config.resolved_token()
        if token:
            headers[TOKEN_HEADER] = token
        kwargs: dict[str, Any] = {}
        if config.transport is not None:
            kwargs["transport"] = config.transport
        self._http = httpx.Client(
            base_url=config.resolved_address(),
            headers=headers,
            timeout=config.timeout,
            **kwargs,
        )

    @property
    def headers(self) -> httpx.Headers:
        """Headers sent with every request."""
        return self._http.headers

    def get(
        self,
        key: str,
        *,
        params: Params = (),
        cancel: CancelToken | None = None,
        op: str = "get",
    ) -> KVPair | None:
        """Fetch the pair stored under exactly ``key``.

        Returns:
            The pair, or None if the key does not exist.
        """
        pairs = self._request(op, key, list(params), cancel)
        if not pairs:
            return None
        return pairs[0]

    def list(
        self,
        prefix: str,
        *,
        params: Params = (),
        cancel: CancelToken | None = None,
        op: str = "list",
    ) -> list[KVPair]:
        """Fetch every pair whose key starts with ``prefix``.

        The result includes the pair stored under ``prefix`` itself, if any,
        and is empty when nothing matches.
        """
        return self._request(op, prefix, [*params, ("recurse", "")], cancel) or []

    def _request(
        self,
        op: str,
        key: str,
        params: list[tuple[str, str]],
        cancel: CancelToken | None,
    ) -> list[KVPair] | None:
        token = cancel if cancel is not None else current_cancel.get()
        if token is not None and token.cancelled:
            raise CanceledError(op, key, token.reason)
        if self._http.is_closed:
            raise StoreError(op, key, "client is closed")

        timeout = self._config.timeout
        if token is not None:
            remaining = token.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)

        url = KV_PATH + quote(key, safe="/")
        params = self._config.query_options.to_params() + params
        logger.debug("%s: GET %s params=%s", op, url, params)

        try:
            response = self._http.get(url, params=params, timeout=timeout)
        except httpx.TimeoutException as exc:
            if token is not None and token.cancelled:
                raise CanceledError(op, key, token.reason) from exc
            raise StoreError(op, key, f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise StoreError(op, key, f"request failed: {exc}") from exc

        if token is not None and token.cancelled:
            raise CanceledError(op, key, token.reason)

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.debug("%s: %s not found", op, key)
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StoreError(
                op,
                key,
                f"unexpected status {response.status_code}",
                status_code=response.status_code,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise StoreError(op, key, f"malformed response: {exc}") from exc
        if not isinstance(data, list):
            raise StoreError(op, key, "malformed response: expected a list of pairs")
        try:
            return [KVPair.from_json(item) for item in data]
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise StoreError(op, key, f"malformed response: bad pair: {exc!r}") from exc

    def share(self) -> KVClient:
        """Register another owner; the HTTP client closes when the last one does."""
        self._owners += 1
        return self

    def close(self) -> None:
        """Release one owner's hold, closing the HTTP client after the last."""
        if self._owners == 0:
            return
        self._owners -= 1
        if self._owners == 0:
            self._http.close()

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    def __enter__(self) -> KVClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
