"""Configuration for Consul KV access.

Provides immutable configuration dataclasses and the connect_fs factory
function for building a configuration from a ``consul://`` URL. Every
``with_*`` method returns a new value and leaves the receiver untouched.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import urlsplit

import httpx

DEFAULT_ADDRESS = "http://127.0.0.1:8500"
ADDRESS_ENV = "CONSUL_HTTP_ADDR"
TOKEN_ENV = "CONSUL_HTTP_TOKEN"

# URL scheme -> HTTP scheme of the Consul agent
SCHEMES = {
    "consul": "http",
    "consul+http": "http",
    "consul+https": "https",
}

HeaderItems = tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class QueryOptions:
    """Per-request query options sent with every KV lookup.

    Attributes:
        datacenter: Datacenter to query (``dc``). None uses the agent's own.
        namespace: Enterprise namespace (``ns``).
        partition: Enterprise admin partition (``partition``).
        params: Extra query parameters as ``(name, value)`` pairs.
    """

    datacenter: str | None = None
    namespace: str | None = None
    partition: str | None = None
    params: tuple[tuple[str, str], ...] = ()

    def to_params(self) -> list[tuple[str, str]]:
        params = []
        if self.datacenter:
            params.append(("dc", self.datacenter))
        if self.namespace:
            params.append(("ns", self.namespace))
        if self.partition:
            params.append(("partition", self.partition))
        params.extend(self.params)
        return params


@dataclass(frozen=True)
class ConsulConfig:
    """Connection settings for the Consul HTTP API.

    Attributes:
        address: Agent address, e.g. "https://consul.example.com:8501".
            Empty means $CONSUL_HTTP_ADDR, then the local agent.
        token: ACL token. None means $CONSUL_HTTP_TOKEN, if set.
        headers: Extra HTTP headers as ``(name, value)`` pairs; a name may
            repeat.
        query_options: Options added to every KV request.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
    """

    address: str = ""
    token: str | None = None
    headers: HeaderItems = ()
    query_options: QueryOptions = field(default_factory=QueryOptions)
    timeout: float = 30.0
    transport: httpx.BaseTransport | None = field(
        default=None, compare=False, repr=False
    )

    def with_address(self, address: str) -> ConsulConfig:
        return replace(self, address=address)

    def with_token(self, token: str | None) -> ConsulConfig:
        return replace(self, token=token)

    def with_header(self, headers: Any) -> ConsulConfig:
        """Return a config with ``headers`` added after the existing ones.

        Args:
            headers: An httpx.Headers, a mapping of name to value (or list of
                values), or an iterable of ``(name, value)`` pairs.
        """
        return replace(self, headers=self.headers + _header_items(headers))

    def with_query_options(self, options: QueryOptions) -> ConsulConfig:
        return replace(self, query_options=options)

    def with_timeout(self, timeout: float) -> ConsulConfig:
        return replace(self, timeout=timeout)

    def with_transport(self, transport: httpx.BaseTransport | None) -> ConsulConfig:
        return replace(self, transport=transport)

    def resolved_address(self) -> str:
        """Return the agent base URL, falling back to the environment."""
        address = self.address or os.environ.get(ADDRESS_ENV, "") or DEFAULT_ADDRESS
        if "://" not in address:
            address = f"http://{address}"
        return address

    def resolved_token(self) -> str | None:
        if self.token is not None:
            return self.token
        return os.environ.get(TOKEN_ENV) or None


def _header_items(headers: Any) -> HeaderItems:
    if isinstance(headers, httpx.Headers):
        return tuple(headers.multi_items())
    if isinstance(headers, Mapping):
        items = []
        for name, value in headers.items():
            if isinstance(value, (list, tuple)):
                items.extend((name, v) for v in value)
            else:
                items.append((name, value))
        return tuple(items)
    if isinstance(headers, Iterable):
        return tuple((name, value) for name, value in headers)
    raise TypeError(f"Unsupported headers type: {type(headers).__name__}")


def get_address(url: str) -> str:
    """Return the agent HTTP address encoded in a ``consul://`` URL.

    Returns an empty string when the URL has no host, leaving the choice to
    the environment or the default.

    Examples:
        >>> get_address("consul:///")
        ''
        >>> get_address("consul://myconsul.local:1234")
        'http://myconsul.local:1234'
        >>> get_address("consul+https://consul.example.com")
        'https://consul.example.com'
    """
    parts = urlsplit(url)
    scheme = SCHEMES.get(parts.scheme)
    if scheme is None:
        raise ValueError(
            f"Unsupported URL scheme: {parts.scheme!r}. "
            f"Use one of {', '.join(sorted(SCHEMES))}."
        )
    if not parts.netloc:
        return ""
    return f"{scheme}://{parts.netloc}"


def connect_fs(url: str, **kwargs: Any) -> ConsulConfig:
    """Configure Consul KV access for a ``consul://`` URL.

    Args:
        url: Filesystem URL, e.g. "consul+https://consul.example.com/app/".
        **kwargs: Optional settings:
            - token (str): ACL token.
            - headers: Extra HTTP headers (see ConsulConfig.with_header).
            - query_options (QueryOptions): Options sent with every request.
            - timeout (float): Request timeout in seconds.
            - transport (httpx.BaseTransport): Custom transport.

    Returns:
        ConsulConfig for ConsulFS.

    Examples:
        >>> connect_fs("consul://localhost:8500/", token="secret").address
        'http://localhost:8500'
    """
    config = ConsulConfig(address=get_address(url))

    token = kwargs.pop("token", None)
    headers = kwargs.pop("headers", None)
    query_options = kwargs.pop("query_options", None)
    timeout = kwargs.pop("timeout", None)
    transport = kwargs.pop("transport", None)

    if kwargs:
        raise ValueError(f"Unexpected arguments for consul fs: {list(kwargs.keys())}")

    if token is not None:
        config = config.with_token(token)
    if headers is not None:
        config = config.with_header(headers)
    if query_options is not None:
        config = config.with_query_options(query_options)
    if timeout is not None:
        config = config.with_timeout(timeout)
    if transport is not None:
        config = config.with_transport(transport)
    return config
