"""Shared fixtures: an in-process fake of Consul's KV HTTP API."""

from __future__ import annotations

import base64
from collections.abc import Callable

import httpx
import pytest

from consulfs import ConsulConfig

KV_PATH = "/v1/kv/"

STORE = {
    "dir/foo": b"foo",
    "dir/bar": b"foo",
    "dir/sub/foo": b"foo",
    "dir/sub/bar": b"foo",
    "dir/sub/bazDir/": b"",
    "dir/sub/bazDir/qux": b"qux",
}


class FakeConsul:
    """Serves GET /v1/kv/<key>[?recurse] from a dict, like a Consul agent.

    Records every request so tests can count round trips. ``hook`` runs
    before each response and may raise (to simulate transport failures) or
    return a response to send instead.
    """

    def __init__(self, store: dict[str, bytes]):
        self.store = dict(store)
        self.requests: list[httpx.Request] = []
        self.hook: Callable[[httpx.Request], httpx.Response | None] | None = None

    def _pair(self, key: str) -> dict:
        value = self.store[key]
        return {
            "Key": key,
            "Value": base64.b64encode(value).decode() if value else None,
            "Flags": 0,
            "CreateIndex": 1,
            "ModifyIndex": 1,
            "LockIndex": 0,
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.hook is not None:
            response = self.hook(request)
            if response is not None:
                return response

        path = request.url.path
        if request.method != "GET" or not path.startswith(KV_PATH):
            return httpx.Response(405)
        key = path[len(KV_PATH) :]

        if "recurse" in request.url.params:
            keys = sorted(k for k in self.store if k.startswith(key))
        else:
            keys = [key] if key in self.store else []

        if not keys:
            return httpx.Response(404)
        return httpx.Response(200, json=[self._pair(k) for k in keys])

    @property
    def paths(self) -> list[str]:
        return [
            r.url.path + ("?recurse" if "recurse" in r.url.params else "")
            for r in self.requests
        ]


@pytest.fixture
def fake_consul() -> FakeConsul:
    return FakeConsul(STORE)


@pytest.fixture
def config(fake_consul: FakeConsul) -> ConsulConfig:
    return ConsulConfig(
        address="http://consul.test:8500",
        transport=httpx.MockTransport(fake_consul),
    )
