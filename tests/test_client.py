"""Tests for the KV client: error mapping and cancellation."""

import base64

import httpx
import pytest

from consulfs import (
    CanceledError,
    CancelToken,
    ConsulConfig,
    ConsulFS,
    KVClient,
    NotExistError,
    StoreError,
    cancel_scope,
)


@pytest.fixture
def fsys(config):
    return ConsulFS("consul:///dir/", config)


class TestKVClient:
    """Test lookups against the fake agent."""

    def test_get(self, config):
        with KVClient(config) as client:
            pair = client.get("dir/foo")

        assert pair.key == "dir/foo"
        assert pair.value == b"foo"

    def test_get_missing(self, config):
        with KVClient(config) as client:
            assert client.get("dir/bogus") is None

    def test_list(self, config):
        with KVClient(config) as client:
            keys = [p.key for p in client.list("dir/sub/")]

        assert keys == [
            "dir/sub/bar",
            "dir/sub/bazDir/",
            "dir/sub/bazDir/qux",
            "dir/sub/foo",
        ]

    def test_list_missing(self, config):
        with KVClient(config) as client:
            assert client.list("nope/") == []

    def test_null_value_is_empty_bytes(self, config):
        with KVClient(config) as client:
            assert client.get("dir/sub/bazDir/").value == b""

    def test_key_is_quoted(self, config, fake_consul):
        fake_consul.store["dir/with space"] = b"x"

        with KVClient(config) as client:
            assert client.get("dir/with space").value == b"x"

        assert fake_consul.requests[0].url.raw_path == b"/v1/kv/dir/with%20space"

    def test_closed_client_raises_store_error(self, config):
        client = KVClient(config)
        client.close()

        assert client.closed is True
        with pytest.raises(StoreError, match="client is closed"):
            client.get("dir/foo")

    def test_shared_client_closes_with_last_owner(self, config):
        client = KVClient(config)
        client.share()

        client.close()
        assert client.closed is False
        assert client.get("dir/foo").value == b"foo"

        client.close()
        assert client.closed is True

    def test_pair_from_json(self):
        from consulfs.client import KVPair

        pair = KVPair.from_json(
            {
                "Key": "a",
                "Value": base64.b64encode(b"hi").decode(),
                "Flags": 7,
                "ModifyIndex": 12,
            }
        )

        assert pair == KVPair("a", b"hi", flags=7, modify_index=12)


class TestErrorMapping:
    """Test that store failures surface as StoreError with context."""

    def test_server_error(self, fsys, fake_consul):
        fake_consul.hook = lambda request: httpx.Response(500, text="boom")

        with pytest.raises(StoreError) as exc_info:
            fsys.stat("foo")

        err = exc_info.value
        assert err.op == "stat"
        assert err.path == "dir/foo"
        assert err.status_code == 500
        assert isinstance(err.__cause__, httpx.HTTPStatusError)

    def test_forbidden_is_not_missing(self, fsys, fake_consul):
        fake_consul.hook = lambda request: httpx.Response(403)

        with pytest.raises(StoreError):
            fsys.open("foo")

    def test_transport_error(self, fsys, fake_consul):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        fake_consul.hook = refuse

        with pytest.raises(StoreError) as exc_info:
            fsys.read_file("foo")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout(self, fsys, fake_consul):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        fake_consul.hook = slow

        with pytest.raises(StoreError, match="timed out"):
            fsys.read_file("foo")

    def test_malformed_json(self, fsys, fake_consul):
        fake_consul.hook = lambda request: httpx.Response(200, text="not json")

        with pytest.raises(StoreError, match="malformed"):
            fsys.read_file("foo")

    @pytest.mark.parametrize(
        "body",
        [
            [{"NoKey": 1}],
            [{"Key": "dir/foo", "Value": "!!notb64"}],
            ["x"],
            [{"Key": 7, "Value": None}],
            [{"Key": "dir/foo", "Flags": "lots"}],
        ],
    )
    def test_malformed_pair_on_lookup(self, fsys, fake_consul, body):
        fake_consul.hook = lambda request: httpx.Response(200, json=body)

        with pytest.raises(StoreError, match="malformed") as exc_info:
            fsys.stat("foo")

        assert exc_info.value.op == "stat"
        assert exc_info.value.__cause__ is not None

    def test_malformed_pair_in_listing(self, fsys, fake_consul):
        fake_consul.hook = lambda request: httpx.Response(
            200, json=[{"Key": "dir/sub/foo"}, {"Value": "eA=="}]
        )

        with fsys.open("sub/") as d:
            with pytest.raises(StoreError, match="malformed"):
                d.read_dir(0)

    def test_listing_failure_on_first_read(self, fsys, fake_consul):
        d = fsys.open("sub/")
        fake_consul.hook = lambda request: httpx.Response(503)

        with pytest.raises(StoreError) as exc_info:
            d.read_dir(1)

        assert exc_info.value.op == "readdir"
        assert exc_info.value.path == "dir/sub/"
        d.close()

    def test_no_retries(self, fsys, fake_consul):
        fake_consul.hook = lambda request: httpx.Response(502)

        with pytest.raises(StoreError):
            fsys.stat("foo")

        assert len(fake_consul.requests) == 1

    def test_not_exist_is_not_store_error(self, fsys):
        with pytest.raises(NotExistError) as exc_info:
            fsys.stat("bogus")

        assert not isinstance(exc_info.value, StoreError)


class TestCancellation:
    """Test cancel tokens on filesystems and in context."""

    def test_cancelled_before_request(self, fsys, fake_consul):
        token = CancelToken()
        token.cancel()

        with pytest.raises(CanceledError) as exc_info:
            fsys.with_cancel(token).stat("foo")

        assert exc_info.value.op == "stat"
        assert fake_consul.requests == []

    def test_cancelled_during_request(self, fsys, fake_consul):
        token = CancelToken()

        def cancel_then_answer(request):
            token.cancel()
            return None

        fake_consul.hook = cancel_then_answer

        with pytest.raises(CanceledError):
            fsys.with_cancel(token).read_file("foo")

        assert len(fake_consul.requests) == 1

    def test_expired_deadline(self, fsys, fake_consul):
        token = CancelToken(timeout=0)

        assert token.cancelled is True
        with pytest.raises(CanceledError, match="deadline exceeded"):
            fsys.with_cancel(token).open("foo")

        assert fake_consul.requests == []

    def test_timeout_after_deadline_is_canceled(self, fsys, fake_consul):
        token = CancelToken(timeout=60)

        def expire_and_time_out(request):
            token.cancel("deadline exceeded")
            raise httpx.ReadTimeout("timed out", request=request)

        fake_consul.hook = expire_and_time_out

        with pytest.raises(CanceledError):
            fsys.with_cancel(token).read_file("foo")

    def test_canceled_is_not_store_error(self):
        assert not issubclass(CanceledError, StoreError)

    def test_cancel_scope(self, fsys, fake_consul):
        token = CancelToken()
        token.cancel()

        with cancel_scope(token):
            with pytest.raises(CanceledError):
                fsys.read_file("foo")

        # Outside the scope the token no longer applies
        assert fsys.read_file("foo") == b"foo"

    def test_listing_honors_handle_token(self, fsys):
        token = CancelToken()
        d = fsys.with_cancel(token).open("sub/")

        token.cancel()

        with pytest.raises(CanceledError):
            d.read_dir(0)
        d.close()

    def test_explicit_token_wins_over_scope(self, fsys):
        cancelled = CancelToken()
        cancelled.cancel()

        with cancel_scope(cancelled):
            assert fsys.with_cancel(CancelToken()).read_file("foo") == b"foo"

    def test_remaining(self):
        assert CancelToken().remaining() is None
        assert 0 < CancelToken(timeout=30).remaining() <= 30

    def test_token_header_from_config(self, fake_consul):
        config = ConsulConfig(
            address="http://consul.test",
            token="abc",
            transport=httpx.MockTransport(fake_consul),
        )

        ConsulFS("consul:///", config).stat("dir/foo")

        assert fake_consul.requests[0].headers["X-Consul-Token"] == "abc"
