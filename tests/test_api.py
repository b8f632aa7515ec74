"""Tests for the FastAPI forwarding endpoints."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from forwarder.app import create_app
from forwarder.config import Settings
from forwarder.routers import forward
from forwarder.services import ClientDisconnected, Forwarder

from .conftest import PNG_BYTES


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "forwarder"}


class TestForwardEndpoint:
    """Tests for the forwarding route."""

    def test_path_forwarding(self, client, upstream):
        response = client.get("/forward/v1/read-qr-code/?fileurl=http://x/y.png")

        assert response.status_code == 200
        assert (
            str(upstream.last.url)
            == "https://api.qrserver.com/v1/read-qr-code/?fileurl=http://x/y.png"
        )

    def test_bare_mount_forwards_to_base(self, client, upstream):
        client.get("/forward")
        assert str(upstream.last.url) == "https://api.qrserver.com/v1/read-qr-code/"

    def test_query_on_mount(self, client, upstream):
        client.get("/forward?fileurl=http://x/y.png")
        assert (
            str(upstream.last.url)
            == "https://api.qrserver.com/v1/read-qr-code/?fileurl=http://x/y.png"
        )

    def test_percent_encoded_mount_keeps_suffix(self, client, upstream):
        response = client.get("/%66orward/v2/items?a=1")

        assert response.status_code == 200
        assert (
            str(upstream.last.url)
            == "https://api.qrserver.com/v1/read-qr-code/v2/items?a=1"
        )

    def test_outside_mount_not_forwarded(self, client, upstream):
        response = client.get("/elsewhere")
        assert response.status_code == 404
        assert upstream.requests == []

    def test_inbound_headers_allow_listed(self, client, upstream):
        client.get(
            "/forward/",
            headers={
                "Referer": "https://myapp.azurewebsites.net/page",
                "Cookie": "sid=abc",
                "X-Custom": "x",
            },
        )

        sent = upstream.last.headers
        assert sent["referer"] == "https://myapp.api.qrserver.com/page"
        assert sent["cookie"] == "sid=abc"
        assert "x-custom" not in sent
        assert sent["host"] == "api.qrserver.com"

    def test_response_translated(self, client, upstream):
        upstream.headers = [
            ("Content-Type", "image/png"),
            ("Content-Length", "999"),
            ("Location", "https://api.qrserver.com/other"),
            ("Set-Cookie", "a=1; domain=api.qrserver.com; Path=/"),
            ("Set-Cookie", "b=2; domain=api.qrserver.com; HttpOnly"),
            ("X-Upstream", "yes"),
        ]
        upstream.content = PNG_BYTES

        response = client.get("/forward/")

        assert response.status_code == 200
        assert response.content == PNG_BYTES
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-length"] == str(len(PNG_BYTES))
        assert "location" not in response.headers
        assert response.headers["x-upstream"] == "yes"
        assert response.headers.get_list("set-cookie") == [
            "a=1; domain=azurewebsites.net; Path=/",
            "b=2; domain=azurewebsites.net; HttpOnly",
        ]

    def test_file_upload(self, client, upstream):
        response = client.post(
            "/forward/",
            files={"file": ("q.png", PNG_BYTES, "image/png")},
            data={"other": "dropped"},
        )

        assert response.status_code == 200
        sent = upstream.last
        assert sent.method == "POST"
        assert b'name="file"; filename="q.png"' in sent.content
        assert b"Content-Type: image/png" in sent.content
        assert PNG_BYTES in sent.content
        assert b"dropped" not in sent.content

    def test_post_without_file_forwarded(self, client, upstream):
        response = client.post("/forward/", data={"other": "x"})

        assert response.status_code == 200
        assert upstream.last.method == "POST"
        assert upstream.last.content == b""

    def test_post_without_file_rejected(self, upstream):
        settings = Settings(reject_post_without_file=True)
        forwarder = Forwarder(settings, transport=upstream.transport())
        client = TestClient(create_app(settings, forwarder=forwarder))

        response = client.post("/forward/", data={"other": "x"})

        assert response.status_code == 400
        assert upstream.requests == []

    def test_upstream_status_relayed(self, client, upstream):
        upstream.status_code = 503
        upstream.content = b"down"

        response = client.get("/forward/")

        assert response.status_code == 503
        assert response.content == b"down"


class TestUpstreamFailures:
    """Tests for upstream failures surfacing to the caller."""

    def test_unreachable_is_bad_gateway(self, client, upstream):
        upstream.error = httpx.ConnectError("refused")

        response = client.get("/forward/")

        assert response.status_code == 502
        assert "cannot reach upstream" in response.json()["detail"]

    def test_timeout_is_gateway_timeout(self, client, upstream):
        upstream.error = httpx.ConnectTimeout("slow")

        response = client.get("/forward/")

        assert response.status_code == 504
        assert response.json()["detail"] == "Gateway timeout"


class TestRootMount:
    """Tests for a forwarder mounted at the root path."""

    def test_root_mount_keeps_health(self, upstream):
        settings = Settings(
            mount_path="/", upstream_base_url="https://api.example.com"
        )
        forwarder = Forwarder(settings, transport=upstream.transport())
        client = TestClient(create_app(settings, forwarder=forwarder))

        assert client.get("/health").json()["status"] == "healthy"

        client.get("/v2/items?id=1")
        assert str(upstream.last.url) == "https://api.example.com/v2/items?id=1"


class FakeConnection:
    """Stands in for a Request, reporting a disconnect after ``polls`` checks."""

    def __init__(self, polls: int):
        self.polls = polls

    async def is_disconnected(self) -> bool:
        self.polls -= 1
        return self.polls < 0


class TestCancelOnDisconnect:
    """Tests for cancelling the upstream call when the caller goes away."""

    @pytest.mark.asyncio
    async def test_result_returned_when_finished_first(self, monkeypatch):
        monkeypatch.setattr(forward, "DISCONNECT_POLL_INTERVAL", 0.01)

        async def quick():
            return "reply"

        result = await forward.cancel_on_disconnect(FakeConnection(polls=0), quick())
        assert result == "reply"

    @pytest.mark.asyncio
    async def test_upstream_call_cancelled_on_disconnect(self, monkeypatch):
        monkeypatch.setattr(forward, "DISCONNECT_POLL_INTERVAL", 0.01)
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(ClientDisconnected):
            await forward.cancel_on_disconnect(FakeConnection(polls=2), slow())

        await asyncio.wait_for(cancelled.wait(), timeout=1)
        assert cancelled.is_set()
