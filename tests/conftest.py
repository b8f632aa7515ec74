"""Pytest configuration and fixtures."""

import httpx
import pytest
from fastapi.testclient import TestClient

from forwarder.app import create_app
from forwarder.config import Settings
from forwarder.models import DomainRewritePair
from forwarder.services import Forwarder

# Smallest valid PNG, used wherever a binary payload is needed.
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d00000000"
    "49454e44ae426082"
)


@pytest.fixture
def mock_settings():
    """Settings pointing at the default upstream."""
    return Settings(
        upstream_base_url="https://api.qrserver.com/v1/read-qr-code/",
        upstream_domain="api.qrserver.com",
        proxy_domain="azurewebsites.net",
        mount_path="/forward",
        log_headers=False,
    )


@pytest.fixture
def rewrite_pair():
    return DomainRewritePair(
        upstream_domain="api.qrserver.com", proxy_domain="azurewebsites.net"
    )


class RecordingUpstream:
    """Fake upstream that records requests and replays a canned response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.headers: list[tuple[str, str]] = [("Content-Type", "text/plain")]
        self.content = b"ok"
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.status_code, headers=self.headers, content=self.content
        )

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def upstream():
    """Recording fake upstream."""
    return RecordingUpstream()


@pytest.fixture
def forwarder(mock_settings, upstream):
    """Forwarder wired to the fake upstream."""
    return Forwarder(mock_settings, transport=upstream.transport())


@pytest.fixture
def client(mock_settings, forwarder):
    """FastAPI test client serving the forwarder."""
    return TestClient(create_app(mock_settings, forwarder=forwarder))


def header_values(headers, name):
    """All values of ``name`` in an ordered header list, case-insensitively."""
    return [value for key, value in headers if key.lower() == name.lower()]
