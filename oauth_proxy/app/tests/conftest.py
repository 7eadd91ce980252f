"""
Shared fixtures for the proxy tests.

The upstream OAuth provider is replaced by an httpx.MockTransport so tests can
see exactly what the proxy sent and control what it receives.
"""

from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from oauth_proxy.app.config import Settings
from oauth_proxy.app.main import create_app


STUB_TOKEN_URL = "https://auth.example.com/oauth/token"
STUB_USER_INFO_URL = "https://auth.example.com/userinfo"


def as_stream(response: httpx.Response) -> httpx.Response:
    """
    Rebuild a response with an unread body stream, the way a real transport
    returns it. Responses built from `content=` or `json=` are already read
    and would refuse `aiter_raw()`.
    """
    if not response.is_stream_consumed:
        return response
    return httpx.Response(
        response.status_code,
        headers=response.headers,
        stream=httpx.ByteStream(response.content),
    )


class StubUpstream:
    """
    Records every request it receives and answers with `respond`.

    Set `error` to make the transport raise instead of answering.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.error: Optional[Exception] = None
        self.respond: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"ok": True})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return as_stream(self.respond(request))

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "upstream was never called"
        return self.requests[-1]


@pytest.fixture
def mock_settings():
    """Settings pointing at the stub provider, ignoring any local .env"""
    return Settings(
        _env_file=None,
        OAUTH_TOKEN_URL=STUB_TOKEN_URL,
        USER_INFO_URL=STUB_USER_INFO_URL,
    )


@pytest.fixture
def stub_upstream():
    return StubUpstream()


@pytest.fixture
def app(mock_settings, stub_upstream):
    """Create test FastAPI application with the stub upstream client"""
    app = create_app(mock_settings)
    app.state.upstream_client = httpx.AsyncClient(
        transport=httpx.MockTransport(stub_upstream)
    )
    return app


@pytest.fixture
def client(app):
    """Create test client"""
    return TestClient(app)


@pytest.fixture
def make_upstream_client():
    """Factory for AsyncClients whose transport answers with `handler`"""
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: as_stream(handler(request)))
        )

    return factory
