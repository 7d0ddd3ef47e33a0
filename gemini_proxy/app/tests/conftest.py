"""
Shared fixtures for the Gemini proxy tests.

The upstream Gemini API is replaced by an httpx.MockTransport that records
every request it receives, so tests can assert on exactly what was sent.
"""

from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from gemini_proxy.app.config import Settings
from gemini_proxy.app.main import create_app

TEST_API_KEY = "test-gemini-key-AIzaSyD-0123456789abcdef"


class FakeGemini:
    """
    Stand-in for the Gemini API.

    Returns a fixed response (or raises a fixed exception) and keeps every
    request it was sent.
    """

    def __init__(
        self,
        response: Optional[httpx.Response] = None,
        error: Optional[Callable[[httpx.Request], Exception]] = None
    ):
        self.response = response or httpx.Response(
            200,
            content=b'{"candidates":[]}',
            headers={"Content-Type": "application/json"}
        )
        self.error = error
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        return self.response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_settings(**overrides) -> Settings:
    """Settings that ignore the real environment's .env file."""
    values = {"GEMINI_API_KEY": TEST_API_KEY, "LOG_LEVEL": "DEBUG"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def api_key() -> str:
    return TEST_API_KEY


@pytest.fixture
def settings_factory():
    """Build Settings with a configured key plus overrides"""
    return make_settings


@pytest.fixture
def upstream_factory():
    """Build a FakeGemini with a chosen response or error"""
    return FakeGemini


@pytest.fixture
def mock_settings() -> Settings:
    """Settings with a configured API key"""
    return make_settings()


@pytest.fixture
def fake_gemini() -> FakeGemini:
    """Upstream that answers 200 {"candidates": []}"""
    return FakeGemini()


@pytest.fixture
def make_client():
    """
    Build a TestClient around a fresh app.

    Usage:
        client = make_client(settings, fake_gemini)
    """
    clients = []

    def _make(settings: Settings, upstream: FakeGemini) -> TestClient:
        app = create_app(settings=settings, transport=upstream.transport)
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, mock_settings, fake_gemini) -> TestClient:
    """Test client for an app with a configured key and a healthy upstream"""
    return make_client(mock_settings, fake_gemini)
