import httpx
import pytest
from fastapi.testclient import TestClient

from sealhook.core.config import Settings
from sealhook.domain.sealer import Sealer
from sealhook.main import create_app

TEST_SECRET = "test-secret"
BASE_URL = "http://relay.test"


class RecordingTarget:
    """Stands in for a webhook target; records every request it receives."""

    def __init__(self, status_code: int = 200, content: bytes = b"ok", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {"Content-Type": "text/plain"}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)


def make_settings(**overrides) -> Settings:
    values = {
        "SECRET": TEST_SECRET,
        "BASE_URL": BASE_URL,
        "RATE_LIMIT_ENABLED": False,
        "PASSWORD": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def sealer():
    return Sealer(TEST_SECRET)


@pytest.fixture
def target():
    return RecordingTarget()


@pytest.fixture
def make_client(target):
    """Build a TestClient around a fresh app whose outbound calls hit ``handler``."""
    def _make(handler=None, **overrides):
        app = create_app(make_settings(**overrides), transport=httpx.MockTransport(handler or target))
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()
