import pytest
from fastapi.testclient import TestClient

from qrlogin.core.config import Settings
from qrlogin.core.security import create_access_token
from qrlogin.db import InMemoryDB
from qrlogin.main import create_app
from qrlogin.services.token_store import TokenStore


class FakeClock:
    """Manually advanced clock so TTL tests never sleep."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    s = Settings()
    s.QR_LOGIN_TTL_SECONDS = 120
    s.PURGE_GRACE_SECONDS = 60
    s.MAX_OUTSTANDING_TOKENS = 100
    s.RATE_LIMIT_ENABLED = False
    s.SWEEPER_ENABLED = False
    s.AUDIT_LOG_FILE = None
    return s


@pytest.fixture
def db():
    return InMemoryDB()


@pytest.fixture
def store(clock):
    return TokenStore(ttl_seconds=120, max_outstanding=100, clock=clock)


@pytest.fixture
def app(settings, db, clock):
    return create_app(settings=settings, db=db, clock=clock)


@pytest.fixture
def client(app):
    # No context manager: the lifespan (and its background sweeper) stays off
    return TestClient(app)


@pytest.fixture
def auth_headers(settings):
    def _headers(user_id: str = "alice") -> dict:
        return {"Authorization": f"Bearer {create_access_token(settings, user_id)}"}

    return _headers
