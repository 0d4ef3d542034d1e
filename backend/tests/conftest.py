"""Shared fixtures: in-memory row store, signed-in users and stubbed upstream APIs."""

import os
from typing import Any, Callable, Dict, List, Optional

# Keep tests off real services and secrets
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""
os.environ["AUTH_SECRET"] = "test-secret"
os.environ["CALCOM_API_KEY"] = ""
os.environ["ELEVENLABS_API_KEY"] = ""

import httpx
import pytest
from fastapi.testclient import TestClient

from propcall.api.deps import get_calcom_client, get_elevenlabs_client
from propcall.config import get_settings
from propcall.db import InMemoryDB, get_db
from propcall.main import app
from propcall.services.calcom_client import CalComClient
from propcall.services.elevenlabs_client import ElevenLabsClient
from propcall.services.security import Identity, create_session_token, hash_password

TEST_PASSWORD = "correct-horse-battery"


class Upstream:
    """Stands in for a remote HTTP API: records requests, replies with a canned response."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.reply: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={})

    def respond(self, status_code: int = 200, **kwargs: Any) -> None:
        self.reply = lambda request: httpx.Response(status_code, **kwargs)

    def fail_to_connect(self) -> None:
        def reply(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.reply = reply

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture(scope="session")
def password() -> str:
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def db() -> InMemoryDB:
    return InMemoryDB()


@pytest.fixture
def calcom() -> Upstream:
    return Upstream()


@pytest.fixture
def elevenlabs() -> Upstream:
    return Upstream()


@pytest.fixture
def client(db, calcom, elevenlabs):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_calcom_client] = lambda: CalComClient("cal-test-key", transport=calcom.transport)
    app.dependency_overrides[get_elevenlabs_client] = lambda: ElevenLabsClient(
        "xi-test-key", transport=elevenlabs.transport
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db, password_hash) -> Callable[..., Identity]:
    def _make(email: str, name: Optional[str] = None, **extra: Any) -> Identity:
        row = db.insert("users", {"email": email, "name": name, "password": password_hash, **extra})
        return Identity(id=row["id"], email=row["email"], name=row["name"])

    return _make


def auth_headers(identity: Identity) -> Dict[str, str]:
    settings = get_settings()
    token = create_session_token(identity, settings.auth_secret, settings.auth_token_ttl_minutes)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[Identity], Dict[str, str]]:
    return auth_headers


@pytest.fixture
def alice(make_user) -> Identity:
    return make_user("alice@example.com", "Alice")


@pytest.fixture
def bob(make_user) -> Identity:
    return make_user("bob@example.com", "Bob")


@pytest.fixture
def alice_headers(alice) -> Dict[str, str]:
    return auth_headers(alice)


@pytest.fixture
def bob_headers(bob) -> Dict[str, str]:
    return auth_headers(bob)
