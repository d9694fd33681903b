from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")

from typing import Any, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from socialauth.core.config import settings  # noqa: E402
from socialauth.db import session as db_session  # noqa: E402
from socialauth.db.base_class import Base  # noqa: E402
from socialauth.db.session import SessionLocal  # noqa: E402
from socialauth.models import models  # noqa: E402,F401
from socialauth.models.schemas import ProviderCredentials  # noqa: E402
from socialauth.services.oauth.registry import StrategyRegistry  # noqa: E402
from socialauth.services.oauth.state import InMemoryStateStore, OAuthStateManager  # noqa: E402

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Ensure application code uses the test engine
settings.DATABASE_URL = TEST_DATABASE_URL  # type: ignore[attr-defined]
settings.ENV = "test"  # type: ignore[attr-defined]
db_session.engine = test_engine  # type: ignore[assignment]
SessionLocal.configure(bind=test_engine)


@pytest.fixture(autouse=True)
def _reset_database_state():
    """Ensure each test sees a fresh database schema."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


Handler = Callable[[httpx.Request], httpx.Response]


class ProviderStub:
    """Canned provider endpoints behind ``httpx.MockTransport``.

    Routes are keyed by method and URL without query string. Every request
    is recorded; unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.calls: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        json: Any = None,
        status_code: int = 200,
        handler: Handler | None = None,
    ) -> None:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status_code, json=json if json is not None else {})
        self.routes[(method.upper(), url)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        handler = self.routes.get(key)
        if handler is None:
            return httpx.Response(404, json={"error": "not stubbed", "url": str(request.url)})
        return handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self), timeout=5.0)

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [
            r for r in self.calls
            if f"{r.url.scheme}://{r.url.host}{r.url.path}" == url
        ]


@pytest.fixture
def provider_stub() -> ProviderStub:
    return ProviderStub()


def make_credentials(provider: str = "google", **overrides: Any) -> ProviderCredentials:
    values: dict[str, Any] = {
        "client_id": f"{provider}-client-id",
        "client_secret": f"{provider}-client-secret",
        "callback_url": f"http://testserver/auth/{provider}/callback",
    }
    values.update(overrides)
    return ProviderCredentials(**values)


@pytest.fixture
def state_manager() -> OAuthStateManager:
    return OAuthStateManager(InMemoryStateStore(), ttl_seconds=600, enforce=True)


@pytest.fixture
def registry(state_manager: OAuthStateManager) -> StrategyRegistry:
    return StrategyRegistry(state_manager)


GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_PROFILE = {
    "sub": "u1",
    "email": "a@b.com",
    "given_name": "A",
    "family_name": "B",
    "name": "A B",
}


def stub_google(stub: ProviderStub, profile: dict | None = None, userinfo_status: int = 200) -> None:
    stub.add("POST", GOOGLE_TOKEN_URL, json={"access_token": "tok1", "token_type": "Bearer"})
    stub.add(
        "GET",
        GOOGLE_USERINFO_URL,
        json=profile if profile is not None else GOOGLE_PROFILE,
        status_code=userinfo_status,
    )


@pytest.fixture
def credentials():
    """Factory for ``ProviderCredentials``: ``credentials("github", scope="repo")``."""
    return make_credentials


@pytest.fixture
def google_stub(provider_stub: ProviderStub) -> ProviderStub:
    """Google token + userinfo endpoints answering the canonical test profile."""
    stub_google(provider_stub)
    return provider_stub
