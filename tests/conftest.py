"""Shared fixtures: in-memory database, users and an app client."""

from __future__ import annotations

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FRONTEND_ORIGIN"] = ""
os.environ["COOKIE_SECURE"] = "0"
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-google-client")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-google-secret")

from typing import Any, Dict, Iterator, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from authlib.integrations.starlette_client import OAuthError  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, func, select  # noqa: E402
from starlette.responses import RedirectResponse  # noqa: E402

import membership.models  # noqa: E402,F401
from membership.app import create_app  # noqa: E402
from membership.core import get_session  # noqa: E402
from membership.core.database import make_engine  # noqa: E402
from membership.models import Account, IntentRecord, Role, User  # noqa: E402
from membership.services import providers  # noqa: E402
from membership.services.passwords import hash_password  # noqa: E402
from membership.services.users import create_user  # noqa: E402


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    def _make(
        email: str,
        *,
        password: str | None = None,
        role: Role = Role.USER,
        verified: bool = True,
        name: str | None = None,
    ) -> User:
        return create_user(
            session,
            email=email,
            name=name,
            password_hash=hash_password(password) if password else None,
            role=role,
            email_verified=verified,
        )

    return _make


@pytest.fixture
def counts(engine):
    """Row counters read through a fresh session."""

    def _count(model) -> int:
        with Session(engine) as fresh:
            return int(fresh.exec(select(func.count()).select_from(model)).one())

    class Counts:
        users = staticmethod(lambda: _count(User))
        accounts = staticmethod(lambda: _count(Account))
        intents = staticmethod(lambda: _count(IntentRecord))

    return Counts


@pytest.fixture
def sent_mail() -> List[Tuple[str, str, str]]:
    return []


@pytest.fixture
def client(engine, sent_mail) -> Iterator[TestClient]:
    app = create_app(mailer=lambda email, token, locale: sent_mail.append((email, token, locale)))

    def _session() -> Iterator[Session]:
        with Session(engine) as db:
            yield db

    app.dependency_overrides[get_session] = _session
    with TestClient(app) as test_client:
        yield test_client


class FakeResponse:
    def __init__(self, payload: Dict[str, Any]):
        self.payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self) -> Dict[str, Any]:
        return self.payload


class FakeOAuthClient:
    """Stands in for an Authlib client; no network."""

    def __init__(self) -> None:
        self.userinfo: Optional[Dict[str, Any]] = None
        self.profile: Dict[str, Any] = {}
        self.error: Optional[str] = None
        self.redirect_uri: Optional[str] = None

    async def authorize_redirect(self, request, redirect_uri):
        self.redirect_uri = redirect_uri
        return RedirectResponse("https://accounts.example/authorize?state=xyz", status_code=302)

    async def authorize_access_token(self, request):
        if self.error:
            raise OAuthError(error=self.error)
        return {"access_token": "token", "userinfo": self.userinfo}

    async def get(self, path, token=None):
        return FakeResponse(self.profile)


@pytest.fixture
def fake_oauth(monkeypatch) -> FakeOAuthClient:
    fake = FakeOAuthClient()

    def get_client(provider):
        return fake if provider in ("google", "microsoft-entra-id") else None

    monkeypatch.setattr(providers, "get_client", get_client)
    return fake


@pytest.fixture
def oauth_round_trip(client, fake_oauth):
    """Start an OAuth sign-in and return the callback response."""

    def _run(*, intent: str, email: Optional[str] = None, provider: str = "google", locale="en"):
        if provider == "google":
            fake_oauth.userinfo = {"sub": "google-123", "email": email, "name": "Google User"}
        start = client.get(
            f"/auth/{provider}/start",
            params={"intent": intent, "locale": locale},
            follow_redirects=False,
        )
        assert start.status_code == 302
        return client.get(
            f"/auth/{provider}/callback",
            params={"code": "c", "state": "xyz"},
            follow_redirects=False,
        )

    return _run
