# tests/conftest.py
from __future__ import annotations

import base64
import os
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time; pin the test configuration first.
TEST_JWT_KEY = "threadhub-test-signing-key"
TEST_WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"threadhub-test-webhook-secret!!").decode()
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["CLERK_JWT_KEY"] = TEST_JWT_KEY
os.environ["CLERK_WEBHOOK_SECRET"] = TEST_WEBHOOK_SECRET
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("CLERK_SECRET_KEY", None)

from threadhub.api.v1.dependencies import get_cache, get_provider, get_retry_policy  # noqa: E402
from threadhub.db.session import create_tables, drop_tables  # noqa: E402
from threadhub.db.session import get_db as app_get_session  # noqa: E402
from threadhub.main import app as fastapi_app  # noqa: E402
from threadhub.models import Community, Thread, User  # noqa: E402
from threadhub.services.cache import ViewCache  # noqa: E402
from threadhub.services.identity import (  # noqa: E402
    ExternalMembership,
    ExternalOrganization,
    IdentityProvider,
    OrganizationNotFoundError,
)
from threadhub.services.retry import RetryPolicy  # noqa: E402

TEST_DB_URL = "sqlite://"


class FakeIdentityProvider(IdentityProvider):
    """In-memory identity provider with scriptable failures."""

    def __init__(self) -> None:
        self.organizations: dict[str, ExternalOrganization] = {}
        self.memberships: dict[str, list[str]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._queued_errors: dict[str, list[Exception]] = {}
        self._organization_errors: dict[str, Exception] = {}

    def add_organization(
        self,
        organization_id: str,
        name: str = "",
        slug: str | None = None,
        image_url: str | None = None,
        members: tuple[str, ...] = (),
    ) -> ExternalOrganization:
        organization = ExternalOrganization(
            id=organization_id, name=name, slug=slug, image_url=image_url
        )
        self.organizations[organization_id] = organization
        for user_id in members:
            self.memberships.setdefault(user_id, []).append(organization_id)
        return organization

    def remove_member(self, organization_id: str, user_id: str) -> None:
        self.memberships[user_id].remove(organization_id)

    def fail_next(self, method: str, *errors: Exception) -> None:
        """Raise ``errors`` from the next calls to ``method``, in order."""
        self._queued_errors.setdefault(method, []).extend(errors)

    def break_organization(self, organization_id: str, error: Exception) -> None:
        """Make every ``get_organization`` call for one organization fail."""
        self._organization_errors[organization_id] = error

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        queued = self._queued_errors.get(method)
        if queued:
            raise queued.pop(0)

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def list_memberships(self, user_id: str) -> list[ExternalMembership]:
        self._record("list_memberships", user_id)
        return [
            ExternalMembership(organization=self.organizations[oid], role="org:member")
            for oid in self.memberships.get(user_id, [])
        ]

    async def get_organization(self, organization_id: str) -> ExternalOrganization:
        self._record("get_organization", organization_id)
        if organization_id in self._organization_errors:
            raise self._organization_errors[organization_id]
        if organization_id not in self.organizations:
            raise OrganizationNotFoundError(organization_id)
        return self.organizations[organization_id]

    async def create_organization(
        self, name: str, slug: str, created_by: str
    ) -> ExternalOrganization:
        self._record("create_organization", name, slug, created_by)
        organization_id = f"org_fake{len(self.organizations) + 1:04d}"
        return self.add_organization(organization_id, name, slug, members=(created_by,))

    async def create_membership(
        self, organization_id: str, user_id: str, role: str = "org:admin"
    ) -> ExternalMembership:
        self._record("create_membership", organization_id, user_id, role)
        if organization_id not in self.memberships.setdefault(user_id, []):
            self.memberships[user_id].append(organization_id)
        return ExternalMembership(organization=self.organizations[organization_id], role=role)


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def cache() -> ViewCache:
    return ViewCache(ttl_seconds=60)


@pytest.fixture()
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def retry_policy() -> RetryPolicy:
    return RetryPolicy(retries=3, delay=0.0, multiplier=2.0)


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    provider: FakeIdentityProvider,
    cache: ViewCache,
    retry_policy: RetryPolicy,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_retry_policy] = lambda: retry_policy
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, TEST_JWT_KEY, algorithm="HS256")


def _make_user(db_session: Session, user_id: str, username: str, name: str) -> User:
    user = User(id=user_id, username=username, name=name, onboarded=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted, onboarded user."""
    return _make_user(db_session, "user_alice", "alice", "Alice Liddell")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted user."""
    return _make_user(db_session, "user_bob", "bob", "Bob Builder")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {make_token(test_user.id)}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return {"Authorization": f"Bearer {make_token(other_user.id)}"}


@pytest.fixture()
def community(db_session: Session, test_user: User) -> Community:
    """A local community created by the primary user, who is its only member."""
    community = Community(
        id="community_local0001",
        name="Test Community",
        username="test-community",
        bio="A community for tests",
        created_by=test_user,
    )
    community.members.append(test_user)
    db_session.add(community)
    db_session.commit()
    return community


@pytest.fixture()
def linked_community(db_session: Session, test_user: User) -> Community:
    """A community mirroring the Clerk organization ``org_linked``."""
    community = Community(
        id="org_linked",
        clerk_id="org_linked",
        name="Linked",
        username="linked",
        bio="",
        created_by=test_user,
    )
    community.members.append(test_user)
    db_session.add(community)
    db_session.commit()
    return community


@pytest.fixture()
def test_thread(db_session: Session, test_user: User) -> Thread:
    """A root thread written by the primary user."""
    thread = Thread(text="Hello from Alice", author=test_user)
    db_session.add(thread)
    db_session.commit()
    return thread


@pytest.fixture()
def headers_for() -> Any:
    """Build authorization headers for an arbitrary Clerk user ID."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers
