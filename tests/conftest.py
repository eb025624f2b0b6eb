# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-spectr")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="spectr-uploads-"))
os.environ.setdefault("PRESENCE_BACKEND", "local")

from spectr.api.v1 import dependencies as api_dependencies  # noqa: E402
from spectr.db.session import Base  # noqa: E402
from spectr.db.session import get_db as app_get_session  # noqa: E402
from spectr.main import app as fastapi_app  # noqa: E402
from spectr.models import Chat, User  # noqa: E402
from spectr.models.chat import CHAT_GROUP  # noqa: E402
from spectr.models.user import ROLE_ADMIN  # noqa: E402
from spectr.repositories.chat_repo import ChatRepository  # noqa: E402
from spectr.services.delivery import LocalDelivery  # noqa: E402
from spectr.services.fanout import MessageFanout  # noqa: E402
from spectr.services.oauth import ExternalIdentity, OAuthError  # noqa: E402
from spectr.services.presence import PresenceRegistry  # noqa: E402
from spectr.services.realtime import RealtimeGateway  # noqa: E402
from spectr.services.storage import LocalFileStorage  # noqa: E402
from tests.support import auth_headers  # noqa: E402

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
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
        session.rollback()
        session.close()

        # Repositories commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def repo(db_session: Session) -> ChatRepository:
    return ChatRepository(db_session)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def registry() -> PresenceRegistry:
    return PresenceRegistry()


@pytest.fixture()
def delivery(registry: PresenceRegistry) -> LocalDelivery:
    return LocalDelivery(registry, write_timeout=0.5)


@pytest.fixture()
def fanout(delivery: LocalDelivery) -> MessageFanout:
    return MessageFanout(delivery, persistence_timeout=5.0, max_message_length=4000)


@pytest.fixture()
def gateway(
    app: FastAPI,
    registry: PresenceRegistry,
    delivery: LocalDelivery,
    fanout: MessageFanout,
) -> Iterator[RealtimeGateway]:
    """Fresh gateway per test, also used by the HTTP and WebSocket routes."""
    gateway = RealtimeGateway(registry, delivery, fanout)
    app.dependency_overrides[api_dependencies.get_gateway_dep] = lambda: gateway
    try:
        yield gateway
    finally:
        app.dependency_overrides.pop(api_dependencies.get_gateway_dep, None)


@pytest.fixture()
def client(app: FastAPI, gateway: RealtimeGateway) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(repo: ChatRepository) -> Callable[..., User]:
    """Factory creating persisted users with unique external ids."""

    def _make_user(display_name: str | None = None, *, email: str | None = None, admin: bool = False) -> User:
        n = next(_USER_COUNTER)
        user = repo.create_user(
            external_id=f"google-{n}",
            email=email or f"user{n}@example.com",
            display_name=display_name or f"User {n}",
            avatar_url=None,
        )
        if admin:
            user.role = ROLE_ADMIN
            repo.session.commit()
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    return make_user("Alice")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user("Bob")


@pytest.fixture()
def admin_user(make_user: Callable[..., User]) -> User:
    return make_user("Admin", admin=True)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers(other_user)


@pytest.fixture()
def make_chat(repo: ChatRepository) -> Callable[..., Chat]:
    def _make_chat(owner: User, *members: User, kind: str = CHAT_GROUP, name: str | None = "Test chat") -> Chat:
        return repo.create_chat(
            kind=kind,
            name=name,
            created_by=owner.id,
            member_ids=[member.id for member in members],
        )

    return _make_chat


class FakeOAuthProvider:
    """Stands in for Google in endpoint tests."""

    configured = True

    def __init__(self) -> None:
        self.identity = ExternalIdentity(
            subject="google-sub-1",
            email="carol@example.com",
            name="Carol",
            avatar_url="https://example.com/carol.png",
        )
        self.fail = False
        self.codes: list[str] = []

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example.com/auth?state={state}"

    async def exchange(self, code: str) -> ExternalIdentity:
        self.codes.append(code)
        if self.fail:
            raise OAuthError("Provider rejected the authorization code")
        return self.identity


@pytest.fixture()
def oauth_provider(app: FastAPI) -> Iterator[FakeOAuthProvider]:
    provider = FakeOAuthProvider()
    app.dependency_overrides[api_dependencies.get_oauth_provider_dep] = lambda: provider
    try:
        yield provider
    finally:
        app.dependency_overrides.pop(api_dependencies.get_oauth_provider_dep, None)


@pytest.fixture()
def file_storage(app: FastAPI, tmp_path) -> Iterator[LocalFileStorage]:
    storage = LocalFileStorage(tmp_path / "uploads", url_prefix="/uploads", max_bytes=1024)
    app.dependency_overrides[api_dependencies.get_file_storage_dep] = lambda: storage
    try:
        yield storage
    finally:
        app.dependency_overrides.pop(api_dependencies.get_file_storage_dep, None)


@pytest.fixture()
def notifier(app: FastAPI, mocker) -> Iterator[Any]:
    fake = mocker.Mock()
    fake.notify.return_value = False
    app.dependency_overrides[api_dependencies.get_report_notifier_dep] = lambda: fake
    try:
        yield fake
    finally:
        app.dependency_overrides.pop(api_dependencies.get_report_notifier_dep, None)
