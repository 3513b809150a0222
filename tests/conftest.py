# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from pathlib import Path
from typing import Any

import pytest

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_BACKEND"] = "memory"
os.environ["CROSSPOST_API_KEY"] = ""
os.environ["CROSSPOST_API_SECRET"] = ""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from snapfeed.api.v1.dependencies import (
    get_gateway_dep,
    get_media_storage_dep,
    get_session_store_dep,
)
from snapfeed.db.session import Base, build_engine
from snapfeed.db.session import get_db as app_get_session
from snapfeed.main import app as fastapi_app
from snapfeed.models import User
from snapfeed.services import user_service
from snapfeed.services.gateway import (
    AccessGrant,
    ExternalPost,
    ExternalProfile,
    MediaPayload,
    RequestToken,
)
from snapfeed.services.media import LocalMediaStorage
from snapfeed.services.post_service import MediaUpload
from snapfeed.services.sessions import MemorySessionStore, UserSnapshotCache

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "secret-pass"

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


class FakeGateway:
    """In-memory stand-in for the external network client."""

    def __init__(self) -> None:
        self.configured = True
        self.account_id = "9001"
        self.handle = "alice_x"
        self.published: list[tuple[str, MediaPayload | None]] = []
        self.exchanged: list[tuple[str, str, str]] = []
        self.failure: Exception | None = None

    async def request_token(self, callback_url: str) -> RequestToken:
        return RequestToken(
            token="req-token",
            secret="req-secret",
            authorize_url="https://x.test/oauth/authorize?oauth_token=req-token",
        )

    async def exchange_token(self, token: str, secret: str, verifier: str) -> AccessGrant:
        self.exchanged.append((token, secret, verifier))
        return AccessGrant(
            access_token="acc-token",
            access_secret="acc-secret",
            account_id=self.account_id,
            screen_name=self.handle,
        )

    async def get_profile(self, access_token: str, access_secret: str) -> ExternalProfile:
        return ExternalProfile(
            account_id=self.account_id,
            name="Alice X",
            handle=self.handle,
            profile_image_url=None,
        )

    async def post_media(
        self,
        access_token: str,
        access_secret: str,
        text: str,
        media: MediaPayload | None = None,
    ) -> ExternalPost:
        if self.failure is not None:
            raise self.failure
        self.published.append((text, media))
        return ExternalPost(post_id=str(1000 + len(self.published)), text=text, with_media=media is not None)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Services commit on their own, so each test is isolated by wiping rows afterwards.
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def session_store() -> MemorySessionStore:
    return MemorySessionStore(ttl_seconds=3600)


@pytest.fixture()
def user_cache(session_store: MemorySessionStore) -> UserSnapshotCache:
    return UserSnapshotCache(session_store, ttl_seconds=300)


@pytest.fixture()
def media_storage(tmp_path: Path) -> LocalMediaStorage:
    return LocalMediaStorage(tmp_path / "media")


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    session_store: MemorySessionStore,
    media_storage: LocalMediaStorage,
    gateway: FakeGateway,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        app_get_session: _get_session_override,
        get_session_store_dep: lambda: session_store,
        get_media_storage_dep: lambda: media_storage,
        get_gateway_dep: lambda: gateway,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory that registers users with the shared test password."""

    def _make(username: str, email: str | None = None) -> User:
        return user_service.register_user(
            db_session,
            username=username,
            email=email or f"{username}@example.com",
            password=TEST_PASSWORD,
        )

    return _make


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol")


@pytest.fixture()
def login_headers(
    db_session: Session,
    session_store: MemorySessionStore,
) -> Callable[[User], dict[str, str]]:
    """Return a helper that opens a session for a user and builds auth headers."""

    def _login(user: User) -> dict[str, str]:
        result = user_service.login(
            db_session,
            session_store,
            username=user.username,
            password=TEST_PASSWORD,
        )
        return {"Authorization": f"Bearer {result.access_token}"}

    return _login


@pytest.fixture()
def alice_headers(alice: User, login_headers: Callable[[User], dict[str, str]]) -> dict[str, str]:
    return login_headers(alice)


@pytest.fixture()
def bob_headers(bob: User, login_headers: Callable[[User], dict[str, str]]) -> dict[str, str]:
    return login_headers(bob)


def jpeg_upload() -> MediaUpload:
    return MediaUpload(data=JPEG_BYTES, content_type="image/jpeg")


def upload_post(
    client: TestClient,
    headers: dict[str, str],
    caption: str = "",
    *,
    content: bytes = JPEG_BYTES,
    content_type: str = "image/jpeg",
    filename: str = "photo.jpg",
    **form: Any,
) -> Any:
    """POST a multipart post upload and return the response."""
    data = {"caption": caption}
    data.update({key: str(value) for key, value in form.items() if value is not None})
    return client.post(
        "/api/v1/posts",
        data=data,
        files={"media": (filename, content, content_type)},
        headers=headers,
    )
