"""Pytest configuration and fixtures."""

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.api.dependencies import get_blob_store
from src.database import Base, get_db
from src.main import app
from src.models.user import User
from src.services.blob_store import BlobStore, BlobStoreError, remove_local_file


class AuthHeaders(dict):
    """Dict subclass that also stores user info and the issued tokens."""

    def __init__(
        self,
        *args,
        user_id: int | None = None,
        username: str | None = None,
        email: str | None = None,
        access_token: str | None = None,
        refresh_token: str | None = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.username = username
        self.email = email
        self.access_token = access_token
        self.refresh_token = refresh_token


class FakeBlobStore(BlobStore):
    """In-memory blob store that records uploads and deletes."""

    def __init__(self):
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_uploads = False
        self.fail_deletes = False
        self.uploaded_paths: list[Path] = []

    def upload(self, local_path) -> str:
        path = Path(local_path)
        try:
            self.uploaded_paths.append(path)
            if self.fail_uploads:
                raise BlobStoreError("upload failed")
            public_id = f"vidtube/{len(self.uploaded) + 1}-{path.stem}"
            url = f"https://res.cloudinary.com/demo/image/upload/v1/{public_id}{path.suffix}"
            self.uploaded.append(url)
            return url
        finally:
            remove_local_file(path)

    def delete(self, url: str) -> None:
        if self.fail_deletes:
            raise BlobStoreError("delete failed")
        self.deleted.append(url)


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL") + "_test"
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    from src import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def blob_store():
    """Fake blob store shared by the app and the test."""
    return FakeBlobStore()


@pytest.fixture(scope="function")
def client(db, blob_store):
    """Create a test client with database and blob store overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Return a helper that registers a user through the API."""

    def _register(
        username: str = "Alice",
        email: str = "alice@example.com",
        password: str = "testpass123",
        full_name: str = "Alice Liddell",
        cover_image: bool = False,
    ):
        files = {"avatar": ("avatar.png", b"\x89PNG avatar", "image/png")}
        if cover_image:
            files["coverImage"] = ("cover.jpg", b"\xff\xd8 cover", "image/jpeg")
        return client.post(
            "/api/v1/users/register",
            data={
                "fullName": full_name,
                "username": username,
                "email": email,
                "password": password,
            },
            files=files,
        )

    return _register


@pytest.fixture
def auth_headers(client, register):
    """Create and log in a user; return bearer auth headers with user info."""
    response = register()
    assert response.status_code == 201
    user = response.json()

    response = client.post(
        "/api/v1/users/login", json={"email": "alice@example.com", "password": "testpass123"}
    )
    assert response.status_code == 200
    data = response.json()

    return AuthHeaders(
        {"Authorization": f"Bearer {data['accessToken']}"},
        user_id=user["id"],
        username=user["username"],
        email=user["email"],
        access_token=data["accessToken"],
        refresh_token=data["refreshToken"],
    )


@pytest.fixture
def make_user(db):
    """Return a helper that inserts a user row directly."""

    def _make_user(username: str, full_name: str | None = None) -> User:
        user = User(
            username=username.lower(),
            email=f"{username.lower()}@example.com",
            full_name=full_name or username.title(),
            password_hash="not-a-real-hash",  # noqa: S106
            avatar_url=f"https://res.cloudinary.com/demo/image/upload/v1/vidtube/{username}.png",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def session_factory():
    """Sessionmaker bound to the test database, for tests needing extra sessions."""
    return TestingSessionLocal
