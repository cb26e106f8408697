"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="deaftube-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'deaftube_test.db'}"
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["DB_CREATE_ALL"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LEDGER_MAX_ATTEMPTS"] = "3"
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture(autouse=True)
def fresh_schema() -> Generator[None, None, None]:
    """Give every test empty tables."""
    from deaftube.db.models import Base
    from deaftube.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def session():
    """A database session bound to the test database."""
    from deaftube.db.session import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def test_client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    from deaftube.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def storage(tmp_path):
    """A blob store rooted in a per-test directory."""
    from deaftube.services.storage import StorageService

    return StorageService(base_path=tmp_path / "uploads", max_video_bytes=1024)


@pytest.fixture
def make_user(session) -> Callable[..., str]:
    """Create a user directly in the database and return its id."""
    from deaftube.db.models import UserModel
    from deaftube.services.identity import hash_password

    def _make_user(username: str, password: str = "secret123") -> str:
        user = UserModel(
            username=username,
            email=f"{username}@example.com",
            password=hash_password(password),
        )
        session.add(user)
        session.commit()
        return user.id

    return _make_user


@pytest.fixture
def make_video(session) -> Callable[..., str]:
    """Create a video directly in the database and return its id."""
    from deaftube.db.models import VideoModel

    def _make_video(owner_id: str, title: str = "Morning ASL practice", **fields) -> str:
        video = VideoModel(
            user_id=owner_id,
            title=title,
            filename=fields.pop("filename", "clip.mp4"),
            **fields,
        )
        session.add(video)
        session.commit()
        return video.id

    return _make_video


@pytest.fixture
def register(test_client: TestClient) -> Callable[[str], tuple[str, dict[str, str]]]:
    """Register through the API; returns (user id, auth headers)."""

    def _register(username: str) -> tuple[str, dict[str, str]]:
        response = test_client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": "secret123",
            },
        )
        assert response.status_code == 200, response.text
        data = response.json()
        return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}

    return _register
