"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on an in-memory SQLite database
   (aiosqlite + StaticPool keeps one shared connection alive), with
   the schema created from the ORM metadata.
2. The app's get_db dependency is overridden to yield that session, so
   HTTP tests and direct service tests see the same data.
3. The media host is replaced by an in-memory fake.

Environment variables are set BEFORE importing vidtube, because the
settings singleton reads them at import time. bcrypt runs with the
minimum work factor so hashing doesn't dominate the suite.
"""

import os

os.environ.setdefault("VIDTUBE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VIDTUBE_BCRYPT_ROUNDS", "4")
os.environ.setdefault("VIDTUBE_MEDIA_BASE_URL", "https://media.test")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from vidtube.db.engine import get_db  # noqa: E402
from vidtube.db.models import Base  # noqa: E402
from vidtube.errors import MediaUploadError  # noqa: E402
from vidtube.main import app  # noqa: E402
from vidtube.services.media import UploadResult, get_media_uploader  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class FakeMediaUploader:
    """In-memory media host. Records what was uploaded and deleted."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.duration = 42.5
        # Uploads whose filename ends with this suffix fail.
        self.fail_on = None

    async def upload(self, source, filename):
        if self.fail_on and filename.endswith(self.fail_on):
            raise MediaUploadError()
        url = f"https://media.test/{uuid.uuid4().hex}-{filename}"
        self.files[url] = source.read()
        is_video = filename.endswith((".mp4", ".mov", ".webm"))
        return UploadResult(url=url, duration=self.duration if is_video else None)

    async def delete(self, url):
        self.deleted.append(url)
        self.files.pop(url, None)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand-new in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture()
def media():
    return FakeMediaUploader()


@pytest_asyncio.fixture()
async def client(db_session, media):
    """HTTP client running the real auth pipeline against the test DB.

    Learn: Only get_db and the media host are overridden. Tokens are
    real JWTs, so tests exercise cookie/header extraction end to end.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_uploader] = lambda: media

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def signup(client):
    """Register + login helper. Returns the login payload's data."""

    async def _signup(username=None, password="password_123", email=None):
        username = username or f"user{uuid.uuid4().hex[:8]}"
        email = email or f"{username}@example.com"
        r = await client.post(
            "/api/v1/users/register",
            json={
                "username": username,
                "email": email,
                "fullname": f"{username} Fullname",
                "password": password,
            },
        )
        assert r.status_code == 201, r.text

        r = await client.post(
            "/api/v1/users/login",
            json={"username": username, "password": password},
        )
        assert r.status_code == 200, r.text
        return r.json()["data"]

    return _signup
