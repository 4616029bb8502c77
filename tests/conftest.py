# tests/conftest.py
import os
import tempfile

# Set up test environment variables BEFORE any other imports
_test_dir = tempfile.mkdtemp(prefix="filevault-tests-")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
default_test_url = f"sqlite+aiosqlite:///{_test_dir}/test.db"
os.environ.setdefault("TEST_DATABASE_URL", default_test_url)
os.environ.setdefault("DATABASE_URL", os.environ.get("TEST_DATABASE_URL", default_test_url))
os.environ.setdefault("LOCAL_STORAGE_PATH", f"{_test_dir}/uploads")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-admin-tokens-0123456789")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("EXPIRY_SWEEP_MODE", "disabled")
os.environ.setdefault("STORAGE_BACKEND", "local")

from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filevault.core.config import settings
from filevault.core.dependencies import get_blob_store, get_db
from filevault.core.security import AdminTokenManager
from filevault.domains.files.service import FileService
from filevault.main import app
from filevault.services.storage import LocalBlobStore
from models import Base, FileRecord
from tests.factories import make_upload


@pytest.fixture
def test_settings():
    return settings


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/filevault.db", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def file_service(test_db, blob_store):
    return FileService(test_db, blob_store)


@pytest.fixture
def create_file(file_service) -> Callable[..., Awaitable[FileRecord]]:
    """Upload a file through the service so both record and blob exist."""

    async def _create(
        content: bytes = b"%PDF-1.4 test document",
        filename: str = "report.pdf",
        password: str = "secret1",
        content_type: str | None = "application/pdf",
        ttl=None,
    ) -> FileRecord:
        upload = make_upload(content, filename, content_type)
        return await file_service.create_file(upload, password, ttl=ttl)

    return _create


@pytest_asyncio.fixture
async def client(session_factory, blob_store):
    """Create a test client with database and storage overrides.

    Every request gets its own session, as it would in production.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_token() -> str:
    token, _ = AdminTokenManager().issue_token()
    return token


@pytest_asyncio.fixture
async def admin_client(client, admin_token):
    """A second client, sharing the overrides of ``client``, that sends a valid admin token."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as ac:
        yield ac
