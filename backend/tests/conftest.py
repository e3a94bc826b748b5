"""
IdeaStore Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (mocked DB, real in-memory DB,
       in-memory blob store, API client).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── db_engine:       In-memory SQLite engine with the entries table
    ├── db_session:      AsyncSession bound to db_engine
    ├── blob_store:      InMemoryBlobStore (no Google Drive calls)
    ├── scratch_dir:     Temporary scratch directory
    └── test_client:     HTTPX AsyncClient wired to db_engine and blob_store
"""

import itertools
import os
import tempfile
from datetime import datetime, timezone
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any ideastore imports
# Why: Prevents tests from using the production database or Drive credentials
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GOOGLE_SERVICE_JSON"] = ""
os.environ["GOOGLE_SERVICE_ACCOUNT_FILE"] = os.path.join(
    tempfile.gettempdir(), "ideastore-test-missing-key.json"
)
os.environ["SCRATCH_DIR"] = tempfile.mkdtemp(prefix="ideastore_test_")
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from ideastore.database import Base, dispose_engine, get_db_session  # noqa: E402
from ideastore.dependencies import get_blob_store  # noqa: E402
from ideastore.exceptions import BlobNotFoundError  # noqa: E402
from ideastore.services.blob_store import BlobStore, StoredBlob  # noqa: E402
import ideastore.models  # noqa: E402,F401


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class InMemoryBlobStore(BlobStore):
    """
    BlobStore keeping blobs in a dict.

    Follows the BlobStore contract (BlobNotFoundError for unknown ids,
    update keeps the id) and counts calls so tests can assert which store
    operations a request made.
    """

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.labels: Dict[str, str] = {}
        self.calls: Dict[str, int] = {
            "upload": 0, "download": 0, "update": 0, "delete": 0,
        }
        self.healthy = True
        self._ids = itertools.count(1)

    def _require(self, blob_id: str) -> None:
        if blob_id not in self.blobs:
            raise BlobNotFoundError(blob_id)

    @staticmethod
    def view_link(blob_id: str) -> str:
        return f"https://drive.google.com/file/d/{blob_id}/view"

    async def upload(self, label: str, data: bytes) -> StoredBlob:
        self.calls["upload"] += 1
        blob_id = f"drive-{next(self._ids)}"
        self.blobs[blob_id] = data
        self.labels[blob_id] = label
        return StoredBlob(blob_id=blob_id, view_link=self.view_link(blob_id))

    async def download(self, blob_id: str) -> bytes:
        self.calls["download"] += 1
        self._require(blob_id)
        return self.blobs[blob_id]

    async def update(self, blob_id: str, data: bytes, label: str) -> StoredBlob:
        self.calls["update"] += 1
        self._require(blob_id)
        self.blobs[blob_id] = data
        self.labels[blob_id] = label
        return StoredBlob(blob_id=blob_id, view_link=self.view_link(blob_id))

    async def delete(self, blob_id: str) -> None:
        self.calls["delete"] += 1
        self._require(blob_id)
        del self.blobs[blob_id]
        del self.labels[blob_id]

    async def health_check(self) -> bool:
        return self.healthy

    @property
    def store_calls(self) -> int:
        return sum(self.calls.values())


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    What:    A MagicMock that simulates AsyncSession behavior.
    Why:     Service tests should not require a real database.
    How:     Mocks execute, flush, commit, rollback, delete and close methods.

    Usage:
        async def test_get_entry(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = entry
            result = await repository.get_by_id(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def blob_store():
    """A fresh InMemoryBlobStore."""
    return InMemoryBlobStore()


@pytest.fixture
def scratch_dir(tmp_path):
    """
    Provides a temporary scratch directory.

    What:    A fresh directory for each test.
    Why:     Lets tests assert that no scratch file outlives a call.
    """
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the entries table created.

    StaticPool keeps the single in-memory connection alive for the whole
    test, so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """An AsyncSession on the in-memory database."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(db_engine, blob_store):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient configured to talk to our FastAPI app.
    Why:     Enables testing of HTTP endpoints without running a server.
    How:     Uses ASGITransport to route requests directly to the app, with
             get_db_session bound to the in-memory database (commit per
             request, like production) and get_blob_store replaced by the
             in-memory store.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/entries")
            assert response.status_code == 200
    """
    from ideastore.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    # /health probes the module engine directly
    await dispose_engine()


@pytest.fixture
def make_entry():
    """
    Builds detached Entry objects for mock-session tests.

    Usage:
        entry = make_entry(entry_id=7, title="Plans")
    """
    from ideastore.models.entry import Entry

    def _make(
        entry_id: int = 1,
        blob_id: Optional[str] = "drive-1",
        blob_label: Optional[str] = "entry-1718000000000-1a2b3c4d.gz",
        title: Optional[str] = "Hello",
        tags: Optional[str] = '["idea"]',
    ):
        return Entry(
            id=entry_id,
            blob_id=blob_id,
            blob_label=blob_label,
            title=title,
            tags=tags,
            created_at=datetime.now(timezone.utc),
        )

    return _make
