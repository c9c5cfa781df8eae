"""
Pytest configuration and fixtures for testing.
"""

import os
import tempfile

# Must be set before dragonspeak modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BLOB_STORAGE_PATH", tempfile.mkdtemp(prefix="dragonspeak-blobs-"))

import pytest
from typing import BinaryIO, Dict, Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

import dragonspeak.models.transcript  # noqa: F401
from dragonspeak.db.database import Base
from dragonspeak.errors import EntityNotFoundError
from dragonspeak.services.blob_store import BlobStore
from dragonspeak.services.transcript_repository import TranscriptRepository
from dragonspeak.utils.identifiers import UUIDProvider

TEST_UUID = "testUUID"
TEST_BUCKET = "testBucket"


class FixedUUIDProvider(UUIDProvider):
    """Always returns the same identifier."""

    def __init__(self, value: str = TEST_UUID) -> None:
        self.value = value

    def new_uuid(self) -> str:
        return self.value


class InMemoryBlobStore(BlobStore):
    """Blob store double that keeps objects in a dict and counts calls."""

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.upload_calls = 0
        self.download_calls = 0

    async def upload_data(self, container: str, key: str, body: BinaryIO) -> None:
        self.upload_calls += 1
        self.files[f"{container}/{key}"] = body.read()

    async def download_data(self, container: str, key: str, destination: BinaryIO) -> int:
        self.download_calls += 1
        content = self.files.get(f"{container}/{key}")
        if content is None:
            raise EntityNotFoundError(f"Blob not found: {container}/{key}")
        destination.write(content)
        return len(content)

    async def exists(self, container: str, key: str) -> bool:
        return f"{container}/{key}" in self.files

    async def delete_data(self, container: str, key: str) -> bool:
        return self.files.pop(f"{container}/{key}", None) is not None

    def get_content(self, container: str, key: str) -> Optional[bytes]:
        return self.files.get(f"{container}/{key}")


@pytest.fixture(scope="function")
def test_engine() -> Generator[Engine, None, None]:
    """Create an in-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine: Engine) -> Generator[Session, None, None]:
    """Create test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(test_db: Session) -> TranscriptRepository:
    return TranscriptRepository(test_db)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def uuid_provider() -> FixedUUIDProvider:
    return FixedUUIDProvider()
