"""
Tests for the filesystem blob store.
"""

import io
import threading
import pytest
from pathlib import Path

from dragonspeak.errors import EntityNotFoundError, InvalidEntityError
from dragonspeak.services.blob_store import LocalBlobStore


class TestLocalBlobStore:
    """Test the LocalBlobStore class."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> LocalBlobStore:
        """Create a blob store with a small chunk size to exercise chunking."""
        return LocalBlobStore(str(tmp_path), chunk_size=4)

    @pytest.mark.asyncio
    async def test_upload_creates_nested_object(self, store: LocalBlobStore, tmp_path: Path) -> None:
        """Test hierarchical keys become nested directories."""
        key = "user1/campaign1/session0/audio-testUUID"

        await store.upload_data("bucket", key, io.BytesIO(b"testaudio"))

        stored = tmp_path / "bucket" / "user1" / "campaign1" / "session0" / "audio-testUUID"
        assert stored.read_bytes() == b"testaudio"
        assert not list(stored.parent.glob("*.part"))

    @pytest.mark.asyncio
    async def test_download_returns_byte_count(self, store: LocalBlobStore) -> None:
        """Test downloading copies the object into the sink."""
        await store.upload_data("bucket", "a/transcript.txt", io.BytesIO(b"this is a test"))
        sink = io.BytesIO()

        written = await store.download_data("bucket", "a/transcript.txt", sink)

        assert written == 14
        assert sink.getvalue() == b"this is a test"

    @pytest.mark.asyncio
    async def test_upload_overwrites(self, store: LocalBlobStore) -> None:
        """Test uploading twice to a key keeps the latest content."""
        await store.upload_data("bucket", "key", io.BytesIO(b"first version"))
        await store.upload_data("bucket", "key", io.BytesIO(b"second"))
        sink = io.BytesIO()

        assert await store.download_data("bucket", "key", sink) == 6
        assert sink.getvalue() == b"second"

    @pytest.mark.asyncio
    async def test_download_missing_key(self, store: LocalBlobStore) -> None:
        """Test a missing object raises EntityNotFoundError."""
        with pytest.raises(EntityNotFoundError, match="bucket/missing"):
            await store.download_data("bucket", "missing", io.BytesIO())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["../escape", "a/../../escape", "/etc/passwd", "", "a\\b"])
    async def test_unsafe_keys_rejected(self, store: LocalBlobStore, key: str) -> None:
        """Test keys cannot escape the storage root."""
        with pytest.raises(InvalidEntityError):
            await store.upload_data("bucket", key, io.BytesIO(b"x"))

    @pytest.mark.asyncio
    async def test_unsafe_container_rejected(self, store: LocalBlobStore) -> None:
        """Test containers must be a single path segment."""
        with pytest.raises(InvalidEntityError):
            await store.upload_data("bucket/nested", "key", io.BytesIO(b"x"))

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, store: LocalBlobStore) -> None:
        """Test existence checks and deletion."""
        await store.upload_data("bucket", "a/b", io.BytesIO(b"x"))

        assert await store.exists("bucket", "a/b")
        assert await store.delete_data("bucket", "a/b")
        assert not await store.exists("bucket", "a/b")
        assert not await store.delete_data("bucket", "a/b")

    @pytest.mark.asyncio
    async def test_stream_io_runs_off_event_loop(self, store: LocalBlobStore) -> None:
        """Test reading the upload body and writing the download sink do not block the loop."""
        loop_thread = threading.get_ident()
        threads = []

        class RecordingStream(io.BytesIO):
            def read(self, size: int = -1) -> bytes:
                threads.append(threading.get_ident())
                return super().read(size)

            def write(self, data: bytes) -> int:
                threads.append(threading.get_ident())
                return super().write(data)

        await store.upload_data("bucket", "key", RecordingStream(b"ten bytes!"))
        sink = RecordingStream()
        await store.download_data("bucket", "key", sink)

        assert sink.getvalue() == b"ten bytes!"
        assert threads
        assert loop_thread not in threads
