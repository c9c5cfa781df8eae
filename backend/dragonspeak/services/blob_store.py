"""
Blob storage for raw session audio and produced transcript text.

Objects are addressed by (container, key). Keys are hierarchical
("{user}/{campaign}/{session}/audio-{uuid}") and map onto nested
directories in the local implementation.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from contextlib import suppress
from pathlib import Path, PurePosixPath
from typing import BinaryIO

import aiofiles
import aiofiles.os

from dragonspeak.errors import BlobStoreError, EntityNotFoundError, InvalidEntityError
from dragonspeak.utils.logger import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


class BlobStore(ABC):
    """Abstract byte-stream storage keyed by container and key."""

    @abstractmethod
    async def upload_data(self, container: str, key: str, body: BinaryIO) -> None:
        """
        Store the full contents of ``body`` under (container, key).

        Args:
            container: Bucket-like namespace
            key: Object path inside the container
            body: Readable binary stream positioned at the start of the data

        Raises:
            BlobStoreError: If the object could not be written
        """
        pass

    @abstractmethod
    async def download_data(self, container: str, key: str, destination: BinaryIO) -> int:
        """
        Copy the object at (container, key) into ``destination``.

        Returns:
            Number of bytes written to ``destination``

        Raises:
            EntityNotFoundError: If no object exists under the key
            BlobStoreError: If the object could not be read
        """
        pass

    @abstractmethod
    async def exists(self, container: str, key: str) -> bool:
        pass

    @abstractmethod
    async def delete_data(self, container: str, key: str) -> bool:
        pass


class LocalBlobStore(BlobStore):
    """
    Filesystem-backed blob store.

    Layout::

        base_path/
          {container}/
            {user_id}/{campaign_id}/{session_id}/audio-{uuid}
            {user_id}/{campaign_id}/{session_id}/transcript-{uuid}

    Writes land in a hidden temporary file that is renamed into place once
    complete, so readers never observe a partial object.
    """

    def __init__(self, base_path: str, chunk_size: int = CHUNK_SIZE) -> None:
        self.base_path = Path(base_path)
        self.chunk_size = chunk_size

    def _resolve(self, container: str, key: str) -> Path:
        """Map (container, key) to a path under ``base_path``, rejecting traversal."""
        for label, value in (("container", container), ("key", key)):
            if not value or not value.strip():
                raise InvalidEntityError(f"blob {label} must not be empty")
            parts = PurePosixPath(value).parts
            if PurePosixPath(value).is_absolute() or ".." in parts or "\\" in value:
                raise InvalidEntityError(f"unsafe blob {label}: {value}")
        if "/" in container:
            raise InvalidEntityError(f"unsafe blob container: {container}")
        return self.base_path.joinpath(container, *PurePosixPath(key).parts)

    async def upload_data(self, container: str, key: str, body: BinaryIO) -> None:
        target = self._resolve(container, key)
        partial = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")
        written = 0

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(partial, "wb") as f:
                while True:
                    chunk = await asyncio.to_thread(body.read, self.chunk_size)
                    if not chunk:
                        break
                    await f.write(chunk)
                    written += len(chunk)
            await aiofiles.os.replace(partial, target)

        except OSError as e:
            logger.error("Blob upload failed", container=container, key=key, error=str(e))
            raise BlobStoreError(f"Failed to store {container}/{key}: {str(e)}") from e

        finally:
            with suppress(FileNotFoundError):
                await aiofiles.os.remove(partial)

        logger.info("Blob stored", container=container, key=key, size_bytes=written)

    async def download_data(self, container: str, key: str, destination: BinaryIO) -> int:
        source = self._resolve(container, key)
        if not await aiofiles.os.path.isfile(source):
            logger.warning("Blob not found", container=container, key=key)
            raise EntityNotFoundError(f"Blob not found: {container}/{key}")

        written = 0
        try:
            async with aiofiles.open(source, "rb") as f:
                while True:
                    chunk = await f.read(self.chunk_size)
                    if not chunk:
                        break
                    await asyncio.to_thread(destination.write, chunk)
                    written += len(chunk)

        except FileNotFoundError as e:
            raise EntityNotFoundError(f"Blob not found: {container}/{key}") from e
        except OSError as e:
            logger.error("Blob download failed", container=container, key=key, error=str(e))
            raise BlobStoreError(f"Failed to read {container}/{key}: {str(e)}") from e

        logger.info("Blob read", container=container, key=key, size_bytes=written)
        return written

    async def exists(self, container: str, key: str) -> bool:
        return await aiofiles.os.path.isfile(self._resolve(container, key))

    async def delete_data(self, container: str, key: str) -> bool:
        """Remove an object. Returns False when nothing was stored under the key."""
        target = self._resolve(container, key)
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Blob delete failed", container=container, key=key, error=str(e))
            raise BlobStoreError(f"Failed to delete {container}/{key}: {str(e)}") from e

        logger.info("Blob deleted", container=container, key=key)
        return True
