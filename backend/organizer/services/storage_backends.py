"""
Excalidraw Organizer Backend — Object Storage Backends
=======================================================

What:  Byte-level object stores behind the StorageService.
Why:   Drawings are snapshotted to object storage so they can be exported,
       backed up and served without hitting the database. Production uses a
       Supabase Storage bucket; development and tests use the local disk.
How:   StorageBackend is the contract; LocalStorageBackend writes files with
       aiofiles, SupabaseStorageBackend wraps the (synchronous) supabase
       client and runs each call in a worker thread.

Contract:
    - Keys are relative POSIX paths: drawings/{id}/data.json
    - upload() overwrites an existing object (upsert)
    - download() raises FileNotFoundError for a missing key
    - delete() of a missing key is not an error
    - Any other failure propagates unchanged; retries and error translation
      happen one level up, in StorageService
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import aiofiles
from supabase import create_client

from organizer.config import settings
from organizer.exceptions import StorageError

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract interface for an object store keyed by relative paths."""

    name: str = "abstract"

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    async def download(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe used by GET /health/storage."""
        ...

    @property
    def location(self) -> str:
        """Human-readable bucket/directory name for health output."""
        return self.name


def _validate_key(key: str) -> str:
    """Rejects absolute keys and any `..` segment."""
    path = PurePosixPath(key)
    if path.is_absolute() or ".." in path.parts or not path.parts:
        raise StorageError(message="Invalid storage key", context={"key": key})
    return str(path)


# ══════════════════════════════════════════════════════════════════════════
# Local filesystem
# ══════════════════════════════════════════════════════════════════════════


class LocalStorageBackend(StorageBackend):
    """
    Stores objects as files under a root directory.

    Directory Structure:
        storage/
        └── drawings/
            └── 6f1c.../
                ├── data.json
                └── thumbnail.png
    """

    name = "local"

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.storage_root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def location(self) -> str:
        return str(self.root)

    def _path(self, key: str) -> Path:
        path = (self.root / _validate_key(key)).resolve()
        # Resolved path must stay inside the storage root
        if self.root not in path.parents:
            raise StorageError(message="Invalid storage key", context={"key": key})
        return path

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(data)
        os.replace(tmp_path, path)

    async def download(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
        # Drop the per-drawing directory once it is empty
        parent = path.parent
        if parent != self.root and parent.exists() and not any(parent.iterdir()):
            parent.rmdir()

    async def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    async def health_check(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)


# ══════════════════════════════════════════════════════════════════════════
# Supabase Storage
# ══════════════════════════════════════════════════════════════════════════


def _is_not_found(exc: Exception) -> bool:
    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    return str(status) == "404" or "not found" in str(exc).lower()


class SupabaseStorageBackend(StorageBackend):
    """
    Objects in a Supabase Storage bucket, addressed by the same keys.

    The supabase client is synchronous; every call runs in a worker thread
    via asyncio.to_thread so the event loop is never blocked on the network.
    The client is created lazily on first use.
    """

    name = "supabase"

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        bucket: Optional[str] = None,
        client: Any = None,
    ):
        self.url = url if url is not None else settings.supabase_url
        self.key = key if key is not None else settings.supabase_service_role_key
        self.bucket = bucket or settings.supabase_storage_bucket
        self._client = client

    @property
    def location(self) -> str:
        return self.bucket

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.url or not self.key:
                raise StorageError(message="Supabase storage is not configured")
            self._client = create_client(self.url, self.key)
            logger.info("Supabase storage client initialized for bucket '%s'", self.bucket)
        return self._client

    def _bucket(self) -> Any:
        return self.client.storage.from_(self.bucket)

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        key = _validate_key(key)
        await asyncio.to_thread(
            self._bucket().upload,
            key,
            data,
            {"content-type": content_type, "upsert": "true"},
        )

    async def download(self, key: str) -> bytes:
        key = _validate_key(key)
        try:
            return await asyncio.to_thread(self._bucket().download, key)
        except Exception as e:
            if _is_not_found(e):
                raise FileNotFoundError(key) from e
            raise

    async def delete(self, key: str) -> None:
        key = _validate_key(key)
        await asyncio.to_thread(self._bucket().remove, [key])

    async def exists(self, key: str) -> bool:
        key = _validate_key(key)
        folder = str(PurePosixPath(key).parent)
        filename = PurePosixPath(key).name
        entries = await asyncio.to_thread(
            self._bucket().list, folder, {"search": filename}
        )
        return any(entry.get("name") == filename for entry in entries or [])

    async def health_check(self) -> bool:
        await asyncio.to_thread(self._bucket().list, "", {"limit": 1})
        return True


def create_backend() -> StorageBackend:
    """Backend selected by STORAGE_BACKEND."""
    if settings.storage_backend == "supabase":
        return SupabaseStorageBackend()
    return LocalStorageBackend()
