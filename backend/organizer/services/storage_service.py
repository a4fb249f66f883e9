"""
Excalidraw Organizer Backend — Drawing Storage Service
=======================================================

What:  Stores drawing snapshots (scene JSON + PNG thumbnail) in object storage.
Why:   Keeps an export-ready copy of every drawing outside the database and
       lets thumbnails be served as real image bytes.
How:   Fixed key layout per drawing, gzip for large scenes, and a tenacity
       retry around every backend call.

Key layout:
    drawings/{drawing_id}/data.json       scene JSON (gzip when > 1 KiB)
    drawings/{drawing_id}/thumbnail.png   decoded PNG bytes

Retry policy:
    3 attempts, exponential backoff starting at 1s (1s, 2s, 4s ... capped).
    A missing object (FileNotFoundError) is never retried. When attempts are
    exhausted the last error is wrapped in StorageError.
"""

import base64
import binascii
import json
import logging
import zlib
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from organizer.config import settings
from organizer.exceptions import NotFoundError, StorageError, ValidationError
from organizer.schemas.drawing import IMAGE_DATA_URL
from organizer.services.storage_backends import StorageBackend, create_backend
from organizer.utils.compression import compress_json, load_json, should_compress, to_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_CONTENT_TYPE = "application/json"
GZIP_CONTENT_TYPE = "application/gzip"
PNG_CONTENT_TYPE = "image/png"


def drawing_key(drawing_id: Any) -> str:
    return f"drawings/{drawing_id}/data.json"


def thumbnail_key(drawing_id: Any) -> str:
    return f"drawings/{drawing_id}/thumbnail.png"


def decode_data_url(data: str) -> bytes:
    """
    Decodes a base64 image data URL (or bare base64) to bytes.

    Raises:
        ValidationError: the payload is not valid base64
    """
    _, sep, payload = data.partition(";base64,")
    encoded = payload if sep else data
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(message="Thumbnail is not valid base64 image data", field="thumbnail")


def data_url_media_type(data: str) -> str:
    """Media type declared by an image data URL; bare base64 is taken as PNG."""
    match = IMAGE_DATA_URL.match(data)
    return match.group(1).lower() if match else PNG_CONTENT_TYPE


class StorageService:
    """
    Drawing-level operations on top of a StorageBackend.

    Lifecycle of a drawing's objects:
        1. POST /api/drawings → upload_drawing + upload_thumbnail (background)
        2. PUT  /api/drawings/{id} → same keys overwritten (upsert)
        3. DELETE /api/drawings/{id} → delete_drawing removes both keys
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        max_attempts: Optional[int] = None,
        initial_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self._backend = backend
        self.max_attempts = max_attempts or settings.storage_retry_attempts
        self.initial_wait = settings.storage_retry_initial_wait if initial_wait is None else initial_wait
        self.max_wait = settings.storage_retry_max_wait if max_wait is None else max_wait

    @property
    def backend(self) -> StorageBackend:
        # Built on first use so importing the module never touches disk or network
        if self._backend is None:
            self._backend = create_backend()
        return self._backend

    async def _with_retry(
        self,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        """
        Runs one backend call under the retry policy.

        Raises:
            FileNotFoundError: object is missing (not retried)
            StorageError: all attempts failed
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_wait, max=self.max_wait),
            retry=retry_if_not_exception_type((FileNotFoundError, StorageError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await func(*args)
        except RetryError as e:
            last = e.last_attempt.exception()
            logger.error(
                "Storage %s failed after %d attempts: %s", operation, self.max_attempts, last
            )
            raise StorageError(
                message=f"Storage {operation} failed after {self.max_attempts} attempts",
                context={"operation": operation, "error": str(last)},
            ) from last
        raise StorageError(message=f"Storage {operation} did not run")  # pragma: no cover

    # ── Drawing data ──────────────────────────────────────────────────────

    async def upload_drawing(self, drawing_id: Any, data: Any) -> str:
        """Stores the scene JSON; returns the object key."""
        key = drawing_key(drawing_id)
        if should_compress(data):
            payload, content_type = compress_json(data), GZIP_CONTENT_TYPE
        else:
            payload, content_type = to_json(data).encode("utf-8"), JSON_CONTENT_TYPE
        await self._with_retry("upload", self.backend.upload, key, payload, content_type)
        logger.info("Drawing data stored: %s (%d bytes)", key, len(payload))
        return key

    async def download_drawing(self, drawing_id: Any) -> Any:
        key = drawing_key(drawing_id)
        try:
            payload = await self._with_retry("download", self.backend.download, key)
        except FileNotFoundError:
            raise NotFoundError(resource="Stored drawing", resource_id=str(drawing_id))
        try:
            return load_json(payload)
        except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(
                message="Stored drawing data is corrupted",
                context={"key": key, "error": str(e)},
            )

    # ── Thumbnails ────────────────────────────────────────────────────────

    async def upload_thumbnail(self, drawing_id: Any, thumbnail: Union[str, bytes]) -> str:
        """Accepts raw PNG bytes or a base64 data URL."""
        key = thumbnail_key(drawing_id)
        if isinstance(thumbnail, str):
            payload, content_type = decode_data_url(thumbnail), data_url_media_type(thumbnail)
        else:
            payload, content_type = thumbnail, PNG_CONTENT_TYPE
        await self._with_retry("upload", self.backend.upload, key, payload, content_type)
        logger.info("Thumbnail stored: %s (%d bytes)", key, len(payload))
        return key

    async def download_thumbnail(self, drawing_id: Any) -> bytes:
        try:
            return await self._with_retry(
                "download", self.backend.download, thumbnail_key(drawing_id)
            )
        except FileNotFoundError:
            raise NotFoundError(resource="Thumbnail", resource_id=str(drawing_id))

    # ── Housekeeping ──────────────────────────────────────────────────────

    async def delete_drawing(self, drawing_id: Any) -> int:
        """
        Removes both objects of a drawing; returns how many deletes succeeded.

        A failure on one key is logged and does not stop the other.
        """
        deleted = 0
        for key in (drawing_key(drawing_id), thumbnail_key(drawing_id)):
            try:
                await self._with_retry("delete", self.backend.delete, key)
                deleted += 1
            except StorageError as e:
                logger.warning("Could not delete %s: %s", key, e.message)
        return deleted

    async def drawing_exists(self, drawing_id: Any) -> bool:
        return await self._with_retry("exists", self.backend.exists, drawing_key(drawing_id))

    async def health_check(self) -> bool:
        return await self.backend.health_check()


# ── Singleton Instance ────────────────────────────────────────────────────
storage_service = StorageService()
