"""
Excalidraw Organizer Backend — Thumbnail Cache
===============================================

What:  Size-bounded, least-recently-used map from drawing ID to thumbnail.
Why:   GET /api/drawings/{id}/thumbnail is hit for every card in the file
       browser; serving from the cache avoids loading whole drawing rows
       (scene JSON included) just to return a small preview.
How:   Entries live in memory and are persisted as one JSON file so the
       cache survives restarts.

Entry format (persisted as {"<drawing_id>": entry, ...}):
    {
        "thumbnail": "data:image/png;base64,...",
        "timestamp": 1718000000.123,   # last access
        "size": 5321                   # len(thumbnail)
    }

Eviction:
    - get() refreshes the timestamp, so reads keep an entry alive
    - after set(): drop the oldest entries beyond max_items, then, while
      the total size exceeds max_bytes, drop the 5 oldest at a time
    - if persisting fails, drop the 10 oldest and try once more

Concurrency:
    An asyncio.Lock serializes mutations within one process. Multiple
    workers would each keep their own copy, which is acceptable for a
    cache that can always be rebuilt from the database.
"""

import asyncio
import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypedDict

import aiofiles

from organizer.config import settings

logger = logging.getLogger(__name__)

EVICTION_BATCH = 5
SAVE_RETRY_EVICTION = 10


class CacheEntry(TypedDict):
    thumbnail: str
    timestamp: float
    size: int


class CacheStats(TypedDict):
    itemCount: int
    totalSize: int
    maxSize: int


class ThumbnailCache:

    def __init__(
        self,
        path: Optional[str] = None,
        max_bytes: Optional[int] = None,
        max_items: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path or settings.thumbnail_cache_path)
        self.max_bytes = max_bytes or settings.thumbnail_cache_max_bytes
        self.max_items = max_items or settings.thumbnail_cache_max_items
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._loaded = False
        self._lock = asyncio.Lock()

    # ── Persistence ───────────────────────────────────────────────────────

    async def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.is_file():
            return
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.warning("Thumbnail cache at %s is unreadable, starting empty: %s", self.path, e)
            return
        if not isinstance(raw, dict):
            logger.warning("Thumbnail cache at %s has unexpected format, starting empty", self.path)
            return

        entries = {}
        skipped = 0
        for drawing_id, entry in raw.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("thumbnail"), str):
                skipped += 1
                continue
            try:
                timestamp = float(entry.get("timestamp", 0))
            except (TypeError, ValueError):
                skipped += 1
                continue
            thumbnail = entry["thumbnail"]
            entries[drawing_id] = CacheEntry(
                thumbnail=thumbnail,
                timestamp=timestamp,
                size=len(thumbnail),
            )
        if skipped:
            logger.warning("Skipped %d malformed thumbnail cache entries in %s", skipped, self.path)
        # Dict order doubles as the tie-breaker for equal timestamps
        self._entries = dict(sorted(entries.items(), key=lambda item: item[1]["timestamp"]))
        logger.debug("Loaded %d cached thumbnails from %s", len(self._entries), self.path)

    async def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(self._entries))
        os.replace(tmp_path, self.path)

    async def _save(self) -> None:
        try:
            await self._write()
        except OSError as e:
            logger.warning("Failed to persist thumbnail cache, evicting and retrying: %s", e)
            self._evict_oldest(SAVE_RETRY_EVICTION)
            try:
                await self._write()
            except OSError as retry_error:
                logger.error("Thumbnail cache could not be persisted: %s", retry_error)

    # ── Eviction ──────────────────────────────────────────────────────────

    def _oldest_first(self) -> List[str]:
        return [
            key for key, _ in sorted(self._entries.items(), key=lambda item: item[1]["timestamp"])
        ]

    def _evict_oldest(self, count: int) -> None:
        for key in self._oldest_first()[:count]:
            del self._entries[key]

    def _total_size(self) -> int:
        return sum(entry["size"] for entry in self._entries.values())

    def _ensure_cache_size(self) -> None:
        overflow = len(self._entries) - self.max_items
        if overflow > 0:
            self._evict_oldest(overflow)
        while self._entries and self._total_size() > self.max_bytes:
            self._evict_oldest(EVICTION_BATCH)

    def _touch(self, key: str, entry: CacheEntry) -> None:
        # Re-insert so the most recently used key is also last in dict order
        self._entries.pop(key, None)
        self._entries[key] = entry

    # ── Public API ────────────────────────────────────────────────────────

    async def get(self, drawing_id: str) -> Optional[str]:
        key = str(drawing_id)
        async with self._lock:
            await self._load()
            entry = self._entries.get(key)
            if entry is None:
                return None
            entry["timestamp"] = self._clock()
            self._touch(key, entry)
            await self._save()
            return entry["thumbnail"]

    async def set(self, drawing_id: str, thumbnail: str) -> None:
        key = str(drawing_id)
        async with self._lock:
            await self._load()
            self._touch(
                key,
                CacheEntry(thumbnail=thumbnail, timestamp=self._clock(), size=len(thumbnail)),
            )
            self._ensure_cache_size()
            await self._save()

    async def remove(self, drawing_id: str) -> None:
        key = str(drawing_id)
        async with self._lock:
            await self._load()
            if self._entries.pop(key, None) is not None:
                await self._save()

    async def clear(self) -> None:
        async with self._lock:
            self._entries = {}
            self._loaded = True
            if self.path.exists():
                self.path.unlink()

    async def stats(self) -> CacheStats:
        async with self._lock:
            await self._load()
            return CacheStats(
                itemCount=len(self._entries),
                totalSize=self._total_size(),
                maxSize=self.max_bytes,
            )

    async def contains(self, drawing_id: str) -> bool:
        """Membership test that does not count as an access."""
        async with self._lock:
            await self._load()
            return str(drawing_id) in self._entries


# ── Singleton Instance ────────────────────────────────────────────────────
thumbnail_cache = ThumbnailCache()
