"""
gzip helpers for drawing JSON kept in object storage.

Scenes with many freehand strokes grow quickly; anything above the
configured threshold (1 KiB of JSON by default) is stored compressed and
recognised on the way back by the gzip magic bytes.
"""

import gzip
import json
from typing import Any, Optional

from organizer.config import settings

GZIP_MAGIC = b"\x1f\x8b"


def to_json(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def compress_json(data: Any) -> bytes:
    return gzip.compress(to_json(data).encode("utf-8"))


def decompress_json(payload: bytes) -> Any:
    return json.loads(gzip.decompress(payload).decode("utf-8"))


def is_gzipped(payload: bytes) -> bool:
    return payload[:2] == GZIP_MAGIC


def should_compress(data: Any, threshold: Optional[int] = None) -> bool:
    limit = settings.compression_threshold if threshold is None else threshold
    return len(to_json(data)) > limit


def load_json(payload: bytes) -> Any:
    """Parses stored drawing data whether or not it was compressed."""
    if is_gzipped(payload):
        return decompress_json(payload)
    return json.loads(payload.decode("utf-8"))
