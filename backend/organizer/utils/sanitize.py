"""
Input sanitization helpers.

Request schemas run names and emails through these before validation;
sanitize_object is applied to free-form JSON such as user preferences.
Drawing scene data is stored as-is (it is rendered by the editor, never
interpolated into HTML).
"""

import html
import re
import uuid
from typing import Any, Optional

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_QUOTED_HANDLER = re.compile(r"""\s*on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE)
_BARE_HANDLER = re.compile(r"\s*on\w+\s*=\s*[^\s>]*", re.IGNORECASE)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_DATA_HTML = re.compile(r"data:text/html", re.IGNORECASE)


def sanitize_string(value: Any) -> str:
    """Drops NUL bytes and surrounding whitespace; non-strings become ''."""
    if not isinstance(value, str):
        return ""
    return value.replace("\0", "").strip()


def sanitize_html(value: Any) -> str:
    """Escapes &, <, >, quotes and the forward slash."""
    if not isinstance(value, str):
        return ""
    return html.escape(value, quote=True).replace("/", "&#x2F;")


def strip_scripts(value: Any) -> str:
    """Removes <script> blocks, inline event handlers and script URLs."""
    if not isinstance(value, str):
        return ""
    cleaned = _SCRIPT_TAG.sub("", value)
    cleaned = _QUOTED_HANDLER.sub("", cleaned)
    cleaned = _BARE_HANDLER.sub("", cleaned)
    cleaned = _JS_PROTOCOL.sub("", cleaned)
    return _DATA_HTML.sub("", cleaned)


def sanitize_email(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def sanitize_object(value: Any) -> Any:
    """Recursively applies sanitize_string to every string in a JSON value."""
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return [sanitize_object(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize_object(item) for key, item in value.items()}
    return value


def sanitize_uuid(value: Any) -> Optional[str]:
    """Canonical lowercase form of a hyphenated UUID, or None."""
    if not isinstance(value, str) or len(value) != 36:
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


def sanitize_integer(value: Any, default: int = 0) -> int:
    """Leading-integer parse: '42abc' → 42, 'abc' → default."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = re.match(r"\s*([+-]?\d+)", str(value)) if value is not None else None
    return int(match.group(1)) if match else default


def sanitize_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)
