"""
Response normalizer — validate upstream shapes, reshape raw Moodle fields.

Moodle answers errors with HTTP 200 and an object carrying `exception`,
`errorcode` and/or `message`, so every payload is checked before use.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .protocol import ProtocolError, INTERNAL_ERROR

ERROR_MARKERS = ("exception", "errorcode", "message")

COURSE_SUMMARY_LIMIT = 200
DISCUSSION_MESSAGE_LIMIT = 500

_TAG_RE = re.compile(r"<[^>]*>")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── shape validation ─────────────────────────────────────────

def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _embedded_error(payload: Any) -> Optional[str]:
    """Message of an upstream error object, or None when there is none."""
    if not isinstance(payload, dict):
        return None
    if not any(payload.get(marker) for marker in ERROR_MARKERS):
        return None
    return str(payload.get("message") or payload.get("errorcode") or "Unknown error")


def require_array(payload: Any, context: str) -> List[Any]:
    """Return payload if it is a JSON array, else raise INTERNAL_ERROR."""
    if isinstance(payload, list):
        return payload

    embedded = _embedded_error(payload)
    if embedded is not None:
        raise ProtocolError(INTERNAL_ERROR, f"Moodle API error in {context}: {embedded}")
    raise ProtocolError(
        INTERNAL_ERROR,
        f"Unexpected response from Moodle API in {context}: expected array, got {_json_type(payload)}",
    )


def require_object(payload: Any, context: str) -> Dict[str, Any]:
    """Return payload if it is a JSON object without an error marker."""
    embedded = _embedded_error(payload)
    if embedded is not None:
        raise ProtocolError(INTERNAL_ERROR, f"Moodle API error in {context}: {embedded}")
    if isinstance(payload, dict):
        return payload
    raise ProtocolError(
        INTERNAL_ERROR,
        f"Unexpected response from Moodle API in {context}: expected object, got {_json_type(payload)}",
    )


# ── field conversion ─────────────────────────────────────────

def strip_markup(html: Optional[str], limit: Optional[int] = None) -> str:
    """Remove tags and trim. Never returns None."""
    if not html:
        return ""
    text = _TAG_RE.sub("", html).strip()
    return text[:limit] if limit is not None else text


def epoch_to_iso(seconds: Any) -> Optional[str]:
    """
    Epoch seconds -> ISO-8601 UTC with milliseconds ("2024-03-01T12:00:00.000Z").

    0 means "unset" in Moodle and maps to None, as does a missing value,
    whatever its type ("0", 0.0). Values that are not numbers, or fall
    outside years 1-9999, raise INTERNAL_ERROR.
    """
    try:
        value = float(seconds or 0)
    except (TypeError, ValueError):
        raise ProtocolError(INTERNAL_ERROR, f"Malformed timestamp from Moodle API: {seconds!r}")
    if value == 0:
        return None

    try:
        instant = _EPOCH + timedelta(milliseconds=value * 1000)
    except (OverflowError, ValueError):
        raise ProtocolError(INTERNAL_ERROR, f"Timestamp out of range from Moodle API: {seconds!r}")
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def flag_to_bool(value: Any) -> bool:
    """Moodle integer flags: 1 is true, anything else false."""
    return value == 1


def truncate(text: Optional[str], limit: int) -> str:
    return (text or "")[:limit]


def same_id(left: Any, right: Any) -> bool:
    """Identifier equality across numeric/string representations."""
    if left is None or right is None:
        return False
    return id_string(left) == id_string(right)


def id_string(value: Any) -> str:
    """String form of an identifier; integral floats lose their '.0'."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)
