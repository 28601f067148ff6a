"""
Shared helpers for MongoDB documents.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from bson import ObjectId
from bson.errors import InvalidId


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def parse_object_id(value: str) -> ObjectId:
    """
    Convert a path parameter to an ObjectId.

    Raises ValueError for malformed ids so the API answers 400.
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise ValueError(f"Invalid id: {value}") from exc


def with_timestamps(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``document`` with created_at/updated_at set to now."""
    now = utc_now()
    return {**document, "created_at": now, "updated_at": now}
