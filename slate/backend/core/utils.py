"""
Core Utilities.

Shared utility functions used across the backend.
All modules should import utilities from this module.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application are timezone-naive and
    assumed to be UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Opaque, globally unique identifier for a new row."""
    return str(uuid4())


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """
    Trim, lowercase and dedupe tags, keeping first-occurrence order.

    Empty strings are dropped.
    """
    seen: list[str] = []
    for tag in tags or ():
        if not isinstance(tag, str):
            continue
        value = tag.strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


def naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def clean_text(value: str | None) -> str:
    """Strip surrounding whitespace; None becomes the empty string."""
    return (value or "").strip()
