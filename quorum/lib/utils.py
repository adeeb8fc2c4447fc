"""Utility functions for the Quorum backend."""

from datetime import datetime, timezone
from typing import Any

ROUND_KEY_FORMAT = "%Y-%m-%d %H:%M"


def round_key(now: datetime) -> str:
    """
    Minute bucket identifying a scheduling round.

    Naive datetimes are taken to be UTC already.

    Examples:
        >>> round_key(datetime(2024, 3, 7, 9, 5, 42, tzinfo=timezone.utc))
        '2024-03-07 09:05'
    """
    return as_utc(now).strftime(ROUND_KEY_FORMAT)


def round_offset(now: datetime) -> int:
    """Whole seconds elapsed within the current round."""
    return as_utc(now).second


def as_utc(now: datetime) -> datetime:
    """Normalize a datetime to UTC."""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def safe_get(obj: Any, *keys: str | int, default: Any = None) -> Any:
    """
    Safely get a nested value from dicts, lists or objects.

    String keys index dicts (or attributes), integer keys index lists.

    Args:
        obj: The object or dict to get the value from
        *keys: The sequence of keys/indices to traverse
        default: The default value if any key is not found

    Returns:
        The value at the nested path, or default if not found

    Examples:
        >>> safe_get([{"random": 7}], 0, "random")
        7
        >>> safe_get({"data": []}, "data", 0, default=-1)
        -1
    """
    for key in keys:
        if obj is None:
            return default
        if isinstance(key, int):
            if isinstance(obj, (list, tuple)) and -len(obj) <= key < len(obj):
                obj = obj[key]
            else:
                return default
        elif isinstance(obj, dict):
            obj = obj.get(key)
        else:
            obj = getattr(obj, key, None)
    return obj if obj is not None else default


def coerce_int(value: Any) -> int | None:
    """
    Convert a JSON scalar to int, or None if it is not integral.

    Accepts ints, integral floats and numeric strings like "7".
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
