# Lenient coercion helpers shared by ingestion and query parsing

import math
from datetime import datetime, timezone
from typing import Any

ELLIPSIS = "…"


def safe_string(value: Any, max_len: int = 180) -> str | None:
    """Stringify and truncate a value, keeping the result within max_len."""
    if value is None:
        return None
    text = str(value)
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + ELLIPSIS


def to_number(value: Any, fallback: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    return number if math.isfinite(number) else fallback


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse ISO-8601 strings, datetimes and epoch milliseconds.

    Returns None for anything that does not describe a valid instant.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        millis = to_number(value, fallback=math.nan)
        if math.isnan(millis):
            return None
        try:
            return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def to_datetime(value: Any, fallback: datetime) -> datetime:
    parsed = parse_datetime(value)
    return parsed if parsed is not None else fallback


def parse_limit(value: Any, fallback: int, maximum: int = 200) -> int:
    number = to_number(value, fallback=0)
    if number <= 0:
        return fallback
    return min(int(number), maximum)


def parse_bool(value: Any, fallback: bool = False) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes"}
