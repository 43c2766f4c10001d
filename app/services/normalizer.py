"""
Event normalizer: turns raw ingest envelopes into canonical event documents.

Client runtimes send loosely shaped events whose fields vary by plugin
version. Normalization never raises for a malformed event; every field is
coerced to a bounded, typed value or a safe default.
"""

import math
from datetime import datetime, timezone
from typing import Any, Mapping

from app.core.parsing import safe_string, to_datetime, to_number
from app.services.taxonomy import infer_tool

MAX_EVENTS_PER_BATCH = 1000
MAX_PAYLOAD_KEYS = 40
MAX_PAYLOAD_STRING = 800
MAX_PAYLOAD_ARRAY = 30
MAX_PAYLOAD_DEPTH = 6

UNKNOWN_SESSION = "unknown-session"
UNKNOWN_DEVICE = "unknown-device"
UNKNOWN_SOURCE = "unknown"
UNKNOWN_EVENT = "unknown_event"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class EmptyBatchError(ValueError):
    """Raised when an envelope carries no events to ingest."""


def _first(*values: Any) -> Any:
    for value in values:
        if value is None or isinstance(value, bool) and not value:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _object(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def stable_hash(seed: str) -> int:
    """32-bit FNV-1a; the same seed always yields the same value."""
    value = 0x811C9DC5
    for char in seed:
        value ^= ord(char)
        value = (value * 0x01000193) & 0xFFFFFFFF
    return value


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def derive_anonymous_id(seed: str) -> str:
    return f"device_{to_base36(stable_hash(seed))}"


def _sanitize_value(value: Any, depth: int) -> Any:
    if isinstance(value, str):
        return safe_string(value, MAX_PAYLOAD_STRING)
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        # Numbers a float cannot hold are stored as null, like NaN and infinity
        return value if math.isfinite(to_number(value, fallback=math.nan)) else None
    if isinstance(value, (dict, list)):
        if depth >= MAX_PAYLOAD_DEPTH:
            return None
        if isinstance(value, dict):
            return {
                str(key): _sanitize_value(value[key], depth + 1)
                for key in list(value.keys())[:MAX_PAYLOAD_KEYS]
            }
        return [_sanitize_value(item, depth + 1) for item in value[:MAX_PAYLOAD_ARRAY]]
    return safe_string(value, MAX_PAYLOAD_STRING)


def sanitize_payload(payload: Any) -> dict[str, Any]:
    """
    Bound a payload for storage: at most 40 keys per object, 30 items per
    array and 800 characters per string at every level, nesting cut at
    MAX_PAYLOAD_DEPTH, non-finite numbers replaced by null.
    """
    if not isinstance(payload, dict):
        return {}
    return _sanitize_value(payload, 0)


def normalize_user(user: Any, device_id: str, session_id: str) -> dict[str, Any]:
    """
    Build the identity snapshot stored with every event.

    An explicit boolean isAuthenticated is trusted; otherwise a user id or
    email marks the user as authenticated. Anonymous users always get an
    anonymousId, derived from the device (or session) when not supplied.
    """
    raw = _object(user)
    user_id = safe_string(_first(raw.get("userId"), raw.get("id"), raw.get("_id"), raw.get("email")))
    email = safe_string(_first(raw.get("email")), 160)

    explicit = raw.get("isAuthenticated")
    is_authenticated = explicit if isinstance(explicit, bool) else bool(user_id or email)

    if is_authenticated:
        return {
            "isAuthenticated": True,
            "userId": user_id,
            "name": safe_string(_first(raw.get("name")), 120),
            "email": email,
        }

    anonymous_id = safe_string(_first(raw.get("anonymousId")), 120)
    if anonymous_id:
        source = "explicit"
    elif device_id != UNKNOWN_DEVICE:
        anonymous_id, source = derive_anonymous_id(device_id), "device"
    else:
        anonymous_id, source = derive_anonymous_id(session_id), "session"

    return {
        "isAuthenticated": False,
        "anonymousId": anonymous_id,
        "identitySource": safe_string(_first(raw.get("identitySource")), 80) or source,
    }


def normalize_event(event: Any, envelope: Mapping[str, Any], now: datetime) -> dict[str, Any]:
    raw = _object(event)

    event_type = safe_string(_first(raw.get("eventType"), raw.get("type")), 120) or UNKNOWN_EVENT
    event_at = to_datetime(_first(raw.get("eventAt"), raw.get("timestamp")), envelope["sentAt"])
    session_id = safe_string(_first(raw.get("sessionId")), 120) or envelope["sessionId"] or UNKNOWN_SESSION
    device_id = safe_string(_first(raw.get("deviceId")), 120) or envelope["deviceId"] or UNKNOWN_DEVICE
    payload = sanitize_payload(raw.get("payload"))

    user = raw.get("user") if isinstance(raw.get("user"), dict) else envelope["user"]

    return {
        "sessionId": session_id,
        "deviceId": device_id,
        "eventType": event_type,
        "eventAt": event_at,
        "receivedAt": now,
        "source": safe_string(_first(raw.get("source")), 80) or envelope["source"],
        "tool": infer_tool(event_type, payload, event_tool=raw.get("tool"), envelope_tool=envelope["tool"]),
        "payload": payload,
        "user": normalize_user(user, device_id, session_id),
        "runtime": envelope["runtime"],
        "plugin": envelope["plugin"],
    }


def normalize_batch(
        body: Any,
        now: datetime | None = None,
        max_events: int = MAX_EVENTS_PER_BATCH,
) -> list[dict[str, Any]]:
    """
    Normalize an ingest envelope into storable documents.

    Raises:
        EmptyBatchError: when `events` is missing, not a list, or empty
    """
    body = _object(body)
    events = body.get("events")
    if not isinstance(events, list) or not events:
        raise EmptyBatchError("events[] is required")

    now = now or datetime.now(timezone.utc)
    envelope = {
        "source": safe_string(_first(body.get("source")), 80) or UNKNOWN_SOURCE,
        "sessionId": safe_string(_first(body.get("sessionId")), 120),
        "deviceId": safe_string(_first(body.get("deviceId")), 120),
        "sentAt": to_datetime(body.get("sentAt"), now),
        "runtime": _object(body.get("runtime")),
        "plugin": _object(body.get("plugin")),
        "user": body.get("user") if isinstance(body.get("user"), dict) else None,
        "tool": body.get("tool"),
    }

    return [normalize_event(event, envelope, now) for event in events[:max_events]]
