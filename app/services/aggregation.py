"""
Aggregation engine over a filtered window of event documents.

Documents are loaded into a pandas frame with the taxonomy columns
(resolved action, passive flag) attached once, and every operation is a
read-only groupby over that frame. Top-N listings sort by count descending
and keep first-seen order for ties.
"""

import math
from typing import Any, Iterable, Mapping

import pandas as pd

from app.core.parsing import to_number
from app.services.taxonomy import (
    UNKNOWN_EVENT,
    UNKNOWN_TOOL,
    action_meta,
    event_meta,
    is_passive_event,
    resolve_action,
)

TOP_TOOLS_LIMIT = 12
TOP_ACTIONS_LIMIT = 30
EVENT_TYPES_LIMIT = 40
ACTION_CATALOG_LIMIT = 200

FRAME_COLUMNS = [
    "event_at",
    "event_type",
    "tool",
    "source",
    "session_id",
    "user",
    "action",
    "passive",
    "active",
    "click",
    "time_spent_ms",
    "is_authenticated",
    "auth_user_id",
    "anon_id",
]


def build_event_frame(documents: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Tabulate event documents, attaching the per-event taxonomy columns."""
    records = []
    for doc in documents:
        event_type = doc.get("eventType") or UNKNOWN_EVENT
        user = doc.get("user") or {}
        payload = doc.get("payload") or {}
        passive = is_passive_event(doc)
        is_authenticated = bool(user.get("isAuthenticated"))
        records.append({
            "event_at": doc["eventAt"],
            "event_type": event_type,
            "tool": doc.get("tool") or UNKNOWN_TOOL,
            "source": doc.get("source"),
            "session_id": doc.get("sessionId"),
            "user": user,
            "action": resolve_action(doc),
            "passive": passive,
            "active": not passive,
            "click": event_type == "ui_click",
            "time_spent_ms": to_number(payload.get("durationMs")) if event_type == "tool_time_spent" else 0.0,
            "is_authenticated": is_authenticated,
            "auth_user_id": user.get("userId") if is_authenticated else None,
            "anon_id": None if is_authenticated else user.get("anonymousId"),
        })

    frame = pd.DataFrame(records, columns=FRAME_COLUMNS)
    if not frame.empty:
        frame["event_at"] = pd.to_datetime(frame["event_at"], utc=True)
    return frame


def _top_counts(counts: pd.Series, key: str, limit: int) -> list[dict[str, Any]]:
    rows = [{key: name, "count": int(count)} for name, count in counts.items()]
    rows.sort(key=lambda row: -row["count"])
    return rows[:limit]


def _round_ms(value: float) -> int:
    return int(round(value)) if math.isfinite(value) else 0


def session_durations(frame: pd.DataFrame) -> pd.Series:
    """max(eventAt) - min(eventAt) per session, in milliseconds."""
    grouped = frame.groupby("session_id", sort=False)["event_at"]
    return (grouped.max() - grouped.min()).dt.total_seconds() * 1000


def tool_usage(frame: pd.DataFrame) -> list[dict[str, Any]]:
    if frame.empty:
        return []

    usage = frame.groupby("tool", sort=False).agg(
        event_count=("event_type", "size"),
        active_event_count=("active", "sum"),
        passive_event_count=("passive", "sum"),
        click_count=("click", "sum"),
        session_count=("session_id", "nunique"),
        authenticated_user_count=("auth_user_id", "nunique"),
        anonymous_user_count=("anon_id", "nunique"),
        time_spent_ms=("time_spent_ms", "sum"),
    )

    rows = []
    for row in usage.itertuples():
        authenticated = int(row.authenticated_user_count)
        anonymous = int(row.anonymous_user_count)
        rows.append({
            "tool": row.Index,
            "eventCount": int(row.event_count),
            "activeEventCount": int(row.active_event_count),
            "passiveEventCount": int(row.passive_event_count),
            "clickCount": int(row.click_count),
            "sessionCount": int(row.session_count),
            "userCount": authenticated + anonymous,
            "authenticatedUserCount": authenticated,
            "anonymousUserCount": anonymous,
            "timeSpentMs": round(float(row.time_spent_ms), 2),
        })

    rows.sort(key=lambda item: (-item["activeEventCount"], -item["eventCount"]))
    return rows


def top_actions(frame: pd.DataFrame, limit: int = TOP_ACTIONS_LIMIT) -> list[dict[str, Any]]:
    if frame.empty:
        return []
    return _top_counts(frame.groupby("action", sort=False).size(), "action", limit)


def events_by_day(frame: pd.DataFrame) -> list[dict[str, Any]]:
    if frame.empty:
        return []

    days = frame.assign(day=frame["event_at"].dt.strftime("%Y-%m-%d"))
    daily = days.groupby("day").agg(
        events=("event_type", "size"),
        sessions=("session_id", "nunique"),
    )
    return [
        {"day": row.Index, "events": int(row.events), "sessions": int(row.sessions)}
        for row in daily.itertuples()
    ]


def empty_kpis() -> dict[str, int]:
    return {
        "totalEvents": 0,
        "totalSessions": 0,
        "authenticatedUsers": 0,
        "anonymousUsers": 0,
        "anonymousEvents": 0,
        "meaningfulEvents": 0,
        "passiveEvents": 0,
        "avgSessionDurationMs": 0,
        "maxSessionDurationMs": 0,
    }


def summarize(frame: pd.DataFrame) -> dict[str, Any]:
    """KPIs, top tools, top actions and the per-day series for the window."""
    if frame.empty:
        return {"kpis": empty_kpis(), "topTools": [], "topActions": [], "eventsByDay": []}

    total = len(frame)
    passive = int(frame["passive"].sum())
    durations = session_durations(frame)

    kpis = {
        "totalEvents": total,
        "totalSessions": int(frame["session_id"].nunique()),
        "authenticatedUsers": int(frame["auth_user_id"].nunique()),
        "anonymousUsers": int(frame["anon_id"].nunique()),
        "anonymousEvents": int((~frame["is_authenticated"]).sum()),
        "meaningfulEvents": total - passive,
        "passiveEvents": passive,
        "avgSessionDurationMs": _round_ms(float(durations.mean())),
        "maxSessionDurationMs": _round_ms(float(durations.max())),
    }

    top_tools = [
        {
            "tool": row["tool"],
            "events": row["eventCount"],
            "activeEvents": row["activeEventCount"],
            "passiveEvents": row["passiveEventCount"],
            "sessionCount": row["sessionCount"],
            "timeSpentMs": row["timeSpentMs"],
        }
        for row in tool_usage(frame)[:TOP_TOOLS_LIMIT]
    ]

    return {
        "kpis": kpis,
        "topTools": top_tools,
        "topActions": top_actions(frame),
        "eventsByDay": events_by_day(frame),
    }


def sessions(frame: pd.DataFrame, limit: int = 60) -> list[dict[str, Any]]:
    """Reconstruct sessions in the window, most recently ended first."""
    if frame.empty:
        return []

    ordered = frame.sort_values("event_at", kind="stable")
    grouped = ordered.groupby("session_id", sort=False)
    stats = grouped.agg(
        started_at=("event_at", "min"),
        ended_at=("event_at", "max"),
        event_count=("event_type", "size"),
        active_event_count=("active", "sum"),
        passive_event_count=("passive", "sum"),
    )

    last_seen = {}
    for session_id, group in grouped:
        last = group.iloc[-1]
        last_seen[session_id] = {
            "user": last["user"],
            "source": last["source"],
            "tools": list(dict.fromkeys(group["tool"])),
        }

    rows = []
    for row in stats.itertuples():
        started_at = row.started_at.to_pydatetime()
        ended_at = row.ended_at.to_pydatetime()
        seen = last_seen[row.Index]
        rows.append({
            "sessionId": row.Index,
            "startedAt": started_at,
            "endedAt": ended_at,
            "durationMs": _round_ms((ended_at - started_at).total_seconds() * 1000),
            "eventCount": int(row.event_count),
            "activeEventCount": int(row.active_event_count),
            "passiveEventCount": int(row.passive_event_count),
            "user": seen["user"],
            "tools": seen["tools"],
            "lastSource": seen["source"],
        })

    rows.sort(key=lambda item: item["endedAt"], reverse=True)
    return rows[:limit]


def event_type_breakdown(frame: pd.DataFrame, limit: int = EVENT_TYPES_LIMIT) -> list[dict[str, Any]]:
    if frame.empty:
        return []

    breakdown = frame.groupby("event_type", sort=False).agg(
        events=("session_id", "size"),
        session_count=("session_id", "nunique"),
    )
    rows = [
        {
            "eventType": row.Index,
            "count": int(row.events),
            "sessionCount": int(row.session_count),
            "passive": event_meta(row.Index).passive,
        }
        for row in breakdown.itertuples()
    ]
    rows.sort(key=lambda item: -item["count"])
    return rows[:limit]


def action_catalog(frame: pd.DataFrame, limit: int = ACTION_CATALOG_LIMIT) -> list[dict[str, Any]]:
    """Distinct action keys with counts and the event types that produced them."""
    if frame.empty:
        return []

    grouped = frame.groupby("action", sort=False)["event_type"]
    rows = []
    for action, event_types in grouped:
        meta = action_meta(action)
        rows.append({
            "action": action,
            "count": int(len(event_types)),
            "eventTypes": list(dict.fromkeys(event_types)),
            "label": meta.label,
            "category": meta.category,
            "passive": meta.passive,
        })

    rows.sort(key=lambda item: -item["count"])
    return rows[:limit]


# Heatmap

def _finite(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    number = to_number(value, fallback=math.nan)
    return None if math.isnan(number) else number


def normalize_click_position(payload: Mapping[str, Any]) -> tuple[float, float] | None:
    """
    Position of a click in [0, 1] x [0, 1].

    Uses normalizedX/normalizedY when present, else divides the raw pixel
    coordinates by the reported viewport size. None when neither works.
    """
    nx = _finite(payload.get("normalizedX"))
    ny = _finite(payload.get("normalizedY"))

    if nx is None:
        x, width = _finite(payload.get("x")), _finite(payload.get("viewportWidth"))
        if x is not None and width:
            nx = x / width if width > 0 else None
    if ny is None:
        y, height = _finite(payload.get("y")), _finite(payload.get("viewportHeight"))
        if y is not None and height:
            ny = y / height if height > 0 else None

    if nx is None or ny is None:
        return None
    return max(0.0, min(1.0, nx)), max(0.0, min(1.0, ny))


def build_heatmap_bins(payloads: Iterable[Mapping[str, Any]], grid_x: int, grid_y: int) -> dict[str, Any]:
    cells: dict[tuple[int, int], int] = {}
    max_count = 0
    total = 0

    for payload in payloads:
        position = normalize_click_position(payload)
        if position is None:
            continue
        nx, ny = position
        cell = (min(grid_x - 1, int(nx * grid_x)), min(grid_y - 1, int(ny * grid_y)))
        cells[cell] = cells.get(cell, 0) + 1
        max_count = max(max_count, cells[cell])
        total += 1

    return {
        "bins": [{"x": x, "y": y, "count": count} for (x, y), count in cells.items()],
        "maxCount": max_count,
        "totalPoints": total,
    }


def heatmap_points(documents: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Normalized click points with element metadata; undeliverable points dropped."""
    points = []
    for doc in documents:
        payload = doc.get("payload") or {}
        position = normalize_click_position(payload)
        if position is None:
            continue
        element = payload.get("element") if isinstance(payload.get("element"), dict) else {}
        points.append({
            "eventAt": doc["eventAt"],
            "tool": doc.get("tool"),
            "normalizedX": position[0],
            "normalizedY": position[1],
            "elementTag": element.get("tag"),
            "elementId": element.get("id"),
            "elementToolId": element.get("toolId"),
        })
    return points


def build_heatmap(
        documents: list[Mapping[str, Any]],
        compact: bool,
        grid_x: int = 96,
        grid_y: int = 24,
) -> dict[str, Any]:
    if not compact:
        points = heatmap_points(documents)
        return {"compact": False, "points": points, "count": len(points)}

    binning = build_heatmap_bins((doc.get("payload") or {} for doc in documents), grid_x, grid_y)
    return {
        "compact": True,
        "grid": {"x": grid_x, "y": grid_y},
        **binning,
        "sampleCount": len(documents),
    }
