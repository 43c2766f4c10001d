# Filter predicate shared by every dashboard query

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from sqlalchemy import or_

from app.core.parsing import parse_datetime, safe_string
from app.models.event import PluginEvent
from app.services.taxonomy import ACTION_FIELDS

AUTH_MODES = ("all", "authenticated", "anonymous")
MAX_ACTION_KEYS = 50


@dataclass(frozen=True)
class EventFilter:
    from_at: datetime
    to_at: datetime
    tool: str | None = None
    auth: str = "all"
    actions: tuple[str, ...] = ()

    def conditions(self, include_tool: bool = True) -> list:
        """SQLAlchemy WHERE clauses for this filter."""
        clauses = [PluginEvent.event_at >= self.from_at, PluginEvent.event_at <= self.to_at]

        if include_tool and self.tool:
            clauses.append(PluginEvent.tool == self.tool)

        if self.auth == "authenticated":
            clauses.append(PluginEvent.user_is_authenticated.is_(True))
        elif self.auth == "anonymous":
            clauses.append(PluginEvent.user_is_authenticated.is_(False))

        if self.actions:
            keys = list(self.actions)
            clauses.append(or_(
                PluginEvent.event_type.in_(keys),
                *(PluginEvent.payload[field].as_string().in_(keys) for field in ACTION_FIELDS)
            ))

        return clauses

    def window(self) -> dict[str, datetime]:
        return {"from": self.from_at, "to": self.to_at}


def parse_actions(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    keys = []
    for part in str(value).split(","):
        key = safe_string(part.strip(), 120)
        if key and key != "all" and key not in keys:
            keys.append(key)
    return tuple(keys[:MAX_ACTION_KEYS])


def parse_event_filter(
        params: Mapping[str, Any],
        now: datetime | None = None,
        default_days: int = 7,
) -> EventFilter:
    """
    Build a filter from raw query parameters.

    Unparseable dates fall back to the default window (the last
    `default_days` days ending now); a reversed range is swapped.
    """
    now = now or datetime.now(timezone.utc)
    to_at = parse_datetime(params.get("to")) or now
    from_at = parse_datetime(params.get("from")) or to_at - timedelta(days=default_days)
    if from_at > to_at:
        from_at, to_at = to_at, from_at

    tool = (safe_string(params.get("tool"), 80) or "").strip()
    if tool in ("", "all"):
        tool = None

    auth = (safe_string(params.get("auth"), 20) or "all").strip().lower()
    if auth not in AUTH_MODES:
        auth = "all"

    return EventFilter(
        from_at=from_at,
        to_at=to_at,
        tool=tool,
        auth=auth,
        actions=parse_actions(params.get("action")),
    )
