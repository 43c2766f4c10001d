# SQLAlchemy models

from typing import Any

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import declarative_base

from app.core.parsing import ensure_utc

Base = declarative_base()


class PluginEvent(Base):
    __tablename__ = "plugin_analytics_events"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    session_id = Column(String(120), nullable=False)
    device_id = Column(String(120), nullable=False)
    event_type = Column(String(120), nullable=False)
    event_at = Column(DateTime(timezone=True), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(80), nullable=False)
    tool = Column(String(120), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)

    # Identity snapshot plus the fields the auth filter and user index need
    user = Column(JSON, nullable=False, default=dict)
    user_is_authenticated = Column(Boolean, nullable=False, default=False)
    user_id = Column(String(180), nullable=True)
    anonymous_id = Column(String(120), nullable=True)

    runtime = Column(JSON, nullable=False, default=dict)
    plugin = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        # Range scans by time, alone and per dimension
        Index("idx_plugin_events_event_at", "event_at"),
        Index("idx_plugin_events_session_event_at", "session_id", "event_at"),
        Index("idx_plugin_events_type_event_at", "event_type", "event_at"),
        Index("idx_plugin_events_tool_event_at", "tool", "event_at"),
        Index("idx_plugin_events_user_event_at", "user_id", "event_at"),
        Index("idx_plugin_events_source_event_at", "source", "event_at"),
    )


def document_to_row(doc: dict[str, Any]) -> dict[str, Any]:
    """Map a normalized event document onto table columns."""
    user = doc["user"]
    return {
        "session_id": doc["sessionId"],
        "device_id": doc["deviceId"],
        "event_type": doc["eventType"],
        "event_at": doc["eventAt"],
        "received_at": doc["receivedAt"],
        "source": doc["source"],
        "tool": doc["tool"],
        "payload": doc["payload"],
        "user": user,
        "user_is_authenticated": bool(user.get("isAuthenticated")),
        "user_id": user.get("userId"),
        "anonymous_id": user.get("anonymousId"),
        "runtime": doc["runtime"],
        "plugin": doc["plugin"],
    }


# Columns read back for aggregation; runtime/plugin stay in the store.
DOCUMENT_COLUMNS = (
    PluginEvent.event_at,
    PluginEvent.event_type,
    PluginEvent.tool,
    PluginEvent.source,
    PluginEvent.session_id,
    PluginEvent.user,
    PluginEvent.payload,
)


def row_to_document(row: Any) -> dict[str, Any]:
    """Inverse of document_to_row for a row selected with DOCUMENT_COLUMNS."""
    return {
        "eventAt": ensure_utc(row.event_at),
        "eventType": row.event_type,
        "tool": row.tool,
        "source": row.source,
        "sessionId": row.session_id,
        "user": row.user or {},
        "payload": row.payload or {},
    }
