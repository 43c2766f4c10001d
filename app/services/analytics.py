import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List

import pandas as pd
import structlog
from sqlalchemy import or_, select

from app.core.config import settings
from app.core.database import Database
from app.core.parsing import ensure_utc
from app.models.event import DOCUMENT_COLUMNS, PluginEvent, row_to_document
from app.services import aggregation
from app.services.features import feature_analytics
from app.services.filters import EventFilter

logger = structlog.get_logger()

HEATMAP_COLUMNS = (PluginEvent.event_at, PluginEvent.tool, PluginEvent.payload)


@dataclass(frozen=True)
class HeatmapOptions:
    compact: bool = True
    limit: int = 12000
    grid_x: int = 96
    grid_y: int = 24


class AnalyticsService:
    """Read-only dashboard queries over the event store"""

    def __init__(self, db: Database, feature_scan_limit: int = settings.feature_scan_limit):
        self.db = db
        self.feature_scan_limit = feature_scan_limit

    async def _fetch(self, stmt) -> List[Dict[str, Any]]:
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [row_to_document(row) for row in result]

    async def fetch_documents(self, event_filter: EventFilter, limit: int | None = None) -> List[Dict[str, Any]]:
        """Matched events in ascending time order"""
        stmt = (
            select(*DOCUMENT_COLUMNS)
            .where(*event_filter.conditions())
            .order_by(PluginEvent.event_at, PluginEvent.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch(stmt)

    async def load_frame(self, event_filter: EventFilter) -> pd.DataFrame:
        documents = await self.fetch_documents(event_filter)
        logger.info("event_window_loaded", events=len(documents), **_log_filter(event_filter))
        return aggregation.build_event_frame(documents)

    async def summary(self, event_filter: EventFilter) -> Dict[str, Any]:
        return aggregation.summarize(await self.load_frame(event_filter))

    async def tool_usage(self, event_filter: EventFilter) -> List[Dict[str, Any]]:
        return aggregation.tool_usage(await self.load_frame(event_filter))

    async def sessions(self, event_filter: EventFilter, limit: int = 60) -> List[Dict[str, Any]]:
        return aggregation.sessions(await self.load_frame(event_filter), limit)

    async def event_types(self, event_filter: EventFilter) -> List[Dict[str, Any]]:
        return aggregation.event_type_breakdown(await self.load_frame(event_filter))

    async def action_catalog(self, event_filter: EventFilter) -> List[Dict[str, Any]]:
        return aggregation.action_catalog(await self.load_frame(event_filter))

    async def recent_events(self, event_filter: EventFilter, limit: int = 150) -> List[Dict[str, Any]]:
        """Most recent matched events, newest first"""
        stmt = (
            select(*DOCUMENT_COLUMNS)
            .where(*event_filter.conditions())
            .order_by(PluginEvent.event_at.desc(), PluginEvent.id.desc())
            .limit(limit)
        )
        return await self._fetch(stmt)

    async def heatmap(self, event_filter: EventFilter, options: HeatmapOptions) -> Dict[str, Any]:
        """
        Most recent ui_click events, binned (compact) or as raw points.

        The tool filter also matches the clicked element's tool and the
        plugin UI tool, since clicks inside the shell are attributed there.
        """
        clauses = event_filter.conditions(include_tool=False)
        clauses.append(PluginEvent.event_type == "ui_click")
        if event_filter.tool:
            clauses.append(or_(
                PluginEvent.tool == event_filter.tool,
                PluginEvent.payload[("element", "toolId")].as_string() == event_filter.tool,
                PluginEvent.payload["uiTool"].as_string() == event_filter.tool,
            ))

        stmt = (
            select(*HEATMAP_COLUMNS)
            .where(*clauses)
            .order_by(PluginEvent.event_at.desc(), PluginEvent.id.desc())
            .limit(options.limit)
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            documents = [
                {"eventAt": ensure_utc(row.event_at), "tool": row.tool, "payload": row.payload or {}}
                for row in result
            ]

        return aggregation.build_heatmap(documents, options.compact, options.grid_x, options.grid_y)

    async def features(self, event_filter: EventFilter) -> Dict[str, Any]:
        documents = await self.fetch_documents(event_filter, limit=self.feature_scan_limit)
        result = feature_analytics(documents)
        result["truncated"] = len(documents) >= self.feature_scan_limit
        logger.info("feature_scan_completed", events=len(documents), truncated=result["truncated"])
        return result

    async def dashboard(
            self,
            event_filter: EventFilter,
            heatmap_options: HeatmapOptions,
            sessions_limit: int = 60,
            events_limit: int = 100,
    ) -> Dict[str, Any]:
        """Combined payload for the main dashboard view"""
        frame, heatmap, recent = await asyncio.gather(
            self.load_frame(event_filter),
            self.heatmap(event_filter, heatmap_options),
            self.recent_events(event_filter, events_limit),
        )

        return {
            "summary": aggregation.summarize(frame),
            "toolUsage": {"tools": aggregation.tool_usage(frame)},
            "heatmap": heatmap,
            "sessions": {"sessions": aggregation.sessions(frame, sessions_limit)},
            "recentEvents": {"events": recent},
            "eventTypeBreakdown": aggregation.event_type_breakdown(frame),
            "actionCatalog": {"actions": aggregation.action_catalog(frame)},
        }


def _log_filter(event_filter: EventFilter) -> Dict[str, Any]:
    return {
        "from_at": event_filter.from_at.isoformat(),
        "to_at": event_filter.to_at.isoformat(),
        "tool": event_filter.tool,
        "auth": event_filter.auth,
        "actions": len(event_filter.actions),
    }
