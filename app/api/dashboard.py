# GET /api/plugin-analytics/*

from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Query
import structlog

from app.api.dependencies import get_event_filter, get_initialized_database, require_read_access
from app.core.database import Database
from app.core.parsing import parse_bool, parse_limit
from app.schemas.analytics import (
    ActionCatalogResponse,
    CompactHeatmapResponse,
    DashboardResponse,
    EventTypesResponse,
    FeaturesResponse,
    PointHeatmapResponse,
    RecentEventsResponse,
    SessionsResponse,
    SummaryResponse,
    ToolUsageResponse,
)
from app.services.analytics import AnalyticsService, HeatmapOptions
from app.services.filters import EventFilter

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/plugin-analytics",
    tags=["analytics"],
    dependencies=[Depends(require_read_access)]
)


def heatmap_options(compact: bool, limit, grid_x, grid_y) -> HeatmapOptions:
    """Clamp heatmap parameters; compact mode allows a larger sample"""
    if compact:
        sample = parse_limit(limit, 12000, 25000)
    else:
        sample = parse_limit(limit, 3000, 12000)
    return HeatmapOptions(
        compact=compact,
        limit=sample,
        grid_x=parse_limit(grid_x, 96, 256),
        grid_y=parse_limit(grid_y, 24, 128),
    )


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
        event_filter: EventFilter = Depends(get_event_filter),
        database: Database = Depends(get_initialized_database)
):
    """
    Headline KPIs, top tools, top actions and per-day activity.

    - **from** / **to**: window (defaults to the last 7 days, swapped if reversed)
    - **tool**, **auth**, **action**: optional filters
    """
    try:
        summary = await AnalyticsService(database).summary(event_filter)
        return {**event_filter.window(), **summary}

    except Exception as e:
        logger.error("summary_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load summary")


@router.get("/tool-usage", response_model=ToolUsageResponse)
async def get_tool_usage(
        event_filter: EventFilter = Depends(get_event_filter),
        database: Database = Depends(get_initialized_database)
):
    """Per-tool activity, most active tools first."""
    try:
        tools = await AnalyticsService(database).tool_usage(event_filter)
        return {**event_filter.window(), "tools": tools}

    except Exception as e:
        logger.error("tool_usage_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load tool usage")


@router.get("/heatmap", response_model=Union[CompactHeatmapResponse, PointHeatmapResponse])
async def get_heatmap(
        event_filter: EventFilter = Depends(get_event_filter),
        compact: str | None = Query(default=None, description="Bin clicks into a grid"),
        limit: str | None = Query(default=None, description="Most recent clicks to sample"),
        grid_x: str | None = Query(default=None, alias="gridX"),
        grid_y: str | None = Query(default=None, alias="gridY"),
        database: Database = Depends(get_initialized_database)
):
    """
    Click heatmap over the most recent ui_click events.

    - **compact**: true for binned counts, otherwise normalized points
    - **limit**: sample size (compact 12000 default / 25000 max, points 3000 / 12000)
    - **gridX** / **gridY**: grid size in compact mode (96x24 default, 256x128 max)
    """
    options = heatmap_options(parse_bool(compact, False), limit, grid_x, grid_y)
    try:
        heatmap = await AnalyticsService(database).heatmap(event_filter, options)
        return {**event_filter.window(), **heatmap}

    except Exception as e:
        logger.error("heatmap_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load heatmap")


@router.get("/sessions", response_model=SessionsResponse)
async def get_sessions(
        event_filter: EventFilter = Depends(get_event_filter),
        limit: str | None = Query(default=None, description="Max sessions (default 60, max 300)"),
        database: Database = Depends(get_initialized_database)
):
    """Sessions in the window, most recently ended first."""
    try:
        sessions = await AnalyticsService(database).sessions(event_filter, parse_limit(limit, 60, 300))
        return {**event_filter.window(), "sessions": sessions}

    except Exception as e:
        logger.error("sessions_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load sessions")


@router.get("/recent-events", response_model=RecentEventsResponse)
async def get_recent_events(
        event_filter: EventFilter = Depends(get_event_filter),
        limit: str | None = Query(default=None, description="Max events (default 150, max 1000)"),
        database: Database = Depends(get_initialized_database)
):
    try:
        events = await AnalyticsService(database).recent_events(event_filter, parse_limit(limit, 150, 1000))
        return {**event_filter.window(), "events": events}

    except Exception as e:
        logger.error("recent_events_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load recent events")


@router.get("/action-catalog", response_model=ActionCatalogResponse)
async def get_action_catalog(
        event_filter: EventFilter = Depends(get_event_filter),
        database: Database = Depends(get_initialized_database)
):
    """Distinct action keys seen in the window, with labels for filter pickers."""
    try:
        actions = await AnalyticsService(database).action_catalog(event_filter)
        return {**event_filter.window(), "actions": actions}

    except Exception as e:
        logger.error("action_catalog_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load action catalog")


@router.get("/event-types", response_model=EventTypesResponse)
async def get_event_types(
        event_filter: EventFilter = Depends(get_event_filter),
        database: Database = Depends(get_initialized_database)
):
    try:
        event_types = await AnalyticsService(database).event_types(event_filter)
        return {**event_filter.window(), "eventTypes": event_types}

    except Exception as e:
        logger.error("event_types_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load event types")


@router.get("/features", response_model=FeaturesResponse)
async def get_features(
        event_filter: EventFilter = Depends(get_event_filter),
        database: Database = Depends(get_initialized_database)
):
    """
    Feature-level counters: palette exports, favorites, file sizes,
    PDF export settings, dashboard modes and merged PDFs.
    """
    try:
        features = await AnalyticsService(database).features(event_filter)
        return {**event_filter.window(), **features}

    except Exception as e:
        logger.error("features_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load feature analytics")


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
        event_filter: EventFilter = Depends(get_event_filter),
        heatmap_compact: str | None = Query(default=None, alias="heatmapCompact"),
        heatmap_limit: str | None = Query(default=None, alias="heatmapLimit"),
        heatmap_grid_x: str | None = Query(default=None, alias="heatmapGridX"),
        heatmap_grid_y: str | None = Query(default=None, alias="heatmapGridY"),
        sessions_limit: str | None = Query(default=None, alias="sessionsLimit"),
        events_limit: str | None = Query(default=None, alias="eventsLimit"),
        database: Database = Depends(get_initialized_database)
):
    """
    Everything the main dashboard renders, in one call.

    Accepts the common filters plus **heatmapCompact** (default true),
    **heatmapLimit**, **heatmapGridX**, **heatmapGridY**, **sessionsLimit**
    and **eventsLimit**.
    """
    options = heatmap_options(
        parse_bool(heatmap_compact, True),
        heatmap_limit,
        heatmap_grid_x,
        heatmap_grid_y
    )
    try:
        dashboard = await AnalyticsService(database).dashboard(
            event_filter,
            options,
            sessions_limit=parse_limit(sessions_limit, 60, 300),
            events_limit=parse_limit(events_limit, 100, 1000),
        )

        logger.info(
            "dashboard_query_executed",
            from_at=event_filter.from_at.isoformat(),
            to_at=event_filter.to_at.isoformat(),
            tool=event_filter.tool
        )
        return {**event_filter.window(), **dashboard}

    except Exception as e:
        logger.error("dashboard_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load dashboard")
