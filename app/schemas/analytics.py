from datetime import datetime
from typing import Any, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case fields, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Window(CamelModel):
    """Resolved time window echoed back with every response"""
    from_: datetime = Field(..., alias="from")
    to: datetime


# Summary

class SummaryKpis(CamelModel):
    total_events: int
    total_sessions: int
    authenticated_users: int
    anonymous_users: int
    anonymous_events: int
    meaningful_events: int
    passive_events: int
    avg_session_duration_ms: int
    max_session_duration_ms: int


class ToolSummary(CamelModel):
    tool: str
    events: int
    active_events: int
    passive_events: int
    session_count: int
    time_spent_ms: float


class ActionCount(CamelModel):
    action: str
    count: int


class DayBucket(CamelModel):
    day: str
    events: int
    sessions: int


class Summary(CamelModel):
    kpis: SummaryKpis
    top_tools: List[ToolSummary]
    top_actions: List[ActionCount]
    events_by_day: List[DayBucket]


class SummaryResponse(Summary, Window):
    pass


# Tool usage

class ToolUsageRow(CamelModel):
    tool: str
    event_count: int
    active_event_count: int
    passive_event_count: int
    click_count: int
    session_count: int
    user_count: int
    authenticated_user_count: int
    anonymous_user_count: int
    time_spent_ms: float


class ToolUsage(CamelModel):
    tools: List[ToolUsageRow]


class ToolUsageResponse(ToolUsage, Window):
    pass


# Heatmap

class HeatmapGrid(CamelModel):
    x: int
    y: int


class HeatmapBin(CamelModel):
    x: int
    y: int
    count: int


class CompactHeatmap(CamelModel):
    compact: Literal[True]
    grid: HeatmapGrid
    bins: List[HeatmapBin]
    max_count: int
    total_points: int
    sample_count: int


class HeatmapPoint(CamelModel):
    event_at: datetime
    tool: str | None = None
    normalized_x: float
    normalized_y: float
    element_tag: Any = None
    element_id: Any = None
    element_tool_id: Any = None


class PointHeatmap(CamelModel):
    compact: Literal[False]
    points: List[HeatmapPoint]
    count: int


Heatmap = Union[CompactHeatmap, PointHeatmap]


class CompactHeatmapResponse(CompactHeatmap, Window):
    pass


class PointHeatmapResponse(PointHeatmap, Window):
    pass


# Sessions and raw events

class SessionRow(CamelModel):
    session_id: str
    started_at: datetime
    ended_at: datetime
    duration_ms: int
    event_count: int
    active_event_count: int
    passive_event_count: int
    user: dict[str, Any]
    tools: List[str]
    last_source: str | None = None


class Sessions(CamelModel):
    sessions: List[SessionRow]


class SessionsResponse(Sessions, Window):
    pass


class RecentEvent(CamelModel):
    event_at: datetime
    event_type: str
    tool: str
    source: str
    session_id: str
    user: dict[str, Any]
    payload: dict[str, Any]


class RecentEvents(CamelModel):
    events: List[RecentEvent]


class RecentEventsResponse(RecentEvents, Window):
    pass


# Catalogs

class EventTypeRow(CamelModel):
    event_type: str
    count: int
    session_count: int
    passive: bool


class EventTypes(CamelModel):
    event_types: List[EventTypeRow]


class EventTypesResponse(EventTypes, Window):
    pass


class ActionCatalogRow(CamelModel):
    action: str
    count: int
    event_types: List[str]
    label: str
    category: str
    passive: bool


class ActionCatalog(CamelModel):
    actions: List[ActionCatalogRow]


class ActionCatalogResponse(ActionCatalog, Window):
    pass


# Feature analytics

class PaletteCount(CamelModel):
    palette: str
    count: int


class ToolCount(CamelModel):
    tool: str
    count: int


class FeatureKpis(CamelModel):
    palette_export_events: int
    top_palette_export: PaletteCount | None = None
    favorite_adds: int
    favorite_removes: int
    top_favorited_tool: ToolCount | None = None
    collapsed_mode_ms: float
    expanded_mode_ms: float
    export_runs: int
    password_enabled_runs: int
    password_disabled_runs: int
    merged_pdf_groups: int
    merged_pages_total: int
    avg_pages_per_merge: float
    max_pages_per_merge: int


class BucketCount(CamelModel):
    bucket: str
    count: int


class DpiCount(CamelModel):
    dpi: str
    count: int


class CompressionCount(CamelModel):
    compression: str
    count: int


class ColorModeCount(CamelModel):
    color_mode: str
    count: int


class MergeCount(CamelModel):
    pages: int
    count: int


class ModeTime(CamelModel):
    collapsed_ms: float
    expanded_ms: float


class FeaturesResponse(Window):
    kpis: FeatureKpis
    scanned_events: int
    truncated: bool
    palette_exports: List[PaletteCount]
    favorited_tools: List[ToolCount]
    unfavorited_tools: List[ToolCount]
    import_size_buckets: List[BucketCount]
    export_size_buckets: List[BucketCount]
    mode_time: ModeTime
    dpi_breakdown: List[DpiCount]
    compression_breakdown: List[CompressionCount]
    color_mode_breakdown: List[ColorModeCount]
    merge_distribution: List[MergeCount]


# Combined dashboard

class DashboardResponse(Window):
    summary: Summary
    tool_usage: ToolUsage
    heatmap: Heatmap
    sessions: Sessions
    recent_events: RecentEvents
    event_type_breakdown: List[EventTypeRow]
    action_catalog: ActionCatalog
