"""
Feature analytics: a single pass over matched events that accumulates the
per-feature counters shown on the features page (palette exports,
favorites, file sizes, PDF export settings, dashboard modes, merges).
"""

from collections import Counter
from typing import Any, Iterable, Mapping

from app.core.parsing import safe_string, to_number
from app.services.taxonomy import resolve_action

MB = 1024 * 1024

SIZE_BUCKETS = ("<5MB", "5-10MB", "10-20MB", ">20MB", "unknown")
DPI_BUCKETS = ("72", "150", "300", "other")
COMPRESSION_LEVELS = ("low", "medium", "high", "unknown")
COLOR_MODES = ("RGB", "CMYK", "UNKNOWN")

COLLAPSED_DASHBOARD_TOOL = "collapsed-dashboard"
EXPANDED_DASHBOARD_TOOL = "dashboard"


def size_bucket(size_bytes: Any, fallback: Any = None) -> str:
    size = to_number(size_bytes, fallback=-1)
    if size < 0:
        return fallback if fallback in SIZE_BUCKETS else "unknown"
    if size < 5 * MB:
        return "<5MB"
    if size < 10 * MB:
        return "5-10MB"
    if size < 20 * MB:
        return "10-20MB"
    return ">20MB"


def dpi_bucket(value: Any) -> str:
    dpi = to_number(value, fallback=0)
    if dpi in (72, 150, 300):
        return str(int(dpi))
    return "other"


def compression_level(value: Any) -> str:
    level = str(value).strip().lower() if value is not None else ""
    if level in ("optimal", "medium"):
        return "medium"
    if level in ("low", "high"):
        return level
    return "unknown"


def color_mode(value: Any) -> str:
    mode = str(value).strip().upper() if value is not None else ""
    return mode if mode in ("RGB", "CMYK") else "UNKNOWN"


def _ranked(counter: Counter, key: str) -> list[dict[str, Any]]:
    # Counter.most_common keeps first-seen order for equal counts
    return [{key: name, "count": count} for name, count in counter.most_common()]


def _fixed(counter: Counter, key: str, order: Iterable[str]) -> list[dict[str, Any]]:
    return [{key: name, "count": counter.get(name, 0)} for name in order]


class FeatureAccumulator:
    """Commutative fold of feature counters; feed events with `add`, read with `result`."""

    def __init__(self):
        self.palette_exports = Counter()
        self.palette_export_events = 0
        self.favorite_adds = Counter()
        self.favorite_removes = Counter()
        self.import_sizes = Counter()
        self.export_sizes = Counter()
        self.dpi = Counter()
        self.compression = Counter()
        self.color_modes = Counter()
        self.merge_pages = Counter()
        self.collapsed_ms = 0.0
        self.expanded_ms = 0.0
        self.export_runs = 0
        self.password_enabled_runs = 0
        self.password_disabled_runs = 0
        self.scanned = 0

    def add(self, event: Mapping[str, Any]) -> None:
        self.scanned += 1
        event_type = event.get("eventType")
        payload = event.get("payload") or {}
        action = resolve_action(event)

        handler = self._handlers.get(event_type)
        if handler is not None:
            handler(self, event, payload)

        if (
            event_type in ("tool_favorite_changed", "importer_favorite_changed")
            or action.startswith(("favorite:", "importer-favorite:"))
        ):
            self._add_favorite(payload, action)

    def _add_palette_export(self, event, payload):
        self.palette_export_events += 1
        options = payload.get("selectedOptions")
        if isinstance(options, list) and options:
            for option in options:
                self.palette_exports[f"selected:{safe_string(option, 80)}"] += 1
            return
        export_type = safe_string(payload.get("exportType"), 80) or "unknown"
        mode = safe_string(payload.get("mode"), 80) or "default"
        self.palette_exports[f"{export_type}:{mode}"] += 1

    def _add_favorite(self, payload, action):
        subject = (
            safe_string(payload.get("toolId"), 120)
            or safe_string(payload.get("importerId"), 120)
            or safe_string(payload.get("toolLabel"), 120)
            or "unknown"
        )
        if payload.get("isFavorited") is True or action.endswith(":add"):
            self.favorite_adds[subject] += 1
        else:
            self.favorite_removes[subject] += 1

    def _add_import_selection(self, event, payload):
        self.import_sizes[size_bucket(payload.get("fileSizeBytes"), payload.get("sizeBucket"))] += 1

    def _add_export_request(self, event, payload):
        self.export_runs += 1
        self.dpi[dpi_bucket(payload.get("dpi"))] += 1
        self.compression[compression_level(payload.get("compression", payload.get("compressionLevel")))] += 1
        self.color_modes[color_mode(payload.get("colorMode"))] += 1
        if payload.get("passwordEnabled") or payload.get("passwordProtected"):
            self.password_enabled_runs += 1
        else:
            self.password_disabled_runs += 1

    def _add_export_completion(self, event, payload):
        size = payload.get("zipSizeBytes")
        if size is None:
            size = payload.get("totalPdfSizeBytes")
        self.export_sizes[size_bucket(size, payload.get("sizeBucket"))] += 1

        page_counts = payload.get("mergedPageCounts")
        if isinstance(page_counts, list):
            for pages in page_counts:
                self._add_merge(pages)
            return

        # Summary-only completions carry a group count and a page total
        groups = int(to_number(payload.get("mergedPdfCount")))
        if groups > 0:
            total_pages = max(0, int(to_number(payload.get("mergedPagesTotal"))))
            base, extra = divmod(total_pages, groups)
            self._add_merge(base + 1, extra)
            self._add_merge(base, groups - extra)

    def _add_merge_group(self, event, payload):
        self._add_merge(payload.get("pageCount"))

    def _add_merge(self, pages: Any, groups: int = 1) -> None:
        # Groups without a usable page count are kept under 0 pages
        if groups > 0:
            self.merge_pages[max(0, int(to_number(pages)))] += groups

    def _add_time_spent(self, event, payload):
        duration = max(0.0, to_number(payload.get("durationMs")))
        tool = event.get("tool")
        if tool == COLLAPSED_DASHBOARD_TOOL:
            self.collapsed_ms += duration
        elif tool == EXPANDED_DASHBOARD_TOOL:
            self.expanded_ms += duration

    _handlers = {
        "palette_export_performed": _add_palette_export,
        "import_file_selected": _add_import_selection,
        "pdf_export_requested": _add_export_request,
        "pdf_export_completed": _add_export_completion,
        "pdf_merge_group_exported": _add_merge_group,
        "tool_time_spent": _add_time_spent,
    }

    def result(self) -> dict[str, Any]:
        palette_exports = _ranked(self.palette_exports, "palette")
        favorited = _ranked(self.favorite_adds, "tool")
        merged_groups = sum(self.merge_pages.values())
        merged_pages = sum(pages * count for pages, count in self.merge_pages.items())

        kpis = {
            "paletteExportEvents": self.palette_export_events,
            "topPaletteExport": palette_exports[0] if palette_exports else None,
            "favoriteAdds": sum(self.favorite_adds.values()),
            "favoriteRemoves": sum(self.favorite_removes.values()),
            "topFavoritedTool": favorited[0] if favorited else None,
            "collapsedModeMs": round(self.collapsed_ms, 2),
            "expandedModeMs": round(self.expanded_ms, 2),
            "exportRuns": self.export_runs,
            "passwordEnabledRuns": self.password_enabled_runs,
            "passwordDisabledRuns": self.password_disabled_runs,
            "mergedPdfGroups": merged_groups,
            "mergedPagesTotal": merged_pages,
            "avgPagesPerMerge": round(merged_pages / merged_groups, 2) if merged_groups else 0,
            "maxPagesPerMerge": max(self.merge_pages, default=0),
        }

        return {
            "kpis": kpis,
            "scannedEvents": self.scanned,
            "paletteExports": palette_exports,
            "favoritedTools": favorited,
            "unfavoritedTools": _ranked(self.favorite_removes, "tool"),
            "importSizeBuckets": _fixed(self.import_sizes, "bucket", SIZE_BUCKETS),
            "exportSizeBuckets": _fixed(self.export_sizes, "bucket", SIZE_BUCKETS),
            "modeTime": {"collapsedMs": round(self.collapsed_ms, 2), "expandedMs": round(self.expanded_ms, 2)},
            "dpiBreakdown": _fixed(self.dpi, "dpi", DPI_BUCKETS),
            "compressionBreakdown": _fixed(self.compression, "compression", COMPRESSION_LEVELS),
            "colorModeBreakdown": _fixed(self.color_modes, "colorMode", COLOR_MODES),
            "mergeDistribution": [
                {"pages": pages, "count": count} for pages, count in sorted(self.merge_pages.items())
            ],
        }


def feature_analytics(events: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    accumulator = FeatureAccumulator()
    for event in events:
        accumulator.add(event)
    return accumulator.result()
