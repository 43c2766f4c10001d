import random

import pytest

from app.services.features import (
    color_mode,
    compression_level,
    dpi_bucket,
    feature_analytics,
    size_bucket,
)


def event(event_type, tool="dashboard", **payload):
    return {"eventType": event_type, "tool": tool, "payload": payload}


@pytest.mark.parametrize("size,bucket", [
    (0, "<5MB"),
    (5 * 1024 * 1024 - 1, "<5MB"),
    (5 * 1024 * 1024, "5-10MB"),
    (7_000_000, "5-10MB"),
    (15 * 1024 * 1024, "10-20MB"),
    (20 * 1024 * 1024, ">20MB"),
    (None, "unknown"),
    ("huge", "unknown"),
])
def test_size_buckets(size, bucket):
    assert size_bucket(size) == bucket


def test_size_bucket_uses_valid_reported_label():
    assert size_bucket(None, "10-20MB") == "10-20MB"
    assert size_bucket(None, "enormous") == "unknown"


def test_setting_normalizers():
    assert [dpi_bucket(v) for v in [72, "150", 300.0, 96, None]] == ["72", "150", "300", "other", "other"]
    assert [compression_level(v) for v in ["LOW", "Optimal", "medium", "high", "max", None]] == [
        "low", "medium", "medium", "high", "unknown", "unknown"
    ]
    assert [color_mode(v) for v in ["rgb", "CMYK", "lab", None]] == ["RGB", "CMYK", "UNKNOWN", "UNKNOWN"]


def test_import_size_bucket_scenario():
    result = feature_analytics([event("import_file_selected", tool="import-tool", fileSizeBytes=7_000_000)])

    buckets = {row["bucket"]: row["count"] for row in result["importSizeBuckets"]}
    assert buckets == {"<5MB": 0, "5-10MB": 1, "10-20MB": 0, ">20MB": 0, "unknown": 0}
    assert [row["bucket"] for row in result["exportSizeBuckets"]] == ["<5MB", "5-10MB", "10-20MB", ">20MB", "unknown"]


def test_palette_exports():
    result = feature_analytics([
        event("palette_export_performed", exportType="css", mode="hex"),
        event("palette_export_performed", exportType="css", mode="hex"),
        event("palette_export_performed", selectedOptions=["tints", "shades"]),
        event("palette_export_performed"),
    ])

    assert result["paletteExports"] == [
        {"palette": "css:hex", "count": 2},
        {"palette": "selected:tints", "count": 1},
        {"palette": "selected:shades", "count": 1},
        {"palette": "unknown:default", "count": 1},
    ]
    assert result["kpis"]["paletteExportEvents"] == 4
    assert result["kpis"]["topPaletteExport"] == {"palette": "css:hex", "count": 2}


def test_favorites():
    result = feature_analytics([
        event("tool_favorite_changed", toolId="palettable", isFavorited=True),
        event("tool_favorite_changed", toolId="palettable", isFavorited=True),
        event("tool_favorite_changed", toolId="frame-gallery", isFavorited=False),
        event("plugin_message", action="importer-favorite:add", importerId="psd"),
        event("plugin_message", action="favorite:remove", toolLabel="Unit Converter"),
    ])

    assert result["favoritedTools"] == [{"tool": "palettable", "count": 2}, {"tool": "psd", "count": 1}]
    assert result["unfavoritedTools"] == [
        {"tool": "frame-gallery", "count": 1},
        {"tool": "Unit Converter", "count": 1},
    ]
    assert result["kpis"]["favoriteAdds"] == 3
    assert result["kpis"]["favoriteRemoves"] == 2
    assert result["kpis"]["topFavoritedTool"] == {"tool": "palettable", "count": 2}


def test_pdf_export_settings():
    result = feature_analytics([
        event("pdf_export_requested", dpi=300, compression="optimal", colorMode="cmyk", passwordEnabled=True),
        event("pdf_export_requested", dpi=144, compression="high", colorMode="RGB"),
    ])
    kpis = result["kpis"]

    assert kpis["exportRuns"] == 2
    assert kpis["passwordEnabledRuns"] == 1
    assert kpis["passwordDisabledRuns"] == 1
    assert {r["dpi"]: r["count"] for r in result["dpiBreakdown"]} == {"72": 0, "150": 0, "300": 1, "other": 1}
    assert {r["compression"]: r["count"] for r in result["compressionBreakdown"]}["medium"] == 1
    assert {r["colorMode"]: r["count"] for r in result["colorModeBreakdown"]}["CMYK"] == 1


def test_mode_time():
    result = feature_analytics([
        event("tool_time_spent", tool="collapsed-dashboard", durationMs=1000),
        event("tool_time_spent", tool="dashboard", durationMs=2500),
        event("tool_time_spent", tool="palettable", durationMs=9999),
    ])

    assert result["modeTime"] == {"collapsedMs": 1000.0, "expandedMs": 2500.0}
    assert result["kpis"]["collapsedModeMs"] == 1000.0


def test_merge_statistics_sum_both_sources():
    result = feature_analytics([
        event("pdf_merge_group_exported", pageCount=3),
        event("pdf_merge_group_exported", pageCount=5),
        event("pdf_export_completed", mergedPageCounts=[3, 5], zipSizeBytes=1024),
        event("pdf_export_completed", mergedPdfCount=2, mergedPagesTotal=9, totalPdfSizeBytes=30 * 1024 * 1024),
    ])
    kpis = result["kpis"]

    assert kpis["mergedPdfGroups"] == 6
    assert kpis["mergedPagesTotal"] == 25
    assert kpis["maxPagesPerMerge"] == 5
    assert kpis["avgPagesPerMerge"] == round(25 / 6, 2)
    assert result["mergeDistribution"] == [
        {"pages": 3, "count": 2},
        {"pages": 4, "count": 1},
        {"pages": 5, "count": 3},
    ]
    buckets = {row["bucket"]: row["count"] for row in result["exportSizeBuckets"]}
    assert buckets["<5MB"] == 1
    assert buckets[">20MB"] == 1


def test_empty_scan_has_zeroed_ratios():
    result = feature_analytics([])
    assert result["kpis"]["avgPagesPerMerge"] == 0
    assert result["kpis"]["topFavoritedTool"] is None
    assert result["mergeDistribution"] == []
    assert result["scannedEvents"] == 0


def test_fold_is_order_independent():
    events = [
        event("palette_export_performed", exportType="png", mode="grid"),
        event("import_file_selected", fileSizeBytes=25 * 1024 * 1024),
        event("pdf_export_requested", dpi=72),
        event("pdf_merge_group_exported", pageCount=2),
        event("tool_favorite_changed", toolId="palettable", isFavorited=True),
    ]
    shuffled = events[:]
    random.Random(7).shuffle(shuffled)

    assert feature_analytics(events)["kpis"] == feature_analytics(shuffled)["kpis"]


def test_merge_groups_without_pages_still_count():
    result = feature_analytics([
        event("pdf_merge_group_exported"),
        event("pdf_merge_group_exported", pageCount=4),
        event("pdf_export_completed", mergedPdfCount=3, mergedPagesTotal=0),
    ])
    kpis = result["kpis"]

    assert kpis["mergedPdfGroups"] == 5
    assert kpis["mergedPagesTotal"] == 4
    assert kpis["maxPagesPerMerge"] == 4
    assert result["mergeDistribution"] == [{"pages": 0, "count": 4}, {"pages": 4, "count": 1}]


def test_oversized_integers_in_payload():
    huge = 10 ** 400
    result = feature_analytics([
        event("import_file_selected", fileSizeBytes=huge),
        event("tool_time_spent", durationMs=huge),
        event("pdf_export_requested", dpi=huge),
    ])

    buckets = {row["bucket"]: row["count"] for row in result["importSizeBuckets"]}
    assert buckets["unknown"] == 1
    assert result["modeTime"]["expandedMs"] == 0.0
    assert {r["dpi"]: r["count"] for r in result["dpiBreakdown"]}["other"] == 1
