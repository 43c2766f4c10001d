import asyncio
import base64
from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.core.database import Database, get_database
from app.main import app

API = "/api/plugin-analytics"


def basic(user: str, password: str) -> dict:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


async def ingest(client, events, **envelope):
    response = await client.post(f"{API}/ingest", json={"events": events, **envelope})
    assert response.status_code == 202
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app"] == settings.app_name
    assert "initialized" in data


@pytest.mark.asyncio
async def test_ingest_and_query_round_trip(client):
    """Ingest one click, then read it back through summary and tool usage"""
    result = await ingest(client, [{
        "eventType": "ui_click",
        "tool": "palettable",
        "payload": {"normalizedX": 0.5, "normalizedY": 0.5},
        "sessionId": "s1",
    }])
    assert result == {"accepted": 1, "inserted": 1}

    response = await client.get(f"{API}/summary")
    assert response.status_code == 200
    summary = response.json()
    assert summary["kpis"]["totalEvents"] == 1
    assert summary["kpis"]["totalSessions"] == 1
    assert summary["kpis"]["anonymousEvents"] == 1
    assert "from" in summary and "to" in summary

    response = await client.get(f"{API}/tool-usage")
    tools = {row["tool"]: row for row in response.json()["tools"]}
    assert tools["palettable"]["eventCount"] == 1


@pytest.mark.asyncio
async def test_events_alias_accepts_batches(client):
    response = await client.post(f"{API}/events", json={"events": [{"eventType": "tool_opened"}]})
    assert response.status_code == 202
    assert response.json()["accepted"] == 1


@pytest.mark.asyncio
async def test_passive_events_are_split_from_active(client):
    await ingest(client, [
        {"eventType": "session_heartbeat", "tool": "palettable"},
        {"eventType": "ui_click", "tool": "palettable"},
    ], sessionId="s-passive")

    response = await client.get(f"{API}/tool-usage")
    tools = {row["tool"]: row for row in response.json()["tools"]}
    assert tools["palettable"]["activeEventCount"] == 1
    assert tools["palettable"]["passiveEventCount"] == 1

    kpis = (await client.get(f"{API}/summary")).json()["kpis"]
    assert kpis["meaningfulEvents"] + kpis["passiveEvents"] == kpis["totalEvents"]


@pytest.mark.asyncio
async def test_import_size_bucket_in_features(client):
    await ingest(client, [{"eventType": "import_file_selected", "payload": {"fileSizeBytes": 7_000_000}}])

    response = await client.get(f"{API}/features")
    assert response.status_code == 200
    buckets = {row["bucket"]: row["count"] for row in response.json()["importSizeBuckets"]}
    assert buckets["5-10MB"] == 1


@pytest.mark.asyncio
async def test_unknown_action_in_catalog(client):
    await ingest(client, [{"eventType": "ui_click", "payload": {"action": "click:custom-widget-42"}}])

    response = await client.get(f"{API}/action-catalog")
    assert response.status_code == 200
    [entry] = response.json()["actions"]
    assert entry["action"] == "click:custom-widget-42"
    assert entry["label"] == "Click: Custom Widget 42"
    assert entry["category"] == "Interaction"
    assert entry["passive"] is False
    assert entry["eventTypes"] == ["ui_click"]


@pytest.mark.asyncio
async def test_reversed_date_range_is_swapped(client):
    now = datetime.now(timezone.utc)
    await ingest(client, [{"eventType": "ui_click", "eventAt": (now - timedelta(hours=1)).isoformat()}])

    response = await client.get(f"{API}/summary", params={
        "from": (now + timedelta(hours=1)).isoformat(),
        "to": (now - timedelta(days=1)).isoformat(),
    })
    assert response.status_code == 200
    data = response.json()
    from_at = datetime.fromisoformat(data["from"].replace("Z", "+00:00"))
    to_at = datetime.fromisoformat(data["to"].replace("Z", "+00:00"))
    assert from_at < to_at
    assert data["kpis"]["totalEvents"] == 1


@pytest.mark.asyncio
async def test_malformed_query_values_fall_back_to_defaults(client):
    response = await client.get(f"{API}/sessions", params={"from": "invalid", "limit": "lots", "auth": "root"})
    assert response.status_code == 200
    assert response.json()["sessions"] == []


@pytest.mark.asyncio
async def test_validation_errors(client):
    """Missing or empty events are rejected"""
    response = await client.post(f"{API}/ingest", json={"events": []})
    assert response.status_code == 400
    assert response.json()["detail"] == "events[] is required"

    response = await client.post(f"{API}/ingest", json={"source": "figma"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_batch_size_limit(client):
    """Batches are truncated to 1000 events, not rejected"""
    events = [{"eventType": "ui_click", "payload": {"index": i}} for i in range(1001)]

    result = await ingest(client, events, sessionId="bulk")
    assert result["accepted"] == 1000
    assert result["inserted"] == 1000


@pytest.mark.asyncio
async def test_oversized_body_rejected(client, monkeypatch):
    monkeypatch.setattr(settings, "max_body_bytes", 64)
    response = await client.post(f"{API}/ingest", json={"events": [{"payload": {"blob": "x" * 200}}]})
    assert response.status_code == 413


@pytest.mark.asyncio
async def test_filters_by_tool_auth_and_action(client):
    await ingest(client, [
        {"eventType": "ui_click", "tool": "palettable", "payload": {"action": "click:export"}},
        {"eventType": "ui_click", "tool": "frame-gallery", "user": {"userId": "u-1"}},
        {"eventType": "tool_opened", "tool": "frame-gallery", "user": {"userId": "u-1"}},
    ], sessionId="s-filter")

    async def total(**params):
        response = await client.get(f"{API}/summary", params=params)
        return response.json()["kpis"]["totalEvents"]

    assert await total() == 3
    assert await total(tool="frame-gallery") == 2
    assert await total(tool="all") == 3
    assert await total(auth="authenticated") == 2
    assert await total(auth="anonymous") == 1
    assert await total(action="click:export") == 1
    assert await total(action="tool_opened,click:export") == 2


@pytest.mark.asyncio
async def test_heatmap_modes_and_tool_matching(client):
    await ingest(client, [
        {"eventType": "ui_click", "tool": "dashboard",
         "payload": {"normalizedX": 0.5, "normalizedY": 0.5, "element": {"toolId": "palettable", "tag": "BUTTON"}}},
        {"eventType": "ui_click", "tool": "palettable", "payload": {"x": 10, "y": 10, "viewportWidth": 100, "viewportHeight": 100}},
        {"eventType": "ui_click", "tool": "palettable", "payload": {}},
        {"eventType": "tool_opened", "tool": "palettable", "payload": {"normalizedX": 0.9, "normalizedY": 0.9}},
    ])

    response = await client.get(f"{API}/heatmap", params={"compact": "true", "gridX": 10, "gridY": 10})
    assert response.status_code == 200
    compact = response.json()
    assert compact["compact"] is True
    assert compact["grid"] == {"x": 10, "y": 10}
    assert compact["sampleCount"] == 3
    assert compact["totalPoints"] == 2
    assert sum(cell["count"] for cell in compact["bins"]) == compact["totalPoints"]

    response = await client.get(f"{API}/heatmap", params={"tool": "palettable"})
    points = response.json()
    assert points["compact"] is False
    assert points["count"] == 2
    assert {point["elementTag"] for point in points["points"]} == {"BUTTON", None}


@pytest.mark.asyncio
async def test_sessions_and_recent_events(client):
    now = datetime.now(timezone.utc)
    await ingest(client, [
        {"eventType": "plugin_session_started", "eventAt": (now - timedelta(minutes=10)).isoformat()},
        {"eventType": "ui_click", "eventAt": (now - timedelta(minutes=4)).isoformat()},
    ], sessionId="s-long", source="figma-plugin")
    await ingest(client, [{"eventType": "ui_click", "eventAt": (now - timedelta(minutes=1)).isoformat()}],
                 sessionId="s-short")

    sessions = (await client.get(f"{API}/sessions")).json()["sessions"]
    assert [row["sessionId"] for row in sessions] == ["s-short", "s-long"]
    assert sessions[0]["durationMs"] == 0
    assert sessions[1]["durationMs"] == 6 * 60 * 1000
    assert sessions[1]["lastSource"] == "figma-plugin"

    events = (await client.get(f"{API}/recent-events", params={"limit": 2})).json()["events"]
    assert [event["sessionId"] for event in events] == ["s-short", "s-long"]
    assert events[0]["eventType"] == "ui_click"


@pytest.mark.asyncio
async def test_dashboard_combines_every_section(client):
    await ingest(client, [
        {"eventType": "ui_click", "tool": "palettable", "payload": {"normalizedX": 0.2, "normalizedY": 0.4}},
        {"eventType": "session_heartbeat"},
    ], sessionId="s-dash")

    response = await client.get(f"{API}/dashboard", params={"heatmapGridX": 4, "heatmapGridY": 4, "eventsLimit": 1})
    assert response.status_code == 200
    data = response.json()

    assert data["summary"]["kpis"]["totalEvents"] == 2
    assert {row["tool"] for row in data["toolUsage"]["tools"]} == {"palettable", "dashboard"}
    assert data["heatmap"]["compact"] is True
    assert data["heatmap"]["bins"] == [{"x": 0, "y": 1, "count": 1}]
    assert len(data["sessions"]["sessions"]) == 1
    assert len(data["recentEvents"]["events"]) == 1
    assert {row["eventType"] for row in data["eventTypeBreakdown"]} == {"ui_click", "session_heartbeat"}
    assert "eventTypes" not in data
    assert len(data["actionCatalog"]["actions"]) == 2


@pytest.mark.asyncio
async def test_event_types_breakdown(client):
    await ingest(client, [{"eventType": "ui_click"}, {"eventType": "ui_click"}, {"eventType": "ui_resize"}])

    rows = (await client.get(f"{API}/event-types")).json()["eventTypes"]
    assert rows[0] == {"eventType": "ui_click", "count": 2, "sessionCount": 1, "passive": False}
    assert rows[1]["passive"] is True


@pytest.mark.asyncio
async def test_read_gate(client, monkeypatch):
    monkeypatch.setattr(settings, "dashboard_basic_auth_user", "admin")
    monkeypatch.setattr(settings, "dashboard_basic_auth_pass", "s3cret")

    response = await client.get(f"{API}/summary")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == 'Basic realm="Plugin Dashboard"'

    response = await client.get(f"{API}/summary", headers=basic("admin", "wrong"))
    assert response.status_code == 403
    assert "s3cret" not in response.text

    response = await client.get(f"{API}/summary", headers=basic("admin", "s3cret"))
    assert response.status_code == 200

    # Ingestion and health are not behind the read gate
    assert (await client.get("/health")).status_code == 200
    await ingest(client, [{"eventType": "ui_click"}])


@pytest.mark.asyncio
async def test_ingest_token_gate(client, monkeypatch):
    monkeypatch.setattr(settings, "ingest_token", "tok-123")
    body = {"events": [{"eventType": "ui_click"}]}

    # Advisory unless required
    response = await client.post(f"{API}/ingest", json=body, headers={"X-Ingest-Token": "nope"})
    assert response.status_code == 202

    monkeypatch.setattr(settings, "ingest_token_required", True)
    response = await client.post(f"{API}/ingest", json=body, headers={"X-Ingest-Token": "nope"})
    assert response.status_code == 401
    response = await client.post(f"{API}/ingest", json=body)
    assert response.status_code == 401

    response = await client.post(f"{API}/ingest", json=body, headers={"X-Ingest-Token": "tok-123"})
    assert response.status_code == 202
    response = await client.post(f"{API}/ingest", json=body, headers={"X-Plugin-Ingest-Token": "tok-123"})
    assert response.status_code == 202


@pytest.mark.asyncio
async def test_store_unavailable_returns_500(client, tmp_path):
    broken = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nested' / 'events.db'}")
    app.dependency_overrides[get_database] = lambda: broken

    response = await client.get(f"{API}/summary")
    assert response.status_code == 500
    assert response.json()["detail"] == "Database initialization failed"
    assert broken.initialized is False

    response = await client.post(f"{API}/ingest", json={"events": [{"eventType": "ui_click"}]})
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_concurrent_initialization_shares_one_attempt(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'concurrent.db'}")
    try:
        await asyncio.gather(*(database.initialize() for _ in range(5)))
        assert database.initialized is True
    finally:
        await database.dispose()


@pytest.mark.asyncio
async def test_oversized_integers_are_accepted_and_queryable(client):
    huge = 10 ** 400
    result = await ingest(client, [
        {"eventType": "ui_click", "eventAt": huge, "payload": {"x": huge, "y": 1, "viewportWidth": 10, "viewportHeight": 10}},
        {"eventType": "import_file_selected", "payload": {"fileSizeBytes": huge}},
        {"eventType": "tool_time_spent", "tool": "palettable", "payload": {"durationMs": huge}},
    ])
    assert result == {"accepted": 3, "inserted": 3}

    for path in ("/summary", "/features", "/heatmap", "/dashboard"):
        response = await client.get(f"{API}{path}")
        assert response.status_code == 200, path

    features = (await client.get(f"{API}/features")).json()
    buckets = {row["bucket"]: row["count"] for row in features["importSizeBuckets"]}
    assert buckets["unknown"] == 1


@pytest.mark.asyncio
async def test_palette_exports_are_labelled(client):
    await ingest(client, [
        {"eventType": "palette_export_performed", "payload": {"exportType": "css", "mode": "hex"}},
    ])

    data = (await client.get(f"{API}/features")).json()
    assert data["paletteExports"] == [{"palette": "css:hex", "count": 1}]
    assert data["kpis"]["topPaletteExport"] == {"palette": "css:hex", "count": 1}
