import pytest

from app.services.taxonomy import (
    action_meta,
    event_meta,
    humanize_identifier,
    infer_tool,
    is_passive_event,
    label_tool,
    resolve_action,
)


def test_unknown_click_action_is_synthesized():
    """Structured keys without a catalog entry still get useful metadata"""
    meta = action_meta("click:custom-widget-42")

    assert meta.label == "Click: Custom Widget 42"
    assert meta.category == "Interaction"
    assert meta.signal == "high"
    assert meta.passive is False


def test_classification_is_idempotent():
    for key in ["click:custom-widget-42", "toggle-palette", "get-ui-state", "totally-new-thing", ""]:
        assert action_meta(key) == action_meta(key)
        assert action_meta(key).as_dict() == action_meta(key).as_dict()


@pytest.mark.parametrize("key,category,signal,passive", [
    ("toggle-sidebar", "Navigation", "high", False),
    ("load-history", "Read", "low", False),
    ("save-draft", "Write", "medium", False),
    ("export-json", "Export", "high", False),
    ("refresh-token", "Auth", "medium", False),
    ("analytics-custom-ping", "System", "low", True),
    ("something-else", "Custom", "medium", False),
])
def test_verb_heuristics(key, category, signal, passive):
    meta = action_meta(key)
    assert (meta.category, meta.signal, meta.passive) == (category, signal, passive)


def test_prefix_rules_take_priority_over_verbs():
    # "tab:" wins even though the key also mentions a session
    meta = action_meta("tab:session-history")
    assert meta.category == "Navigation"
    assert meta.label == "Tab: Session History"


def test_favorite_labels():
    assert action_meta("favorite:add").label == "Add Favorite"
    assert action_meta("importer-favorite:remove").label == "Remove Importer Favorite"


def test_event_keys_resolve_through_event_catalog():
    assert action_meta("ui_click").label == "UI Click"
    assert event_meta("session_heartbeat").passive is True
    assert event_meta("brand_new_event").category == "Custom"


def test_humanize_identifier():
    assert humanize_identifier("frame_gallery.open-modal") == "Frame Gallery Open Modal"
    assert humanize_identifier("  ") == "Unknown"


def test_resolve_action_priority():
    event = {"eventType": "plugin_message", "payload": {"messageType": "get-ui-state", "type": "x"}}
    assert resolve_action(event) == "get-ui-state"
    assert resolve_action({"eventType": "ui_click", "payload": {}}) == "ui_click"
    assert resolve_action({}) == "unknown_event"


def test_passivity_partition():
    events = [
        {"eventType": "session_heartbeat", "payload": {}},
        {"eventType": "plugin_message", "payload": {"messageType": "analytics-batch"}},
        {"eventType": "plugin_message", "payload": {"action": "analytics-whatever"}},
        {"eventType": "ui_click", "payload": {"action": "click:save"}},
        {"eventType": "tool_opened", "payload": {}},
    ]
    passive = [is_passive_event(event) for event in events]
    assert passive == [True, True, True, False, False]


def test_infer_tool_from_aliases_and_actions():
    assert infer_tool("ui_click", {}, event_tool="palette") == "palettable"
    assert infer_tool("ui_click", {"element": {"toolId": "frame_gallery"}}) == "frame-gallery"
    assert infer_tool("plugin_message", {"messageType": "toggle-game"}) == "wayfall-game"
    assert infer_tool("plugin_message", {"action": "preset-sync"}) == "unit-converter"


def test_infer_tool_defaults():
    assert infer_tool("session_heartbeat", {}) == "dashboard"
    assert infer_tool("custom_event", {}) == "unknown"
    assert infer_tool("custom_event", {}, event_tool="Brand-New-Tool") == "brand-new-tool"


def test_unknown_alias_does_not_mask_later_hints():
    assert infer_tool("ui_click", {"uiTool": "palettable"}, event_tool="unknown") == "palettable"


def test_label_tool():
    assert label_tool("palette") == "Palette Tool"
    assert label_tool("my-new-tool") == "My New Tool"
    assert label_tool(None) == "Unknown Tool"
