"""
Taxonomy classifier for plugin telemetry.

Maps raw events onto canonical tools, describes action/event keys with
label/category/signal metadata and separates passive system noise from
meaningful user intent. Every function here is a pure function of its
arguments and the static tables in app.core.catalog, so unknown keys
degrade to synthesized metadata instead of failing.
"""

import re
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping

from app.core.catalog import (
    ACTION_METADATA,
    ACTION_TOOL_FRAGMENTS,
    ACTION_TOOLS,
    EVENT_METADATA,
    GENERIC_EVENT_TYPES,
    PASSIVE_ACTION_KEYS,
    PASSIVE_EVENT_TYPES,
    TOOL_ALIASES,
    TOOL_LABELS,
)

UNKNOWN_TOOL = "unknown"
UNKNOWN_EVENT = "unknown_event"

# Payload fields that may carry the action key, in priority order.
ACTION_FIELDS = ("action", "messageType", "interactionAction", "type")
# Subset consulted when inferring the tool from an action.
TOOL_ACTION_FIELDS = ("action", "messageType", "type")


@dataclass(frozen=True)
class ActionMeta:
    """Descriptor rendered next to an action or event key."""

    key: str
    label: str
    description: str
    category: str
    signal: str
    passive: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def humanize_identifier(value: Any) -> str:
    raw = str(value if value is not None else "").strip()
    if not raw:
        return "Unknown"
    text = re.sub(r"[._-]+", " ", raw)
    text = re.sub(r"\s+", " ", text)
    return re.sub(r"\b\w", lambda match: match.group().upper(), text)


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _first_text(*values: Any) -> str | None:
    for value in values:
        text = _text(value)
        if text:
            return text
    return None


def _payload(event: Mapping[str, Any]) -> Mapping[str, Any]:
    payload = event.get("payload")
    return payload if isinstance(payload, dict) else {}


# Tools

def normalize_tool(value: Any) -> str | None:
    """Canonical tool id for a known alias, None when the hint is not recognized."""
    text = _text(value)
    if not text:
        return None
    return TOOL_ALIASES.get(text.lower())


def tool_from_action(action: str | None) -> str | None:
    if not action:
        return None
    if action in ACTION_TOOLS:
        return ACTION_TOOLS[action]
    lowered = action.lower()
    for fragments, tool in ACTION_TOOL_FRAGMENTS:
        if any(fragment in lowered for fragment in fragments):
            return tool
    return None


def infer_tool(
        event_type: str,
        payload: Mapping[str, Any],
        event_tool: Any = None,
        envelope_tool: Any = None,
) -> str:
    """
    Resolve the canonical tool for an event.

    Explicit hints go through the alias table first; then the action-like
    payload fields are looked up; generic runtime events belong to the
    dashboard; anything else keeps its raw hint or becomes "unknown".
    """
    element = payload.get("element") if isinstance(payload.get("element"), dict) else {}
    hints = (
        event_tool,
        payload.get("uiTool"),
        payload.get("tool"),
        element.get("toolId"),
        envelope_tool,
    )

    for hint in hints:
        alias = normalize_tool(hint)
        if alias and alias != UNKNOWN_TOOL:
            return alias

    action = _first_text(*(payload.get(field) for field in TOOL_ACTION_FIELDS))
    tool = tool_from_action(action)
    if tool:
        return tool

    if event_type in GENERIC_EVENT_TYPES:
        return "dashboard"

    raw = _first_text(*hints)
    if raw:
        return normalize_tool(raw) or raw.lower()[:120]
    return UNKNOWN_TOOL


def label_tool(tool_id: Any) -> str:
    key = (_text(tool_id) or "").lower()
    if not key:
        return "Unknown Tool"
    canonical = TOOL_ALIASES.get(key, key)
    if canonical in TOOL_LABELS:
        return TOOL_LABELS[canonical]
    return humanize_identifier(key)


# Events and actions

def resolve_action(event: Mapping[str, Any]) -> str:
    """First populated action-bearing field, falling back to the event type."""
    payload = _payload(event)
    return _first_text(
        *(payload.get(field) for field in ACTION_FIELDS),
        event.get("eventType"),
    ) or UNKNOWN_EVENT


@lru_cache(maxsize=4096)
def event_meta(event_type: str | None) -> ActionMeta:
    key = (event_type or "").strip() or UNKNOWN_EVENT
    passive = key in PASSIVE_EVENT_TYPES
    mapped = EVENT_METADATA.get(key)
    if mapped:
        return ActionMeta(
            key=key,
            label=mapped["label"],
            description=mapped["description"],
            category=mapped["category"],
            signal=mapped["signal"],
            passive=passive,
        )
    return ActionMeta(
        key=key,
        label=humanize_identifier(key),
        description="Custom telemetry event captured from plugin runtime.",
        category="Custom",
        signal="medium",
        passive=passive,
    )


def _suffix(key: str, parts: int) -> str:
    return ":".join(key.split(":")[parts:])


def _favorite_label(normalized: str, subject: str) -> str:
    if normalized.endswith(":add"):
        return f"Add {subject}"
    if normalized.endswith(":remove"):
        return f"Remove {subject}"
    return f"{subject} Updated"


PrefixRule = tuple[Callable[[str], bool], Callable[[str, str], ActionMeta]]

# Structured keys, evaluated in order before the verb heuristics.
PREFIX_RULES: tuple[PrefixRule, ...] = (
    (
        lambda n: n.startswith("tab:"),
        lambda key, n: ActionMeta(key, f"Tab: {humanize_identifier(key[4:])}",
                                  "User switched in-tool tab/view.", "Navigation", "high"),
    ),
    (
        lambda n: n.startswith("click:"),
        lambda key, n: ActionMeta(key, f"Click: {humanize_identifier(key[6:])}",
                                  "User clicked an interactive control.", "Interaction", "high"),
    ),
    (
        lambda n: n.startswith("input:"),
        lambda key, n: ActionMeta(key, f"Input: {humanize_identifier(key[6:])}",
                                  "User changed an input/dropdown/toggle value.", "Interaction", "high"),
    ),
    (
        lambda n: n.startswith("key:"),
        lambda key, n: ActionMeta(key, f"Keyboard: {humanize_identifier(key[4:])}",
                                  "Keyboard-triggered interaction on a control.", "Interaction", "medium"),
    ),
    (
        lambda n: n.startswith("palette:export-scheme:"),
        lambda key, n: ActionMeta(key, f"Export Scheme: {humanize_identifier(_suffix(key, 2))}",
                                  "Palette scheme exported from palette tool.", "Palette", "high"),
    ),
    (
        lambda n: n.startswith("palette:export-variation:"),
        lambda key, n: ActionMeta(key, f"Export Variation: {humanize_identifier(_suffix(key, 2))}",
                                  "Palette variation exported from palette tool.", "Palette", "high"),
    ),
    (
        lambda n: n == "palette:export-selected-options",
        lambda key, n: ActionMeta(key, "Export Selected Palette Options",
                                  "Batch export of selected palette variation/scheme options.", "Palette", "high"),
    ),
    (
        lambda n: n.startswith("favorite:"),
        lambda key, n: ActionMeta(key, _favorite_label(n, "Favorite"),
                                  "Favorite preference changed in dashboard tools.", "Engagement", "high"),
    ),
    (
        lambda n: n.startswith("importer-favorite:"),
        lambda key, n: ActionMeta(key, _favorite_label(n, "Importer Favorite"),
                                  "Favorite preference changed in import tool.", "Engagement", "high"),
    ),
    (
        lambda n: n.startswith("import:conversion:"),
        lambda key, n: ActionMeta(key, f"Import Conversion: {humanize_identifier(_suffix(key, 2))}",
                                  "Pre-import conversion completed for selected file.", "Import", "high"),
    ),
    (
        lambda n: n.startswith("import:file-selected:"),
        lambda key, n: ActionMeta(key, f"Import Selected: {humanize_identifier(_suffix(key, 2))}",
                                  "User selected import file for processing.", "Import", "high"),
    ),
    (
        lambda n: n.startswith("export:pdf:"),
        lambda key, n: ActionMeta(key, f"PDF Export {humanize_identifier(_suffix(key, 2))}",
                                  "PDF export workflow lifecycle event.", "Export", "high"),
    ),
)

# (predicate, category, signal, passive)
VERB_RULES = (
    (lambda n: n.startswith("toggle-") or "collapse" in n, "Navigation", "high", False),
    (lambda n: n.startswith(("get-", "load-")), "Read", "low", False),
    (lambda n: n.startswith(("save-", "store-", "delete-", "clear-")), "Write", "medium", False),
    (lambda n: n.startswith("export-"), "Export", "high", False),
    (lambda n: "auth" in n or "token" in n or "session" in n, "Auth", "medium", False),
    (lambda n: n.startswith("analytics-"), "System", "low", True),
)


@lru_cache(maxsize=4096)
def action_meta(action_key: str | None) -> ActionMeta:
    """Catalog entry for an action key, or metadata inferred from its structure."""
    key = (action_key or "").strip()
    if not key:
        return ActionMeta("unknown_action", "Unknown Action", "Action key missing in payload.",
                          "Unmapped", "low")

    if key in EVENT_METADATA:
        return event_meta(key)

    mapped = ACTION_METADATA.get(key)
    if mapped:
        return ActionMeta(key, mapped["label"], mapped["description"], mapped["category"],
                          mapped["signal"], bool(mapped["passive"]))

    normalized = key.lower()
    for matches, build in PREFIX_RULES:
        if matches(normalized):
            return build(key, normalized)

    for matches, category, signal, passive in VERB_RULES:
        if matches(normalized):
            break
    else:
        category, signal, passive = "Custom", "medium", False

    return ActionMeta(key, humanize_identifier(key), "Action observed from plugin message handling.",
                      category, signal, passive)


def is_passive_action(action_key: str | None) -> bool:
    key = (action_key or "").strip()
    return key in PASSIVE_ACTION_KEYS or key.lower().startswith("analytics-")


def is_passive_event(event: Mapping[str, Any]) -> bool:
    """True for heartbeats, snapshots and bridge chatter; False for user intent."""
    if (event.get("eventType") or UNKNOWN_EVENT) in PASSIVE_EVENT_TYPES:
        return True
    return is_passive_action(resolve_action(event))
