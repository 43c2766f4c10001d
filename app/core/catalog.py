# Static taxonomy tables for plugin telemetry.
#
# Loaded once at import and exposed read-only; classification logic lives in
# app.services.taxonomy.

from types import MappingProxyType


def _entry(label, description, category, signal, passive=False):
    return MappingProxyType({
        "label": label,
        "description": description,
        "category": category,
        "signal": signal,
        "passive": passive,
    })


PASSIVE_EVENT_TYPES = frozenset({
    "session_heartbeat",
    "ui_heartbeat",
    "ui_state_snapshot",
    "ui_visibility_change",
    "ui_resize",
    "analytics_transport_updated",
})

# Event types emitted by the runtime itself rather than by a specific tool.
GENERIC_EVENT_TYPES = frozenset({
    "plugin_session_started",
    "plugin_session_ended",
    "session_heartbeat",
    "plugin_message",
    "user_context_changed",
    "ui_session_started",
    "ui_heartbeat",
    "ui_state_snapshot",
    "ui_visibility_change",
    "ui_resize",
    "ui_before_unload",
    "ui_user_authenticated",
    "ui_user_unauthenticated",
    "analytics_transport_updated",
})

TOOL_ALIASES = MappingProxyType({
    "dashboard": "dashboard",
    "plugin-dashboard": "dashboard",
    "plugin_dashboard": "dashboard",
    "main": "dashboard",
    "collapsed-dashboard": "collapsed-dashboard",
    "collapsed_dashboard": "collapsed-dashboard",
    "collapsed": "collapsed-dashboard",
    "palettable": "palettable",
    "palette": "palettable",
    "palette-tool": "palettable",
    "palette_tool": "palettable",
    "frame-gallery": "frame-gallery",
    "frame_gallery": "frame-gallery",
    "framegallery": "frame-gallery",
    "import-tool": "import-tool",
    "import_tool": "import-tool",
    "importer": "import-tool",
    "unit-converter": "unit-converter",
    "unit_converter": "unit-converter",
    "wayfall-game": "wayfall-game",
    "wayfall_game": "wayfall-game",
    "wayfall": "wayfall-game",
    "game": "wayfall-game",
    "liquid-glass": "liquid-glass",
    "liquid_glass": "liquid-glass",
    "profile": "profile",
    "user-profile": "profile",
    "user_profile": "profile",
    "system": "system",
    "unknown": "unknown",
    "unattributed": "unknown",
})

TOOL_LABELS = MappingProxyType({
    "dashboard": "Plugin Dashboard",
    "collapsed-dashboard": "Collapsed Dashboard",
    "palettable": "Palette Tool",
    "frame-gallery": "Frame Gallery",
    "import-tool": "Import Tool",
    "unit-converter": "Unit Converter",
    "wayfall-game": "Wayfall Mini Game",
    "liquid-glass": "Liquid Glass",
    "profile": "User Profile",
    "system": "System",
    "unknown": "Unattributed / Legacy",
    "eps": "EPS Importer",
    "psd": "PSD Importer",
    "ai": "AI Importer",
})

ACTION_TOOLS = MappingProxyType({
    "toggle-palette": "palettable",
    "export-palette": "palettable",
    "export-color-schemes": "palettable",
    "export-selected-options": "palettable",
    "start-eyedropper": "palettable",
    "color-copied": "palettable",
    "emailEntered": "palettable",
    "toggle-frame-gallery": "frame-gallery",
    "get-all-frames": "frame-gallery",
    "export-frames-with-dpi": "frame-gallery",
    "export-zip-with-password": "frame-gallery",
    "toggle-manual-selection": "frame-gallery",
    "clear-manual-selection": "frame-gallery",
    "get-manual-selection-state": "frame-gallery",
    "export-frame": "frame-gallery",
    "toggle-import-tool": "import-tool",
    "check-font-availability": "import-tool",
    "import-svg-to-figma": "import-tool",
    "get-font": "import-tool",
    "toggle-unit-converter": "unit-converter",
    "convert-units": "unit-converter",
    "create-frame": "unit-converter",
    "apply-preset": "unit-converter",
    "save-preset": "unit-converter",
    "delete-preset": "unit-converter",
    "load-presets": "unit-converter",
    "load-liked-presets": "unit-converter",
    "save-liked-presets": "unit-converter",
    "toggle-game": "wayfall-game",
    "toggle-liquid-glass": "liquid-glass",
    "lg-refresh": "liquid-glass",
    "toggle-profile": "profile",
    "oauth-token": "profile",
    "open-auth-url": "profile",
    "copy-to-clipboard": "profile",
    "get-token": "profile",
    "store-token": "profile",
    "clear-token": "profile",
    "get-session": "profile",
    "store-session": "profile",
    "clear-session": "profile",
    "store-avatar": "profile",
    "avatar-selected": "profile",
    "toggle-collapse": "collapsed-dashboard",
    "tool-collapsed": "collapsed-dashboard",
    "palette-to-collapsed": "collapsed-dashboard",
    "resize-expanded": "dashboard",
})

# Evaluated in order; the first rule with a matching fragment wins.
ACTION_TOOL_FRAGMENTS = (
    (("palette", "color"), "palettable"),
    (("frame", "gallery"), "frame-gallery"),
    (("import", "svg", "font"), "import-tool"),
    (("unit", "preset", "convert"), "unit-converter"),
    (("wayfall", "game"), "wayfall-game"),
    (("liquid", "glass"), "liquid-glass"),
    (("auth", "token", "session", "profile", "avatar"), "profile"),
)

EVENT_METADATA = MappingProxyType({
    "plugin_session_started": _entry("Session Started", "Plugin launch recorded for a new session.", "Lifecycle", "medium"),
    "plugin_session_ended": _entry("Session Ended", "Plugin close/end lifecycle event.", "Lifecycle", "medium"),
    "session_heartbeat": _entry("Session Heartbeat", "Background keep-alive ping while plugin stays open.", "System", "low"),
    "plugin_message": _entry("Plugin Message", "Internal UI-to-main bridge communication.", "System", "low"),
    "tool_opened": _entry("Tool Opened", "A tool panel was opened by the user.", "Navigation", "high"),
    "tool_closed": _entry("Tool Closed", "A tool panel was closed by the user.", "Navigation", "medium"),
    "tool_context_changed": _entry("Tool Context Changed", "User moved from one tool context to another.", "Navigation", "medium"),
    "tool_action": _entry("Tool Action", "Specific command/action taken inside a tool.", "Interaction", "high"),
    "tool_time_spent": _entry("Tool Time Spent", "Measured time spent in a specific tool.", "Engagement", "high"),
    "user_context_changed": _entry("User Context Updated", "User identity context changed in analytics runtime.", "Identity", "medium"),
    "ui_session_started": _entry("UI Session Started", "Dashboard UI runtime session initialized.", "Lifecycle", "medium"),
    "ui_click": _entry("UI Click", "User clicked a control in plugin UI.", "Interaction", "high"),
    "ui_input_changed": _entry("Input Changed", "User changed a field, dropdown, or toggle value.", "Interaction", "high"),
    "ui_tab_changed": _entry("Tab Changed", "User switched tab/view inside a tool.", "Navigation", "high"),
    "ui_keyboard_action": _entry("Keyboard Action", "Keyboard-triggered action on an interactive control.", "Interaction", "medium"),
    "ui_scroll": _entry("UI Scroll", "User scrolled in plugin UI.", "Interaction", "medium"),
    "ui_resize": _entry("UI Resize", "Plugin UI viewport size changed.", "System", "low"),
    "ui_visibility_change": _entry("UI Visibility Changed", "Browser/tab visibility status changed.", "System", "low"),
    "ui_state_snapshot": _entry("UI State Snapshot", "Current open/closed tool panel snapshot.", "System", "low"),
    "ui_heartbeat": _entry("UI Heartbeat", "Periodic UI health/heartbeat event.", "System", "low"),
    "ui_before_unload": _entry("UI Before Unload", "UI session is about to unload/close.", "Lifecycle", "low"),
    "ui_user_authenticated": _entry("UI User Authenticated", "User signed in and auth context became available.", "Identity", "high"),
    "ui_user_unauthenticated": _entry("UI User Unauthenticated", "User signed out or auth state cleared.", "Identity", "medium"),
    "analytics_transport_updated": _entry("Analytics Transport Updated", "Analytics endpoint or ingest token was changed.", "System", "low"),
    "palette_export_performed": _entry("Palette Export", "Palette variation or scheme export was executed.", "Palette", "high"),
    "tool_favorite_changed": _entry("Tool Favorite Changed", "User added or removed a tool from favorites.", "Engagement", "high"),
    "importer_favorite_changed": _entry("Importer Favorite Changed", "User updated importer favorites in import tool.", "Engagement", "high"),
    "import_file_selected": _entry("Import File Selected", "User selected a file for import workflow.", "Import", "high"),
    "import_conversion_completed": _entry("Import Conversion Completed", "File conversion completed before Figma import.", "Import", "high"),
    "pdf_export_requested": _entry("PDF Export Requested", "Export started with DPI/compression/password settings.", "Export", "high"),
    "pdf_merge_group_exported": _entry("Merged PDF Created", "A merged PDF group was generated.", "Export", "high"),
    "pdf_individual_exported": _entry("Individual PDF Created", "A single frame PDF was generated.", "Export", "high"),
    "pdf_export_completed": _entry("PDF Export Completed", "ZIP/PDF export pipeline completed successfully.", "Export", "high"),
    "unknown_event": _entry("Unknown Event", "Event not yet explicitly cataloged.", "Unmapped", "low"),
})

ACTION_METADATA = MappingProxyType({
    "toggle-profile": _entry("Toggle Profile", "Open/close profile panel.", "Navigation", "high"),
    "toggle-game": _entry("Toggle Game", "Open/close Wayfall game panel.", "Navigation", "medium"),
    "toggle-palette": _entry("Toggle Palette Tool", "Open/close palette tool panel.", "Navigation", "high"),
    "toggle-frame-gallery": _entry("Toggle Frame Gallery", "Open/close frame gallery panel.", "Navigation", "high"),
    "toggle-import-tool": _entry("Toggle Import Tool", "Open/close import tool panel.", "Navigation", "high"),
    "toggle-favorite": _entry("Toggle Favorite", "Mark or unmark importer/tool as favorite.", "Engagement", "high"),
    "toggle-unit-converter": _entry("Toggle Unit Converter", "Open/close unit converter panel.", "Navigation", "high"),
    "toggle-liquid-glass": _entry("Toggle Liquid Glass", "Enable/disable liquid glass preview.", "Navigation", "medium"),
    "toggle-collapse": _entry("Toggle Dashboard Collapse", "Collapse/expand dashboard shell.", "Navigation", "medium"),
    "resize-expanded": _entry("Resize Expanded UI", "Reset plugin UI into expanded state.", "Layout", "low"),
    "tool-collapsed": _entry("Collapse Tool View", "Force tool panel into collapsed dashboard state.", "Layout", "medium"),
    "palette-to-collapsed": _entry("Palette To Collapsed", "Close palette and switch to collapsed dashboard.", "Navigation", "medium"),
    "resize-window": _entry("Resize Window", "Plugin window resized by UI command.", "Layout", "low"),
    "get-ui-state": _entry("Request UI State", "UI requested latest state snapshot from main runtime.", "System", "low", passive=True),
    "get-all-frames": _entry("Fetch Frames", "Load current document frames for frame gallery.", "Frame Workflow", "high"),
    "export-frames-with-dpi": _entry("Export Frames (DPI)", "Export selected/all frames at requested DPI.", "Export", "high"),
    "export-zip-with-password": _entry("Export ZIP", "Start protected ZIP export flow.", "Export", "high"),
    "toggle-manual-selection": _entry("Toggle Manual Selection", "Enable/disable manual frame selection mode.", "Frame Workflow", "high"),
    "clear-manual-selection": _entry("Clear Manual Selection", "Clear manually selected frame set.", "Frame Workflow", "medium"),
    "get-manual-selection-state": _entry("Get Manual Selection State", "Query frame gallery manual selection state.", "Frame Workflow", "low"),
    "convert-units": _entry("Convert Units", "Run unit conversion operation.", "Unit Conversion", "high"),
    "create-frame": _entry("Create Frame", "Create frame from unit-converter settings.", "Unit Conversion", "high"),
    "apply-preset": _entry("Apply Preset", "Apply saved preset to create frame.", "Unit Conversion", "high"),
    "save-preset": _entry("Save Preset", "Persist a unit-converter preset.", "Unit Conversion", "medium"),
    "delete-preset": _entry("Delete Preset", "Remove a saved unit-converter preset.", "Unit Conversion", "medium"),
    "load-presets": _entry("Load Presets", "Retrieve available unit-converter presets.", "Unit Conversion", "low"),
    "ui-loaded": _entry("UI Loaded", "Tool UI initialization completed.", "System", "low", passive=True),
    "load-liked-presets": _entry("Load Liked Presets", "Fetch liked/favorite presets.", "Unit Conversion", "low"),
    "save-liked-presets": _entry("Save Liked Presets", "Persist liked/favorite preset list.", "Unit Conversion", "medium"),
    "export-frame": _entry("Export Frame", "Export current selected frame.", "Export", "high"),
    "check-font-availability": _entry("Check Font Availability", "Validate required fonts before import.", "Import", "high"),
    "import-svg-to-figma": _entry("Import SVG", "Import SVG content into current document.", "Import", "high"),
    "export-palette": _entry("Export Palette", "Export generated palette variation.", "Palette", "high"),
    "export-color-schemes": _entry("Export Color Schemes", "Export selected color scheme variation.", "Palette", "high"),
    "export-selected-options": _entry("Export Selected Options", "Batch export selected palette options.", "Palette", "high"),
    "start-eyedropper": _entry("Start Eyedropper", "Activate eyedropper color pick flow.", "Palette", "high"),
    "notify": _entry("Notify", "Show user notification from UI.", "System", "low", passive=True),
    "copy-link": _entry("Copy Link", "Copy generated link to clipboard.", "Interaction", "medium"),
    "color-copied": _entry("Copy Color Code", "Copy color value from palette workflow.", "Palette", "high"),
    "emailEntered": _entry("Email Entered", "User provided email in palette flow.", "Identity", "high"),
    "get-font": _entry("Get Font", "Request a specific font for import preprocessing.", "Import", "medium"),
    "oauth-token": _entry("OAuth Token Received", "OAuth token was received by plugin.", "Auth", "high"),
    "open-auth-url": _entry("Open Auth URL", "Launch external auth URL for login.", "Auth", "high"),
    "copy-to-clipboard": _entry("Copy To Clipboard", "Copy value from auth/profile section.", "Interaction", "medium"),
    "get-token": _entry("Get Token", "Check if auth token exists.", "Auth", "low"),
    "store-token": _entry("Store Token", "Persist token and fetch user profile.", "Auth", "high"),
    "clear-token": _entry("Clear Token", "Remove auth token from storage.", "Auth", "medium"),
    "get-session": _entry("Get Session", "Read current auth session metadata.", "Auth", "low"),
    "store-session": _entry("Store Session", "Persist auth session details.", "Auth", "medium"),
    "clear-session": _entry("Clear Session", "Clear auth session data.", "Auth", "medium"),
    "store-avatar": _entry("Store Avatar", "Persist selected avatar URL.", "Profile", "low"),
    "avatar-selected": _entry("Avatar Selected", "User selected profile avatar.", "Profile", "medium"),
    "set-analytics-endpoint": _entry("Set Analytics Endpoint", "Update analytics ingest endpoint/token from UI override.", "System", "low", passive=True),
    "analytics-event": _entry("Analytics Event Forward", "Single analytics event passed from UI to main.", "System", "low", passive=True),
    "analytics-batch": _entry("Analytics Batch Forward", "Batch analytics events passed from UI to main.", "System", "low", passive=True),
    "analytics-identify": _entry("Analytics Identify", "Update analytics identity context from UI.", "Identity", "low", passive=True),
    "analytics-flush": _entry("Analytics Flush", "Force flush queued analytics events.", "System", "low", passive=True),
    "lg-refresh": _entry("Liquid Glass Refresh", "Refresh liquid glass capture.", "Liquid Glass", "medium"),
})

PASSIVE_ACTION_KEYS = frozenset(
    key for key, meta in ACTION_METADATA.items() if meta["passive"]
)
