"""
Lifecycle Event Names

Centralised list of the events page scripts and the plugin manager trigger.
Names keep the camelCase `on<Category>Script<Start|End>` convention that
third-party plugins match on.
"""

from __future__ import annotations

# ── Login / lost password scripts ─────────────────────────────────────────────
ON_LOGIN_SCRIPT_START = "onLoginScriptStart"
ON_LOGIN_SCRIPT_END = "onLoginScriptEnd"
ON_LOSTPASSWORD_SCRIPT_START = "onLostPasswordScriptStart"
ON_LOSTPASSWORD_SCRIPT_END = "onLostPasswordScriptEnd"

# ── Admin / reseller / client scripts ─────────────────────────────────────────
ON_ADMIN_SCRIPT_START = "onAdminScriptStart"
ON_ADMIN_SCRIPT_END = "onAdminScriptEnd"
ON_RESELLER_SCRIPT_START = "onResellerScriptStart"
ON_RESELLER_SCRIPT_END = "onResellerScriptEnd"
ON_CLIENT_SCRIPT_START = "onClientScriptStart"
ON_CLIENT_SCRIPT_END = "onClientScriptEnd"

# ── Plugin lifecycle ──────────────────────────────────────────────────────────
ON_BEFORE_LOAD_PLUGIN = "onBeforeLoadPlugin"
ON_AFTER_LOAD_PLUGIN = "onAfterLoadPlugin"
ON_AFTER_LOAD_PLUGINS = "onAfterLoadPlugins"
ON_BEFORE_ENABLE_PLUGIN = "onBeforeEnablePlugin"
ON_AFTER_ENABLE_PLUGIN = "onAfterEnablePlugin"
ON_BEFORE_DISABLE_PLUGIN = "onBeforeDisablePlugin"
ON_AFTER_DISABLE_PLUGIN = "onAfterDisablePlugin"
ON_BEFORE_UNLOAD_PLUGIN = "onBeforeUnloadPlugin"

# ── Script categories ─────────────────────────────────────────────────────────
SCRIPT_EVENTS: dict[str, tuple[str, str]] = {
    "login": (ON_LOGIN_SCRIPT_START, ON_LOGIN_SCRIPT_END),
    "lostpassword": (ON_LOSTPASSWORD_SCRIPT_START, ON_LOSTPASSWORD_SCRIPT_END),
    "admin": (ON_ADMIN_SCRIPT_START, ON_ADMIN_SCRIPT_END),
    "reseller": (ON_RESELLER_SCRIPT_START, ON_RESELLER_SCRIPT_END),
    "client": (ON_CLIENT_SCRIPT_START, ON_CLIENT_SCRIPT_END),
}

PLUGIN_EVENTS: list[str] = [
    ON_BEFORE_LOAD_PLUGIN,
    ON_AFTER_LOAD_PLUGIN,
    ON_AFTER_LOAD_PLUGINS,
    ON_BEFORE_ENABLE_PLUGIN,
    ON_AFTER_ENABLE_PLUGIN,
    ON_BEFORE_DISABLE_PLUGIN,
    ON_AFTER_DISABLE_PLUGIN,
    ON_BEFORE_UNLOAD_PLUGIN,
]

# ── Master list ───────────────────────────────────────────────────────────────
ALL_EVENTS: list[str] = [name for pair in SCRIPT_EVENTS.values() for name in pair] + PLUGIN_EVENTS
