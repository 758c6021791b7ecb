"""
Plugin Loader

Reading/writing the persisted plugin state (enabled flag and config overrides
per plugin) and importing a plugin's entry module from its directory.

State file format::

    {"Demo": {"enabled": true, "greeting": "hello"}}
"""

from __future__ import annotations

import importlib.util
import inspect
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from hostpanel.exceptions import PluginLoadError
from hostpanel.plugins.base import PluginBase

if TYPE_CHECKING:
    from hostpanel.plugins.base import PluginDescriptor

logger = logging.getLogger(__name__)

# Namespace for dynamically imported plugin modules
PLUGIN_MODULE_PREFIX = "panel_plugins"


# ── Config I/O ────────────────────────────────────────────────────────────────


def load_plugins_config(path: Path) -> dict[str, dict[str, Any]]:
    """
    Load the persisted plugin state from *path*.

    Returns an empty dict if the file does not exist or cannot be parsed.
    """
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read plugins config %s: %s", path, exc)
        else:
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring plugins config %s: top-level value is not an object", path)
    return {}


def save_plugins_config(config: dict[str, dict[str, Any]], path: Path) -> None:
    """Persist the plugin state to *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(config, indent=2, ensure_ascii=False, sort_keys=True),
        encoding="utf-8",
    )


# ── Entry module import ───────────────────────────────────────────────────────


def import_plugin_class(descriptor: PluginDescriptor) -> type[PluginBase]:
    """
    Import the descriptor's entry module and return its PluginBase subclass.

    Raises:
        PluginLoadError: if the module is missing, fails to import, or defines
            no PluginBase subclass.
    """
    entry_path = descriptor.entry_path
    if not entry_path.is_file():
        raise PluginLoadError(f"Entry module {descriptor.entry} not found", plugin=descriptor.name)

    module_name = f"{PLUGIN_MODULE_PREFIX}.{descriptor.name}"
    spec = importlib.util.spec_from_file_location(module_name, entry_path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Cannot create module spec for {entry_path}", plugin=descriptor.name)

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise PluginLoadError(f"Importing {descriptor.entry} failed: {exc}", plugin=descriptor.name) from exc

    for _, obj in inspect.getmembers(module, inspect.isclass):
        if issubclass(obj, PluginBase) and obj is not PluginBase and obj.__module__ == module_name:
            logger.debug("Found plugin class %s in %s", obj.__name__, entry_path)
            return obj

    raise PluginLoadError(f"No PluginBase subclass found in {descriptor.entry}", plugin=descriptor.name)
