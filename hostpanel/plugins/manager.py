"""
Plugin Manager

Discovers plugins under the plugin root, loads the enabled ones into the event
registry and dispatches the plugin lifecycle events. Each lifecycle dispatch
starts from the manager's template context, which carries the service locator
under "ServiceManager".

Before* events may be vetoed: a listener stops propagation (optionally setting
a "reason" param) and the manager refuses the operation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from hostpanel.events import EventContext, EventRegistry
from hostpanel.events.names import (
    ON_AFTER_DISABLE_PLUGIN,
    ON_AFTER_ENABLE_PLUGIN,
    ON_AFTER_LOAD_PLUGIN,
    ON_AFTER_LOAD_PLUGINS,
    ON_BEFORE_DISABLE_PLUGIN,
    ON_BEFORE_ENABLE_PLUGIN,
    ON_BEFORE_LOAD_PLUGIN,
    ON_BEFORE_UNLOAD_PLUGIN,
)
from hostpanel.exceptions import (
    InvalidListenerError,
    PluginDescriptorError,
    PluginError,
    PluginLoadError,
    PluginNotFoundError,
)
from hostpanel.plugins.base import PLUGIN_NAME_PATTERN, PluginBase, PluginDescriptor, read_plugin_info
from hostpanel.plugins.loader import import_plugin_class, load_plugins_config, save_plugins_config


class PluginManager:
    """
    Discovery, loading and enable/disable of filesystem plugins.

    The manager holds a non-owning reference to the event registry; the
    service locator owns both.
    """

    def __init__(
        self,
        plugins_dir: Path,
        event_registry: EventRegistry,
        config_file: Path,
        enabled_by_default: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.plugins_dir = Path(plugins_dir)
        self.event_registry = event_registry
        self.config_file = Path(config_file)
        self.enabled_by_default = enabled_by_default
        self.logger = logger or logging.getLogger(__name__)
        self._event = EventContext()
        self._descriptors: dict[str, PluginDescriptor] = {}
        self._plugins: dict[str, PluginBase] = {}

    # ── Template context ──────────────────────────────────────────────────────

    @property
    def event(self) -> EventContext:
        return self._event

    def set_event(self, context: EventContext) -> None:
        self._event = context

    def dispatch_lifecycle(self, event_name: str, params: Mapping[str, Any] | None = None) -> EventContext:
        """
        Trigger *event_name* with a copy of the template context.

        Caller params are merged into the copied context and also passed to
        listeners as the trigger params.
        """
        context = self._event.copy()
        if params:
            context.set_params(params)
        return self.event_registry.trigger(event_name, context, params)

    # ── Discovery ─────────────────────────────────────────────────────────────

    def scan(self, directory: Path | None = None) -> list[PluginDescriptor]:
        """
        List the plugins found directly under *directory* (default: plugin root).

        Entries that are not plugin-named directories are ignored; plugin
        directories with a missing or malformed plugin.json are skipped with
        a warning. The scan itself never fails.
        """
        root = Path(directory) if directory is not None else self.plugins_dir
        if not root.is_dir():
            self.logger.warning("Plugin directory %s does not exist", root)
            self._descriptors = {}
            return []

        state = load_plugins_config(self.config_file)
        found: list[PluginDescriptor] = []
        for path in sorted(root.iterdir()):
            if not path.is_dir() or not PLUGIN_NAME_PATTERN.match(path.name):
                self.logger.debug("Ignoring %s: not a plugin directory", path)
                continue
            try:
                info = read_plugin_info(path)
            except PluginDescriptorError as exc:
                self.logger.warning("Skipping plugin %s: %s", path.name, exc.message, extra={"plugin": path.name})
                continue
            enabled = self._state_of(state, info.name).get("enabled", self.enabled_by_default)
            found.append(PluginDescriptor.from_info(info, path, enabled=bool(enabled)))

        self._descriptors = {descriptor.name: descriptor for descriptor in found}
        self.logger.debug("Plugin scan of %s found %d plugins", root, len(found))
        return found

    def descriptors(self) -> list[PluginDescriptor]:
        return list(self._descriptors.values())

    def get_descriptor(self, name: str) -> PluginDescriptor:
        descriptor = self._descriptors.get(name)
        if descriptor is None:
            raise PluginNotFoundError(name)
        return descriptor

    def get_plugin(self, name: str) -> PluginBase | None:
        """Return the loaded plugin instance, or None if it is not loaded."""
        return self._plugins.get(name)

    def is_loaded(self, name: str) -> bool:
        return name in self._plugins

    def loaded_plugins(self) -> list[PluginBase]:
        return list(self._plugins.values())

    # ── Config ────────────────────────────────────────────────────────────────

    @staticmethod
    def _state_of(state: Mapping[str, Any], name: str) -> dict[str, Any]:
        entry = state.get(name)
        return dict(entry) if isinstance(entry, dict) else {}

    def _update_state(self, name: str, changes: Mapping[str, Any]) -> None:
        state = load_plugins_config(self.config_file)
        entry = self._state_of(state, name)
        entry.update(changes)
        state[name] = entry
        save_plugins_config(state, self.config_file)

    def plugin_config(self, name: str) -> dict[str, Any]:
        """Return the plugin's config: plugin.json defaults overlaid with persisted overrides."""
        descriptor = self.get_descriptor(name)
        overrides = self._state_of(load_plugins_config(self.config_file), name)
        overrides.pop("enabled", None)
        return {**descriptor.default_config, **overrides}

    def update_config(self, name: str, values: Mapping[str, Any]) -> dict[str, Any]:
        """Merge *values* into the plugin's persisted config; the enabled flag is not touched."""
        self.get_descriptor(name)
        changes = {key: value for key, value in values.items() if key != "enabled"}
        self._update_state(name, changes)
        config = self.plugin_config(name)
        plugin = self._plugins.get(name)
        if plugin is not None:
            plugin.config = dict(config)
        self.logger.info("Plugin config updated: %s", name, extra={"plugin": name})
        return config

    # ── Loading ───────────────────────────────────────────────────────────────

    def load_plugins(self) -> list[str]:
        """Scan the plugin root and load every enabled plugin. Returns the loaded names."""
        self.scan()
        loaded = [d.name for d in self._descriptors.values() if d.enabled and self._load(d)]
        self.dispatch_lifecycle(ON_AFTER_LOAD_PLUGINS, {"pluginNames": list(loaded)})
        self.logger.info("Plugin initialisation complete: %d of %d plugins loaded", len(loaded), len(self._descriptors))
        return loaded

    def _instantiate(self, descriptor: PluginDescriptor) -> PluginBase:
        plugin_class = import_plugin_class(descriptor)
        try:
            plugin = plugin_class(descriptor, self.plugin_config(descriptor.name))
            plugin.on_load()
        except Exception as exc:
            raise PluginLoadError(f"Initialising {plugin_class.__name__} failed: {exc}", plugin=descriptor.name) from exc
        return plugin

    def _load(self, descriptor: PluginDescriptor) -> bool:
        if descriptor.name in self._plugins:
            return True

        context = self.dispatch_lifecycle(
            ON_BEFORE_LOAD_PLUGIN, {"pluginName": descriptor.name, "descriptor": descriptor}
        )
        if context.propagation_stopped():
            self.logger.warning(
                "Loading of plugin %s vetoed: %s",
                descriptor.name,
                context.get_param("reason", "no reason given"),
                extra={"plugin": descriptor.name, "event_name": ON_BEFORE_LOAD_PLUGIN},
            )
            return False

        try:
            plugin = self._instantiate(descriptor)
            self.event_registry.attach_aggregate(plugin)
        except (PluginLoadError, InvalidListenerError) as exc:
            self.logger.error("Skipping plugin %s: %s", descriptor.name, exc.message, extra={"plugin": descriptor.name})
            return False

        self._plugins[descriptor.name] = plugin
        self.dispatch_lifecycle(ON_AFTER_LOAD_PLUGIN, {"pluginName": descriptor.name, "plugin": plugin})
        return True

    def _unload(self, name: str) -> bool:
        plugin = self._plugins.get(name)
        if plugin is None:
            return False
        self.dispatch_lifecycle(ON_BEFORE_UNLOAD_PLUGIN, {"pluginName": name, "plugin": plugin})
        del self._plugins[name]
        self.event_registry.detach_aggregate(plugin)
        plugin.on_unload()
        self.logger.info("Plugin unloaded: %s", name, extra={"plugin": name})
        return True

    def unload_plugins(self) -> None:
        """Unload every loaded plugin, most recently loaded first."""
        for name in reversed(list(self._plugins)):
            self._unload(name)

    # ── Enable / disable ──────────────────────────────────────────────────────

    def _check_veto(self, context: EventContext, name: str, action: str) -> None:
        if context.propagation_stopped():
            reason = context.get_param("reason", "refused by a listener")
            raise PluginError(f"Plugin {name} cannot be {action}: {reason}", plugin=name)

    def enable(self, name: str) -> PluginDescriptor:
        """
        Enable and load a plugin.

        Raises:
            PluginNotFoundError: unknown plugin name.
            PluginError:         a listener vetoed the operation.
            PluginLoadError:     the plugin could not be loaded (it stays disabled).
        """
        descriptor = self.get_descriptor(name)
        context = self.dispatch_lifecycle(ON_BEFORE_ENABLE_PLUGIN, {"pluginName": name, "descriptor": descriptor})
        self._check_veto(context, name, "enabled")

        descriptor.enabled = True
        if not self._load(descriptor):
            descriptor.enabled = False
            raise PluginLoadError(f"Plugin {name} could not be loaded", plugin=name)

        self._update_state(name, {"enabled": True})
        self.dispatch_lifecycle(ON_AFTER_ENABLE_PLUGIN, {"pluginName": name, "descriptor": descriptor})
        self.logger.info("Plugin enabled: %s", name, extra={"plugin": name})
        return descriptor

    def disable(self, name: str) -> PluginDescriptor:
        """
        Unload and disable a plugin.

        Raises:
            PluginNotFoundError: unknown plugin name.
            PluginError:         a listener vetoed the operation.
        """
        descriptor = self.get_descriptor(name)
        context = self.dispatch_lifecycle(ON_BEFORE_DISABLE_PLUGIN, {"pluginName": name, "descriptor": descriptor})
        self._check_veto(context, name, "disabled")

        self._unload(name)
        descriptor.enabled = False
        self._update_state(name, {"enabled": False})
        self.dispatch_lifecycle(ON_AFTER_DISABLE_PLUGIN, {"pluginName": name, "descriptor": descriptor})
        self.logger.info("Plugin disabled: %s", name, extra={"plugin": name})
        return descriptor
