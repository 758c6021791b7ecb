"""
PluginManager factory, registered in the service locator under "PluginManager".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hostpanel.events import EventContext
from hostpanel.plugins.listeners import DefaultListenerAggregate
from hostpanel.plugins.manager import PluginManager

if TYPE_CHECKING:
    from hostpanel.services import ServiceLocator


def create_plugin_manager(services: ServiceLocator) -> PluginManager:
    config = services.get("Config")

    event_manager = services.get("EventManager")
    event_manager.attach_aggregate(DefaultListenerAggregate())

    plugin_event = EventContext()
    plugin_event.set_param("ServiceManager", services)

    plugin_manager = PluginManager(
        config.plugins_dir,
        event_manager,
        config.plugins_config_file,
        enabled_by_default=config.plugins_enabled_by_default,
    )
    plugin_manager.set_event(plugin_event)
    return plugin_manager
