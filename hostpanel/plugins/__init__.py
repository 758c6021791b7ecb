"""
Panel Plugin System

Public API for the plugin system:
    PluginBase       - base class for plugin entry modules (a ListenerAggregate)
    PluginDescriptor - a discovered plugin directory
    PluginManager    - discovery, loading, enable/disable, lifecycle dispatch
    create_plugin_manager - service locator factory
"""

from .base import PLUGIN_API_VERSION, PluginBase, PluginDescriptor, PluginInfo
from .factory import create_plugin_manager
from .manager import PluginManager

__all__ = [
    "PLUGIN_API_VERSION",
    "PluginBase",
    "PluginDescriptor",
    "PluginInfo",
    "PluginManager",
    "create_plugin_manager",
]
