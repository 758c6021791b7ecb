"""
Default plugin lifecycle listeners, attached by create_plugin_manager().

- Before a plugin is loaded or enabled, plugins written against an
  incompatible plugin API are vetoed.
- After a plugin is loaded, an info line is logged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from hostpanel.events import STOP_PROPAGATION, EventContext, ListenerAggregate
from hostpanel.events.aggregate import ListenerTriple
from hostpanel.events.names import ON_AFTER_LOAD_PLUGIN, ON_BEFORE_ENABLE_PLUGIN, ON_BEFORE_LOAD_PLUGIN
from hostpanel.plugins.base import PLUGIN_API_VERSION, is_api_compatible

logger = logging.getLogger(__name__)


class DefaultListenerAggregate(ListenerAggregate):
    def __init__(self, api_version: str = PLUGIN_API_VERSION) -> None:
        self.api_version = api_version

    def get_listener_triples(self) -> Sequence[ListenerTriple]:
        return [
            (ON_BEFORE_LOAD_PLUGIN, self.check_compatibility, 100),
            (ON_BEFORE_ENABLE_PLUGIN, self.check_compatibility, 100),
            (ON_AFTER_LOAD_PLUGIN, self.log_loaded, -100),
        ]

    def check_compatibility(self, context: EventContext, params: Mapping[str, Any]) -> Any:
        descriptor = context.get_param("descriptor")
        if is_api_compatible(descriptor.require_api, self.api_version):
            return None
        context.set_param(
            "reason",
            f"requires plugin API {descriptor.require_api}, panel provides {self.api_version}",
        )
        return STOP_PROPAGATION

    def log_loaded(self, context: EventContext, params: Mapping[str, Any]) -> None:
        plugin = context.get_param("plugin")
        logger.info(
            "Plugin loaded: %s v%s",
            plugin.name,
            plugin.descriptor.version,
            extra={"plugin": plugin.name, "event_name": context.name},
        )
