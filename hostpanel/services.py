"""
Service Locator

Name-keyed lookup for the shared services of one panel process. The
composition root (create_service_locator) builds it once and passes it down
explicitly; nothing in the panel reaches for a global instance.

Well-known service names:
    Config        - hostpanel.config.Settings
    EventManager  - hostpanel.events.EventRegistry
    Templates     - fastapi.templating.Jinja2Templates
    PluginManager - hostpanel.plugins.PluginManager (built lazily)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from fastapi.templating import Jinja2Templates

from hostpanel.events import EventRegistry
from hostpanel.exceptions import ServiceNotFoundError

if TYPE_CHECKING:
    from hostpanel.config import Settings

logger = logging.getLogger(__name__)

ServiceFactory = Callable[["ServiceLocator"], Any]


class ServiceLocator:
    """Holds service instances and lazy, shared factories."""

    def __init__(self) -> None:
        self._instances: dict[str, Any] = {}
        self._factories: dict[str, ServiceFactory] = {}

    def set(self, name: str, instance: Any) -> None:
        self._instances[name] = instance

    def set_factory(self, name: str, factory: ServiceFactory) -> None:
        """Register *factory*; it runs on first get() and its result is shared."""
        self._instances.pop(name, None)
        self._factories[name] = factory

    def has(self, name: str) -> bool:
        return name in self._instances or name in self._factories

    def get(self, name: str) -> Any:
        """
        Return the service registered under *name*.

        Raises:
            ServiceNotFoundError: if no instance or factory is registered.
        """
        if name in self._instances:
            return self._instances[name]
        factory = self._factories.get(name)
        if factory is None:
            raise ServiceNotFoundError(name)
        instance = factory(self)
        self._instances[name] = instance
        logger.debug("Service created: %s", name)
        return instance


def create_service_locator(settings: Settings) -> ServiceLocator:
    """Composition root: register the panel's core services."""
    from hostpanel.plugins.factory import create_plugin_manager

    services = ServiceLocator()
    services.set("Config", settings)
    services.set("EventManager", EventRegistry())
    services.set("Templates", Jinja2Templates(directory=str(settings.templates_dir)))
    services.set_factory("PluginManager", create_plugin_manager)
    return services
