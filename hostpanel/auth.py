"""
Request dependencies: service lookup and admin access.

Session management lives outside the panel core; admin pages and the plugin
API are guarded by a shared key sent in the X-API-Key header.
"""

import logging
import secrets

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from fastapi.templating import Jinja2Templates

from hostpanel.config import Settings
from hostpanel.events import EventRegistry
from hostpanel.exceptions import AuthenticationError
from hostpanel.plugins import PluginManager
from hostpanel.services import ServiceLocator

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_services(request: Request) -> ServiceLocator:
    return request.app.state.services


def get_settings(services: ServiceLocator = Depends(get_services)) -> Settings:
    return services.get("Config")


def get_event_registry(services: ServiceLocator = Depends(get_services)) -> EventRegistry:
    return services.get("EventManager")


def get_plugin_manager(services: ServiceLocator = Depends(get_services)) -> PluginManager:
    return services.get("PluginManager")


def get_templates(services: ServiceLocator = Depends(get_services)) -> Jinja2Templates:
    return services.get("Templates")


def check_admin_key(api_key: str | None, settings: Settings) -> str:
    """
    Return the admin name when *api_key* matches the configured admin key.

    Raises:
        AuthenticationError: no key configured, or the key is missing or wrong.
    """
    if not settings.admin_api_key:
        logger.warning("Admin access refused: no admin API key configured")
        raise AuthenticationError("Admin access is not configured")
    if api_key is None or not secrets.compare_digest(api_key.encode(), settings.admin_api_key.encode()):
        raise AuthenticationError("Invalid or missing API key")
    return settings.admin_name


def require_admin(
    api_key: str | None = Depends(api_key_header),
    settings: Settings = Depends(get_settings),
) -> str:
    return check_admin_key(api_key, settings)
