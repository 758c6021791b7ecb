"""
Page scripts

Each page triggers its category's start event before doing any work and its
end event once the page template is filled, passing the template as
"templateEngine" so listeners can adjust it before output.

GET /              → login page (maintenance page while in maintenance mode)
GET /lostpassword  → lost password form
GET /admin/index   → admin overview
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from hostpanel.auth import (
    api_key_header,
    check_admin_key,
    get_event_registry,
    get_plugin_manager,
    get_settings,
    get_templates,
)
from hostpanel.config import Settings
from hostpanel.events import EventContext, EventRegistry
from hostpanel.events.names import SCRIPT_EVENTS
from hostpanel.plugins import PluginManager
from hostpanel.templating import PageTemplate

router = APIRouter(tags=["Pages"])
logger = logging.getLogger(__name__)

DEFAULT_MAINTENANCE_MESSAGE = "We are sorry, but the system is currently under maintenance.\nPlease try again later."


def run_script(
    request: Request,
    registry: EventRegistry,
    category: str,
    page: PageTemplate,
    build: Callable[[PageTemplate], None],
) -> Response:
    """
    Run one page script between its start and end lifecycle events.

    Listener exceptions are not caught: they abort the script and surface as
    a request failure.
    """
    start_event, end_event = SCRIPT_EVENTS[category]
    logger.debug("Running %s script %s", category, request.url.path)
    registry.trigger(start_event, EventContext(params={"request": request}), {"request": request})

    build(page)

    end_params = {"templateEngine": page, "request": request}
    registry.trigger(end_event, EventContext(params=end_params), end_params)
    return page.render(request)


def ssl_switch_link(request: Request, settings: Settings) -> dict[str, str] | None:
    """Variables for the "switch to (non-)SSL connection" link, or None when not offered."""
    if not settings.panel_ssl_enabled or settings.base_server_vhost_prefix == "https://":
        return None

    is_secure = request.url.scheme == "https"
    if is_secure:
        scheme, port, default_port = "http://", settings.base_server_vhost_http_port, 80
    else:
        scheme, port, default_port = "https://", settings.base_server_vhost_https_port, 443
    suffix = "" if port == default_port else f":{port}"

    return {
        "SSL_LINK": f"{scheme}{request.url.hostname}{suffix}",
        "SSL_IMAGE_CLASS": "i_unlock" if is_secure else "i_lock",
        "TR_SSL": "Normal connection" if is_secure else "Secure connection",
        "TR_SSL_DESCRIPTION": "Use normal connection (No SSL)" if is_secure else "Use secure connection (SSL)",
    }


@router.get("/", response_class=HTMLResponse)
async def login_page(
    request: Request,
    admin: bool = False,
    settings: Settings = Depends(get_settings),
    registry: EventRegistry = Depends(get_event_registry),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Login page; while in maintenance mode only reachable with ?admin=1."""

    def build(tpl: PageTemplate) -> None:
        tpl.assign(
            {
                "productLongName": settings.app_name,
                "productVersion": settings.app_version,
            }
        )

        if settings.maintenance_mode and not admin:
            message = settings.maintenance_message or DEFAULT_MAINTENANCE_MESSAGE
            tpl.page = "message.html"
            tpl.assign(
                {
                    "TR_PAGE_TITLE": f"{settings.app_name} / Maintenance",
                    "BOX_MESSAGE_TITLE": "System under maintenance",
                    "BOX_MESSAGE_LINES": [line.strip() for line in message.splitlines() if line.strip()],
                    "TR_BACK": "Administrator login",
                    "BACK_BUTTON_DESTINATION": "/?admin=1",
                }
            )
            return

        tpl.assign(
            {
                "TR_PAGE_TITLE": f"{settings.app_name} / Login",
                "TR_LOGIN": "Login",
                "TR_USERNAME": "Username",
                "TR_PASSWORD": "Password",
                "UNAME": "",
            }
        )
        ssl_link = ssl_switch_link(request, settings)
        if ssl_link:
            tpl.assign(ssl_link)
        if settings.lost_password:
            tpl.assign("TR_LOSTPW", "Lost password")

    page = PageTemplate(templates, "index.html", layout="layouts/simple.html")
    return run_script(request, registry, "login", page, build)


@router.get("/lostpassword", response_class=HTMLResponse)
async def lost_password_page(
    request: Request,
    settings: Settings = Depends(get_settings),
    registry: EventRegistry = Depends(get_event_registry),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    if not settings.lost_password:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lost password support is disabled")

    def build(tpl: PageTemplate) -> None:
        tpl.assign(
            {
                "productLongName": settings.app_name,
                "productVersion": settings.app_version,
                "TR_PAGE_TITLE": f"{settings.app_name} / Lost Password",
                "TR_IMGCAPCODE_DESCRIPTION": "Enter your username to receive a password renewal link.",
                "TR_USERNAME": "Username",
                "TR_SEND": "Send",
                "TR_CANCEL": "Cancel",
            }
        )

    page = PageTemplate(templates, "lostpassword.html", layout="layouts/simple.html")
    return run_script(request, registry, "lostpassword", page, build)


@router.get("/admin/index", response_class=HTMLResponse)
async def admin_index(
    request: Request,
    api_key: str | None = Depends(api_key_header),
    settings: Settings = Depends(get_settings),
    registry: EventRegistry = Depends(get_event_registry),
    plugin_manager: PluginManager = Depends(get_plugin_manager),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Admin overview (admin key required, checked after the start event)."""

    def build(tpl: PageTemplate) -> None:
        admin_name = check_admin_key(api_key, settings)
        loaded = [plugin.name for plugin in plugin_manager.loaded_plugins()]
        tpl.assign(
            {
                "TR_PAGE_TITLE": "Admin / General / Overview",
                "TR_PROPERTIES": "Properties",
                "TR_VALUES": "Values",
                "TR_ACCOUNT_NAME": "Account name",
                "TR_PANEL_VERSION": "Panel version",
                "TR_PLUGINS": "Loaded plugins",
                "ACCOUNT_NAME": admin_name,
                "PANEL_VERSION": settings.app_version,
                "PLUGINS": ", ".join(loaded) if loaded else "None",
            }
        )

    page = PageTemplate(templates, "admin/index.html")
    return run_script(request, registry, "admin", page, build)
