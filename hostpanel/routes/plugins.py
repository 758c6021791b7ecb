"""
Plugin Administration Routes

All routes require the admin key (X-API-Key header).

GET  /api/v1/plugins                 → list discovered plugins
GET  /api/v1/plugins/{name}          → get single plugin by name
POST /api/v1/plugins/{name}/enable   → enable and load plugin
POST /api/v1/plugins/{name}/disable  → unload and disable plugin
PUT  /api/v1/plugins/{name}/config   → update plugin config

Plugin state is persisted in the plugins config file, not in a database.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hostpanel.auth import get_plugin_manager, require_admin
from hostpanel.plugins import PluginDescriptor, PluginManager

router = APIRouter(tags=["Plugins"], dependencies=[Depends(require_admin)])


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class PluginConfigUpdate(BaseModel):
    config: dict[str, Any]


class PluginResponse(BaseModel):
    name: str
    version: str
    description: str
    author: str
    require_api: str
    enabled: bool
    loaded: bool
    config: dict[str, Any]


# ── Helpers ────────────────────────────────────────────────────────────────────


def _build_response(manager: PluginManager, descriptor: PluginDescriptor) -> PluginResponse:
    return PluginResponse(
        name=descriptor.name,
        version=descriptor.version,
        description=descriptor.description,
        author=descriptor.author,
        require_api=descriptor.require_api,
        enabled=descriptor.enabled,
        loaded=manager.is_loaded(descriptor.name),
        config=manager.plugin_config(descriptor.name),
    )


# ── Routes ─────────────────────────────────────────────────────────────────────


@router.get("/", response_model=list[PluginResponse])
async def list_plugins(manager: PluginManager = Depends(get_plugin_manager)) -> list[PluginResponse]:
    """List discovered plugins with their status and configuration."""
    return [_build_response(manager, d) for d in manager.descriptors()]


@router.get("/{name}", response_model=PluginResponse)
async def get_plugin(name: str, manager: PluginManager = Depends(get_plugin_manager)) -> PluginResponse:
    return _build_response(manager, manager.get_descriptor(name))


@router.post("/{name}/enable", response_model=PluginResponse)
async def enable_plugin(name: str, manager: PluginManager = Depends(get_plugin_manager)) -> PluginResponse:
    """Enable a plugin; refused (400) when a listener vetoes it."""
    return _build_response(manager, manager.enable(name))


@router.post("/{name}/disable", response_model=PluginResponse)
async def disable_plugin(name: str, manager: PluginManager = Depends(get_plugin_manager)) -> PluginResponse:
    return _build_response(manager, manager.disable(name))


@router.put("/{name}/config", response_model=PluginResponse)
async def update_plugin_config(
    name: str,
    payload: PluginConfigUpdate,
    manager: PluginManager = Depends(get_plugin_manager),
) -> PluginResponse:
    """Update a plugin's configuration.

    Merges the provided config dict into the persisted plugin config,
    preserving the `enabled` flag and any keys not present in the update.
    """
    manager.update_config(name, payload.config)
    return _build_response(manager, manager.get_descriptor(name))
