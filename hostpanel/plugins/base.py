"""
Plugin Base Classes

PluginInfo:       validated contents of a plugin's plugin.json.
PluginDescriptor: what the plugin manager knows about one discovered plugin.
PluginBase:       base class plugin entry modules subclass; a plugin is a
                  ListenerAggregate, attached to the event registry when loaded.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hostpanel.events.aggregate import ListenerAggregate, ListenerTriple
from hostpanel.exceptions import PluginDescriptorError

PLUGIN_API_VERSION = "1.0.0"
DESCRIPTOR_FILE = "plugin.json"
PLUGIN_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def is_api_compatible(require_api: str, api_version: str = PLUGIN_API_VERSION) -> bool:
    """True when *require_api* has the panel's major version and no newer minor."""
    required, provided = Version(require_api), Version(api_version)
    return required.major == provided.major and required.minor <= provided.minor


class PluginInfo(BaseModel):
    """Schema of plugin.json"""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., description="Plugin name, identical to its directory name")
    version: str
    description: str = ""
    author: str = "Unknown"
    require_api: str = PLUGIN_API_VERSION
    entry: str = "plugin.py"
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not PLUGIN_NAME_PATTERN.match(v):
            msg = "Plugin name must start with a letter and contain only letters, digits and underscores"
            raise ValueError(msg)
        return v

    @field_validator("version", "require_api")
    @classmethod
    def validate_version(cls, v: str) -> str:
        try:
            Version(v)
        except InvalidVersion as exc:
            msg = f"Invalid version string: {v!r}"
            raise ValueError(msg) from exc
        return v

    @field_validator("entry")
    @classmethod
    def validate_entry(cls, v: str) -> str:
        path = PurePosixPath(v)
        if path.is_absolute() or ".." in path.parts or path.suffix != ".py":
            msg = "Entry must be a relative .py file inside the plugin directory"
            raise ValueError(msg)
        return v


def read_plugin_info(directory: Path) -> PluginInfo:
    """
    Read and validate ``<directory>/plugin.json``.

    Raises:
        PluginDescriptorError: if the file is missing, unreadable, not valid
            JSON, fails validation, or names a different plugin than its directory.
    """
    descriptor_file = directory / DESCRIPTOR_FILE
    if not descriptor_file.is_file():
        raise PluginDescriptorError(f"{DESCRIPTOR_FILE} not found", plugin=directory.name)

    try:
        data = json.loads(descriptor_file.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        raise PluginDescriptorError(f"Cannot read {DESCRIPTOR_FILE}: {exc}", plugin=directory.name) from exc

    if not isinstance(data, dict):
        raise PluginDescriptorError(f"{DESCRIPTOR_FILE} must contain a JSON object", plugin=directory.name)

    try:
        info = PluginInfo.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in exc.errors())
        raise PluginDescriptorError(f"Invalid {DESCRIPTOR_FILE} ({fields})", plugin=directory.name) from exc

    if info.name != directory.name:
        raise PluginDescriptorError(
            f"Plugin name {info.name!r} does not match directory name {directory.name!r}",
            plugin=directory.name,
        )
    return info


@dataclass
class PluginDescriptor:
    """
    A discovered plugin.

    Attributes:
        name:           Plugin name (also its directory name).
        path:           Plugin directory.
        version:        Plugin version string.
        require_api:    Plugin API version the plugin was written against.
        entry:          Entry module, relative to path.
        default_config: Config defaults declared in plugin.json.
        enabled:        Persisted enabled/disabled status.
    """

    name: str
    path: Path
    version: str
    description: str = ""
    author: str = "Unknown"
    require_api: str = PLUGIN_API_VERSION
    entry: str = "plugin.py"
    default_config: dict[str, Any] = field(default_factory=dict)
    enabled: bool = False

    @property
    def entry_path(self) -> Path:
        return self.path / self.entry

    @classmethod
    def from_info(cls, info: PluginInfo, path: Path, enabled: bool = False) -> PluginDescriptor:
        return cls(
            name=info.name,
            path=path,
            version=info.version,
            description=info.description,
            author=info.author,
            require_api=info.require_api,
            entry=info.entry,
            default_config=dict(info.config),
            enabled=enabled,
        )


class PluginBase(ListenerAggregate):
    """
    Base class for panel plugins.

    The plugin manager instantiates the subclass found in the plugin's entry
    module, calls on_load(), then attaches the listeners returned by
    get_listener_triples(). Plugins run with full host privileges.
    """

    def __init__(self, descriptor: PluginDescriptor, config: dict[str, Any] | None = None) -> None:
        self.descriptor = descriptor
        self.config: dict[str, Any] = dict(config or {})

    @property
    def name(self) -> str:
        return self.descriptor.name

    def get_listener_triples(self) -> Sequence[ListenerTriple]:
        return []

    def on_load(self) -> None:  # noqa: B027
        """Called once after instantiation, before the listeners are attached."""

    def on_unload(self) -> None:  # noqa: B027
        """Called when the plugin is disabled or the panel shuts down."""
