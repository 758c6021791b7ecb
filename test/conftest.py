"""
Pytest configuration and fixtures for the control panel tests
"""

import json
import os
import sys
import textwrap
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

from hostpanel.config import Settings  # noqa: E402
from hostpanel.events import EventRegistry  # noqa: E402
from hostpanel.main import create_app  # noqa: E402

ADMIN_KEY = "test-admin-key"

# Entry module written for test plugins unless a test supplies its own.
# It adds a row to the admin overview and a variable to the login page.
DEFAULT_PLUGIN_SOURCE = """
from hostpanel.events.names import ON_ADMIN_SCRIPT_END, ON_LOGIN_SCRIPT_END
from hostpanel.plugins import PluginBase


class {class_name}(PluginBase):
    def get_listener_triples(self):
        return [
            (ON_ADMIN_SCRIPT_END, self.add_overview_row, 10),
            (ON_LOGIN_SCRIPT_END, self.add_login_notice, 10),
        ]

    def add_overview_row(self, context, params):
        tpl = params["templateEngine"]
        rows = list(tpl.get("EXTRA_ROWS", []))
        rows.append(("{name}", self.config.get("greeting", "")))
        tpl.assign("EXTRA_ROWS", rows)

    def add_login_notice(self, context, params):
        params["templateEngine"].assign("UNAME", self.config.get("greeting", ""))
"""


@pytest.fixture
def registry() -> EventRegistry:
    return EventRegistry()


@pytest.fixture
def plugins_root(tmp_path: Path) -> Path:
    root = tmp_path / "plugins"
    root.mkdir()
    return root


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "plugins_config.json"


@pytest.fixture
def make_plugin(plugins_root: Path) -> Callable[..., Path]:
    """Write a plugin directory (plugin.json + entry module) under plugins_root."""

    def _make(
        name: str,
        source: str | None = None,
        info: dict[str, Any] | None = None,
        entry: str = "plugin.py",
    ) -> Path:
        directory = plugins_root / name
        directory.mkdir()
        descriptor = {
            "name": name,
            "version": "1.0.0",
            "description": f"{name} test plugin",
            "author": "Tests",
            "entry": entry,
            "config": {"greeting": f"hello from {name}"},
        }
        descriptor.update(info or {})
        (directory / "plugin.json").write_text(json.dumps(descriptor), encoding="utf-8")
        body = source if source is not None else DEFAULT_PLUGIN_SOURCE.format(class_name=f"{name}Plugin", name=name)
        (directory / entry).write_text(textwrap.dedent(body), encoding="utf-8")
        return directory

    return _make


@pytest.fixture
def enable_plugins(config_file: Path) -> Callable[..., None]:
    """Persist enabled=True for the given plugin names."""

    def _enable(*names: str) -> None:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(json.dumps({n: {"enabled": True} for n in names}), encoding="utf-8")

    return _enable


@pytest.fixture
def settings(tmp_path: Path, config_file: Path, plugins_root: Path) -> Settings:
    return Settings(
        _env_file=None,
        gui_root_dir=tmp_path,
        plugins_config_file=config_file,
        admin_api_key=ADMIN_KEY,
        admin_name="root",
        log_json=False,
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings, configure_logging=False)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-API-Key": ADMIN_KEY}
