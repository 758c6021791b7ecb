"""
PluginManager Tests

    TestScan          - discovery under the plugin root
    TestLoadPlugins   - loading enabled plugins and lifecycle events
    TestVeto          - Before* listeners refusing operations
    TestEnableDisable - persisted state and listener attach/detach
    TestPluginConfig  - defaults and persisted overrides
    TestFactory       - create_plugin_manager() wiring
"""

from __future__ import annotations

import json

import pytest

from hostpanel.events import STOP_PROPAGATION, EventContext
from hostpanel.events.names import (
    ON_ADMIN_SCRIPT_END,
    ON_AFTER_DISABLE_PLUGIN,
    ON_AFTER_ENABLE_PLUGIN,
    ON_AFTER_LOAD_PLUGIN,
    ON_AFTER_LOAD_PLUGINS,
    ON_BEFORE_DISABLE_PLUGIN,
    ON_BEFORE_ENABLE_PLUGIN,
    ON_BEFORE_LOAD_PLUGIN,
    ON_BEFORE_UNLOAD_PLUGIN,
)
from hostpanel.exceptions import PluginError, PluginLoadError, PluginNotFoundError
from hostpanel.plugins import PluginManager
from hostpanel.plugins.listeners import DefaultListenerAggregate


class FakeTemplate:
    def __init__(self):
        self.vars = {}

    def assign(self, name, value):
        self.vars[name] = value

    def get(self, name, default=None):
        return self.vars.get(name, default)


@pytest.fixture
def manager(plugins_root, registry, config_file):
    return PluginManager(plugins_root, registry, config_file)


@pytest.fixture
def guarded_manager(manager, registry):
    """Manager whose registry carries the API compatibility checks."""
    registry.attach_aggregate(DefaultListenerAggregate())
    return manager


def _record(registry, *event_names):
    seen = []
    for event_name in event_names:
        registry.attach(event_name, lambda context, params, n=event_name: seen.append((n, dict(params))))
    return seen


# ══════════════════════════════════════════════════════════════════════════════
# 1. TestScan
# ══════════════════════════════════════════════════════════════════════════════


class TestScan:
    def test_finds_plugins_sorted(self, manager, make_plugin):
        make_plugin("Zeta")
        make_plugin("Alpha")
        names = [d.name for d in manager.scan()]
        assert names == ["Alpha", "Zeta"]

    def test_missing_root_returns_empty(self, tmp_path, registry, config_file, caplog):
        manager = PluginManager(tmp_path / "absent", registry, config_file)
        with caplog.at_level("WARNING", logger="hostpanel.plugins.manager"):
            assert manager.scan() == []
        assert "does not exist" in caplog.text

    def test_skips_malformed_with_warning(self, manager, make_plugin, plugins_root, caplog):
        make_plugin("Good")
        bad = plugins_root / "Bad"
        bad.mkdir()
        (bad / "plugin.json").write_text("{oops", encoding="utf-8")
        (plugins_root / "NoDescriptor").mkdir()

        with caplog.at_level("WARNING", logger="hostpanel.plugins.manager"):
            names = [d.name for d in manager.scan()]

        assert names == ["Good"]
        assert "Skipping plugin Bad" in caplog.text
        assert "Skipping plugin NoDescriptor" in caplog.text

    def test_ignores_files_and_non_plugin_names(self, manager, make_plugin, plugins_root):
        make_plugin("Good")
        (plugins_root / "README.txt").write_text("docs", encoding="utf-8")
        (plugins_root / "__pycache__").mkdir()
        (plugins_root / ".hidden").mkdir()
        assert [d.name for d in manager.scan()] == ["Good"]

    def test_scan_of_other_directory(self, manager, tmp_path):
        other = tmp_path / "other"
        (other / "Extra").mkdir(parents=True)
        (other / "Extra" / "plugin.json").write_text(json.dumps({"name": "Extra", "version": "1.0"}), encoding="utf-8")
        assert [d.name for d in manager.scan(other)] == ["Extra"]

    def test_enabled_flag_from_state(self, manager, make_plugin, enable_plugins):
        make_plugin("On")
        make_plugin("Off")
        enable_plugins("On")
        enabled = {d.name: d.enabled for d in manager.scan()}
        assert enabled == {"Off": False, "On": True}

    def test_enabled_by_default(self, plugins_root, registry, config_file, make_plugin):
        make_plugin("Demo")
        manager = PluginManager(plugins_root, registry, config_file, enabled_by_default=True)
        assert manager.scan()[0].enabled is True

    def test_get_descriptor_unknown(self, manager):
        manager.scan()
        with pytest.raises(PluginNotFoundError):
            manager.get_descriptor("Nope")


# ══════════════════════════════════════════════════════════════════════════════
# 2. TestLoadPlugins
# ══════════════════════════════════════════════════════════════════════════════


class TestLoadPlugins:
    def test_loads_only_enabled(self, manager, make_plugin, enable_plugins, registry):
        make_plugin("On")
        make_plugin("Off")
        enable_plugins("On")

        assert manager.load_plugins() == ["On"]
        assert manager.is_loaded("On")
        assert not manager.is_loaded("Off")
        assert manager.get_plugin("Off") is None
        assert registry.has_listeners(ON_ADMIN_SCRIPT_END)

    def test_loaded_plugin_listens(self, manager, make_plugin, enable_plugins, registry):
        make_plugin("Demo")
        enable_plugins("Demo")
        manager.load_plugins()

        tpl = FakeTemplate()
        registry.trigger(ON_ADMIN_SCRIPT_END, params={"templateEngine": tpl})
        assert tpl.vars["EXTRA_ROWS"] == [("Demo", "hello from Demo")]

    def test_lifecycle_events(self, manager, make_plugin, enable_plugins, registry):
        make_plugin("Demo")
        enable_plugins("Demo")
        seen = _record(registry, ON_BEFORE_LOAD_PLUGIN, ON_AFTER_LOAD_PLUGIN, ON_AFTER_LOAD_PLUGINS)

        manager.load_plugins()

        assert [name for name, _ in seen] == [ON_BEFORE_LOAD_PLUGIN, ON_AFTER_LOAD_PLUGIN, ON_AFTER_LOAD_PLUGINS]
        assert seen[0][1]["pluginName"] == "Demo"
        assert seen[1][1]["plugin"] is manager.get_plugin("Demo")
        assert seen[2][1] == {"pluginNames": ["Demo"]}

    def test_after_load_plugins_fires_with_nothing_loaded(self, manager, registry):
        seen = _record(registry, ON_AFTER_LOAD_PLUGINS)
        assert manager.load_plugins() == []
        assert seen == [(ON_AFTER_LOAD_PLUGINS, {"pluginNames": []})]

    def test_broken_plugin_skipped(self, manager, make_plugin, enable_plugins, caplog):
        make_plugin("Good")
        make_plugin("Broken", source="raise ImportError('missing dependency')\n")
        enable_plugins("Good", "Broken")

        with caplog.at_level("ERROR", logger="hostpanel.plugins.manager"):
            assert manager.load_plugins() == ["Good"]
        assert "Skipping plugin Broken" in caplog.text

    def test_on_load_failure_skipped(self, manager, make_plugin, enable_plugins):
        source = """
            from hostpanel.plugins import PluginBase


            class Failing(PluginBase):
                def on_load(self):
                    raise RuntimeError("no database")
        """
        make_plugin("Failing", source=source)
        enable_plugins("Failing")
        assert manager.load_plugins() == []

    def test_invalid_listener_skipped_atomically(self, manager, make_plugin, enable_plugins, registry):
        source = """
            from hostpanel.plugins import PluginBase


            class BadHooks(PluginBase):
                def get_listener_triples(self):
                    return [
                        ("onLoginScriptStart", lambda context, params: None, 1),
                        ("onLoginScriptEnd", lambda only_one: None, 1),
                    ]
        """
        make_plugin("BadHooks", source=source)
        enable_plugins("BadHooks")
        assert manager.load_plugins() == []
        assert not registry.has_listeners("onLoginScriptStart")

    def test_unload_plugins_detaches(self, manager, make_plugin, enable_plugins, registry):
        make_plugin("A")
        make_plugin("B")
        enable_plugins("A", "B")
        manager.load_plugins()
        seen = _record(registry, ON_BEFORE_UNLOAD_PLUGIN)

        manager.unload_plugins()

        assert [params["pluginName"] for _, params in seen] == ["B", "A"]
        assert manager.loaded_plugins() == []
        assert not registry.has_listeners(ON_ADMIN_SCRIPT_END)

    def test_lifecycle_context_carries_template_params(self, manager, registry):
        services = object()
        manager.set_event(EventContext(params={"ServiceManager": services}))
        seen = []
        registry.attach(ON_AFTER_LOAD_PLUGINS, lambda context, params: seen.append(context.get_param("ServiceManager")))

        manager.load_plugins()
        assert seen == [services]
        assert manager.event.params == {"ServiceManager": services}


# ══════════════════════════════════════════════════════════════════════════════
# 3. TestVeto
# ══════════════════════════════════════════════════════════════════════════════


class TestVeto:
    def test_incompatible_api_not_loaded(self, guarded_manager, make_plugin, enable_plugins, caplog):
        make_plugin("Future", info={"require_api": "2.0.0"})
        make_plugin("Current")
        enable_plugins("Future", "Current")

        with caplog.at_level("WARNING", logger="hostpanel.plugins.manager"):
            assert guarded_manager.load_plugins() == ["Current"]
        assert "requires plugin API 2.0.0" in caplog.text

    def test_vetoed_load_skips_after_event(self, manager, make_plugin, enable_plugins, registry):
        make_plugin("Demo")
        enable_plugins("Demo")
        registry.attach(ON_BEFORE_LOAD_PLUGIN, lambda context, params: STOP_PROPAGATION)
        seen = _record(registry, ON_AFTER_LOAD_PLUGIN)

        assert manager.load_plugins() == []
        assert seen == []

    def test_incompatible_api_enable_refused(self, guarded_manager, make_plugin):
        make_plugin("Future", info={"require_api": "2.0.0"})
        guarded_manager.scan()
        with pytest.raises(PluginError, match="requires plugin API 2.0.0"):
            guarded_manager.enable("Future")
        assert not guarded_manager.is_loaded("Future")

    def test_disable_veto(self, manager, make_plugin, enable_plugins, registry, config_file):
        make_plugin("Locked")
        enable_plugins("Locked")
        manager.load_plugins()

        def refuse(context, params):
            context.set_param("reason", "plugin is locked")
            context.stop_propagation()

        registry.attach(ON_BEFORE_DISABLE_PLUGIN, refuse)
        with pytest.raises(PluginError, match="plugin is locked") as exc_info:
            manager.disable("Locked")

        assert exc_info.value.status_code == 400
        assert manager.is_loaded("Locked")
        assert json.loads(config_file.read_text(encoding="utf-8"))["Locked"]["enabled"] is True


# ══════════════════════════════════════════════════════════════════════════════
# 4. TestEnableDisable
# ══════════════════════════════════════════════════════════════════════════════


class TestEnableDisable:
    def test_enable_loads_and_persists(self, manager, make_plugin, registry, config_file):
        make_plugin("Demo")
        manager.scan()
        seen = _record(registry, ON_BEFORE_ENABLE_PLUGIN, ON_AFTER_ENABLE_PLUGIN)

        descriptor = manager.enable("Demo")

        assert descriptor.enabled is True
        assert manager.is_loaded("Demo")
        assert registry.has_listeners(ON_ADMIN_SCRIPT_END)
        assert [name for name, _ in seen] == [ON_BEFORE_ENABLE_PLUGIN, ON_AFTER_ENABLE_PLUGIN]
        assert json.loads(config_file.read_text(encoding="utf-8")) == {"Demo": {"enabled": True}}

    def test_enable_twice_keeps_single_attachment(self, manager, make_plugin, registry):
        make_plugin("Demo")
        manager.scan()
        manager.enable("Demo")
        manager.enable("Demo")
        assert len(registry.listeners(ON_ADMIN_SCRIPT_END)) == 1

    def test_enable_unknown(self, manager):
        manager.scan()
        with pytest.raises(PluginNotFoundError):
            manager.enable("Ghost")

    def test_enable_broken_plugin_stays_disabled(self, manager, make_plugin, config_file):
        make_plugin("Broken", source="VALUE = 1\n")
        manager.scan()
        with pytest.raises(PluginLoadError):
            manager.enable("Broken")
        assert manager.get_descriptor("Broken").enabled is False
        assert not config_file.exists()

    def test_disable_unloads_and_persists(self, manager, make_plugin, enable_plugins, registry, config_file):
        make_plugin("Demo")
        enable_plugins("Demo")
        manager.load_plugins()
        seen = _record(registry, ON_BEFORE_DISABLE_PLUGIN, ON_AFTER_DISABLE_PLUGIN)

        descriptor = manager.disable("Demo")

        assert descriptor.enabled is False
        assert not manager.is_loaded("Demo")
        assert not registry.has_listeners(ON_ADMIN_SCRIPT_END)
        assert [name for name, _ in seen] == [ON_BEFORE_DISABLE_PLUGIN, ON_AFTER_DISABLE_PLUGIN]
        assert json.loads(config_file.read_text(encoding="utf-8"))["Demo"]["enabled"] is False

    def test_disable_not_loaded_plugin(self, manager, make_plugin):
        make_plugin("Demo")
        manager.scan()
        assert manager.disable("Demo").enabled is False

    def test_state_survives_restart(self, plugins_root, registry, config_file, make_plugin):
        make_plugin("Demo")
        first = PluginManager(plugins_root, registry, config_file)
        first.scan()
        first.enable("Demo")
        first.unload_plugins()

        second = PluginManager(plugins_root, registry, config_file)
        assert second.load_plugins() == ["Demo"]


# ══════════════════════════════════════════════════════════════════════════════
# 5. TestPluginConfig
# ══════════════════════════════════════════════════════════════════════════════


class TestPluginConfig:
    def test_defaults_from_descriptor(self, manager, make_plugin):
        make_plugin("Demo")
        manager.scan()
        assert manager.plugin_config("Demo") == {"greeting": "hello from Demo"}

    def test_update_config_persists_overrides(self, manager, make_plugin, config_file):
        make_plugin("Demo")
        manager.scan()
        config = manager.update_config("Demo", {"greeting": "hi", "enabled": True})

        assert config == {"greeting": "hi"}
        assert json.loads(config_file.read_text(encoding="utf-8")) == {"Demo": {"greeting": "hi"}}
        assert manager.get_descriptor("Demo").enabled is False

    def test_update_config_reaches_loaded_plugin(self, manager, make_plugin, enable_plugins, registry):
        make_plugin("Demo")
        enable_plugins("Demo")
        manager.load_plugins()
        manager.update_config("Demo", {"greeting": "updated"})

        tpl = FakeTemplate()
        registry.trigger(ON_ADMIN_SCRIPT_END, params={"templateEngine": tpl})
        assert tpl.vars["EXTRA_ROWS"] == [("Demo", "updated")]

    def test_loaded_plugin_receives_overrides(self, manager, make_plugin, config_file):
        make_plugin("Demo")
        config_file.parent.mkdir(parents=True)
        config_file.write_text(json.dumps({"Demo": {"enabled": True, "greeting": "stored"}}), encoding="utf-8")
        manager.load_plugins()
        assert manager.get_plugin("Demo").config == {"greeting": "stored"}


# ══════════════════════════════════════════════════════════════════════════════
# 6. TestFactory
# ══════════════════════════════════════════════════════════════════════════════


class TestFactory:
    def test_service_locator_builds_manager(self, settings):
        from hostpanel.services import create_service_locator

        services = create_service_locator(settings)
        manager = services.get("PluginManager")

        assert isinstance(manager, PluginManager)
        assert services.get("PluginManager") is manager
        assert manager.event_registry is services.get("EventManager")
        assert manager.plugins_dir == settings.plugins_dir
        assert manager.event.get_param("ServiceManager") is services

    def test_factory_attaches_default_listeners(self, settings, make_plugin):
        from hostpanel.services import create_service_locator

        make_plugin("Future", info={"require_api": "2.0.0"})
        services = create_service_locator(settings)
        manager = services.get("PluginManager")
        assert services.get("EventManager").has_listeners(ON_BEFORE_LOAD_PLUGIN)

        manager.scan()
        with pytest.raises(PluginError):
            manager.enable("Future")
