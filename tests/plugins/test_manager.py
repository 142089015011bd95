"""Tests for PluginManager — discovery, emitter registration and hooks."""

from __future__ import annotations

from typing import Any

import pluggy

from polyface.plugins.builtins.emitters import BUILTIN_EMITTERS, BuiltinEmitters
from polyface.plugins.manager import BUILTIN_NAME, PluginManager

hookimpl = pluggy.HookimplMarker("polyface")


def _yaml(service: Any, options: Any) -> str:
    return f"name: {service.name}\n"


class _YamlPlugin:
    @hookimpl
    def register_emitters(self) -> dict[str, Any]:
        return {"yaml": _yaml}


class _MarkdownOverride:
    @hookimpl
    def register_emitters(self) -> dict[str, Any]:
        return {"markdown": _yaml}


class _BrokenRegistration:
    @hookimpl
    def register_emitters(self) -> Any:
        return ["not", "a", "dict"]


class _Recorder:
    def __init__(self) -> None:
        self.seen: list[tuple[str, str]] = []

    @hookimpl
    def post_emit(self, format: str, service: Any, artifact: str) -> None:
        self.seen.append((format, artifact))


class _Failing:
    @hookimpl
    def post_emit(self, format: str, service: Any, artifact: str) -> None:
        raise OSError("read-only filesystem")


class TestRegistration:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "register_emitters")
        assert hasattr(pm.hook, "post_emit")

    def test_register_plugin(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_YamlPlugin(), name="yaml")
        assert "yaml" in pm.list_plugin_names()

    def test_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_YamlPlugin())
        assert "_YamlPlugin" in pm.list_plugin_names()

    def test_unregister(self) -> None:
        pm = PluginManager()
        plugin = _YamlPlugin()
        pm.register_plugin(plugin, name="yaml")
        pm.unregister(plugin)
        assert "yaml" not in pm.list_plugin_names()
        assert "yaml" not in pm.emitters()


class TestDiscovery:
    def test_not_loaded_before_discover(self) -> None:
        assert PluginManager().is_loaded is False

    def test_registers_builtins(self) -> None:
        pm = PluginManager()
        names = pm.discover_and_load()
        assert pm.is_loaded is True
        assert BUILTIN_NAME in names

    def test_discover_twice_keeps_one_builtin(self) -> None:
        pm = PluginManager()
        pm.discover_and_load()
        names = pm.discover_and_load()
        assert names.count(BUILTIN_NAME) == 1

    def test_disabled_builtins(self) -> None:
        pm = PluginManager()
        names = pm.discover_and_load(disabled=[BUILTIN_NAME])
        assert BUILTIN_NAME not in names
        assert pm.emitters() == {}


class TestEmitters:
    def test_builtin_formats(self) -> None:
        pm = PluginManager()
        pm.discover_and_load()
        assert set(pm.emitters()) == set(BUILTIN_EMITTERS)
        assert {"openapi", "graphql", "proto", "capnp", "mcp-tools"} <= set(pm.emitters())

    def test_plugin_adds_format(self) -> None:
        pm = PluginManager()
        pm.discover_and_load()
        pm.register_plugin(_YamlPlugin())
        assert pm.emitters()["yaml"] is _yaml

    def test_later_plugin_overrides_builtin(self) -> None:
        pm = PluginManager()
        pm.discover_and_load()
        pm.register_plugin(_MarkdownOverride())
        assert pm.emitters()["markdown"] is _yaml

    def test_non_dict_registration_ignored(self) -> None:
        pm = PluginManager()
        pm.register_plugin(BuiltinEmitters(), name=BUILTIN_NAME)
        pm.register_plugin(_BrokenRegistration())
        assert set(pm.emitters()) == set(BUILTIN_EMITTERS)


class TestNotifyEmit:
    def test_calls_post_emit(self, users: Any) -> None:
        pm = PluginManager()
        recorder = _Recorder()
        pm.register_plugin(recorder)
        assert pm.notify_emit("proto", users, "syntax") == []
        assert recorder.seen == [("proto", "syntax")]

    def test_failure_becomes_warning(self, users: Any) -> None:
        pm = PluginManager()
        pm.register_plugin(_Failing())
        warnings = pm.notify_emit("proto", users, "syntax")
        assert warnings == ["post_emit hook failed: read-only filesystem"]

    def test_no_plugins(self, users: Any) -> None:
        assert PluginManager().notify_emit("proto", users, "") == []


class TestEntryPointNormalisation:
    def test_class_replaced_by_instance(self) -> None:
        pm = PluginManager()
        pm._pm.register(_YamlPlugin, name="yaml")
        pm._normalize_plugin_instances()
        plugins = pm._pm.get_plugins()
        assert _YamlPlugin not in plugins
        assert any(isinstance(p, _YamlPlugin) for p in plugins)
        assert "yaml" in pm.emitters()

    def test_has_hook_impls(self) -> None:
        assert PluginManager._has_hook_impls(_YamlPlugin) is True
        assert PluginManager._has_hook_impls(str) is False
