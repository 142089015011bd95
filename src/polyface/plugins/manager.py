"""Plugin discovery and loading.

Built-in emitters are registered first, then entry points from the
``polyface.plugins`` group.  Hook results are merged so that later
registrations override earlier ones.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import pluggy

from polyface.plugins.hookspecs import Emitter, PolyfaceHookSpec

if TYPE_CHECKING:
    from polyface.domain.descriptors import ServiceDescriptor

PROJECT_NAME = "polyface"
ENTRY_POINT_GROUP = "polyface.plugins"
BUILTIN_NAME = "builtin-emitters"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, emitter registration and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(PolyfaceHookSpec)
        self._loaded = False

    def discover_and_load(self, *, disabled: Iterable[str] = ()) -> list[str]:
        """Register the built-in emitters, then entry-point plugins.

        Plugins named in *disabled* (``[plugins] disabled``) are blocked
        before loading.  Returns the names of all registered plugins.
        """
        from polyface.plugins.builtins.emitters import BuiltinEmitters

        for name in disabled:
            self._pm.set_blocked(name)
        if not self._pm.has_plugin(BUILTIN_NAME) and not self._pm.is_blocked(BUILTIN_NAME):
            self.register_plugin(BuiltinEmitters(), name=BUILTIN_NAME)
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Emitters
    # ------------------------------------------------------------------

    def emitters(self) -> dict[str, Emitter]:
        """Every registered format, later plugins overriding earlier ones."""
        merged: dict[str, Emitter] = {}
        # pluggy calls the most recently registered implementation first.
        for mapping in reversed(self._pm.hook.register_emitters()):
            if not isinstance(mapping, dict):
                logger.warning("Ignoring non-dict emitter registration: %r", mapping)
                continue
            merged.update(mapping)
        return merged

    def notify_emit(self, format: str, service: ServiceDescriptor, artifact: str) -> list[str]:
        """Run ``post_emit``; a failing plugin becomes a warning."""
        try:
            self._pm.hook.post_emit(format=format, service=service, artifact=artifact)
        except Exception as exc:
            logger.debug("post_emit failed for %s", format, exc_info=True)
            return [f"post_emit hook failed: {exc}"]
        return []

    # ------------------------------------------------------------------
    # Entry-point normalisation
    # ------------------------------------------------------------------

    def _normalize_plugin_instances(self) -> None:
        """Replace plugin classes registered by entry points with instances.

        Hook dispatch against a class object leaves ``self`` unbound.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not self._has_hook_impls(plugin):
                continue
            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s", plugin_name, exc_info=True
                )
                continue
            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """``HookimplMarker("polyface")`` tags methods with ``polyface_impl``."""
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "polyface_impl", None):
                return True
        return False
