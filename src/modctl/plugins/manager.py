"""Observer plugin management and hook dispatch.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus direct registration (e.g. the built-in log sink).
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import pluggy

from modctl.plugins.hookspecs import PROJECT_NAME, ModctlHookSpec

ENTRY_POINT_GROUP = "modctl.plugins"

logger = logging.getLogger(__name__)


class HookManager:
    """Manages observer registration and failure-isolated hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ModctlHookSpec)

    def load_entrypoints(self, group: str = ENTRY_POINT_GROUP) -> list[str]:
        """Load observers published under the *group* entry point group.

        Returns the names of all registered observers.
        """
        self._pm.load_setuptools_entrypoints(group)
        self._normalize_plugin_instances()
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register an observer instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered observer: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister an observer instance."""
        self._pm.unregister(plugin)

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def notify(self, hook_name: str, **payload: Any) -> None:
        """Dispatch *hook_name* to every observer.

        INVARIANT: Observer failures are warnings, never errors.
        """
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            logger.debug("No hook named %s", hook_name)
            return
        try:
            hook_fn(**payload)
        except Exception:
            logger.warning("Observer hook %s failed", hook_name, exc_info=True)

    def _normalize_plugin_instances(self) -> None:
        """Replace registered observer classes with instantiated objects.

        Entry-point loading may register a class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)

            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point observer %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point observer: %s", plugin_name)
