"""Plugin discovery, rule-kind registry, and hook dispatch.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints
in the ``validatable.plugins`` group, plus direct registration.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import pluggy

from validatable.domain.rules import BUILTIN_RULES
from validatable.plugins.hookspecs import ValidatableHookSpec

if TYPE_CHECKING:
    from validatable.domain.rules import RuleFactory

PROJECT_NAME = "validatable"
ENTRY_POINT_GROUP = "validatable.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, rule-kind registration, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ValidatableHookSpec)
        self._loaded: bool = False

    def discover_and_load(self, *, disabled: Iterable[str] = ()) -> list[str]:
        """Load entry-point plugins, skipping names listed in *disabled*.

        Returns a list of loaded plugin names.
        """
        for name in disabled:
            self._pm.set_blocked(name)
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        """Return names of all registered plugins."""
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Rule kinds
    # ------------------------------------------------------------------

    def rule_kinds(self) -> dict[str, RuleFactory]:
        """Built-in rule kinds merged with every plugin contribution.

        Built-ins cannot be overridden; a plugin whose hook raises or
        returns a non-callable factory is skipped with a warning.
        """
        kinds: dict[str, RuleFactory] = dict(BUILTIN_RULES)
        for impl in self._pm.hook.register_rule_kinds.get_hookimpls():
            try:
                contributed = impl.function()
            except Exception:
                logger.warning(
                    "Plugin %s failed to register rule kinds", impl.plugin_name, exc_info=True
                )
                continue
            for kind, factory in (contributed or {}).items():
                if kind in BUILTIN_RULES:
                    logger.warning(
                        "Plugin %s cannot override built-in rule kind %r", impl.plugin_name, kind
                    )
                    continue
                if not callable(factory):
                    logger.warning(
                        "Plugin %s registered non-callable factory for %r", impl.plugin_name, kind
                    )
                    continue
                kinds[kind] = factory
        return kinds

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def notify_validated(self, name: str, is_valid: bool, errors: list[str]) -> list[str]:
        """Call ``post_validate`` on every plugin. Returns warnings for failures."""
        warnings: list[str] = []
        payload = {"name": name, "is_valid": is_valid, "errors": errors}
        for impl in self._pm.hook.post_validate.get_hookimpls():
            # Implementations may accept a subset of the hookspec arguments.
            kwargs = {arg: payload[arg] for arg in impl.argnames if arg in payload}
            try:
                impl.function(**kwargs)
            except Exception:
                logger.warning(
                    "Plugin %s failed in post_validate for %s",
                    impl.plugin_name,
                    name,
                    exc_info=True,
                )
                warnings.append(f"Plugin {impl.plugin_name} failed in post_validate")
        return warnings

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
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
                    "Failed to instantiate entry-point plugin %s", plugin_name, exc_info=True
                )
                continue
            self._pm.register(instance, name=plugin_name)
