"""BaseService — shared foundation for validatable services.

Every service receives the plugin manager (optional) and the engine
section of the settings. Services never raise to the CLI: failures are
reported as ServiceResult errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from validatable.config.models import EngineConfig

if TYPE_CHECKING:
    from validatable.domain.rules import RuleFactory
    from validatable.plugins.manager import PluginManager


class BaseService:
    """Base for service-layer classes.

    Usage::

        class CheckService(BaseService):
            def check(self, rule_set, record) -> ServiceResult:
                validator = self.build_validator(rule_set)
                ...
    """

    def __init__(
        self,
        plugins: PluginManager | None = None,
        engine: EngineConfig | None = None,
    ) -> None:
        self._plugins = plugins
        self._engine = engine or EngineConfig()

    def _rule_kinds(self) -> dict[str, RuleFactory]:
        from validatable.domain.rules import BUILTIN_RULES

        if self._plugins is None:
            return dict(BUILTIN_RULES)
        return self._plugins.rule_kinds()

    def _dispatch_validated(
        self,
        name: str,
        is_valid: bool,
        errors: list[str],
        warnings: list[str],
    ) -> None:
        """Report a field result to plugins. No-op without a plugin manager.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        if self._plugins is None:
            return
        warnings.extend(self._plugins.notify_validated(name, is_valid, errors))
