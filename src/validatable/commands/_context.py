"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy plugin loading and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from validatable.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from validatable.config.settings import ValidatableSettings
    from validatable.plugins.manager import PluginManager
    from validatable.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Plugins are discovered on first use so ``--help`` and ``--version``
    never import third-party plugin code.
    """

    def __init__(self, settings: ValidatableSettings) -> None:
        self.settings = settings
        self._plugins: PluginManager | None = None

        from validatable.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            quiet_engine=settings.log.quiet_engine,
        )

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager (loaded lazily on first access)."""
        if self._plugins is None:
            from validatable.plugins.manager import PluginManager

            self._plugins = PluginManager()
            if self.settings.plugins.enabled:
                self._plugins.discover_and_load(disabled=self.settings.plugins.disabled)
        return self._plugins

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
