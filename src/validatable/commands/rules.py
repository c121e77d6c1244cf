"""Command: list registered rule kinds."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from validatable.commands._base import ValCommand

if TYPE_CHECKING:
    from validatable.commands._context import AppContext


@click.command(
    cls=ValCommand,
    examples="""\
  validatable rules
  validatable --json rules""",
)
@click.pass_obj
def rules(app: AppContext) -> None:
    """List built-in and plugin-provided rule kinds."""
    from validatable.services.check import CheckService

    app.emit(CheckService(app.plugins, app.settings.engine).list_rule_kinds())
