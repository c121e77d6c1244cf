"""Command: validate a JSON record against a TOML rule set."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from validatable.commands._base import ValCommand

if TYPE_CHECKING:
    from validatable.commands._context import AppContext


@click.command(
    cls=ValCommand,
    examples="""\
  validatable check signup.json --rules signup.toml
  validatable --json check signup.json --rules signup.toml
  validatable check signup.json            # uses [rules] path from validatable.toml""",
)
@click.argument("record", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-r", "--rules", "rules_path", default=None, help="Rule-set TOML file.")
@click.pass_obj
def check(app: AppContext, record: Path, rules_path: str | None) -> None:
    """Validate RECORD (a JSON object) and report every failing rule."""
    from validatable.services.check import CheckService
    from validatable.services.result import ServiceError, ServiceResult

    resolved = app.settings.resolve_rules_path(rules_path)
    if resolved is None:
        app.emit(
            ServiceResult(
                ok=False,
                op="check",
                error=ServiceError(
                    code="CONFIG_ERROR",
                    message="No rule set given; pass --rules or set [rules] path",
                ),
            )
        )
        return

    svc = CheckService(app.plugins, app.settings.engine)
    app.emit(svc.check_files(resolved, record))
