"""Subcommand modules for validatable.

Provides register_commands() which uses deferred imports to keep
``validatable --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from validatable.commands.check import check
    from validatable.commands.rules import rules

    cli.add_command(check)
    cli.add_command(rules)
