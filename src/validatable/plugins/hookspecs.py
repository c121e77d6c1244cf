"""Pluggy hook specifications for validatable.

One setup-time hook lets plugins contribute rule kinds to the registry
used by rule-set files. One event hook reports each field's result after
a service-level check.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from validatable.domain.rules import RuleFactory

hookspec = pluggy.HookspecMarker("validatable")
hookimpl = pluggy.HookimplMarker("validatable")


class ValidatableHookSpec:
    """Hook specifications for the validatable plugin system."""

    @hookspec
    def register_rule_kinds(self) -> dict[str, RuleFactory] | None:
        """Return kind -> factory mappings to extend the built-in rules."""

    @hookspec
    def post_validate(
        self,
        name: str,
        is_valid: bool,
        errors: list[str],
    ) -> None:
        """Called after a field was validated by a check."""
