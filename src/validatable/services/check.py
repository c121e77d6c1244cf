"""CheckService — validate a record against a rule set.

Builds one ValidatableValue per rule-set field, loads the record inside a
single Validator unit of work (so dependents revalidate once), then runs
every field's rules. Failing fields are a ``VALIDATION_FAILED`` result,
not an exception.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from validatable.config.discovery import load_rule_set
from validatable.config.models import FieldSpec, RuleSetConfig
from validatable.domain.errors import ConfigurationError
from validatable.domain.rules import Rule, RuleFactory, create_rule
from validatable.domain.validator import Validator
from validatable.domain.value import ValidatableValue
from validatable.services.base import BaseService
from validatable.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)

CODE_CONFIG_ERROR = "CONFIG_ERROR"
CODE_INVALID_RECORD = "INVALID_RECORD"
CODE_RULE_ERROR = "RULE_ERROR"
CODE_UNKNOWN_RULE_KIND = "UNKNOWN_RULE_KIND"
CODE_VALIDATION_FAILED = "VALIDATION_FAILED"


class CheckService(BaseService):
    """Runs rule sets against records and lists available rule kinds."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_validator(self, rule_set: RuleSetConfig) -> Validator:
        """Construct a Validator holding every field of *rule_set*.

        Raises:
            ConfigurationError: Unknown rule kind, bad parameters, or
                invalid dependencies.
        """
        kinds = self._rule_kinds()
        validator = Validator(auto_validate=self._engine.auto_validate)
        for name, spec in rule_set.fields.items():
            validator.add(name, self._build_field(name, spec, kinds))
            for dependency in spec.depends_on:
                validator.depends(name, dependency)
        return validator

    def check(self, rule_set: RuleSetConfig, record: Mapping[str, Any]) -> ServiceResult:
        """Validate *record* (field name -> value) against *rule_set*."""
        op = "check"
        unknown = self._unknown_kinds(rule_set)
        if unknown:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=CODE_UNKNOWN_RULE_KIND,
                    message=f"Unknown rule kind(s): {', '.join(unknown)}",
                    detail={"kinds": unknown},
                ),
            )

        try:
            validator = self.build_validator(rule_set)
            with validator.batch():
                for name in validator:
                    if name in record:
                        validator[name].set_value(record[name])
            valid = validator.validate_all()
        except ConfigurationError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code=CODE_CONFIG_ERROR, message=str(exc)),
            )
        except Exception as exc:
            # A custom predicate raised; the record cannot be judged.
            logger.warning("Rule raised while checking record", exc_info=True)
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=CODE_RULE_ERROR,
                    message=f"A rule raised {type(exc).__name__}: {exc}",
                ),
            )

        warnings = [
            f"Record field {name!r} has no rules" for name in record if name not in validator
        ]
        fields: dict[str, dict[str, Any]] = {}
        for name in validator:
            value = validator[name]
            errors = list(value.errors)
            fields[name] = {"valid": value.is_valid, "errors": errors}
            self._dispatch_validated(name, value.is_valid, errors, warnings)
        validator.close()

        logger.debug("Checked %d field(s): valid=%s", len(fields), valid)
        if not valid:
            failing = {name: f["errors"] for name, f in fields.items() if not f["valid"]}
            return ServiceResult(
                ok=False,
                op=op,
                warnings=warnings,
                error=ServiceError(
                    code=CODE_VALIDATION_FAILED,
                    message=f"{len(failing)} field(s) failed validation",
                    detail={"errors": failing},
                ),
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"valid": True, "count": len(fields), "fields": fields},
            warnings=warnings,
        )

    def check_files(self, rules_path: Path, record_path: Path) -> ServiceResult:
        """Load a TOML rule set and a JSON record, then :meth:`check` them."""
        op = "check"
        try:
            rule_set = load_rule_set(rules_path)
        except ConfigurationError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code=CODE_CONFIG_ERROR, message=str(exc)),
            )

        try:
            record = json.loads(record_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=CODE_INVALID_RECORD,
                    message=f"Cannot read record {record_path}: {exc}",
                ),
            )
        if not isinstance(record, dict):
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=CODE_INVALID_RECORD,
                    message=f"Record {record_path} must be a JSON object",
                ),
            )
        return self.check(rule_set, record)

    def list_rule_kinds(self) -> ServiceResult:
        """Report every registered rule kind with its factory's summary line."""
        kinds = self._rule_kinds()
        items = [
            {"kind": kind, "summary": _summary(factory)} for kind, factory in sorted(kinds.items())
        ]
        return ServiceResult(ok=True, op="rules", data={"count": len(items), "items": items})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _unknown_kinds(self, rule_set: RuleSetConfig) -> list[str]:
        kinds = self._rule_kinds()
        unknown = {
            rule.kind
            for spec in rule_set.fields.values()
            for rule in spec.rules
            if rule.kind not in kinds
        }
        return sorted(unknown)

    def _build_field(
        self, name: str, spec: FieldSpec, kinds: Mapping[str, RuleFactory]
    ) -> ValidatableValue[Any]:
        rules: list[Rule[Any]] = [
            create_rule(r.kind, message=r.message, params=r.params, registry=kinds)
            for r in spec.rules
        ]
        auto = self._engine.auto_validate if spec.auto_validate is None else spec.auto_validate
        return ValidatableValue(spec.initial, rules, name=name, auto_validate=auto)


def _summary(factory: RuleFactory) -> str:
    doc = (getattr(factory, "__doc__", None) or "").strip()
    return doc.splitlines()[0] if doc else ""
