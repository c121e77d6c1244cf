"""Tests for CheckService — rule sets applied to records."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from validatable.config.discovery import load_rule_set
from validatable.config.models import EngineConfig, RuleSetConfig
from validatable.domain.rules import Rule
from validatable.plugins import PluginManager, hookimpl
from validatable.services.check import CheckService


def _rule_set(data: dict[str, Any]) -> RuleSetConfig:
    return RuleSetConfig.model_validate(data)


def multiple_of(factor: int, message: str = "Must be a multiple of {factor}.") -> Rule[int]:
    """Integer divisible by *factor*."""
    return Rule(message, lambda v: v % factor == 0, kind="multiple_of", params={"factor": factor})


class _MultiplePlugin:
    @hookimpl
    def register_rule_kinds(self) -> dict[str, Any]:
        return {"multiple_of": multiple_of}


class _Audit:
    def __init__(self) -> None:
        self.names: list[str] = []

    @hookimpl
    def post_validate(self, name: str, is_valid: bool, errors: list[str]) -> None:
        self.names.append(name)


class _BrokenAudit:
    @hookimpl
    def post_validate(self, name: str) -> None:
        raise RuntimeError("audit down")


class TestCheck:
    def test_valid_record(self, rules_file: Path) -> None:
        record = {"username": "alice", "password": "s3cret", "confirm": "s3cret"}
        result = CheckService().check(load_rule_set(rules_file), record)
        assert result.ok
        assert result.op == "check"
        assert result.data["count"] == 3
        assert result.data["fields"]["confirm"] == {"valid": True, "errors": []}

    def test_invalid_record(self, rules_file: Path) -> None:
        record = {"username": "al", "password": "s3cret", "confirm": "other"}
        result = CheckService().check(load_rule_set(rules_file), record)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.detail["errors"] == {
            "username": ["Usernames need at least 3 characters."],
            "confirm": ["Passwords do not match."],
        }

    def test_missing_fields_use_initial(self, rules_file: Path) -> None:
        result = CheckService().check(load_rule_set(rules_file), {})
        assert result.error is not None
        errors = result.error.detail["errors"]
        assert errors["username"] == [
            "A username is required.",
            "Usernames need at least 3 characters.",
        ]
        assert errors["password"] == ["A password is required."]
        assert "confirm" not in errors  # None == None

    def test_extra_record_field_warns(self) -> None:
        rule_set = _rule_set({"fields": {"name": {"rules": [{"kind": "required"}]}}})
        result = CheckService().check(rule_set, {"name": "x", "nickname": "y"})
        assert result.ok
        assert result.warnings == ["Record field 'nickname' has no rules"]

    def test_unknown_kind(self) -> None:
        rule_set = _rule_set({"fields": {"n": {"rules": [{"kind": "prime"}, {"kind": "odd"}]}}})
        result = CheckService().check(rule_set, {"n": 3})
        assert result.error is not None
        assert result.error.code == "UNKNOWN_RULE_KIND"
        assert result.error.detail == {"kinds": ["odd", "prime"]}

    def test_bad_params_is_config_error(self) -> None:
        rule_set = _rule_set(
            {"fields": {"n": {"rules": [{"kind": "min_length", "params": {"size": 2}}]}}}
        )
        result = CheckService().check(rule_set, {"n": "abc"})
        assert result.error is not None
        assert result.error.code == "CONFIG_ERROR"

    def test_unknown_dependency_is_config_error(self) -> None:
        rule_set = _rule_set(
            {
                "fields": {
                    "confirm": {
                        "rules": [{"kind": "equals_field", "params": {"other": "password"}}]
                    }
                }
            }
        )
        result = CheckService().check(rule_set, {"confirm": "x"})
        assert result.error is not None
        assert result.error.code == "CONFIG_ERROR"
        assert "Unknown dependency" in result.error.message

    def test_wrongly_typed_value_fails_rule(self) -> None:
        rule_set = _rule_set(
            {"fields": {"name": {"rules": [{"kind": "min_length", "params": {"min": 3}}]}}}
        )
        result = CheckService().check(rule_set, {"name": 12345})
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.detail["errors"] == {"name": ["Must be at least 3 characters."]}

    def test_unorderable_values_fail_comparisons(self) -> None:
        rule_set = _rule_set(
            {
                "fields": {
                    "age": {"rules": [{"kind": "in_range", "params": {"min": 18}}]},
                    "end": {
                        "rules": [
                            {"kind": "compare_field", "params": {"other": "start", "op": "gt"}}
                        ]
                    },
                    "start": {},
                }
            }
        )
        result = CheckService().check(rule_set, {"age": "old", "end": 5, "start": "now"})
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert sorted(result.error.detail["errors"]) == ["age", "end"]

    def test_explicit_depends_on(self) -> None:
        rule_set = _rule_set(
            {"fields": {"a": {"depends_on": ["b"]}, "b": {"rules": [{"kind": "required"}]}}}
        )
        validator = CheckService().build_validator(rule_set)
        assert validator.dependents_of("b") == ["a"]

    def test_engine_auto_validate_applies(self) -> None:
        rule_set = _rule_set(
            {
                "fields": {
                    "a": {"rules": [{"kind": "required"}]},
                    "b": {"rules": [{"kind": "required"}], "auto_validate": True},
                }
            }
        )
        validator = CheckService(engine=EngineConfig(auto_validate=False)).build_validator(
            rule_set
        )
        assert validator.auto_validate is False
        assert validator["a"].auto_validate is False
        assert validator["b"].auto_validate is True


class TestPlugins:
    def test_plugin_rule_kind(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_MultiplePlugin())
        rule_set = _rule_set(
            {"fields": {"n": {"rules": [{"kind": "multiple_of", "params": {"factor": 3}}]}}}
        )
        result = CheckService(pm).check(rule_set, {"n": 4})
        assert result.error is not None
        assert result.error.detail["errors"] == {"n": ["Must be a multiple of 3."]}

    def test_raising_plugin_rule_is_rule_error(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_MultiplePlugin())
        rule_set = _rule_set(
            {"fields": {"n": {"rules": [{"kind": "multiple_of", "params": {"factor": 3}}]}}}
        )
        result = CheckService(pm).check(rule_set, {"n": "abc"})
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "RULE_ERROR"
        assert "TypeError" in result.error.message

    def test_post_validate_per_field(self, rules_file: Path) -> None:
        pm = PluginManager()
        audit = _Audit()
        pm.register_plugin(audit)
        CheckService(pm).check(load_rule_set(rules_file), {})
        assert audit.names == ["username", "password", "confirm"]

    def test_plugin_failure_is_warning(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_BrokenAudit(), name="audit")
        rule_set = _rule_set({"fields": {"name": {"rules": [{"kind": "required"}]}}})
        result = CheckService(pm).check(rule_set, {"name": "x"})
        assert result.ok
        assert result.warnings == ["Plugin audit failed in post_validate"]


class TestCheckFiles:
    def test_reads_json_record(self, rules_file: Path, tmp_path: Path) -> None:
        record = tmp_path / "record.json"
        record.write_text(json.dumps({"username": "alice", "password": "x", "confirm": "x"}))
        result = CheckService().check_files(rules_file, record)
        assert result.ok

    def test_missing_rule_set(self, tmp_path: Path) -> None:
        record = tmp_path / "record.json"
        record.write_text("{}")
        result = CheckService().check_files(tmp_path / "missing.toml", record)
        assert result.error is not None
        assert result.error.code == "CONFIG_ERROR"

    def test_malformed_record(self, rules_file: Path, tmp_path: Path) -> None:
        record = tmp_path / "record.json"
        record.write_text("{not json")
        result = CheckService().check_files(rules_file, record)
        assert result.error is not None
        assert result.error.code == "INVALID_RECORD"

    def test_record_must_be_object(self, rules_file: Path, tmp_path: Path) -> None:
        record = tmp_path / "record.json"
        record.write_text("[1, 2]")
        result = CheckService().check_files(rules_file, record)
        assert result.error is not None
        assert result.error.code == "INVALID_RECORD"


class TestListRuleKinds:
    def test_builtins_sorted_with_summaries(self) -> None:
        result = CheckService().list_rule_kinds()
        assert result.ok
        assert result.op == "rules"
        kinds = [item["kind"] for item in result.data["items"]]
        assert kinds == sorted(kinds)
        assert result.data["count"] == 8
        assert all(item["summary"] for item in result.data["items"])

    def test_includes_plugin_kinds(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_MultiplePlugin())
        items = CheckService(pm).list_rule_kinds().data["items"]
        assert {"kind": "multiple_of", "summary": "Integer divisible by *factor*."} in items
