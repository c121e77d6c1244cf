"""Tests for rules, the rule decorator, and built-in factories."""

from __future__ import annotations

import asyncio

import pytest

from validatable.domain.errors import ConfigurationError
from validatable.domain.rules import (
    BUILTIN_RULES,
    Rule,
    compare_field,
    create_rule,
    equals_field,
    in_range,
    matches,
    max_length,
    min_length,
    one_of,
    required,
    rule,
)


class TestRule:
    def test_check_calls_predicate(self) -> None:
        r = Rule("Must be positive.", lambda v: v > 0)
        assert r.check(1) is True
        assert r.check(-1) is False

    def test_frozen(self) -> None:
        r = Rule("msg", bool)
        with pytest.raises(Exception):
            r.message = "other"  # type: ignore[misc]

    def test_with_message_copies(self) -> None:
        r = required("A value is required.")
        other = r.with_message("A username is required.")
        assert other.message == "A username is required."
        assert r.message == "A value is required."
        assert other.predicate is r.predicate

    def test_dependent_rule_receives_context_in_declared_order(self) -> None:
        seen: list[tuple[object, ...]] = []

        def predicate(value: object, a: object, b: object) -> bool:
            seen.append((value, a, b))
            return True

        r = Rule("msg", predicate, depends_on=("a", "b"))
        r.check("v", {"b": 2, "a": 1})
        assert seen == [("v", 1, 2)]

    def test_dependent_rule_without_context_is_configuration_error(self) -> None:
        r = equals_field("password")
        with pytest.raises(ConfigurationError, match="no context"):
            r.check("x")

    def test_dependent_rule_missing_value_is_configuration_error(self) -> None:
        r = equals_field("password")
        with pytest.raises(ConfigurationError, match="password"):
            r.check("x", {"other": 1})

    def test_async_predicate_returns_awaitable(self) -> None:
        async def available(value: str) -> bool:
            return value != "taken"

        r = Rule("Username is taken.", available)
        assert asyncio.run(r.check("free")) is True  # type: ignore[arg-type]
        assert asyncio.run(r.check("taken")) is False  # type: ignore[arg-type]


class TestFormatMessage:
    def test_plain_message_unchanged(self) -> None:
        assert required("A username is required.").format_message("") == (
            "A username is required."
        )

    def test_params_are_substituted(self) -> None:
        assert min_length(3).format_message("ab") == "Must be at least 3 characters."

    def test_value_is_substituted(self) -> None:
        r = Rule("{value} is not allowed.", lambda v: False)
        assert r.format_message("root") == "root is not allowed."

    def test_dependency_values_are_substituted(self) -> None:
        r = compare_field("start", "gt", message="Must be after {start}.")
        assert r.format_message(1, {"start": 5}) == "Must be after 5."

    def test_unknown_placeholder_left_as_is(self) -> None:
        r = Rule("Use {braces} literally.", lambda v: False)
        assert r.format_message("x") == "Use {braces} literally."


class TestRuleDecorator:
    def test_builds_rule_named_after_function(self) -> None:
        @rule("Must be even.")
        def even(value: int) -> bool:
            return value % 2 == 0

        assert isinstance(even, Rule)
        assert even.kind == "even"
        assert even.check(4) is True
        assert even.check(3) is False

    def test_depends_on(self) -> None:
        @rule("Passwords do not match.", depends_on=["password"])
        def matches_password(value: str, password: str) -> bool:
            return value == password

        assert matches_password.depends_on == ("password",)
        assert matches_password.check("x", {"password": "x"}) is True


class TestBuiltins:
    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_required_fails(self, value: object) -> None:
        assert required().check(value) is False

    @pytest.mark.parametrize("value", ["alice", [1], 0, False])
    def test_required_passes(self, value: object) -> None:
        assert required().check(value) is True

    def test_min_length(self) -> None:
        r = min_length(3)
        assert r.check("abc") is True
        assert r.check("ab") is False
        assert r.check(None) is False

    def test_max_length(self) -> None:
        r = max_length(3)
        assert r.check("abc") is True
        assert r.check("abcd") is False
        assert r.check(None) is True

    def test_matches_full_string(self) -> None:
        r = matches(r"[a-z]+")
        assert r.check("alice") is True
        assert r.check("alice1") is False
        assert r.check(None) is False

    def test_in_range(self) -> None:
        r = in_range(1, 10)
        assert r.check(1) is True
        assert r.check(10) is True
        assert r.check(0) is False
        assert r.check(11) is False
        assert r.check(None) is False

    def test_in_range_open_bound(self) -> None:
        assert in_range(min=0).check(10**9) is True

    def test_one_of(self) -> None:
        r = one_of(["a", "b"])
        assert r.check("a") is True
        assert r.check("c") is False
        assert r.format_message("c") == "Must be one of ['a', 'b']."

    def test_equals_field(self) -> None:
        r = equals_field("password")
        assert r.depends_on == ("password",)
        assert r.check("x", {"password": "x"}) is True
        assert r.check("x", {"password": "y"}) is False

    @pytest.mark.parametrize(
        ("op", "value", "other", "expected"),
        [
            ("lt", 1, 2, True),
            ("le", 2, 2, True),
            ("gt", 1, 2, False),
            ("ge", 2, 2, True),
            ("eq", 2, 3, False),
            ("ne", 2, 3, True),
        ],
    )
    def test_compare_field(self, op: str, value: int, other: int, expected: bool) -> None:
        assert compare_field("other", op).check(value, {"other": other}) is expected

    def test_compare_field_none_fails(self) -> None:
        assert compare_field("other", "lt").check(None, {"other": 1}) is False

    def test_compare_field_unknown_operator(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown comparison"):
            compare_field("other", "between")

    @pytest.mark.parametrize("value", [12345, 3.5, object()])
    def test_length_rules_fail_values_without_length(self, value: object) -> None:
        assert min_length(3).check(value) is False
        assert max_length(3).check(value) is False

    @pytest.mark.parametrize("value", ["x", [5], {"n": 5}])
    def test_in_range_fails_unorderable_values(self, value: object) -> None:
        assert in_range(1, 10).check(value) is False

    def test_compare_field_fails_mismatched_types(self) -> None:
        assert compare_field("other", "lt").check("a", {"other": 1}) is False
        assert compare_field("other", "ge").check(5, {"other": "5"}) is False
        # Equality across types is well defined.
        assert compare_field("other", "ne").check(5, {"other": "5"}) is True


class TestCreateRule:
    def test_registry_lists_builtins(self) -> None:
        assert set(BUILTIN_RULES) == {
            "required",
            "min_length",
            "max_length",
            "matches",
            "in_range",
            "one_of",
            "equals_field",
            "compare_field",
        }

    def test_creates_with_message_and_params(self) -> None:
        r = create_rule("min_length", message="Too short.", params={"min": 2})
        assert r.kind == "min_length"
        assert r.message == "Too short."
        assert r.check("a") is False

    def test_default_message_kept(self) -> None:
        assert create_rule("required").message == "A value is required."

    def test_unknown_kind(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown rule kind"):
            create_rule("nope")

    def test_bad_params(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid parameters"):
            create_rule("min_length", params={"minimum": 3})

    def test_bad_pattern(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid parameters"):
            create_rule("matches", params={"pattern": "("})

    def test_custom_registry(self) -> None:
        registry = {"even": lambda message="Must be even.": Rule(message, lambda v: v % 2 == 0)}
        r = create_rule("even", registry=registry)
        assert r.check(2) is True
        with pytest.raises(ConfigurationError):
            create_rule("required", registry=registry)
