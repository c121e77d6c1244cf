"""Rules — a failure message paired with a pure predicate.

A rule is a tagged function object, not a class hierarchy: ``Rule`` holds
the message, the predicate, and the names of any fields the predicate
needs to read. Dependency values are passed in explicitly through a
context mapping at check time; predicates never reach into shared state.

Built-in factories are collected in ``BUILTIN_RULES`` so rule sets loaded
from configuration can refer to them by kind.
"""

from __future__ import annotations

import logging
import operator
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sized
from dataclasses import dataclass, field, replace
from typing import Any

from validatable.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

type Predicate = Callable[..., bool | Awaitable[bool]]
type RuleFactory = Callable[..., Rule[Any]]


@dataclass(frozen=True)
class Rule[T]:
    """A single predicate over a value plus the message shown when it fails.

    Attributes:
        message: Failure text. May contain ``{value}`` or parameter
            placeholders such as ``{min}``; formatted only when it has a brace.
        predicate: Pure function. Called as ``predicate(value)``, or
            ``predicate(value, *deps)`` when ``depends_on`` is non-empty.
        depends_on: Names of other fields whose current values the
            predicate receives, in this order.
        kind: Registry name of the factory that built the rule.
        params: Factory parameters, available to message formatting.
    """

    message: str
    predicate: Predicate
    depends_on: tuple[str, ...] = ()
    kind: str = "custom"
    params: dict[str, Any] = field(default_factory=dict, compare=False)

    def check(
        self, value: T, context: Mapping[str, Any] | None = None
    ) -> bool | Awaitable[bool]:
        """Return True when *value* satisfies the rule.

        Raises:
            ConfigurationError: A declared dependency is missing from *context*.
        """
        if not self.depends_on:
            return self.predicate(value)
        if context is None:
            msg = f"Rule {self.kind!r} depends on {list(self.depends_on)} but no context was given"
            raise ConfigurationError(msg)
        missing = [name for name in self.depends_on if name not in context]
        if missing:
            msg = f"Rule {self.kind!r} is missing dependency values for {missing}"
            raise ConfigurationError(msg)
        return self.predicate(value, *(context[name] for name in self.depends_on))

    def format_message(self, value: T, context: Mapping[str, Any] | None = None) -> str:
        """Render the failure message for *value*."""
        if "{" not in self.message:
            return self.message
        fmt: dict[str, Any] = {**self.params, "value": value}
        if context:
            fmt.update({name: context.get(name) for name in self.depends_on})
        try:
            return self.message.format(**fmt)
        except (KeyError, IndexError, ValueError):
            logger.debug("Message for rule %s left unformatted: %r", self.kind, self.message)
            return self.message

    def with_message(self, message: str) -> Rule[T]:
        """Return a copy of this rule carrying a different message."""
        return replace(self, message=message)


def rule(message: str, *, depends_on: Iterable[str] = ()) -> Callable[[Predicate], Rule[Any]]:
    """Decorator turning a predicate function into a :class:`Rule`.

    Usage::

        @rule("Passwords do not match.", depends_on=["password"])
        def matches_password(value, password):
            return value == password
    """

    def decorator(fn: Predicate) -> Rule[Any]:
        return Rule(message, fn, tuple(depends_on), kind=getattr(fn, "__name__", "custom"))

    return decorator


# --- Built-in rule factories ---


def required(message: str = "A value is required.") -> Rule[Any]:
    """Fails for None, blank strings, and empty containers."""

    def _required(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, Sized):
            return len(value) > 0
        return True

    return Rule(message, _required, kind="required")


def min_length(min: int, message: str = "Must be at least {min} characters.") -> Rule[Any]:
    """Length of the value must be at least *min*; values without a length fail."""

    def _min_length(value: Any) -> bool:
        return isinstance(value, Sized) and len(value) >= min

    return Rule(message, _min_length, kind="min_length", params={"min": min})


def max_length(max: int, message: str = "Must be at most {max} characters.") -> Rule[Any]:
    """Length of the value must be at most *max*; None passes, other unsized values fail."""

    def _max_length(value: Any) -> bool:
        if value is None:
            return True
        return isinstance(value, Sized) and len(value) <= max

    return Rule(message, _max_length, kind="max_length", params={"max": max})


def matches(pattern: str, message: str = "Has an invalid format.", flags: int = 0) -> Rule[Any]:
    """The whole of ``str(value)`` must match *pattern*."""
    compiled = re.compile(pattern, flags)

    def _matches(value: Any) -> bool:
        return value is not None and compiled.fullmatch(str(value)) is not None

    return Rule(message, _matches, kind="matches", params={"pattern": pattern})


def in_range(
    min: Any = None,
    max: Any = None,
    message: str = "Must be between {min} and {max}.",
) -> Rule[Any]:
    """Inclusive bounds; either bound may be omitted.

    Values that cannot be ordered against the bounds fail.
    """

    def _in_range(value: Any) -> bool:
        if value is None:
            return False
        try:
            if min is not None and value < min:
                return False
            return not (max is not None and value > max)
        except TypeError:
            return False

    return Rule(message, _in_range, kind="in_range", params={"min": min, "max": max})


def one_of(choices: Iterable[Any], message: str = "Must be one of {choices}.") -> Rule[Any]:
    """Value must be one of *choices*."""
    allowed = tuple(choices)

    def _one_of(value: Any) -> bool:
        return value in allowed

    return Rule(message, _one_of, kind="one_of", params={"choices": list(allowed)})


def equals_field(other: str, message: str = "Must match {other}.") -> Rule[Any]:
    """Valid iff the value equals the current value of field *other*."""

    def _equals_field(value: Any, other_value: Any) -> bool:
        return bool(value == other_value)

    return Rule(
        message, _equals_field, depends_on=(other,), kind="equals_field", params={"other": other}
    )


COMPARISONS: dict[str, Callable[[Any, Any], Any]] = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
    "eq": operator.eq,
    "ne": operator.ne,
}


def compare_field(
    other: str,
    op: str,
    message: str = "Fails the {op} comparison with {other}.",
) -> Rule[Any]:
    """Compare the value against field *other* with one of ``COMPARISONS``.

    Fails when either side is None or the two values cannot be compared.
    """
    if op not in COMPARISONS:
        msg = f"Unknown comparison {op!r}; expected one of {sorted(COMPARISONS)}"
        raise ConfigurationError(msg)
    compare = COMPARISONS[op]

    def _compare_field(value: Any, other_value: Any) -> bool:
        if value is None or other_value is None:
            return False
        try:
            return bool(compare(value, other_value))
        except TypeError:
            return False

    return Rule(
        message,
        _compare_field,
        depends_on=(other,),
        kind="compare_field",
        params={"other": other, "op": op},
    )


BUILTIN_RULES: dict[str, RuleFactory] = {
    "required": required,
    "min_length": min_length,
    "max_length": max_length,
    "matches": matches,
    "in_range": in_range,
    "one_of": one_of,
    "equals_field": equals_field,
    "compare_field": compare_field,
}


def create_rule(
    kind: str,
    *,
    message: str | None = None,
    params: Mapping[str, Any] | None = None,
    registry: Mapping[str, RuleFactory] | None = None,
) -> Rule[Any]:
    """Build a rule from its registry *kind* and factory parameters.

    Raises:
        ConfigurationError: Unknown kind, or parameters the factory rejects.
    """
    kinds = BUILTIN_RULES if registry is None else registry
    factory = kinds.get(kind)
    if factory is None:
        msg = f"Unknown rule kind {kind!r}"
        raise ConfigurationError(msg)
    kwargs = dict(params or {})
    if message is not None:
        kwargs["message"] = message
    try:
        return factory(**kwargs)
    except (TypeError, re.error) as exc:
        msg = f"Invalid parameters for rule kind {kind!r}: {exc}"
        raise ConfigurationError(msg) from exc
