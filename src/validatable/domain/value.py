"""ValidatableValue — a value, its ordered rules, and derived validity.

``errors`` and ``is_valid`` are derived state. They change only when a
validation pass completes, and always describe the same pass:
``is_valid`` is True iff ``errors`` is empty.

Lifecycle: rules are attached right after construction. The first
subscription or the first validation pass exposes the object, after
which the rule list is fixed so evaluation stays deterministic.

Each pass takes a new generation number. A synchronous pass marks its
generation as executing; a second ``validate()`` while it is marked is a
re-entrant call and fails fast without touching ``errors``. An
asynchronous pass releases the mark across its ``await`` points. It
commits only if the value did not change in the meantime and no newer
pass has committed; a pass that saw an outdated value starts over
against the current one. Cancelled passes publish nothing.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from validatable.domain.errors import ConfigurationError, ReentrantValidationError
from validatable.domain.notify import Observable
from validatable.domain.rules import Rule

logger = logging.getLogger(__name__)

type ContextProvider = Callable[[Iterable[str]], Mapping[str, Any]]


class ValidatableValue[T](Observable):
    """Observable value with ordered validation rules.

    Observable properties: ``value``, ``errors``, ``is_valid``.

    Parameters:
        value: Initial value. Assigning it never notifies.
        rules: Rules evaluated in this order on every pass.
        name: Identifier used in logs and by an owning :class:`Validator`.
        auto_validate: Run :meth:`validate` after every real value change.
    """

    def __init__(
        self,
        value: T,
        rules: Iterable[Rule[T]] = (),
        *,
        name: str = "value",
        auto_validate: bool = False,
    ) -> None:
        super().__init__()
        self.name = name
        self.auto_validate = auto_validate
        self._rules: list[Rule[T]] = []
        self._value = value
        self._errors: tuple[str, ...] = ()
        self._is_valid = True
        self._sealed = False
        self._generation = 0
        self._executing: int | None = None
        self._value_version = 0
        self._checked_version = -1
        self._committed_generation = 0
        self._context_provider: ContextProvider | None = None
        for rule in rules:
            self.add_rule(rule)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, value={self._value!r}, "
            f"is_valid={self._is_valid})"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self.set_value(value)

    @property
    def rules(self) -> tuple[Rule[T], ...]:
        return tuple(self._rules)

    @property
    def errors(self) -> tuple[str, ...]:
        """Failure messages from the last completed pass, in rule order."""
        return self._errors

    @property
    def is_valid(self) -> bool:
        return self._is_valid

    @property
    def first_error(self) -> str | None:
        return self._errors[0] if self._errors else None

    @property
    def generation(self) -> int:
        """Number of validation passes started so far."""
        return self._generation

    @property
    def value_version(self) -> int:
        """Counter bumped on every real value change."""
        return self._value_version

    @property
    def is_current(self) -> bool:
        """True when the last committed pass checked the current value."""
        return self._checked_version == self._value_version

    @property
    def is_sealed(self) -> bool:
        """True once the rule list can no longer change."""
        return self._sealed

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Names of other fields read by this value's rules, first use first."""
        seen: dict[str, None] = {}
        for rule in self._rules:
            for name in rule.depends_on:
                seen.setdefault(name, None)
        return tuple(seen)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def add_rule(self, rule: Rule[T]) -> None:
        """Append *rule* to the evaluation order.

        Raises:
            ConfigurationError: The object was already exposed.
        """
        if self._sealed:
            msg = (
                f"Cannot add rule {rule.kind!r} to {self.name!r}: rules are fixed once "
                "the value has subscribers or has been validated"
            )
            raise ConfigurationError(msg)
        self._rules.append(rule)

    def bind_context(self, provider: ContextProvider | None) -> None:
        """Set the callable that reads dependency values at validation time.

        Raises:
            ConfigurationError: Already bound to a different provider.
        """
        if (
            provider is not None
            and self._context_provider is not None
            and self._context_provider != provider
        ):
            msg = f"{self.name!r} is already bound to another validator"
            raise ConfigurationError(msg)
        self._context_provider = provider

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_value(self, value: T) -> bool:
        """Replace the value. Returns False (and notifies nobody) if it is equal."""
        with self.batch():
            if not self._assign("value", value):
                return False
            self._value_version += 1
            if self.auto_validate:
                self.validate()
        return True

    def validate(self) -> bool:
        """Run every rule in order against the current value and publish the result.

        A failing rule is a normal outcome recorded in ``errors``. If a
        predicate raises, the exception propagates and the previous
        result stays in place.

        Raises:
            ReentrantValidationError: A pass on this object is already executing.
            ConfigurationError: A rule returned an awaitable, or a dependency
                could not be read.
        """
        generation = self._begin_pass()
        value = self._value
        version = self._value_version
        try:
            context = self._read_context()
            errors: list[str] = []
            for rule in self._rules:
                ok = rule.check(value, context)
                if inspect.isawaitable(ok):
                    if inspect.iscoroutine(ok):
                        ok.close()
                    msg = (
                        f"Rule {rule.kind!r} on {self.name!r} is asynchronous; "
                        "use validate_async()"
                    )
                    raise ConfigurationError(msg)
                if not ok:
                    errors.append(rule.format_message(value, context))
        finally:
            self._executing = None
        self._commit(errors, generation, version)
        logger.debug(
            "Validated %s (pass %d): %d error(s)", self.name, generation, len(errors)
        )
        return self._is_valid

    async def validate_async(self) -> bool:
        """Like :meth:`validate`, awaiting rules whose predicate returns an awaitable.

        If the value changes while the pass is suspended, the pass starts
        over against the new value, so the returned validity always
        describes the value held when this call returns. A pass overtaken
        by a newer committed pass on the same value is discarded and the
        newer result returned.
        """
        while True:
            generation = self._begin_pass()
            value = self._value
            version = self._value_version
            try:
                context = self._read_context()
                errors: list[str] = []
                for rule in self._rules:
                    ok = rule.check(value, context)
                    if inspect.isawaitable(ok):
                        ok = await self._await_released(generation, ok)
                    if not ok:
                        errors.append(rule.format_message(value, context))
            finally:
                self._executing = None
            if version != self._value_version:
                logger.debug(
                    "Pass %d on %s checked an outdated value; starting over",
                    generation,
                    self.name,
                )
                continue
            if generation < self._committed_generation:
                logger.debug(
                    "Discarded pass %d on %s; pass %d already committed",
                    generation,
                    self.name,
                    self._committed_generation,
                )
                return self._is_valid
            self._commit(errors, generation, version)
            logger.debug(
                "Validated %s (async pass %d): %d error(s)", self.name, generation, len(errors)
            )
            return self._is_valid

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _exposed(self) -> None:
        self._sealed = True

    def _begin_pass(self) -> int:
        if self._executing is not None:
            raise ReentrantValidationError(self.name, self._executing)
        self._sealed = True
        self._generation += 1
        self._executing = self._generation
        return self._generation

    async def _await_released(self, generation: int, pending: Awaitable[Any]) -> Any:
        # Other code may run (and validate) while this pass is suspended.
        self._executing = None
        try:
            return await pending
        finally:
            self._executing = generation

    def _read_context(self) -> Mapping[str, Any] | None:
        names = self.dependencies
        if not names:
            return None
        if self._context_provider is None:
            msg = f"{self.name!r} has rules depending on {list(names)} but no validator"
            raise ConfigurationError(msg)
        return self._context_provider(names)

    def _commit(self, errors: list[str], generation: int, version: int) -> None:
        self._committed_generation = generation
        self._checked_version = version
        with self.batch():
            self._assign("errors", tuple(errors))
            self._assign("is_valid", not errors)
