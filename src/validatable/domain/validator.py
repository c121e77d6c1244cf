"""Validator — coordinates validation across fields with dependent rules.

Dependencies live in a NetworkX DiGraph with an edge ``A -> B`` for
"validating A reads the current value of B". Edges come from each rule's
``depends_on`` when a field is added, or from :meth:`Validator.depends`.

When B's value changes, every direct dependent of B is scheduled for
revalidation through its own ``validate()``. Scheduling is deduplicated
per unit of work: inside ``Validator.batch()`` any number of changes to B
revalidate A exactly once, after the outermost unit exits. Outside an
explicit batch each public mutation is its own unit.

Dependency values are read from the live fields at validation time; no
snapshot is taken across passes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Self

import networkx as nx

from validatable.domain.errors import ConfigurationError
from validatable.domain.notify import Observable, PropertyChanged
from validatable.domain.value import ValidatableValue

logger = logging.getLogger(__name__)

type _Graph = nx.DiGraph


@dataclass(frozen=True)
class Submission[R]:
    """Outcome of :meth:`Validator.submit`.

    Attributes:
        submitted: Whether the action ran (all fields were valid).
        errors: Field name -> messages, for fields that failed.
        result: The action's return value when it ran.
    """

    submitted: bool
    errors: dict[str, tuple[str, ...]] = field(default_factory=dict)
    result: R | None = None


class Validator(Observable):
    """Orchestrates a set of named :class:`ValidatableValue` fields.

    Observable properties: ``is_valid`` (all fields valid) and ``errors``
    (field name -> messages, failing fields only).

    Parameters:
        fields: Initial fields, registered in iteration order.
        auto_validate: Revalidate dependents when a dependency changes.
    """

    def __init__(
        self,
        fields: Mapping[str, ValidatableValue[Any]] | None = None,
        *,
        auto_validate: bool = True,
    ) -> None:
        super().__init__()
        self.auto_validate = auto_validate
        self._fields: dict[str, ValidatableValue[Any]] = {}
        self._graph: _Graph = nx.DiGraph()
        self._scheduled: dict[str, None] = {}
        self._batch_depth = 0
        self._unsubscribers: list[Callable[[], None]] = []
        self._is_valid = True
        self._errors: dict[str, tuple[str, ...]] = {}
        for name, value in (fields or {}).items():
            self.add(name, value)

    def __repr__(self) -> str:
        return f"Validator(fields={list(self._fields)}, is_valid={self._is_valid})"

    # ------------------------------------------------------------------
    # Mapping-style access
    # ------------------------------------------------------------------

    def __getitem__(self, name: str) -> ValidatableValue[Any]:
        return self._fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def is_valid(self) -> bool:
        return self._is_valid

    @property
    def errors(self) -> dict[str, tuple[str, ...]]:
        return dict(self._errors)

    @property
    def graph(self) -> _Graph:
        """Read-only view of the dependency graph."""
        return self._graph.copy(as_view=True)

    def values(self) -> dict[str, Any]:
        """Snapshot of every field's current value."""
        return {name: value.value for name, value in self._fields.items()}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add[T](self, name: str, value: ValidatableValue[T]) -> ValidatableValue[T]:
        """Register *value* under *name* and wire up its dependencies.

        Rules must already be attached: subscribing exposes the value.
        """
        if name in self._fields:
            msg = f"Field {name!r} is already registered"
            raise ConfigurationError(msg)
        value.bind_context(self._read_context)
        value.name = name
        self._fields[name] = value
        self._graph.add_node(name)
        for dependency in value.dependencies:
            self.depends(name, dependency)
        self._unsubscribers.extend(
            [
                value.subscribe("value", partial(self._on_value_changed, name)),
                value.subscribe("errors", self._on_result_changed),
                value.subscribe("is_valid", self._on_result_changed),
            ]
        )
        self._refresh()
        logger.debug("Registered field %s", name)
        return value

    def depends(self, dependent: str, on: str) -> None:
        """Record that validating *dependent* reads the value of *on*."""
        if dependent == on:
            msg = f"Field {dependent!r} cannot depend on itself"
            raise ConfigurationError(msg)
        self._graph.add_edge(dependent, on)

    def dependents_of(self, name: str) -> list[str]:
        """Fields whose rules read *name*."""
        if name not in self._graph:
            return []
        return list(self._graph.predecessors(name))

    def dependencies_of(self, name: str) -> list[str]:
        """Fields read by *name*'s rules."""
        if name not in self._graph:
            return []
        return list(self._graph.successors(name))

    def close(self) -> None:
        """Detach from every field. The validator is unusable afterwards."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        for value in self._fields.values():
            value.bind_context(None)
        self._scheduled.clear()

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Iterator[Self]:
        """One unit of work across every field.

        Field notifications are coalesced per field, dependents are
        revalidated once, and the aggregate properties notify last.
        """
        with super().batch():
            self._batch_depth += 1
            try:
                with ExitStack() as stack:
                    for value in list(self._fields.values()):
                        stack.enter_context(value.batch())
                    yield self
            finally:
                self._batch_depth -= 1
                if self._batch_depth == 0:
                    self._run_scheduled()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, name: str) -> bool:
        return self._fields[name].validate()

    def validate_all(self) -> bool:
        """Validate every field in registration order; no short-circuit."""
        with self.batch():
            results = [value.validate() for value in self._fields.values()]
        return all(results)

    async def validate_all_async(self) -> bool:
        """Run every field's asynchronous pass concurrently."""
        results = await asyncio.gather(
            *(value.validate_async() for value in self._fields.values())
        )
        return all(results)

    async def submit[R](self, action: Callable[[dict[str, Any]], Awaitable[R]]) -> Submission[R]:
        """Validate everything, then await ``action(values)`` if all fields pass.

        The values handed to *action* are a snapshot taken in the same
        segment that finished validation. If any field changed while the
        round was suspended, every field is validated again, since a
        change may also affect the fields that depend on it.
        """
        while True:
            versions = self._versions()
            valid = await self.validate_all_async()
            if versions == self._versions():
                break
            logger.debug("Fields changed during validation; validating again")
        if not valid:
            return Submission(submitted=False, errors=self.errors)
        values = self.values()
        logger.debug("Submitting %d field(s)", len(values))
        result = await action(values)
        return Submission(submitted=True, result=result)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _versions(self) -> dict[str, int]:
        return {name: value.value_version for name, value in self._fields.items()}

    def _read_context(self, names: Iterable[str]) -> dict[str, Any]:
        context: dict[str, Any] = {}
        for name in names:
            value = self._fields.get(name)
            if value is None:
                msg = f"Unknown dependency {name!r}; registered fields: {list(self._fields)}"
                raise ConfigurationError(msg)
            context[name] = value.value
        return context

    def _on_value_changed(self, name: str, event: PropertyChanged) -> None:
        if not self.auto_validate:
            return
        dependents = self.dependents_of(name)
        if not dependents:
            return
        for dependent in dependents:
            self._scheduled.setdefault(dependent, None)
        logger.debug("Change to %s scheduled revalidation of %s", name, dependents)
        if self._batch_depth == 0:
            self._run_scheduled()

    def _on_result_changed(self, event: PropertyChanged) -> None:
        self._refresh()

    def _run_scheduled(self) -> None:
        with super().batch():
            while self._scheduled:
                name = next(iter(self._scheduled))
                del self._scheduled[name]
                value = self._fields.get(name)
                if value is not None:
                    value.validate()

    def _refresh(self) -> None:
        errors = {name: value.errors for name, value in self._fields.items() if value.errors}
        with super().batch():
            self._assign("errors", errors)
            self._assign("is_valid", not errors)
