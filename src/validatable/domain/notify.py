"""Change notification — per-property publish/subscribe with coalescing.

Every observable object moves through two states, ``Constructing -> Live``.
The switch happens in the metaclass once ``__init__`` has returned, so
assignments made while an object is being built never notify anyone.

Once live, each property assignment that changes a value produces one
``PropertyChanged`` event. Inside a unit of work (``batch()``, nestable)
events are held back and coalesced: at most one event per property,
delivered when the outermost unit exits, and none if the property ended
up back at the value it had when the unit began. Every public mutating
operation opens its own unit, so observers only ever see an object whose
invariants hold.

Asynchronous callers open one unit per synchronous segment (the code
between two ``await`` points). A unit must not be held across an
``await``.

INVARIANT: Subscriber failures are logged, never raised. One failing
callback never prevents delivery to the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Self

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class PropertyChanged:
    """Event delivered to subscribers of a single property."""

    sender: Any
    name: str
    old_value: Any
    new_value: Any


type Callback = Callable[[PropertyChanged], None]


def values_equal(old: Any, new: Any) -> bool:
    """Value equality with an identity shortcut.

    Objects whose ``==`` has no truth value (elementwise comparisons)
    are treated as different.
    """
    if old is new:
        return True
    try:
        return bool(old == new)
    except (TypeError, ValueError):
        return False


class PropertyChannel:
    """Property identifier -> subscriber callbacks, in subscription order."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callback]] = {}

    def subscribe(self, name: str, callback: Callback) -> Callable[[], None]:
        """Register *callback* for *name*. Returns a function that unsubscribes it."""
        callbacks = self._subscribers.setdefault(name, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            for i, registered in enumerate(callbacks):
                if registered is callback:
                    del callbacks[i]
                    return

        return unsubscribe

    def subscriber_count(self, name: str | None = None) -> int:
        """Number of callbacks for *name*, or across all properties."""
        if name is not None:
            return len(self._subscribers.get(name, ()))
        return sum(len(callbacks) for callbacks in self._subscribers.values())

    def publish(self, event: PropertyChanged) -> int:
        """Deliver *event* to every subscriber of ``event.name``.

        Returns the number of callbacks that raised.
        """
        failures = 0
        # Snapshot: callbacks may subscribe or unsubscribe while we dispatch.
        for callback in list(self._subscribers.get(event.name, ())):
            try:
                callback(event)
            except Exception:
                failures += 1
                logger.warning(
                    "Subscriber %r failed handling %r change on %r",
                    callback,
                    event.name,
                    event.sender,
                    exc_info=True,
                )
        return failures


class _ObservableMeta(type):
    """Flip instances to live once the outermost ``__init__`` returns."""

    def __call__(cls, *args: Any, **kwargs: Any) -> Any:
        instance = super().__call__(*args, **kwargs)
        instance._go_live()
        return instance


class Observable(metaclass=_ObservableMeta):
    """Base class for objects publishing property-level change events.

    Subclasses keep each observable property in a ``_<name>`` backing
    attribute and change it only through :meth:`_assign`.
    """

    _live: bool = False

    def __init__(self) -> None:
        self._channel = PropertyChannel()
        self._unit_depth = 0
        self._pending: dict[str, Any] = {}

    @property
    def is_live(self) -> bool:
        """False while the object is still being constructed."""
        return self._live

    def subscribe(self, name: str, callback: Callback) -> Callable[[], None]:
        """Subscribe *callback* to changes of property *name*."""
        self._exposed()
        return self._channel.subscribe(name, callback)

    @contextmanager
    def batch(self) -> Iterator[Self]:
        """Open a unit of work; coalesced events fire when the outermost unit exits."""
        self._unit_depth += 1
        try:
            yield self
        finally:
            self._unit_depth -= 1
            if self._unit_depth == 0 and self._pending:
                self._flush()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _exposed(self) -> None:
        """Hook called when a subscriber is attached."""

    def _go_live(self) -> None:
        self._live = True

    def _assign(self, name: str, value: Any) -> bool:
        """Set property *name*; record a change event if the value differs.

        Returns whether the value changed.
        """
        attr = f"_{name}"
        old = getattr(self, attr, _UNSET)
        if old is not _UNSET and values_equal(old, value):
            return False
        setattr(self, attr, value)
        if not self._live:
            return True
        # Keep the value from before the first change in this unit.
        self._pending.setdefault(name, old)
        if self._unit_depth == 0:
            self._flush()
        return True

    def _flush(self) -> None:
        while self._pending:
            pending, self._pending = self._pending, {}
            for name, old in pending.items():
                new = getattr(self, f"_{name}")
                if values_equal(old, new):
                    continue
                self._channel.publish(PropertyChanged(self, name, old, new))
