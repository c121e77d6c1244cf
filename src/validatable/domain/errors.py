"""Error taxonomy for the validation core.

A failing rule is never an exception: it is data in ``errors``/``is_valid``.
Exceptions here signal programming mistakes in the owning component and
propagate synchronously to the immediate caller.
"""

from __future__ import annotations


class ValidatableError(Exception):
    """Base class for all errors raised by validatable."""


class ConfigurationError(ValidatableError):
    """A validation object was configured or used against its contract.

    Raised for rules attached after exposure, unknown dependencies,
    self-dependencies, and awaitable rules used on the synchronous path.
    """


class ReentrantValidationError(ConfigurationError):
    """``validate()`` was called while a pass on the same object was running."""

    def __init__(self, name: str, generation: int) -> None:
        self.name = name
        self.generation = generation
        super().__init__(
            f"validate() re-entered on {name!r} while pass {generation} is still executing"
        )
