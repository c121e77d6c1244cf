"""validatable — observable values with ordered rules and dependent-field revalidation."""

from validatable.domain.errors import (
    ConfigurationError,
    ReentrantValidationError,
    ValidatableError,
)
from validatable.domain.notify import Observable, PropertyChanged
from validatable.domain.rules import BUILTIN_RULES, Rule, create_rule, rule
from validatable.domain.validator import Submission, Validator
from validatable.domain.value import ValidatableValue

__version__ = "0.1.0"

__all__ = [
    "BUILTIN_RULES",
    "ConfigurationError",
    "Observable",
    "PropertyChanged",
    "ReentrantValidationError",
    "Rule",
    "Submission",
    "ValidatableError",
    "ValidatableValue",
    "Validator",
    "__version__",
    "create_rule",
    "rule",
]
