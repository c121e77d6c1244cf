"""Shared pytest fixtures and test helpers for validatable tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from validatable.domain.notify import Observable, PropertyChanged

SIGNUP_RULES = """\
[fields.username]
rules = [
  { kind = "required", message = "A username is required." },
  { kind = "min_length", message = "Usernames need at least {min} characters.", params = { min = 3 } },
]

[fields.password]
rules = [{ kind = "required", message = "A password is required." }]

[fields.confirm]
rules = [
  { kind = "equals_field", message = "Passwords do not match.", params = { other = "password" } },
]
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    """Signup rule set written to a temp TOML file."""
    path = tmp_path / "signup.toml"
    path.write_text(SIGNUP_RULES)
    return path


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Generator[None]:
    """CLI invocations reconfigure logging; undo it after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    pkg_level = logging.getLogger("validatable").level
    engine_level = logging.getLogger("validatable.domain").level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("validatable").setLevel(pkg_level)
    logging.getLogger("validatable.domain").setLevel(engine_level)


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so no stray validatable.toml is discovered."""
    monkeypatch.delenv("VALIDATABLE_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


class Recorder:
    """Collects PropertyChanged events from any number of subscriptions."""

    def __init__(self) -> None:
        self.events: list[PropertyChanged] = []

    def __call__(self, event: PropertyChanged) -> None:
        self.events.append(event)

    def watch(self, obj: Observable, *names: str) -> Recorder:
        for name in names:
            obj.subscribe(name, self)
        return self

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def count(self, name: str) -> int:
        return sum(1 for e in self.events if e.name == name)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
