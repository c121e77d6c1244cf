"""Rich Console factory and theme for validatable output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

VALIDATABLE_THEME = Theme(
    {
        "val.ok": "bold green",
        "val.error": "bold red",
        "val.warning": "bold yellow",
        "val.op": "bold cyan",
        "val.key": "dim",
        "val.field": "bold",
        "val.message": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=VALIDATABLE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def validity_marker(valid: bool) -> str:
    """Markup for the check or cross shown before a field name."""
    return "[val.ok]✓[/val.ok]" if valid else "[val.error]✗[/val.error]"
