"""Rich/JSON output helpers.

The CLI renders ServiceResult for humans (Rich markup, per-field error
lists) or machines (--json). The formatter layer adapts ServiceResult to
the requested output mode.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from rich.markup import escape

from validatable.output.console import create_console, get_output, validity_marker

if TYPE_CHECKING:
    from rich.console import Console

    from validatable.services.result import ServiceResult


class OutputSettings(BaseModel):
    """Output mode flags derived from the CLI."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def _render_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return _json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _render_fields(console: Console, fields: dict[str, Any]) -> None:
    for name, info in fields.items():
        marker = validity_marker(info.get("valid", True))
        console.print(f"  {marker} [val.field]{escape(name)}[/val.field]")
        for message in info.get("errors", []):
            console.print(f"      [val.message]{escape(message)}[/val.message]")


def _render_errors(console: Console, errors: dict[str, list[str]]) -> None:
    for name, messages in errors.items():
        console.print(f"  {validity_marker(False)} [val.field]{escape(name)}[/val.field]")
        for message in messages:
            console.print(f"      [val.message]{escape(message)}[/val.message]")


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        settings: Output mode; defaults to human-readable, non-quiet.
    """
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)

    console = create_console()
    if result.ok:
        console.print(f"[val.ok]OK[/val.ok]: [val.op]{escape(result.op)}[/val.op]")
        if not settings.quiet:
            data = dict(result.data)
            fields = data.pop("fields", None)
            items = data.pop("items", None)
            for key, value in data.items():
                console.print(f"  [val.key]{escape(key)}:[/val.key] {escape(_render_value(value))}")
            if fields:
                _render_fields(console, fields)
            for item in items or []:
                kind = escape(str(item.get("kind", "")))
                summary = escape(str(item.get("summary", "")))
                console.print(f"  [val.field]{kind}[/val.field]  {summary}".rstrip())
    else:
        error_msg = result.error.message if result.error else "Unknown error"
        console.print(
            f"[val.error]ERROR[/val.error]: [val.op]{escape(result.op)}[/val.op] — "
            f"{escape(error_msg)}"
        )
        if result.error and not settings.quiet:
            errors = result.error.detail.get("errors")
            if isinstance(errors, dict):
                _render_errors(console, errors)
    return get_output(console).rstrip("\n")
