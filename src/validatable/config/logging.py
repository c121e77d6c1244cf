"""structlog configuration for validatable.

Two output modes:
- Human (default): console-formatted colored output to stderr
- JSON (--log-json): Structured JSON lines to stderr

Library modules log through the stdlib ``logging.getLogger(__name__)``;
the ProcessorFormatter gives those records the same structured fields,
plus a ``layer`` key (``domain``, ``services``, ``plugins``, ...) taken
from the logger name.

The engine logs every validation pass at DEBUG. ``--verbose`` shows
those records; ``quiet_engine`` keeps the other layers verbose while
holding the engine at WARNING.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

ENGINE_LOGGER = "validatable.domain"


def add_layer(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Tag records from ``validatable.<layer>.*`` loggers with their layer."""
    parts = str(event_dict.get("logger", "")).split(".")
    if len(parts) > 2 and parts[0] == "validatable":
        event_dict["layer"] = parts[1]
    return event_dict


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    quiet_engine: bool = False,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: Enable DEBUG-level output. When False, only WARNING+.
        log_json: Use JSON renderer instead of console renderer.
        quiet_engine: Keep per-pass engine records at WARNING even when
            *verbose* is set.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_layer,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("validatable").setLevel(level)
    logging.getLogger(ENGINE_LOGGER).setLevel(logging.WARNING if quiet_engine else logging.NOTSET)
