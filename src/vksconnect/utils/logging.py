"""Structured logging for vksconnect.

Log lines go to stderr by default so they never mix with the prompts and
tables printed on stdout. Every event passes through :func:`redact_secrets`
before rendering; API tokens must not reach a terminal or a log file.
"""

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

REDACTED = "***"

SENSITIVE_KEYS = frozenset({"token", "api_token", "password", "secret"})

_INLINE_TOKEN = re.compile(r"(--api-token[ =]|VCF_API_TOKEN=|Bearer\s+)(\S+)")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking token values in keys and inline text."""
    for key, value in event_dict.items():
        if key in SENSITIVE_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = _INLINE_TOKEN.sub(rf"\g<1>{REDACTED}", value)
    return event_dict


def setup_logging(level: str = "WARNING", format: str = "console", output: str = "stderr") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: ``json`` for one JSON object per line, ``console`` otherwise
        output: ``stdout`` or ``stderr``
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    stream = sys.stdout if output == "stdout" else sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]
    if format == "json":
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=shared + renderer,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger (pass ``__name__``)."""
    return structlog.get_logger(name)


def log_error(
    logger: structlog.BoundLogger,
    error: Exception,
    operation: str | None = None,
    **kwargs: Any,
) -> None:
    """Log a fatal error once, with its type, message and hint."""
    context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }
    hint = getattr(error, "hint", None)
    if hint:
        context["hint"] = hint
    if operation:
        context["operation"] = operation

    logger.error("error_occurred", **context)
