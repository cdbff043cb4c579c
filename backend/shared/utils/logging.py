"""
Structured logging for the stream checker.
Uses structlog over the stdlib root logger. Logs go to stderr so the report
on stdout stays clean when piped.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import structlog
from shared.config import Environment, Settings, get_settings

NOISY_LIBRARIES = ("httpx", "httpcore", "asyncio")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _final_chain(settings: Settings) -> list[structlog.types.Processor]:
    if settings.environment == Environment.DEV:
        return [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]
    return [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(),
    ]


def setup_logging(
    service_name: str,
    level: Optional[str] = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Configure structured logging for one CLI run.

    Args:
        service_name: Bound as ``service`` on every entry.
        level: Overrides the configured log level (``--verbose`` passes DEBUG).
        extra_context: Additional static context fields bound to every log entry.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=_final_chain(settings),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    # Request lines from httpx only show up in verbose runs
    library_level = logging.INFO if log_level <= logging.DEBUG else logging.WARNING
    for noisy in NOISY_LIBRARIES:
        logging.getLogger(noisy).setLevel(library_level)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name, **(extra_context or {}))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
