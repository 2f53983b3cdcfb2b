"""structlog setup shared by the API, the CLI and migrations.

Events carry the ``tenant_id`` bound by the resolution middleware through
``structlog.contextvars``. Production renders JSON lines, every other
environment a colored console.
"""

import logging
import sys
import uuid
from typing import TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SENSITIVE_KEYS: frozenset[str] = frozenset(
    {"password", "secret", "token", "authorization", "cookie"}
)
REDACTED = "***REDACTED***"

# Library loggers kept at WARNING regardless of the configured level.
NOISY_LOGGERS: tuple[str, ...] = ("uvicorn.access", "sqlalchemy.engine", "faker")


def redact_sensitive(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def stringify_uuids(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render UUID values (tenant and user ids) as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, uuid.UUID):
            event_dict[key] = str(value)
    return event_dict


def _renderer(environment: str) -> Processor:
    if environment == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    *,
    stream: TextIO | None = None,
) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        environment: ``production`` selects JSON output.
        log_level: Root level name (DEBUG, INFO, ...).
        stream: Handler target; stdout when omitted.
    """
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        stringify_uuids,
        redact_sensitive,
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(environment),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
