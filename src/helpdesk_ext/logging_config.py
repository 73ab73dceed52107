"""Structured logging configuration.

JSON output for production, colored console for development/testing.
Call configure_logging() once at worker startup.

Key material and signed headers must never reach the logs, including
when a whole header mapping is logged: see :func:`redact_credentials`.
"""

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog

REDACTED = "***REDACTED***"

# Matched against lower-cased keys with "-" and "_" removed, as suffixes,
# so "bfx-signature", "x-bfx-apikey" and "private_key" are all covered.
SENSITIVE_SUFFIXES: tuple[str, ...] = (
    "apikey",
    "authorization",
    "payload",
    "privatekey",
    "publickey",
    "secret",
    "signature",
)


def is_sensitive(key: object) -> bool:
    normalized = str(key).lower().replace("-", "").replace("_", "")
    return normalized.endswith(SENSITIVE_SUFFIXES)


def _scrub(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: REDACTED if is_sensitive(k) else _scrub(v) for k, v in value.items()}
    return value


def redact_credentials(
    logger: logging.Logger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Redact credential-bearing keys, nested mappings included."""
    for key, value in event_dict.items():
        event_dict[key] = REDACTED if is_sensitive(key) else _scrub(value)
    return event_dict


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
) -> None:
    """Configure structlog processor chain and stdlib root logger.

    Args:
        environment: 'production' for JSON output, anything else
            for colored console output.
        log_level: Python log level name (DEBUG, INFO, WARNING, etc.).
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_credentials,
    ]

    if environment == "production":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain gives arq's stdlib records the same shape
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    # Per-request lines from httpx duplicate our own page events
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("arq.jobs").setLevel(logging.INFO)
