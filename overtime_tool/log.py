"""Structured logging for the overtime service.

Events are logged as snake_case names with keyword context, e.g.
``logger.info("entry_deleted", key=..., actor=...)``, and rendered as JSON
lines so store failures and swallowed side effects can be traced per entry.
"""

import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    timestamper = structlog.processors.TimeStamper(fmt="iso")
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        timestamper,
        structlog.processors.add_log_level,
    ]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
    )

    logging.basicConfig(level=level.upper())


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to a module name; configure_logging sets level and rendering."""
    return structlog.get_logger(name)
