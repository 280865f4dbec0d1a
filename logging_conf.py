"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging.config

import structlog

_LOGGING_INITIALISED = False


def configure_logging(level: str = "INFO") -> structlog.BoundLogger:
    """Configure structlog + a JSON console handler and return the app logger."""

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {
                        "()": "pythonjsonlogger.json.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "json",
                    },
                },
                "root": {"handlers": ["console"], "level": level},
            }
        )

        # structlog hands the event dict to stdlib; the JSON formatter renders it
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("country_cache")


__all__ = ["configure_logging"]
