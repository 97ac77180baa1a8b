"""Logging setup for the standup service.

Every record carries the request id and the authenticated user. Reopening a
closed day is written to the ``standup.audit`` logger, which stays at INFO
or lower even when the rest of the service is configured quieter, so audit
lines are never filtered out.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig

from standup.core.context import get_request_id, get_user_id

AUDIT_LOGGER = "standup.audit"
ACCESS_LOGGER = "standup.access"


class RequestContextFilter(logging.Filter):
    """Stamp request_id and user_id onto log records ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.user_id = get_user_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    """Configure application logging once at startup."""
    if getattr(configure_logging, "_configured", False):
        return

    level = logging.getLevelName(log_level.upper())
    audit_level = min(level, logging.INFO) if isinstance(level, int) else logging.INFO

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s user=%(user_id)s | %(message)s",
                }
            },
            "filters": {
                "request_context": {
                    "()": "standup.core.logging.RequestContextFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["request_context"],
                }
            },
            "loggers": {
                "standup": {"level": log_level},
                AUDIT_LOGGER: {"level": audit_level},
                # uvicorn writes its own access log; ours carries the request id
                "uvicorn.access": {"level": "WARNING"},
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    setattr(configure_logging, "_configured", True)
