"""JSON logging configuration with correlation IDs."""

from __future__ import annotations

import contextvars
import logging
from typing import Optional, Union

from pythonjsonlogger import jsonlogger

from .helpers import generate_uuid

correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Inject the correlation ID into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.correlation_id = correlation_id_var.get()
        return True


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context."""
    if correlation_id is None:
        correlation_id = generate_uuid()
    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    """Return the current correlation ID."""
    return correlation_id_var.get()


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_output: bool = True,
    logger_name: Optional[str] = None,
) -> logging.Handler:
    """Configure a logger (root by default) to emit logs including correlation IDs.

    Returns the installed handler so callers can detach it again.
    """
    handler = logging.StreamHandler()
    if json_output:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s"
        )
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    target = logging.getLogger(logger_name)
    target.setLevel(level.upper() if isinstance(level, str) else level)
    target.handlers = [handler]
    return handler
