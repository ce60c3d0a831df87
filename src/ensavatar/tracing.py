"""Per-request correlation IDs for log lines."""

from __future__ import annotations

import contextvars
import logging
import uuid

_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"


def new_correlation_id() -> str:
    """Generate a fresh correlation ID."""
    return uuid.uuid4().hex


def set_correlation_id(correlation_id: str) -> contextvars.Token[str]:
    """Bind a correlation ID to the current context and return the reset token."""
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: contextvars.Token[str]) -> None:
    """Restore the correlation ID that was active before ``set_correlation_id``."""
    _correlation_id.reset(token)


def get_correlation_id() -> str:
    """Return the correlation ID bound to the current context, or ``"-"``."""
    return _correlation_id.get()


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation ID to every record as ``record.correlation_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()
        return True


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install a stream handler on the ``ensavatar`` logger with correlation IDs."""
    logger = logging.getLogger("ensavatar")
    logger.setLevel(level)
    for handler in logger.handlers:
        if any(isinstance(existing, CorrelationIdFilter) for existing in handler.filters):
            return
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
