"""
Structured Logging with Session IDs

Context-aware structured logging for engine sessions. Every
``EngineSession.exclusive()`` block runs with its own session id, so the
commands that make up one logical interaction with R can be traced together
even when several threads share the engine.

Usage:
    from rlink.core.structured_logging import get_logger, with_session_id

    logger = get_logger(__name__)

    with with_session_id():
        logger.info("Assigning data frame")
        logger.info("Fitting model")
"""
from __future__ import annotations

import logging
import uuid
import contextvars
from typing import Optional
from contextlib import contextmanager
from datetime import datetime, timezone

# Context variable for the engine session id (thread-safe)
session_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'session_id',
    default=None
)


# =============================================================================
# Session ID Management
# =============================================================================

def generate_session_id() -> str:
    """Generate a new short session id."""
    return uuid.uuid4().hex[:12]


def get_session_id() -> Optional[str]:
    """Get current session id from context."""
    return session_id_var.get()


@contextmanager
def with_session_id(session_id: Optional[str] = None):
    """
    Context manager to set the session id for a block of code.

    Args:
        session_id: Session id to use, or None to generate a new one
    """
    if session_id is None:
        session_id = generate_session_id()

    token = session_id_var.set(session_id)
    try:
        yield session_id
    finally:
        session_id_var.reset(token)


# =============================================================================
# Structured Logging Formatter
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """Log formatter that adds the session id and an ISO timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        record.session_id = get_session_id() or "-"
        record.timestamp = datetime.now(timezone.utc).isoformat()
        return super().format(record)


# Format: [timestamp] [level] [session] [logger] message
STRUCTURED_FORMAT = (
    "[%(timestamp)s] [%(levelname)s] [sess:%(session_id)s] "
    "[%(name)s] %(message)s"
)


def get_logger(name: str) -> logging.Logger:
    """
    Get a structured logger with session id support.

    Args:
        name: Logger name (usually __name__)
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter(STRUCTURED_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


def configure_logging(level: Optional[str] = None, structured: Optional[bool] = None) -> logging.Logger:
    """
    Configure the ``rlink`` logger hierarchy from settings.

    Explicit arguments win over ``RLINK_LOG_LEVEL`` / ``RLINK_STRUCTURED_LOGS``.
    Calling it again replaces the handler installed by a previous call.
    """
    from rlink.core.config import get_settings

    settings = get_settings()
    level = level or settings.log_level
    if structured is None:
        structured = settings.structured_logs
    if settings.debug:
        level = "DEBUG"

    root = logging.getLogger("rlink")
    for handler in list(root.handlers):
        if getattr(handler, "_rlink_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._rlink_handler = True
    if structured:
        handler.setFormatter(StructuredFormatter(STRUCTURED_FORMAT))
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(level.upper())
    return root
