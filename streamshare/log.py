"""
Structured Logging

Local, structured logs for every mutation outcome and storage failure.
structlog renders JSON lines on top of the standard library logger, so
the level filter configured here applies to both.

Logging is observational only: a logging failure must never change
the outcome of an operation.
"""

import logging
from typing import Optional

import structlog


_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure stdlib logging and structlog once per process.

    Args:
        level: Level name; defaults to the LOG_LEVEL setting.
    """
    global _configured
    if _configured:
        return

    if level is None:
        from streamshare.config import get_settings
        try:
            level = get_settings().app.log_level
        except Exception:
            level = "INFO"

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str):
    """Get a structlog logger bound to a module name."""
    return structlog.get_logger(name)
