"""Structured logging setup for applications using slack-sender.

Only the ``slack_sender`` stdlib logger is touched; the root logger and
any handlers the application installed are left alone.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import Settings, get_settings

LOGGER_NAME = "slack_sender"


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure the package logger and structlog from settings.

    Returns:
        The ``slack_sender`` stdlib logger.
    """
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.dev.ConsoleRenderer()
                if settings.debug
                else structlog.processors.JSONRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return package_logger
