"""
MR-ROBOT - Logging setup

structlog renders JSON through the stdlib logging tree. Output goes to
stderr so stdout stays free for command output (scripts/db_status.py --json).
"""

import logging
import sys
from typing import IO, Optional

import structlog


def configure_logging(level: int = logging.INFO, stream: Optional[IO[str]] = None) -> None:
    """
    Configure stdlib logging and structlog once per process.

    Args:
        level: Root log level
        stream: Handler stream (default: stderr)
    """
    logging.basicConfig(
        level=level,
        stream=stream or sys.stderr,
        format="%(message)s"
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
