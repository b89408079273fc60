"""Structured logging configuration.

JSON lines for deployments, colored console output for local development.
"""

import logging
import sys

import structlog
from structlog.types import Processor


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structlog for the whole process.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for production, "console" for development
    """
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
