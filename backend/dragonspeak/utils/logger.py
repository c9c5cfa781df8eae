"""
Centralized logging configuration for the Dragonspeak service.
Provides structured JSON logging with correlation IDs for request tracing.
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

import structlog
from structlog.types import FilteringBoundLogger

# Context variables carried across awaits and worker threads
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
job_id_ctx: ContextVar[str] = ContextVar("job_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID from context."""
    return correlation_id_ctx.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID in context. Generates new UUID if none provided."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_ctx.set(correlation_id)
    return correlation_id


@contextmanager
def bind_job_id(job_id: str) -> Iterator[None]:
    """Attach a transcription job ID to every log event until the block exits."""
    token = job_id_ctx.set(job_id)
    try:
        yield
    finally:
        job_id_ctx.reset(token)


def add_request_context(logger: FilteringBoundLogger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation and job IDs to log events."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    job_id = job_id_ctx.get()
    if job_id and "job_id" not in event_dict:
        event_dict["job_id"] = job_id
    return event_dict


def setup_logging(log_level: str = "INFO") -> FilteringBoundLogger:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            add_request_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )
    # kafka-python is chatty at INFO
    logging.getLogger("kafka").setLevel(logging.WARNING)

    return structlog.get_logger()


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    """Get a logger instance with optional name."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
